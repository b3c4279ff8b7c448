# pricing_table.py
# Loads the material/thickness pricing table and the global settings from CSV files.
# Rows may be entered in display units (thickness_unit, area_unit, speed_unit columns); they are
# converted to canonical units on load and keep their original text for editing.

import os
import csv
import math
import logging

from cutquote import config
from cutquote.models.pricing import PricingEntry, Settings
from cutquote.utils import units

THICKNESS_TOLERANCE = 1e-6
REQUIRED_COLUMNS = ["material_id", "thickness", "cost_per_area", "cost_per_time", "cut_speed"]
NUMERIC_COLUMNS = REQUIRED_COLUMNS[1:]
DATA_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'data'))
BUNDLED_PRICING_TABLE = os.path.join(DATA_DIR, "pricing_table.csv")
BUNDLED_SETTINGS = os.path.join(DATA_DIR, "settings.csv")


class PricingTable:
    """Pricing entries keyed by (material_id, thickness in mm)."""

    def __init__(self, entries=()):
        self._entries = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry):
        # last written wins
        existing = self.lookup(entry.material_id, entry.thickness)
        if existing is not None:
            logging.warning(f"Duplicate pricing entry for {entry.material_id} @ {entry.thickness} mm, replacing")
            del self._entries[existing.key]
        self._entries[entry.key] = entry

    def lookup(self, material_id, thickness):
        for (mat, thick), entry in self._entries.items():
            if mat == str(material_id) and abs(thick - float(thickness)) <= THICKNESS_TOLERANCE:
                return entry
        return None

    def materials(self):
        return sorted({mat for mat, _ in self._entries})

    def thicknesses(self, material_id):
        return sorted(thick for mat, thick in self._entries if mat == str(material_id))

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(sorted(self._entries.values(), key=lambda e: (e.material_id, e.thickness)))


def _search_paths(file_path, configured, bundled):
    paths = []
    if file_path:
        paths.append(file_path)
    if configured:
        paths.append(configured)
    paths.append(bundled)
    return paths


def _find_file(file_path, configured, bundled):
    search_paths = _search_paths(file_path, configured, bundled)
    if file_path and not os.path.exists(file_path):
        logging.warning(f"Requested file {file_path} not found, falling back to {search_paths[1:]}")
    for path in search_paths:
        if os.path.exists(path):
            return path
    logging.warning(f"File not found in any expected location: {search_paths}")
    return None


def load_pricing_table(file_path=None):
    """Load the pricing table CSV, robust to working directory; bad rows are skipped."""
    path = _find_file(file_path, config.PRICING_TABLE_PATH, BUNDLED_PRICING_TABLE)
    if path is None:
        return PricingTable()
    table = PricingTable()
    with open(path, "r", encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or not set(REQUIRED_COLUMNS).issubset(reader.fieldnames):
            raise ValueError(f"Pricing table {path} is missing required columns {REQUIRED_COLUMNS}")
        for line_no, row in enumerate(reader, start=2):
            empty = [c for c in REQUIRED_COLUMNS if not (row.get(c) or "").strip()]
            if empty:
                logging.warning(f"Skipping row {line_no} in {path}: missing {empty}")
                continue
            unparsable = [c for c in NUMERIC_COLUMNS if math.isnan(units.parse_fractional_input(row[c]))]
            if unparsable:
                logging.warning(f"Skipping row {line_no} in {path}: not a number in {unparsable}")
                continue
            if units.to_canonical(row["thickness"], row.get("thickness_unit") or units.Unit.MM) <= 0:
                logging.warning(f"Skipping row {line_no} in {path}: invalid thickness {row['thickness']!r}")
                continue
            entry = PricingEntry.from_display(
                row["material_id"].strip(),
                row["thickness"].strip(),
                row["cost_per_area"].strip(),
                row["cost_per_time"].strip(),
                row["cut_speed"].strip(),
                thickness_unit=row.get("thickness_unit") or units.Unit.MM,
                area_unit=row.get("area_unit") or units.Unit.MM2,
                speed_unit=row.get("speed_unit") or units.Unit.MM_MIN,
            )
            table.add(entry)
    logging.info(f"Pricing table loaded from {path}: {len(table)} entries")
    return table


def load_settings(file_path=None):
    """Load global settings (key,value rows) into an immutable Settings snapshot.

    Providing safe defaults if the file is missing.
    """
    path = _find_file(file_path, config.SETTINGS_PATH, BUNDLED_SETTINGS)
    if path is None:
        logging.warning("No settings file found, using defaults")
        return Settings()
    values = {}
    with open(path, "r", encoding='utf-8') as f:
        for line in f:
            if not line.strip() or line.startswith('#'):
                continue
            parts = [x.strip() for x in line.split(',')]
            if len(parts) < 2:
                logging.warning(f"Skipping invalid line in {path}: {line.strip()}")
                continue
            key, value = parts[:2]
            if key == "key":
                continue
            values[key] = value
    settings = Settings.from_mapping(values)
    logging.info(f"Loaded settings from {path}: {settings.to_dict()}")
    return settings
