# units.py
# Parses dimensional input typed by the admin (decimals, fractions, mixed numbers) and converts between
# display units and the canonical units everything is stored and priced in:
# length mm, cost per area $/mm², speed mm/min.

import math
import re
from enum import Enum


class Unit(str, Enum):
    MM = "mm"
    IN = "in"
    MM2 = "mm2"
    IN2 = "in2"
    MM_MIN = "mm_min"
    IN_MIN = "in_min"

    def __str__(self):
        return self.value


MM_PER_INCH = 25.4
MM2_PER_SQIN = 645.16

# unit -> (factor, divide). Cost per area scales inversely with the unit's area, so $/in² -> $/mm² divides.
CONVERSION_FACTORS = {
    Unit.MM: (1.0, False),
    Unit.IN: (MM_PER_INCH, False),
    Unit.MM2: (1.0, False),
    Unit.IN2: (MM2_PER_SQIN, True),
    Unit.MM_MIN: (1.0, False),
    Unit.IN_MIN: (MM_PER_INCH, False),
}

_MIXED_RE = re.compile(r'^(\d+)[-\s]+(\d+)/(\d+)$')
_FRACTION_RE = re.compile(r'^(\d+)/(\d+)$')
_DECIMAL_RE = re.compile(r'^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$')


def parse_fractional_input(value):
    """Parse "0.125", "1/8", "1 1/4" or "1-1/4" into a float. Returns NaN for anything else."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return math.nan

    text = value.strip()
    if not text:
        return math.nan

    match = _MIXED_RE.match(text)
    if match:
        whole, num, den = (int(g) for g in match.groups())
        if den == 0:
            return math.nan
        return whole + num / den

    match = _FRACTION_RE.match(text)
    if match:
        num, den = (int(g) for g in match.groups())
        if den == 0:
            return math.nan
        return num / den

    # a slash that matched neither form is a typo, not a decimal
    if '/' in text:
        return math.nan

    if not _DECIMAL_RE.match(text):
        return math.nan
    return float(text)


def _lookup(unit):
    if unit is None:
        return None
    try:
        return CONVERSION_FACTORS[Unit(str(unit))]
    except ValueError:
        return None


def to_canonical(value, unit):
    """Convert `value` entered in `unit` to canonical units. Blank or invalid input gives 0.

    Unknown unit tags are treated as already canonical so legacy rows without a unit still work.
    """
    if value is None or value == '':
        return 0.0
    num = parse_fractional_input(value)
    if math.isnan(num):
        return 0.0
    factor = _lookup(unit)
    if factor is None:
        return num
    scale, divide = factor
    return num / scale if divide else num * scale


def from_canonical(value, unit):
    """Convert a canonical value to `unit` for display; the inverse of to_canonical."""
    if value is None or value == '':
        return 0.0
    num = parse_fractional_input(value)
    if math.isnan(num):
        return 0.0
    factor = _lookup(unit)
    if factor is None:
        return num
    scale, divide = factor
    return num * scale if divide else num / scale


def format_input(value):
    """Render a number for an edit field: at most 6 decimals, no trailing zeros. Strings pass through."""
    if value is None or value == '':
        return ''
    if isinstance(value, str):
        return value
    text = f"{round(float(value), 6):.6f}".rstrip('0').rstrip('.')
    return '0' if text in ('-0', '') else text
