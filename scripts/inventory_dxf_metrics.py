import os
import csv
import sys
import argparse
# Ensure project root is in sys.path
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(SCRIPT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
from cutquote.models.geometry import ENTITY_TYPES
from cutquote.utils import dxf_parser

# Default directory containing DXF files
DXF_DIR = os.path.join(PROJECT_ROOT, 'Inputs', 'secondary_test_samples')

# Default output CSV file
OUTPUT_CSV = os.path.join(SCRIPT_DIR, 'dxf_metrics_inventory.csv')

METRIC_COLUMNS = ["total_length", "width", "height", "area"]


def inventory(dxf_dir, options=None):
    """Parse every .dxf in dxf_dir and return one row per file (ERR cells for files that fail)."""
    files = sorted(f for f in os.listdir(dxf_dir) if f.lower().endswith('.dxf'))
    results = []
    for fname in files:
        path = os.path.join(dxf_dir, fname)
        row = {'file': fname}
        try:
            result = dxf_parser.parse_dxf_file(path, options)
            row.update(result.type_counts())
            row.update({
                "total_length": round(result.metrics.total_length, 3),
                "width": round(result.metrics.width, 3),
                "height": round(result.metrics.height, 3),
                "area": round(result.metrics.area, 3),
            })
        except dxf_parser.ParseError as e:
            print(f"Error parsing {fname}: {e}")
            row.update({k: 'ERR' for k in list(ENTITY_TYPES) + METRIC_COLUMNS})
        results.append(row)
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description="Measure every DXF file in a directory and write a CSV inventory.")
    parser.add_argument('dxf_dir', nargs='?', default=DXF_DIR)
    parser.add_argument('-o', '--output', default=OUTPUT_CSV)
    args = parser.parse_args(argv)

    if not os.path.isdir(args.dxf_dir):
        print(f"DXF directory not found: {args.dxf_dir}")
        return 1
    results = inventory(args.dxf_dir)
    if not results:
        print(f"No DXF files found in {args.dxf_dir}")
        return 0

    fieldnames = ['file'] + list(ENTITY_TYPES) + METRIC_COLUMNS
    with open(args.output, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(results)
    print(f"Inventory complete. Results written to {args.output}")
    # Also print a summary table
    print("\nSummary:")
    print(f"{'File':40} " + " ".join([f"{t:10}" for t in fieldnames[1:]]))
    for row in results:
        print(f"{row['file'][:40]:40} " + " ".join([f"{str(row[t]):10}" for t in fieldnames[1:]]))
    return 0


if __name__ == '__main__':
    sys.exit(main())
