"""
test_inventory_script.py
Runs scripts/inventory_dxf_metrics.py against a temporary folder of drawings.
"""
import csv
import importlib.util
import os

import ezdxf
import pytest

SCRIPT_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "scripts", "inventory_dxf_metrics.py")


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("inventory_dxf_metrics", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def dxf_dir(tmp_path):
    doc = ezdxf.new("R2010", units=4)
    msp = doc.modelspace()
    msp.add_line((0, 0), (40, 0))
    msp.add_circle((20, 10), 5)
    doc.saveas(str(tmp_path / "bracket.dxf"))
    (tmp_path / "corrupt.dxf").write_text("garbage\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("not a drawing", encoding="utf-8")
    return tmp_path


def test_inventory_rows(script, dxf_dir):
    rows = script.inventory(str(dxf_dir))
    assert [row["file"] for row in rows] == ["bracket.dxf", "corrupt.dxf"]
    bracket, corrupt = rows
    assert bracket["LINE"] == 1
    assert bracket["CIRCLE"] == 1
    assert bracket["total_length"] == pytest.approx(40 + 10 * 3.14159, abs=1e-3)
    assert corrupt["total_length"] == "ERR"
    assert corrupt["LINE"] == "ERR"


def test_main_writes_csv(script, dxf_dir, tmp_path):
    output = tmp_path / "inventory.csv"
    assert script.main([str(dxf_dir), "-o", str(output)]) == 0
    with open(output, newline="") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert rows[1]["file"] == "corrupt.dxf"
    assert rows[1]["area"] == "ERR"
    assert float(rows[0]["width"]) == pytest.approx(40)


def test_main_missing_directory(script, tmp_path):
    assert script.main([str(tmp_path / "nowhere")]) == 1
