"""
test_quote_flow.py
End-to-end: DXF text in, geometry and price breakdown out, using the bundled pricing table and settings.
"""
import pytest

import cutquote
from cutquote import config


@pytest.fixture
def steel(monkeypatch):
    monkeypatch.setattr(config, "PRICING_TABLE_PATH", "")
    monkeypatch.setattr(config, "SETTINGS_PATH", "")
    table = cutquote.load_pricing_table()
    return table.lookup("Steel", 1.0), cutquote.load_settings()


def rectangle_text(doc, msp, to_text, width, height):
    msp.add_lwpolyline([(0, 0), (width, 0), (width, height), (0, height)], format="xy", close=True)
    return to_text(doc)


def test_small_part_hits_min_charge(doc, msp, to_text, steel):
    entry, settings = steel
    geometry, breakdown = cutquote.quote_dxf(rectangle_text(doc, msp, to_text, 100, 50), entry, settings)
    assert geometry.metrics.width == pytest.approx(100)
    assert geometry.metrics.height == pytest.approx(50)
    assert geometry.metrics.total_length == pytest.approx(300)
    assert breakdown.area_cost == pytest.approx(0.25)
    assert breakdown.subtotal == pytest.approx(0.25 + 0.1 / 60 * 50)
    assert breakdown.min_charge_applied is True
    assert breakdown.final_price == 25


def test_large_part_is_priced_above_min_charge(doc, msp, to_text, steel):
    entry, settings = steel
    geometry, breakdown = cutquote.quote_dxf(rectangle_text(doc, msp, to_text, 1000, 500), entry, settings)
    assert geometry.metrics.area == pytest.approx(500000)
    assert breakdown.details.cut_time_minutes == pytest.approx(1.0)
    assert breakdown.subtotal == pytest.approx(25.8333, abs=1e-4)
    assert breakdown.final_price == pytest.approx(29.7083, abs=1e-4)
    assert breakdown.min_charge_applied is False
    assert breakdown.to_dict()["currency"] == "USD"


def test_inch_drawing_is_priced_in_mm(to_text, steel):
    import ezdxf
    doc = ezdxf.new("R2010", units=1)
    doc.modelspace().add_line((0, 0), (10, 0))
    entry, settings = steel
    geometry, breakdown = cutquote.quote_dxf(to_text(doc), entry, settings)
    assert geometry.metrics.total_length == pytest.approx(254)
    assert breakdown.details.cut_length == pytest.approx(254)


def test_unparseable_upload_raises(steel):
    entry, settings = steel
    with pytest.raises(cutquote.ParseError):
        cutquote.quote_dxf("this is not a drawing", entry, settings)
