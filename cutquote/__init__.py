# LOGGING MUST BE CONFIGURED BEFORE ANY OTHER IMPORTS OR LOGGING USAGE
from cutquote import config
config.configure_logging()

import logging

from cutquote.models.geometry import Point, Entity, Bounds, Metrics, GeometryResult
from cutquote.models.pricing import PricingEntry, Settings, PriceBreakdown
from cutquote.utils.dxf_parser import ParseError, ExtractorOptions, parse_dxf, parse_dxf_file, extract_geometry
from cutquote.utils.costing import calculate_price, empty_breakdown
from cutquote.utils.units import Unit, parse_fractional_input, to_canonical, from_canonical
from cutquote.utils.pricing_table import PricingTable, load_pricing_table, load_settings

__version__ = "1.0.0"


def quote_dxf(text, pricing_entry, settings, options=None):
    """Parse DXF text and price it. Returns (GeometryResult, PriceBreakdown); ParseError propagates."""
    geometry = parse_dxf(text, options)
    breakdown = calculate_price(geometry.metrics, pricing_entry, settings)
    logging.info(f"Quote: {breakdown.final_price:.2f} {breakdown.currency} "
                 f"(min charge applied: {breakdown.min_charge_applied})")
    return geometry, breakdown
