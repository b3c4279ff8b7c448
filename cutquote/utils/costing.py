#costing.py
#Calculates the price of a cut part from its DXF metrics, the pricing-table entry for its
#material/thickness and the global settings snapshot (markup, minimum charge, currency).
#Pure function: no I/O, same inputs give the same breakdown.

import math
import logging
from collections.abc import Mapping

from cutquote import config
from cutquote.models.pricing import PriceBreakdown, PriceDetails

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "CAD": "CA$", "AUD": "A$", "JPY": "¥"}


def _value(source, *names):
    """First present attribute/key among `names` (snake_case or camelCase), or None."""
    for name in names:
        if isinstance(source, Mapping):
            if source.get(name) is not None:
                return source[name]
        elif getattr(source, name, None) is not None:
            return getattr(source, name)
    return None


def _number(source, *names):
    value = _value(source, *names)
    if value is None:
        return None
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _valid(*values):
    return all(v is not None and math.isfinite(v) for v in values)


def empty_breakdown(currency=None):
    """Zeroed breakdown used when there is nothing (or nothing valid) to price."""
    return PriceBreakdown(currency=currency or config.DEFAULT_CURRENCY)


def calculate_price(metrics, pricing_entry, settings):
    """Calculate the price breakdown for one part.

    metrics: Metrics or mapping with width, height, total_length and optionally area (mm, mm²)
    pricing_entry: PricingEntry or mapping with cost_per_area ($/mm²), cost_per_time ($/hour), cut_speed (mm/min)
    settings: Settings or mapping with markup (%), min_charge ($) and currency
    """
    currency = (_value(settings, "currency") if settings else None) or config.DEFAULT_CURRENCY
    if not metrics or not pricing_entry or not settings:
        logging.debug("calculate_price: missing metrics, pricing entry or settings, returning empty breakdown")
        return empty_breakdown(currency)

    width = _number(metrics, "width")
    height = _number(metrics, "height")
    total_length = _number(metrics, "total_length", "totalLength")
    area = _number(metrics, "area")
    cost_per_area = _number(pricing_entry, "cost_per_area", "costPerArea")
    cost_per_time = _number(pricing_entry, "cost_per_time", "costPerTime")
    cut_speed = _number(pricing_entry, "cut_speed", "cutSpeed")
    markup = _number(settings, "markup")
    min_charge = _number(settings, "min_charge", "minCharge")
    markup = 0.0 if markup is None else markup
    min_charge = 0.0 if min_charge is None else min_charge

    # Prefer a precomputed (possibly polygon-aware) area, else the bounding box
    if area is not None:
        effective_area = area
    elif _valid(width, height):
        effective_area = width * height
    else:
        effective_area = None

    if not _valid(effective_area, total_length, cost_per_area, cost_per_time, markup, min_charge):
        logging.warning(
            f"calculate_price: invalid input (area={effective_area}, total_length={total_length}, "
            f"cost_per_area={cost_per_area}, cost_per_time={cost_per_time}, markup={markup}, "
            f"min_charge={min_charge}), returning empty breakdown"
        )
        return empty_breakdown(currency)

    area_cost = effective_area * cost_per_area

    # Zero or invalid speed means no time cost rather than a division error
    speed_ok = cut_speed is not None and cut_speed > 0
    cut_time_minutes = total_length / cut_speed if speed_ok else 0.0
    cut_time_hours = cut_time_minutes / 60
    time_cost = cut_time_hours * cost_per_time

    subtotal = area_cost + time_cost
    markup_amount = subtotal * (markup / 100)
    with_markup = subtotal + markup_amount
    final_price = max(with_markup, min_charge)

    breakdown = PriceBreakdown(
        area_cost=area_cost,
        time_cost=time_cost,
        subtotal=subtotal,
        markup_percent=markup,
        markup_amount=markup_amount,
        with_markup=with_markup,
        final_price=final_price,
        min_charge_applied=with_markup < min_charge,
        min_charge=min_charge,
        currency=currency,
        details=PriceDetails(
            area=effective_area,
            cut_length=total_length,
            cut_time_minutes=cut_time_minutes,
            cut_speed=cut_speed if _valid(cut_speed) else 0.0,
            cost_per_area=cost_per_area,
            cost_per_time=cost_per_time,
        ),
    )
    if not breakdown.is_finite():
        logging.warning(f"calculate_price: non-finite result {breakdown.to_dict()}, returning empty breakdown")
        return empty_breakdown(currency)
    logging.debug(f"calculate_price returning: {breakdown.to_dict()}")
    return breakdown


def format_currency(value, currency=None):
    """Format a price to 2 decimals with its currency symbol, e.g. $1,234.50."""
    currency = (currency or config.DEFAULT_CURRENCY).upper()
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"
