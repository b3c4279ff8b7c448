# pricing.py
# Pricing-table rows, the global settings snapshot and the price breakdown returned by costing.py.
# Stored values are canonical: thickness in mm, cost per area in $/mm², cost per time in $/hour,
# cut speed in mm/min.

import math
from dataclasses import dataclass, field
from typing import Optional, Mapping, Tuple

from cutquote import config
from cutquote.utils import units


@dataclass(frozen=True)
class PricingEntry:
    material_id: str
    thickness: float
    cost_per_area: float
    cost_per_time: float
    cut_speed: float
    # field name -> (text as typed, unit tag), kept for round-trip editing
    display: Optional[Mapping[str, Tuple[str, str]]] = None

    @property
    def key(self):
        return (self.material_id, self.thickness)

    @classmethod
    def from_display(cls, material_id, thickness, cost_per_area, cost_per_time, cut_speed,
                     thickness_unit=units.Unit.MM, area_unit=units.Unit.MM2, speed_unit=units.Unit.MM_MIN):
        """Build an entry from admin-entered strings and their display units."""
        display = {
            "thickness": (str(thickness), str(thickness_unit)),
            "cost_per_area": (str(cost_per_area), str(area_unit)),
            "cost_per_time": (str(cost_per_time), "$/hour"),
            "cut_speed": (str(cut_speed), str(speed_unit)),
        }
        return cls(
            material_id=str(material_id),
            thickness=units.to_canonical(thickness, thickness_unit),
            cost_per_area=units.to_canonical(cost_per_area, area_unit),
            cost_per_time=units.to_canonical(cost_per_time, None),
            cut_speed=units.to_canonical(cut_speed, speed_unit),
            display=display,
        )

    def display_value(self, name, unit=None):
        """Text to put back in the edit form for `name`.

        Returns the originally typed string when it was entered in `unit` (or no unit is asked for),
        otherwise converts the canonical value.
        """
        if self.display and name in self.display:
            text, entered_unit = self.display[name]
            if unit is None or str(unit) == entered_unit:
                return text
        return units.format_input(units.from_canonical(getattr(self, name), unit))

    def to_dict(self):
        return {
            "material_id": self.material_id,
            "thickness": self.thickness,
            "cost_per_area": self.cost_per_area,
            "cost_per_time": self.cost_per_time,
            "cut_speed": self.cut_speed,
            "display": {k: list(v) for k, v in (self.display or {}).items()},
        }


@dataclass(frozen=True)
class Settings:
    markup: float = 0.0
    min_charge: float = 0.0
    currency: str = config.DEFAULT_CURRENCY

    @classmethod
    def from_mapping(cls, values):
        """Snapshot a flat key/value settings store (string values, camelCase or snake_case keys)."""
        def number(*keys):
            for key in keys:
                if key in values and values[key] is not None:
                    return units.parse_fractional_input(values[key])
            return 0.0

        currency = values.get("currency") or config.DEFAULT_CURRENCY
        return cls(
            markup=number("markup"),
            min_charge=number("minCharge", "min_charge"),
            currency=str(currency).strip().upper(),
        )

    def to_dict(self):
        return {"markup": self.markup, "min_charge": self.min_charge, "currency": self.currency}


@dataclass(frozen=True)
class PriceDetails:
    area: float = 0.0
    cut_length: float = 0.0
    cut_time_minutes: float = 0.0
    cut_speed: float = 0.0
    cost_per_area: float = 0.0
    cost_per_time: float = 0.0

    def to_dict(self):
        return {
            "area": self.area,
            "cut_length": self.cut_length,
            "cut_time_minutes": self.cut_time_minutes,
            "cut_speed": self.cut_speed,
            "cost_per_area": self.cost_per_area,
            "cost_per_time": self.cost_per_time,
        }


@dataclass(frozen=True)
class PriceBreakdown:
    area_cost: float = 0.0
    time_cost: float = 0.0
    subtotal: float = 0.0
    markup_percent: float = 0.0
    markup_amount: float = 0.0
    with_markup: float = 0.0
    final_price: float = 0.0
    min_charge_applied: bool = False
    min_charge: float = 0.0
    currency: str = config.DEFAULT_CURRENCY
    details: PriceDetails = field(default_factory=PriceDetails)

    @property
    def is_empty(self):
        return self.final_price == 0 and self.subtotal == 0

    def is_finite(self):
        values = (self.area_cost, self.time_cost, self.subtotal, self.markup_amount, self.with_markup, self.final_price)
        return all(math.isfinite(v) for v in values)

    def to_dict(self):
        return {
            "area_cost": self.area_cost,
            "time_cost": self.time_cost,
            "subtotal": self.subtotal,
            "markup_percent": self.markup_percent,
            "markup_amount": self.markup_amount,
            "with_markup": self.with_markup,
            "final_price": self.final_price,
            "min_charge_applied": self.min_charge_applied,
            "min_charge": self.min_charge,
            "currency": self.currency,
            "details": self.details.to_dict(),
        }
