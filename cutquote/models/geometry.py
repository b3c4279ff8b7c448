# geometry.py
# Normalized geometry produced by the DXF parser. All coordinates and lengths are millimeters.

from dataclasses import dataclass, field
from typing import Optional, Tuple

LINE = "LINE"
CIRCLE = "CIRCLE"
ARC = "ARC"
POLYLINE = "POLYLINE"
SPLINE = "SPLINE"
ENTITY_TYPES = (LINE, CIRCLE, ARC, POLYLINE, SPLINE)


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    z: float = 0.0

    def to_dict(self):
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class Entity:
    """A cut path approximated by an ordered point sequence, with its exact length where one exists."""
    type: str
    points: Tuple[Point, ...]
    length: float
    layer: str = "0"
    center: Optional[Point] = None
    radius: Optional[float] = None
    start_angle: Optional[float] = None
    end_angle: Optional[float] = None
    closed: bool = False

    def to_dict(self):
        data = {
            "type": self.type,
            "layer": self.layer,
            "points": [p.to_dict() for p in self.points],
            "length": self.length,
        }
        if self.center is not None:
            data["center"] = self.center.to_dict()
            data["radius"] = self.radius
        if self.type == ARC:
            data["start_angle"] = self.start_angle
            data["end_angle"] = self.end_angle
        if self.type == POLYLINE:
            data["closed"] = self.closed
        return data


@dataclass(frozen=True)
class Bounds:
    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0

    @property
    def width(self):
        return self.max_x - self.min_x

    @property
    def height(self):
        return self.max_y - self.min_y

    def contains(self, point):
        return self.min_x <= point.x <= self.max_x and self.min_y <= point.y <= self.max_y

    def to_dict(self):
        return {"min_x": self.min_x, "min_y": self.min_y, "max_x": self.max_x, "max_y": self.max_y}


@dataclass(frozen=True)
class Metrics:
    """Aggregate measurements of a drawing. `area` is the billable area (bounding box unless overridden)."""
    width: float = 0.0
    height: float = 0.0
    total_length: float = 0.0
    area: float = 0.0
    bounds: Bounds = field(default_factory=Bounds)
    entity_count: int = 0
    net_area: Optional[float] = None

    def to_dict(self):
        return {
            "width": self.width,
            "height": self.height,
            "total_length": self.total_length,
            "area": self.area,
            "net_area": self.net_area,
            "bounds": self.bounds.to_dict(),
            "entity_count": self.entity_count,
        }


@dataclass(frozen=True)
class GeometryResult:
    entities: Tuple[Entity, ...]
    metrics: Metrics

    def type_counts(self):
        counts = {t: 0 for t in ENTITY_TYPES}
        for entity in self.entities:
            counts[entity.type] += 1
        return counts

    def to_dict(self):
        return {
            "entities": [e.to_dict() for e in self.entities],
            "metrics": self.metrics.to_dict(),
        }
