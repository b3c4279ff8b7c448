# dxf_parser.py
# Parses DXF drawings into normalized cut paths and measures them for quoting:
# total cut length, bounding box and (for closed contours) net area. All output is in millimeters.
# Supported entities: LINE, CIRCLE, ARC, LWPOLYLINE/POLYLINE (with bulge arcs) and SPLINE.
# INSERT block references are expanded; anything else is skipped.

import io
import math
import os
import logging
from dataclasses import dataclass
from typing import Tuple

import ezdxf
from shapely import STRtree
from shapely.geometry import Polygon

from cutquote import config
from cutquote.models.geometry import (
    Point, Entity, Bounds, Metrics, GeometryResult,
    LINE, CIRCLE, ARC, POLYLINE, SPLINE,
)

ARC_MIN_SEGMENTS = 16
ARC_SEGMENT_ANGLE = math.pi / 32
BULGE_MIN_SEGMENTS = 4
MAX_BLOCK_DEPTH = 10
AREA_MODES = ("bbox", "net")

# $INSUNITS code -> millimeters per drawing unit. 0 (unitless) falls back to default_unit_scale.
INSUNITS_TO_MM = {
    1: 25.4,        # inches
    2: 304.8,       # feet
    4: 1.0,         # millimeters
    5: 10.0,        # centimeters
    6: 1000.0,      # meters
    8: 0.0000254,   # microinches
    9: 0.0254,      # mils
    10: 914.4,      # yards
    13: 0.001,      # microns
    14: 100.0,      # decimeters
}


class ParseError(ValueError):
    """The DXF text could not be read, or carries no entity table."""


@dataclass(frozen=True)
class ExtractorOptions:
    circle_segments: int = 64
    include_bulge_arcs: bool = True
    area_mode: str = "bbox"
    skip_layers: Tuple[str, ...] = ()
    default_unit_scale: float = 1.0

    def __post_init__(self):
        if self.area_mode not in AREA_MODES:
            raise ValueError(f"Invalid area_mode: {self.area_mode}. Allowed: {AREA_MODES}")
        if self.circle_segments < config.MIN_CIRCLE_SEGMENTS:
            logging.warning(f"circle_segments={self.circle_segments} is below {config.MIN_CIRCLE_SEGMENTS}, clamping")
            object.__setattr__(self, "circle_segments", config.MIN_CIRCLE_SEGMENTS)

    @classmethod
    def from_config(cls):
        return cls(
            circle_segments=config.CIRCLE_SEGMENTS,
            include_bulge_arcs=config.INCLUDE_BULGE_ARCS,
            area_mode=config.AREA_MODE,
            skip_layers=tuple(config.SKIP_LAYERS),
            default_unit_scale=config.DEFAULT_UNIT_SCALE,
        )


def distance(p1, p2):
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def polyline_length(points):
    return sum(distance(points[i - 1], points[i]) for i in range(1, len(points)))


def _point(vec, scale=1.0):
    z = vec[2] if len(vec) > 2 else 0.0
    return Point(float(vec[0]) * scale, float(vec[1]) * scale, float(z) * scale)


def _arc_points(center, radius, start, sweep, segments):
    """Points along an arc from angle `start` (radians) through signed `sweep`, segments + 1 of them."""
    return [
        Point(center.x + radius * math.cos(start + sweep * i / segments),
              center.y + radius * math.sin(start + sweep * i / segments),
              center.z)
        for i in range(segments + 1)
    ]


def _segment_count(sweep):
    # a sweep of n * ARC_SEGMENT_ANGLE (within float noise) gives exactly n segments
    return math.ceil(round(sweep / ARC_SEGMENT_ANGLE, 9))


def bulge_to_arc(p1, p2, bulge):
    """Arc described by a polyline segment p1 -> p2 with the given bulge.

    Returns (center, radius, start_angle, sweep) with angles in radians; sweep is positive (CCW) for a
    positive bulge and negative (CW) for a negative one.
    """
    chord = distance(p1, p2)
    if bulge == 0 or chord == 0:
        raise ValueError("bulge arc needs a nonzero bulge and two distinct points")
    theta = 4 * math.atan(bulge)
    # cot(theta / 2) expressed through the bulge, which is tan(theta / 4)
    cot_half = (1 - bulge * bulge) / (2 * bulge)
    nx, ny = -(p2.y - p1.y) / chord, (p2.x - p1.x) / chord
    offset = cot_half * chord / 2
    center = Point((p1.x + p2.x) / 2 + nx * offset, (p1.y + p2.y) / 2 + ny * offset, p1.z)
    radius = distance(p1, center)
    start = math.atan2(p1.y - center.y, p1.x - center.x)
    return center, radius, start, theta


def arc_length_from_bulge(p1, p2, bulge):
    """Calculate arc length from bulge value between two points."""
    chord = distance(p1, p2)
    theta = 4 * math.atan(abs(bulge))
    radius = chord / (2 * math.sin(theta / 2)) if theta != 0 else 0
    return radius * theta if radius > 0 else chord


def _layer(entity):
    return getattr(getattr(entity, 'dxf', None), 'layer', '0') or '0'


def _line(entity, scale, options):
    start = _point(entity.dxf.start, scale)
    end = _point(entity.dxf.end, scale)
    return Entity(LINE, (start, end), distance(start, end), layer=_layer(entity))


def _circle(entity, scale, options):
    center = _point(entity.dxf.center, scale)
    # AutoCAD ignores the sign of the radius
    radius = abs(float(entity.dxf.radius)) * scale
    if radius <= 0:
        logging.debug(f"CIRCLE on layer {_layer(entity)}: zero radius, skipping")
        return None
    points = _arc_points(center, radius, 0.0, 2 * math.pi, options.circle_segments)
    return Entity(CIRCLE, tuple(points), 2 * math.pi * radius, layer=_layer(entity),
                  center=center, radius=radius)


def _arc(entity, scale, options):
    center = _point(entity.dxf.center, scale)
    # AutoCAD ignores the sign of the radius
    radius = abs(float(entity.dxf.radius)) * scale
    if radius <= 0:
        logging.debug(f"ARC on layer {_layer(entity)}: zero radius, skipping")
        return None
    start = math.radians(entity.dxf.start_angle)
    sweep = math.radians(entity.dxf.end_angle) - start
    if sweep < 0:
        sweep += 2 * math.pi
    segments = max(ARC_MIN_SEGMENTS, _segment_count(sweep))
    points = _arc_points(center, radius, start, sweep, segments)
    return Entity(ARC, tuple(points), radius * sweep, layer=_layer(entity), center=center, radius=radius,
                  start_angle=float(entity.dxf.start_angle), end_angle=float(entity.dxf.end_angle))


def _polyline_from_vertices(vertices, closed, layer, scale, options):
    """vertices: [(x, y, z, bulge)]. The bulge of a vertex shapes the segment that starts at it."""
    if len(vertices) < 2:
        logging.debug(f"POLYLINE on layer {layer}: {len(vertices)} vertices, skipping")
        return None
    pts = [Point(x * scale, y * scale, z * scale) for x, y, z, _ in vertices]
    bulges = [b for _, _, _, b in vertices]
    points = [pts[0]]
    length = 0.0
    segment_count = len(pts) if closed else len(pts) - 1
    for i in range(segment_count):
        p1, p2 = pts[i], pts[(i + 1) % len(pts)]
        bulge = bulges[i]
        if bulge and options.include_bulge_arcs and distance(p1, p2) > 0:
            center, radius, start, sweep = bulge_to_arc(p1, p2, bulge)
            length += arc_length_from_bulge(p1, p2, bulge)
            segments = max(BULGE_MIN_SEGMENTS, _segment_count(abs(sweep)))
            points.extend(_arc_points(center, radius, start, sweep, segments)[1:-1])
        else:
            length += distance(p1, p2)
        points.append(p2)
    return Entity(POLYLINE, tuple(points), length, layer=layer, closed=bool(closed))


def _lwpolyline(entity, scale, options):
    elevation = float(getattr(entity.dxf, 'elevation', 0.0) or 0.0)
    vertices = [(x, y, elevation, b) for x, y, b in entity.get_points('xyb')]
    return _polyline_from_vertices(vertices, entity.closed, _layer(entity), scale, options)


def _polyline(entity, scale, options):
    if entity.is_poly_face_mesh or entity.is_polygon_mesh:
        logging.debug(f"POLYLINE on layer {_layer(entity)}: mesh polylines are not cut paths, skipping")
        return None
    vertices = []
    for v in entity.vertices:
        loc = v.dxf.location
        vertices.append((loc[0], loc[1], loc[2] if len(loc) > 2 else 0.0, v.dxf.bulge or 0.0))
    return _polyline_from_vertices(vertices, entity.is_closed, _layer(entity), scale, options)


def _spline(entity, scale, options):
    # control polygon, not the evaluated curve
    points = [_point(p, scale) for p in entity.control_points]
    if len(points) < 2:
        logging.debug(f"SPLINE on layer {_layer(entity)}: {len(points)} control points, skipping")
        return None
    return Entity(SPLINE, tuple(points), polyline_length(points), layer=_layer(entity))


NORMALIZERS = {
    "LINE": _line,
    "CIRCLE": _circle,
    "ARC": _arc,
    "LWPOLYLINE": _lwpolyline,
    "POLYLINE": _polyline,
    "SPLINE": _spline,
}


def normalize_entity(entity, scale=1.0, options=None):
    """Normalize one DXF entity, or return None if it is unsupported or malformed."""
    options = options or ExtractorOptions.from_config()
    try:
        entity_type = entity.dxftype()
    except AttributeError as e:
        logging.warning(f"Skipping unreadable record {entity!r}: {e}")
        return None
    normalizer = NORMALIZERS.get(entity_type)
    if normalizer is None:
        logging.debug(f"Skipping unsupported entity {entity_type}")
        return None
    try:
        return normalizer(entity, scale, options)
    except Exception as e:
        logging.warning(f"Skipping malformed {entity_type} on layer {_layer(entity)}: {e}")
        return None


def _expand(entities, options, depth=0):
    """Yield drawable entities, expanding block references and dropping skipped layers."""
    skip_layers = {l.lower().strip() for l in options.skip_layers}
    for entity in entities:
        try:
            entity_type = entity.dxftype()
        except AttributeError as e:
            logging.warning(f"Skipping unreadable record {entity!r}: {e}")
            continue
        layer = _layer(entity)
        if str(layer).lower().strip() in skip_layers:
            logging.debug(f"Skipping {entity_type} on skipped layer '{layer}'")
            continue
        if entity_type != "INSERT":
            yield entity
            continue
        name = getattr(entity.dxf, 'name', '?')
        if depth >= MAX_BLOCK_DEPTH:
            logging.warning(f"Skipping INSERT {name}: block nesting deeper than {MAX_BLOCK_DEPTH}")
            continue
        try:
            children = list(entity.virtual_entities())
        except Exception as e:
            logging.warning(f"Skipping INSERT {name}: {e}")
            continue
        yield from _expand(children, options, depth + 1)


def _closed_polygons(entities):
    polygons = []
    for entity in entities:
        if not (entity.type == CIRCLE or (entity.type == POLYLINE and entity.closed)):
            continue
        if len(entity.points) < 4:
            continue
        polygon = Polygon([(p.x, p.y) for p in entity.points])
        if not polygon.is_valid:
            polygon = polygon.buffer(0)
        if polygon.is_empty or polygon.area <= 0:
            continue
        polygons.append(polygon)
    return polygons


def compute_net_area(entities):
    """Area of closed contours with nested cutouts subtracted, or None if nothing is closed.

    A contour inside an odd number of other contours is a hole; inside an even number it is material.
    A contour drawn twice counts once.
    """
    polygons = _closed_polygons(entities)
    if not polygons:
        return None

    areas = [polygon.area for polygon in polygons]
    tree = STRtree(polygons)
    # (i, j) pairs where polygons[i] lies within polygons[j]
    pairs = [(int(i), int(j)) for i, j in zip(*tree.query(polygons, predicate="within")) if i != j]

    duplicates = {i for i, j in pairs if j < i and math.isclose(areas[i], areas[j], rel_tol=1e-9)}
    depth = [0] * len(polygons)
    for i, j in pairs:
        if j not in duplicates and areas[j] > areas[i] and not math.isclose(areas[i], areas[j], rel_tol=1e-9):
            depth[i] += 1

    net_area = 0.0
    for i, area in enumerate(areas):
        if i in duplicates:
            continue
        net_area += -area if depth[i] % 2 else area
    return net_area


def compute_metrics(entities, area=None, net_area=None):
    """Aggregate length and bounds over every point of every entity."""
    total_length = 0.0
    min_x, min_y = float('inf'), float('inf')
    max_x, max_y = float('-inf'), float('-inf')
    for entity in entities:
        total_length += entity.length
        for p in entity.points:
            min_x = min(min_x, p.x)
            min_y = min(min_y, p.y)
            max_x = max(max_x, p.x)
            max_y = max(max_y, p.y)

    if min_x == float('inf'):
        bounds = Bounds()
    else:
        bounds = Bounds(min_x, min_y, max_x, max_y)
    width, height = bounds.width, bounds.height
    return Metrics(
        width=width,
        height=height,
        total_length=total_length,
        area=width * height if area is None else area,
        bounds=bounds,
        entity_count=len(entities),
        net_area=net_area,
    )


def extract_geometry(entities, options=None, scale=1.0):
    """Normalize a document's entity list and measure it. `entities` of None means the parse failed."""
    if entities is None:
        raise ParseError("No entities found in DXF file")
    options = options or ExtractorOptions.from_config()

    normalized = []
    skipped = 0
    for raw in _expand(entities, options):
        entity = normalize_entity(raw, scale, options)
        if entity is None:
            skipped += 1
            continue
        normalized.append(entity)

    net_area = compute_net_area(normalized)
    area = net_area if options.area_mode == "net" and net_area is not None else None
    metrics = compute_metrics(normalized, area=area, net_area=net_area)

    result = GeometryResult(tuple(normalized), metrics)
    logging.info(f"  Total Cut Length: {metrics.total_length:.2f} mm")
    logging.info(f"  Bounding Box: {metrics.width:.2f} x {metrics.height:.2f} mm, Area: {metrics.area:.2f} mm2")
    logging.info(f"  Entity Counts: {result.type_counts()} (skipped {skipped})")
    return result


def has_entities_section(text):
    lines = [line.strip() for line in text.splitlines()]
    for i in range(len(lines) - 3):
        if lines[i] == '0' and lines[i + 1] == 'SECTION' and lines[i + 2] == '2' and lines[i + 3].upper() == 'ENTITIES':
            return True
    return False


def unit_scale(insunits, options=None):
    options = options or ExtractorOptions.from_config()
    try:
        code = int(insunits)
    except (TypeError, ValueError):
        code = 0
    return INSUNITS_TO_MM.get(code, options.default_unit_scale)


def parse_dxf(text, options=None):
    """Parse DXF text and return its normalized entities and metrics. Raises ParseError on bad input."""
    options = options or ExtractorOptions.from_config()
    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='ignore')
    if not isinstance(text, str):
        raise ParseError(f"DXF content must be text, got {type(text).__name__}")

    try:
        doc = ezdxf.read(io.StringIO(text))
    except Exception as e:
        raise ParseError(f"Failed to parse DXF: {e}") from e
    if not has_entities_section(text):
        raise ParseError("No entities found in DXF file")

    units = doc.header.get('$INSUNITS', 0)
    scale = unit_scale(units, options)
    logging.info(f"Detected units: {units}, applying scale factor: {scale}")
    return extract_geometry(doc.modelspace(), options, scale)


def parse_dxf_file(file_path, options=None):
    """Read a DXF file from disk and parse it."""
    if not os.path.exists(file_path):
        raise ParseError(f"DXF file not found: {file_path}")
    try:
        with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
            text = f.read()
    except OSError as e:
        raise ParseError(f"Failed to read {file_path}: {e}") from e
    logging.info(f"Parsing {os.path.basename(file_path)}")
    return parse_dxf(text, options)
