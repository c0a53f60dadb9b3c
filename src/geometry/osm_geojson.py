"""
Conversion of Overpass "out geom" elements into shapely geometries.

Only the element named by a type-qualified id ("relation/12345") is converted,
so incidental elements in the same response never leak into the result.

Relations tagged type=multipolygon or type=boundary become areas: their outer
and inner way members are merged into rings and polygonized. Any other
relation becomes the union of its members' lines and points.
"""

import logging
from typing import Optional

from shapely.geometry import (
    GeometryCollection,
    LineString,
    MultiLineString,
    MultiPoint,
    Point,
    Polygon,
)
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge, polygonize, unary_union

from src.acquisition.models import LatLon, OverpassElement, OverpassResponse

logger = logging.getLogger(__name__)

AREA_RELATION_TYPES = {"multipolygon", "boundary"}

# Tags that make a closed way an area rather than a ring-shaped line
AREA_WAY_TAGS = {"building", "landuse", "leisure", "natural", "amenity", "place"}


def _coords(points: Optional[list[Optional[LatLon]]]) -> list[tuple[float, float]]:
    """Turn an Overpass geometry list into (lon, lat) tuples, skipping nulls."""
    if not points:
        return []
    return [p.as_xy() for p in points if p is not None]


def _is_area_way(element: OverpassElement, coords: list[tuple[float, float]]) -> bool:
    if len(coords) < 4 or coords[0] != coords[-1]:
        return False
    if element.tags.get("area") == "no":
        return False
    return element.tags.get("area") == "yes" or bool(AREA_WAY_TAGS & element.tags.keys())


def _member_lines(element: OverpassElement, roles: set[str]) -> list[LineString]:
    lines = []
    for member in element.members:
        if member.type != "way" or member.role not in roles:
            continue
        coords = _coords(member.geometry)
        if len(coords) >= 2:
            lines.append(LineString(coords))
    return lines


def _member_points(element: OverpassElement) -> list[Point]:
    return [
        Point(member.lon, member.lat)
        for member in element.members
        if member.type == "node" and member.lat is not None and member.lon is not None
    ]


def _polygonize_lines(lines: list[LineString]) -> Optional[BaseGeometry]:
    """Stitch line segments into rings and return their union, or None."""
    if not lines:
        return None
    noded = unary_union(lines)
    polygons = list(polygonize(noded))
    if not polygons:
        return None
    return unary_union(polygons)


def _lines_and_points(
    lines: list[LineString], points: list[Point]
) -> Optional[BaseGeometry]:
    if lines:
        merged = linemerge(lines)
        if isinstance(merged, LineString):
            merged = MultiLineString([merged])
    else:
        merged = None

    if merged is not None and points:
        return GeometryCollection([*merged.geoms, *points])
    if merged is not None:
        return merged
    if points:
        return MultiPoint(points)
    return None


def _relation_to_geometry(element: OverpassElement) -> Optional[BaseGeometry]:
    if element.tags.get("type") in AREA_RELATION_TYPES:
        outer = _member_lines(element, {"outer", ""})
        inner = _member_lines(element, {"inner"})
        area = _polygonize_lines(outer)
        if area is not None:
            holes = _polygonize_lines(inner)
            if holes is not None:
                area = area.difference(holes)
            return area
        logger.warning(
            "Rings of %s do not close, falling back to member lines",
            element.element_id,
        )

    lines = _member_lines(element, {m.role for m in element.members})
    return _lines_and_points(lines, _member_points(element))


def element_to_geometry(
    response: OverpassResponse, element_id: str
) -> Optional[BaseGeometry]:
    """
    Convert one element of an Overpass response into a shapely geometry.

    Args:
        response: Validated Overpass response.
        element_id: Type-qualified id of the element to convert.

    Returns:
        The element's geometry, or None if the element is absent or carries
        no coordinates.
    """
    element = response.find(element_id)
    if element is None:
        logger.debug("%s not present in response", element_id)
        return None

    if element.type == "node":
        if element.lat is None or element.lon is None:
            return None
        return Point(element.lon, element.lat)

    if element.type == "way":
        coords = _coords(element.geometry)
        if len(coords) < 2:
            return None
        if _is_area_way(element, coords):
            return Polygon(coords)
        return LineString(coords)

    if element.type == "relation":
        geometry = _relation_to_geometry(element)
        if geometry is None or geometry.is_empty:
            return None
        return geometry

    logger.warning("Unknown element type %r for %s", element.type, element_id)
    return None
