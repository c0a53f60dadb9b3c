"""
Geometry Module for relation boundary acquisition.

Turns Overpass relation responses into shapely geometries and reduces them
to the convex boundary polygon used to constrain the dataset query.
"""

from .extractor import GeometryExtractor, validate_relation_id
from .osm_geojson import element_to_geometry
from .simplifier import BoundarySimplifier

__all__ = [
    "BoundarySimplifier",
    "GeometryExtractor",
    "element_to_geometry",
    "validate_relation_id",
]
