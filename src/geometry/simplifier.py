"""
Convex hull of a relation geometry, used as the query boundary.
"""

import logging
from typing import Optional

import geopandas as gpd
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

from src.acquisition.exceptions import HullFailedError

logger = logging.getLogger(__name__)

GEOGRAPHIC_CRS = "EPSG:4326"


class BoundarySimplifier:
    """
    Reduces an arbitrary geometry to the smallest convex polygon containing it.

    The hull is computed over the geometry's vertex set, so it contains every
    input vertex. The result has a single counter-clockwise exterior ring and
    no holes.

    Example:
        >>> square = Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])
        >>> BoundarySimplifier().simplify(square).area
        1.0
    """

    def __init__(self, crs: str = GEOGRAPHIC_CRS) -> None:
        self.crs = crs

    def simplify(
        self, geometry: BaseGeometry, feature_id: Optional[str] = None
    ) -> Polygon:
        """
        Compute the convex hull boundary of a geometry.

        Args:
            geometry: Any shapely geometry in lon/lat order.
            feature_id: Optional id used in error messages.

        Returns:
            The convex hull as a Polygon.

        Raises:
            HullFailedError: If the geometry is empty or degenerate, or the hull
                is not a valid polygon with at least 3 distinct vertices.
        """
        if geometry is None or geometry.is_empty:
            raise HullFailedError(
                "Failed to create convex hull: geometry is empty",
                feature_id=feature_id,
            )

        feature = gpd.GeoSeries([geometry], crs=self.crs)
        hull = feature.convex_hull.iloc[0]

        if not isinstance(hull, Polygon):
            raise HullFailedError(
                f"Failed to create convex hull: collapsed to {hull.geom_type}",
                feature_id=feature_id,
            )

        distinct = set(hull.exterior.coords)
        if len(distinct) < 3 or not hull.is_valid or hull.area == 0:
            raise HullFailedError(
                "Failed to create convex hull: fewer than 3 non-collinear vertices",
                feature_id=feature_id,
            )

        boundary = orient(Polygon(hull.exterior), sign=1.0)
        logger.info(
            "Simplified %s to convex hull with %d vertices",
            geometry.geom_type,
            len(boundary.exterior.coords) - 1,
        )
        return boundary
