"""
Overpass QL builders for the two queries a relation load issues.

The first asks for the relation with full member geometry as JSON. The second
asks for everything inside the boundary polygon, with the ways' nodes and
parent relations, in Overpass' default XML output.
"""

import httpx
from shapely.geometry import Polygon

from .models import QueryRequest, normalize_endpoint


def relation_geometry_query(relation_id: int) -> str:
    """Query for a relation with coordinates on every member ("out geom")."""
    return f"[out:json]; relation({relation_id}); out geom;"


def polygon_filter(boundary: Polygon) -> str:
    """
    Build an Overpass poly filter from a boundary polygon.

    Overpass expects "lat lon" pairs and closes the ring itself, so the
    repeated closing vertex is left out.

    Args:
        boundary: Polygon in lon/lat order.

    Returns:
        Filter like 'poly:"51.5 -0.1 51.6 -0.1 51.6 0.0"'.
    """
    coords = list(boundary.exterior.coords)
    if len(coords) > 1 and coords[0] == coords[-1]:
        coords = coords[:-1]
    pairs = " ".join(f"{lat} {lon}" for lon, lat in coords)
    return f'poly:"{pairs}"'


def dataset_query(boundary: Polygon) -> str:
    """Query for all nodes, ways and relations in the boundary plus dependents."""
    return f"(nwr({polygon_filter(boundary)}); node(w)->.x; <;); out meta;"


def dataset_request(boundary: Polygon, endpoint: str) -> QueryRequest:
    """
    Build the boundary-constrained request as a GET URL on the given instance.

    Args:
        boundary: Polygon in lon/lat order.
        endpoint: Overpass API root.

    Returns:
        QueryRequest holding the fully qualified URL.
    """
    url = httpx.URL(
        f"{normalize_endpoint(endpoint)}/interpreter",
        params={"data": dataset_query(boundary)},
    )
    return QueryRequest.from_url(str(url))
