"""
Resolution of an OpenStreetMap relation id into a single shapely geometry.
"""

import logging

from pydantic import ValidationError
from shapely.geometry.base import BaseGeometry

from src.acquisition.exceptions import (
    InvalidResponseError,
    NoGeometryError,
    NotFoundError,
    WrongTypeError,
)
from src.acquisition.models import OverpassResponse, QueryRequest
from src.acquisition.overpass_client import OverpassClient
from src.acquisition.queries import relation_geometry_query

from .osm_geojson import element_to_geometry

logger = logging.getLogger(__name__)


def validate_relation_id(relation_id: int) -> int:
    """
    Check that a relation id is a positive integer.

    Raises:
        ValueError: If the id is not a positive int.
    """
    if isinstance(relation_id, bool) or not isinstance(relation_id, int):
        raise ValueError(f"Relation id must be an integer, got {relation_id!r}")
    if relation_id <= 0:
        raise ValueError(f"Relation id must be positive, got {relation_id}")
    return relation_id


class GeometryExtractor:
    """
    Fetches a relation with full member geometry and converts it to shapely.

    Usage:
        async with OverpassClient(config) as client:
            geometry = await GeometryExtractor(client).resolve(12345)

    Attributes:
        client: An open OverpassClient.
    """

    def __init__(self, client: OverpassClient) -> None:
        self.client = client

    def parse_response(self, data: dict) -> OverpassResponse:
        """
        Validate raw Overpass JSON against the response schema.

        Raises:
            InvalidResponseError: If the JSON doesn't match the schema.
        """
        try:
            return OverpassResponse.model_validate(data)
        except ValidationError as e:
            raise InvalidResponseError(
                "Overpass response does not match the expected element schema",
                response_text=str(data),
                cause=e,
            )

    async def resolve(self, relation_id: int) -> BaseGeometry:
        """
        Resolve a relation id to exactly one geometry.

        Args:
            relation_id: Positive OpenStreetMap relation id.

        Returns:
            The relation's geometry in lon/lat order.

        Raises:
            NotFoundError: If the response has no elements.
            WrongTypeError: If the first element is not a relation.
            NoGeometryError: If the relation has no usable shape.
            UpstreamTimeoutError, UpstreamError, ConnectionError,
            InvalidResponseError: Propagated from the client.
        """
        validate_relation_id(relation_id)

        request = QueryRequest.from_query(relation_geometry_query(relation_id))
        data = await self.client.fetch_json(request)
        response = self.parse_response(data)

        if not response.elements:
            raise NotFoundError(f"Relation {relation_id} not found", relation_id)

        first = response.elements[0]
        if first.type != "relation":
            raise WrongTypeError(
                f"Object {relation_id} is not a relation (got {first.type})",
                relation_id,
                element_type=first.type,
            )

        geometry = element_to_geometry(response, f"relation/{relation_id}")
        if geometry is None:
            raise NoGeometryError(
                f"Relation {relation_id} has no geometry", relation_id
            )

        logger.info(
            "Resolved relation %d to %s (%d elements in response)",
            relation_id,
            geometry.geom_type,
            len(response.elements),
        )
        return geometry
