"""
Overpass Data Acquisition Module for relation boundary loading.

This module provides the async Overpass API client, the query builders for
relation geometry and boundary-constrained dataset requests, and the
exceptions that classify upstream and relation failures.

Primary Usage:
    from src.acquisition import OverpassClient, QueryRequest

    async with OverpassClient() as client:
        data = await client.fetch_json(
            QueryRequest.from_query("[out:json]; relation(12345); out geom;")
        )
"""

from .exceptions import (
    AcquisitionError,
    ConnectionError,
    FailureHint,
    GeometryError,
    HullFailedError,
    InvalidResponseError,
    LoadCancelledError,
    NoGeometryError,
    NotFoundError,
    PersistenceError,
    RelationError,
    UpstreamError,
    UpstreamTimeoutError,
    WrongTypeError,
    describe_failure,
)
from .models import (
    DEFAULT_OVERPASS_CONFIG,
    KNOWN_OVERPASS_SERVERS,
    ConnectionLimits,
    LatLon,
    OverpassClientConfig,
    OverpassElement,
    OverpassMember,
    OverpassResponse,
    QueryRequest,
    TimeoutConfig,
    normalize_endpoint,
)
from .overpass_client import OverpassClient
from .queries import (
    dataset_query,
    dataset_request,
    polygon_filter,
    relation_geometry_query,
)

__all__ = [
    # Exceptions
    "AcquisitionError",
    "ConnectionError",
    "FailureHint",
    "GeometryError",
    "HullFailedError",
    "InvalidResponseError",
    "LoadCancelledError",
    "NoGeometryError",
    "NotFoundError",
    "PersistenceError",
    "RelationError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "WrongTypeError",
    "describe_failure",
    # Models
    "ConnectionLimits",
    "LatLon",
    "OverpassClientConfig",
    "OverpassElement",
    "OverpassMember",
    "OverpassResponse",
    "QueryRequest",
    "TimeoutConfig",
    "normalize_endpoint",
    # Pre-configured
    "DEFAULT_OVERPASS_CONFIG",
    "KNOWN_OVERPASS_SERVERS",
    # Client and queries
    "OverpassClient",
    "dataset_query",
    "dataset_request",
    "polygon_filter",
    "relation_geometry_query",
]
