"""
Pydantic models for Overpass acquisition configuration and data structures.

This module defines configuration models for the HTTP client, the request
value sent to an Overpass instance, and the schema that Overpass JSON
responses are validated against before any geometry is built from them.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Public Overpass instances known to handle "out geom" and poly filters well.
# Any other http(s) URL is accepted as a user-supplied instance.
KNOWN_OVERPASS_SERVERS = [
    "https://overpass-api.de/api",
    "https://overpass.private.coffee/api",
    "https://maps.mail.ru/osm/tools/overpass/api",
    "https://overpass.kumi.systems/api",
]


def normalize_endpoint(url: str) -> str:
    """
    Normalize an Overpass endpoint to its API root.

    Strips whitespace, trailing slashes and a trailing "/interpreter" so that
    "https://overpass-api.de/api/interpreter/" and "https://overpass-api.de/api"
    name the same instance.

    Args:
        url: Endpoint as typed by the user.

    Returns:
        The API root URL.

    Raises:
        ValueError: If the URL is not http(s).
    """
    endpoint = url.strip().rstrip("/")
    if endpoint.endswith("/interpreter"):
        endpoint = endpoint[: -len("/interpreter")]
    if not endpoint.startswith(("http://", "https://")):
        raise ValueError(f"Overpass endpoint must be an http(s) URL: {url!r}")
    return endpoint


class TimeoutConfig(BaseModel):
    """Configuration for HTTP request timeouts."""

    connect: float = Field(
        default=10.0,
        gt=0,
        le=60.0,
        description="Timeout for establishing connection in seconds",
    )
    read: float = Field(
        default=180.0,
        gt=0,
        le=900.0,
        description="Timeout for reading response in seconds",
    )
    write: float = Field(
        default=10.0,
        gt=0,
        le=60.0,
        description="Timeout for writing request in seconds",
    )
    pool: float = Field(
        default=30.0,
        gt=0,
        le=60.0,
        description="Timeout for acquiring connection from pool in seconds",
    )


class ConnectionLimits(BaseModel):
    """Configuration for HTTP connection pool limits."""

    max_connections: int = Field(
        default=4,
        gt=0,
        le=100,
        description="Maximum total connections",
    )
    max_keepalive_connections: int = Field(
        default=2,
        gt=0,
        le=50,
        description="Maximum keepalive connections",
    )
    keepalive_expiry: float = Field(
        default=30.0,
        gt=0,
        le=300.0,
        description="Keepalive connection expiry in seconds",
    )


class OverpassClientConfig(BaseModel):
    """
    Complete configuration for an Overpass API client.

    The endpoint is the API root; queries are POSTed to "<endpoint>/interpreter".
    """

    endpoint: str = Field(
        default=KNOWN_OVERPASS_SERVERS[0],
        min_length=1,
        description="Root URL of the Overpass API instance",
    )
    timeout: TimeoutConfig = Field(
        default_factory=TimeoutConfig,
        description="Timeout configuration",
    )
    limits: ConnectionLimits = Field(
        default_factory=ConnectionLimits,
        description="Connection pool limits",
    )
    user_agent: str = Field(
        default="Speedwalk-Acquisition/1.0",
        description="User-Agent header for requests",
    )

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Normalize the endpoint to the API root."""
        return normalize_endpoint(v)

    @property
    def interpreter_url(self) -> str:
        """URL that raw queries are POSTed to."""
        return f"{self.endpoint}/interpreter"


DEFAULT_OVERPASS_CONFIG = OverpassClientConfig()


class QueryRequest(BaseModel):
    """
    A single request to an Overpass instance.

    Holds either a literal query, POSTed to the configured interpreter, or a
    fully qualified URL fetched with GET. Never both.
    """

    model_config = ConfigDict(frozen=True)

    query: Optional[str] = Field(default=None, min_length=1)
    url: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def check_exactly_one(self) -> "QueryRequest":
        """Ensure exactly one of query and url is set."""
        if (self.query is None) == (self.url is None):
            raise ValueError("QueryRequest needs exactly one of query or url")
        return self

    @property
    def is_url(self) -> bool:
        return self.url is not None

    @classmethod
    def from_query(cls, query: str) -> "QueryRequest":
        return cls(query=query)

    @classmethod
    def from_url(cls, url: str) -> "QueryRequest":
        return cls(url=url)

    @classmethod
    def parse(cls, query_or_url: str) -> "QueryRequest":
        """Build a request from text, treating anything starting with "http" as a URL."""
        if query_or_url.startswith("http"):
            return cls.from_url(query_or_url)
        return cls.from_query(query_or_url)


class LatLon(BaseModel):
    """A coordinate as Overpass writes it in "out geom" output."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    def as_xy(self) -> tuple[float, float]:
        """Return (lon, lat), the x/y order used by shapely and GeoJSON."""
        return (self.lon, self.lat)


class OverpassMember(BaseModel):
    """A relation member. Way members carry geometry, node members lat/lon."""

    model_config = ConfigDict(extra="ignore")

    type: str
    ref: int
    role: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None
    geometry: Optional[list[Optional[LatLon]]] = None


class OverpassElement(BaseModel):
    """A node, way or relation from an Overpass JSON response."""

    model_config = ConfigDict(extra="ignore")

    type: str
    id: int
    tags: dict[str, str] = Field(default_factory=dict)
    lat: Optional[float] = None
    lon: Optional[float] = None
    geometry: Optional[list[Optional[LatLon]]] = None
    members: list[OverpassMember] = Field(default_factory=list)

    @property
    def element_id(self) -> str:
        """Type-qualified id, e.g. "relation/12345"."""
        return f"{self.type}/{self.id}"


class OverpassResponse(BaseModel):
    """Top level of an Overpass "[out:json]" response."""

    model_config = ConfigDict(extra="ignore")

    elements: list[OverpassElement] = Field(default_factory=list)
    remark: Optional[str] = None

    @field_validator("elements", mode="before")
    @classmethod
    def default_missing_elements(cls, v: Any) -> Any:
        """Treat an explicit null element list as empty."""
        return [] if v is None else v

    def find(self, element_id: str) -> Optional[OverpassElement]:
        """Return the element with the given type-qualified id, if present."""
        for element in self.elements:
            if element.element_id == element_id:
                return element
        return None
