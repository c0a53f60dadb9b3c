"""
Async client for Overpass API instances.

This module provides the OverpassClient class that implements:
- Proper httpx.AsyncClient lifecycle management
- POST of raw queries to "<endpoint>/interpreter" and GET of full URLs
- Classification of upstream failures into the acquisition exceptions

Each call is a single attempt. Retrying is left to the caller.
"""

import logging
from typing import Any, Optional

import httpx

from .exceptions import (
    ConnectionError,
    InvalidResponseError,
    UpstreamError,
    UpstreamTimeoutError,
)
from .models import DEFAULT_OVERPASS_CONFIG, OverpassClientConfig, QueryRequest

logger = logging.getLogger(__name__)


class OverpassClient:
    """
    Async client for a single Overpass API instance.

    Usage:
        async with OverpassClient(config) as client:
            data = await client.fetch_json(QueryRequest.from_query(query))

    Attributes:
        config: The OverpassClientConfig instance with all settings.
        _client: The httpx.AsyncClient instance (created on context entry).
        _transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        config: Optional[OverpassClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the Overpass client with configuration.

        Args:
            config: OverpassClientConfig instance. Defaults to
                    DEFAULT_OVERPASS_CONFIG.
            transport: Optional httpx transport passed to httpx.AsyncClient.
        """
        self.config = config or DEFAULT_OVERPASS_CONFIG
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_count = 0

    async def __aenter__(self) -> "OverpassClient":
        """
        Async context manager entry - creates the HTTP client.

        Returns:
            Self for use in async with statements.
        """
        await self._create_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit - closes the HTTP client."""
        await self._close_client()

    @property
    def request_count(self) -> int:
        return self._request_count

    async def _create_client(self) -> None:
        """Create the httpx.AsyncClient with configured settings."""
        timeout = httpx.Timeout(
            connect=self.config.timeout.connect,
            read=self.config.timeout.read,
            write=self.config.timeout.write,
            pool=self.config.timeout.pool,
        )

        limits = httpx.Limits(
            max_connections=self.config.limits.max_connections,
            max_keepalive_connections=self.config.limits.max_keepalive_connections,
            keepalive_expiry=self.config.limits.keepalive_expiry,
        )

        self._client = httpx.AsyncClient(
            timeout=timeout,
            limits=limits,
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )

        logger.info("Created Overpass client for %s", self.config.endpoint)

    async def _close_client(self) -> None:
        """Close the httpx.AsyncClient and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info(
                "Closed Overpass client (made %d requests)", self._request_count
            )

    def _ensure_client(self) -> httpx.AsyncClient:
        """
        Ensure the client is initialized and return it.

        Raises:
            RuntimeError: If client is not initialized (not in context manager).
        """
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    def _classify_status(self, response: httpx.Response, url: str) -> Exception:
        """
        Convert a non-success response to the matching acquisition exception.

        Args:
            response: The failed httpx response.
            url: The URL that was requested.

        Returns:
            UpstreamTimeoutError for 504, UpstreamError otherwise.
        """
        status = response.status_code

        if status == 504:
            return UpstreamTimeoutError(
                "Overpass API timed out. The query might be too large",
                status_code=status,
                timeout_type="gateway",
            )
        return UpstreamError(
            f"Overpass failed: {status} from {url}",
            status_code=status,
        )

    def _classify_transport_error(
        self, error: httpx.TransportError, url: str
    ) -> Exception:
        """
        Convert httpx transport errors to appropriate custom exceptions.

        Args:
            error: The httpx TransportError.
            url: The URL that was requested.

        Returns:
            Appropriate custom exception for the error type.
        """
        if isinstance(error, httpx.TimeoutException):
            timeout_type = "unknown"
            if isinstance(error, httpx.ConnectTimeout):
                timeout_type = "connect"
            elif isinstance(error, httpx.ReadTimeout):
                timeout_type = "read"
            elif isinstance(error, httpx.WriteTimeout):
                timeout_type = "write"
            elif isinstance(error, httpx.PoolTimeout):
                timeout_type = "pool"

            return UpstreamTimeoutError(
                f"Request to {url} timed out ({timeout_type})",
                status_code=None,
                timeout_type=timeout_type,
                cause=error,
            )
        elif isinstance(error, httpx.ConnectError):
            return ConnectionError(
                f"Failed to connect to {url}",
                cause=error,
            )
        else:
            return ConnectionError(
                f"Transport error for {url}: {error}",
                cause=error,
            )

    async def fetch(self, request: QueryRequest) -> httpx.Response:
        """
        Send one request to the Overpass instance.

        URL requests are sent as a GET with no body. Query requests are POSTed
        to the interpreter as plain text.

        Args:
            request: The query or URL to send.

        Returns:
            The successful httpx.Response, for the caller to decode.

        Raises:
            UpstreamTimeoutError: On status 504 or a client-side timeout.
            UpstreamError: On any other non-success status.
            ConnectionError: If the server can't be reached.
        """
        client = self._ensure_client()

        if request.is_url:
            method, url = "GET", request.url
            kwargs: dict[str, Any] = {}
        else:
            method, url = "POST", self.config.interpreter_url
            kwargs = {
                "content": request.query.encode("utf-8"),
                "headers": {"Content-Type": "text/plain"},
            }

        logger.debug("Overpass request: %s %s", method, url)

        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise self._classify_transport_error(e, url) from e
        finally:
            self._request_count += 1

        if not response.is_success:
            error = self._classify_status(response, url)
            logger.warning("Overpass request failed: %s", error)
            raise error

        logger.debug(
            "Overpass response: %d (%d bytes)",
            response.status_code,
            len(response.content),
        )
        return response

    async def fetch_json(self, request: QueryRequest) -> dict[str, Any]:
        """
        Send a request and parse the JSON response.

        Raises:
            InvalidResponseError: If response is not a JSON object.
        """
        response = await self.fetch(request)

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError(
                "Failed to parse JSON from Overpass",
                response_text=response.text,
                cause=e,
            )

        if not isinstance(data, dict):
            raise InvalidResponseError(
                f"Expected a JSON object from Overpass, got {type(data).__name__}",
                response_text=response.text,
            )
        return data

    async def fetch_bytes(self, request: QueryRequest) -> bytes:
        """Send a request and return the raw response body."""
        response = await self.fetch(request)
        return response.content
