"""
Custom exceptions for relation boundary acquisition.

This module defines a hierarchy of exceptions for the error conditions that
may occur while talking to an Overpass API instance and while turning its
responses into a usable boundary. Every exception carries a FailureHint so the
caller can tell the user whether to wait, switch servers or pick another
relation.
"""

from enum import Enum
from typing import Optional


class FailureHint(str, Enum):
    """What the user can do about a failure."""

    RETRY_LATER = "retry_later"
    SWITCH_SERVER = "switch_server"
    UNUSABLE_RELATION = "unusable_relation"


HINT_MESSAGES = {
    FailureHint.RETRY_LATER: "The server is busy or the area is too large. Try again later.",
    FailureHint.SWITCH_SERVER: "Try again or select a different Overpass server.",
    FailureHint.UNUSABLE_RELATION: "This relation can't be used. Pick a different one.",
}


class AcquisitionError(Exception):
    """Base exception for all acquisition-related errors."""

    hint: Optional[FailureHint] = None

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        """
        Initialize the acquisition error.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused this error, if any.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message

    @property
    def user_message(self) -> str:
        """Message suitable for showing to the user, including what to do next."""
        if self.hint is None:
            return self.message
        return f"{self.message}. {HINT_MESSAGES[self.hint]}"


class UpstreamTimeoutError(AcquisitionError):
    """Raised when the Overpass server (504) or the HTTP client times out."""

    hint = FailureHint.RETRY_LATER

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = 504,
        timeout_type: str = "gateway",
        cause: Optional[Exception] = None,
    ) -> None:
        """
        Initialize the timeout error.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code, or None for a client-side timeout.
            timeout_type: Type of timeout (gateway, connect, read, write, pool).
            cause: The underlying exception that caused this error.
        """
        super().__init__(message, cause)
        self.status_code = status_code
        self.timeout_type = timeout_type


class UpstreamError(AcquisitionError):
    """Raised when the Overpass server answers with a non-success status."""

    hint = FailureHint.SWITCH_SERVER

    def __init__(
        self,
        message: str,
        status_code: int,
        cause: Optional[Exception] = None,
    ) -> None:
        """
        Initialize the upstream error.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code returned by the server.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message, cause)
        self.status_code = status_code


class ConnectionError(AcquisitionError):
    """Raised when unable to establish connection to the Overpass server."""

    hint = FailureHint.SWITCH_SERVER


class InvalidResponseError(AcquisitionError):
    """Raised when the server returns an invalid or unparseable response."""

    hint = FailureHint.SWITCH_SERVER

    def __init__(
        self,
        message: str,
        response_text: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """
        Initialize the invalid response error.

        Args:
            message: Human-readable error description.
            response_text: The raw response text that couldn't be parsed.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message, cause)
        self.response_text = response_text[:500] if response_text else None


class RelationError(AcquisitionError):
    """Base class for relations that exist upstream but can't be used."""

    hint = FailureHint.UNUSABLE_RELATION

    def __init__(
        self,
        message: str,
        relation_id: int,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause)
        self.relation_id = relation_id


class NotFoundError(RelationError):
    """Raised when the response contains no element for the relation."""


class WrongTypeError(RelationError):
    """Raised when the id resolves to a node or way instead of a relation."""

    def __init__(
        self,
        message: str,
        relation_id: int,
        element_type: str,
        cause: Optional[Exception] = None,
    ) -> None:
        """
        Initialize the wrong type error.

        Args:
            message: Human-readable error description.
            relation_id: The requested relation id.
            element_type: The type of the element that came back.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message, relation_id, cause)
        self.element_type = element_type


class NoGeometryError(RelationError):
    """Raised when the relation exists but has no usable shape."""


class GeometryError(AcquisitionError):
    """Raised when geometry data is invalid or cannot be processed."""

    hint = FailureHint.UNUSABLE_RELATION

    def __init__(
        self,
        message: str,
        feature_id: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """
        Initialize the geometry error.

        Args:
            message: Human-readable error description.
            feature_id: Identifier of the feature with invalid geometry.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message, cause)
        self.feature_id = feature_id


class HullFailedError(GeometryError):
    """Raised when the convex hull is undefined or is not a polygon."""


class PersistenceError(AcquisitionError):
    """Raised when saving a copy of the dataset fails. Never aborts a load."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause)
        self.path = path


class LoadCancelledError(AcquisitionError):
    """Raised at a yield point when the load's cancellation token is set."""


def describe_failure(error: BaseException) -> str:
    """
    Render any exception raised by a load as a message for the user.

    Args:
        error: The exception raised by the pipeline.

    Returns:
        Human-readable message.
    """
    if isinstance(error, AcquisitionError):
        return error.user_message
    return f"Unexpected error: {error}"
