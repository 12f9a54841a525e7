"""Shared exceptions module."""

from typing import Optional

from pagesync.core.shared_models import ErrorCategory


class PageSyncException(Exception):
    """Base exception for page requests.

    Subclasses set ``category`` and ``retryable`` so callers can translate any
    failure into the ingestion service's error taxonomy without inspecting the
    concrete type.
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    retryable: bool = False

    def __init__(self, message: Optional[str] = "Page request failed"):
        """Create a new PageSyncException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Cursor errors
# ---------------------------------------------------------------------------


class MalformedCursorError(PageSyncException):
    """Raised when an opaque cursor cannot be decoded."""

    category = ErrorCategory.PAGE_REQUEST_CONFIG

    def __init__(self, message: Optional[str] = "Cursor is malformed"):
        """Create a new MalformedCursorError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class CursorTypeMismatchError(MalformedCursorError):
    """Raised when a decoded cursor field has the wrong primitive type."""

    def __init__(self, field_name: str, expected: str, actual: str):
        """Create a new CursorTypeMismatchError instance.

        Args:
        ----
            field_name (str): The wire name of the offending cursor field.
            expected (str): The primitive type the entity expects.
            actual (str): The primitive type found in the cursor.

        """
        self.field_name = field_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Cursor field {field_name} has the wrong type: want {expected}, got {actual}."
        )


class InvalidCursorStateError(PageSyncException):
    """Raised when a well-formed cursor violates the entity's pagination invariants."""

    category = ErrorCategory.PAGE_REQUEST_CONFIG

    def __init__(self, message: str, entity_id: Optional[str] = None):
        """Create a new InvalidCursorStateError instance.

        Args:
        ----
            message (str): The error message.
            entity_id (str, optional): The entity the cursor was submitted for.

        """
        self.entity_id = entity_id
        super().__init__(message)


# ---------------------------------------------------------------------------
# Request errors
# ---------------------------------------------------------------------------


class InvalidPageRequestError(PageSyncException):
    """Raised when a page request carries invalid parameters (e.g. page size)."""

    category = ErrorCategory.PAGE_REQUEST_CONFIG


class EntityNotSupportedError(PageSyncException):
    """Raised when a page is requested for an entity the connector does not declare."""

    category = ErrorCategory.ENTITY_CONFIG

    def __init__(self, entity_id: str, source_name: Optional[str] = None):
        """Create a new EntityNotSupportedError instance.

        Args:
        ----
            entity_id (str): The requested entity.
            source_name (str, optional): The connector the entity was requested from.

        """
        self.entity_id = entity_id
        self.source_name = source_name
        where = f" by {source_name}" if source_name else ""
        super().__init__(f"Entity {entity_id} is not supported{where}.")


class IdentitySchemeNotFoundError(PageSyncException):
    """Raised when no synthetic identity scheme is registered for an entity kind."""

    category = ErrorCategory.ENTITY_CONFIG

    def __init__(self, entity_kind: str):
        """Create a new IdentitySchemeNotFoundError instance.

        Args:
        ----
            entity_kind (str): The entity kind that has no registered scheme.

        """
        self.entity_kind = entity_kind
        super().__init__(f"No identity scheme registered for entity kind {entity_kind}.")


# ---------------------------------------------------------------------------
# Upstream (vendor API) errors
# ---------------------------------------------------------------------------


class UpstreamError(PageSyncException):
    """Base class for failures talking to the vendor API."""

    category = ErrorCategory.DATASOURCE_FAILED

    def __init__(self, message: Optional[str] = "Datasource request failed"):
        """Create a new UpstreamError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class UpstreamTimeoutError(UpstreamError):
    """Raised when an outbound fetch exceeds its timeout.

    Safe to retry with the same input cursor; nothing was advanced.
    """

    retryable = True

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        message: Optional[str] = None,
    ):
        """Create a new UpstreamTimeoutError instance.

        Args:
        ----
            timeout_seconds (float, optional): The timeout that was exceeded.
            message (str, optional): Custom error message.

        """
        if message is None:
            if timeout_seconds is not None:
                message = f"Datasource request timed out after {timeout_seconds:g} seconds."
            else:
                message = "Datasource request timed out."
        self.timeout_seconds = timeout_seconds
        super().__init__(message)


class UpstreamUnavailableError(UpstreamError):
    """Raised when the vendor API is unreachable or answers with a server error."""

    retryable = True

    def __init__(
        self,
        message: Optional[str] = "Datasource is unavailable",
        retry_after: Optional[float] = None,
        status_code: Optional[int] = None,
    ):
        """Create a new UpstreamUnavailableError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            retry_after (float, optional): Seconds the vendor asked us to wait.
            status_code (int, optional): HTTP status returned by the vendor.

        """
        self.retry_after = retry_after
        self.status_code = status_code
        super().__init__(message)


class UpstreamRateLimitedError(UpstreamUnavailableError):
    """Raised when the vendor API answers 429 Too Many Requests."""


class UpstreamAuthError(UpstreamError):
    """Raised when the vendor API rejects the configured credentials."""

    category = ErrorCategory.DATASOURCE_CONFIG

    def __init__(
        self,
        message: Optional[str] = "Datasource rejected credentials",
        status_code: Optional[int] = None,
    ):
        """Create a new UpstreamAuthError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            status_code (int, optional): HTTP status returned by the vendor.

        """
        self.status_code = status_code
        super().__init__(message)


class UpstreamRequestError(UpstreamError):
    """Raised when the vendor API rejects the request itself (4xx other than auth/429)."""

    def __init__(
        self,
        message: Optional[str] = "Datasource rejected request",
        status_code: Optional[int] = None,
    ):
        """Create a new UpstreamRequestError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            status_code (int, optional): HTTP status returned by the vendor.

        """
        self.status_code = status_code
        super().__init__(message)


class UpstreamDataShapeError(UpstreamError):
    """Raised when a vendor payload misses a field or carries the wrong type.

    Not retryable: the same payload will fail the same way until the connector
    is fixed.
    """

    category = ErrorCategory.INTERNAL

    def __init__(
        self,
        field_name: str,
        expected: str,
        actual: str,
        message: Optional[str] = None,
    ):
        """Create a new UpstreamDataShapeError instance.

        Args:
        ----
            field_name (str): The field that failed extraction.
            expected (str): The expected type (or shape).
            actual (str): The type actually found ("missing" if absent).
            message (str, optional): Custom error message.

        """
        self.field_name = field_name
        self.expected = expected
        self.actual = actual
        if message is None:
            message = (
                f"Datasource response field {field_name} has an unexpected shape: "
                f"want {expected}, got {actual}."
            )
        super().__init__(message)
