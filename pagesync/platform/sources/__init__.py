"""Sources: entity declarations, the page request flow and the vendor HTTP client."""

from ._base import BaseSource, EntityDefinition
from .errors import http_error, parse_retry_after, transport_error
from .http import ResponseShape, VendorHttpClient, VendorResponse
from .rest import RestEntity, RestSource

__all__ = [
    "BaseSource",
    "EntityDefinition",
    "ResponseShape",
    "RestEntity",
    "RestSource",
    "VendorHttpClient",
    "VendorResponse",
    "http_error",
    "parse_retry_after",
    "transport_error",
]
