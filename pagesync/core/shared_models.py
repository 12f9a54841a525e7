"""Shared models for the connector core."""

from enum import Enum


class ErrorCategory(str, Enum):
    """Adapter error categories reported to the ingestion service.

    Each exception raised while serving a page request belongs to exactly one
    category. The ingestion service decides what to surface to the operator
    and whether to retry based on it.
    """

    PAGE_REQUEST_CONFIG = "page_request_config"
    ENTITY_CONFIG = "entity_config"
    DATASOURCE_CONFIG = "datasource_config"
    DATASOURCE_FAILED = "datasource_failed"
    INTERNAL = "internal"


class PagingMode(str, Enum):
    """How a remote collection addresses its pages.

    OFFSET cursors are integer positions (``offset``/``startAt`` parameters).
    TOKEN cursors are opaque strings handed out by the vendor (next-page
    tokens or next-page URLs).
    """

    OFFSET = "offset"
    TOKEN = "token"
