"""Vendor HTTP client.

Fetches one page of a vendor listing with a single GET. There is no retry
loop here: a failed fetch fails the page request and the caller resubmits
the same cursor.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import httpx

from pagesync.core.exceptions import UpstreamDataShapeError
from pagesync.core.logging import ContextualLogger, logger as default_logger
from pagesync.platform.sources.errors import http_error, transport_error
from pagesync.platform.utils.json_fields import optional_field, type_name


@dataclass(frozen=True)
class ResponseShape:
    """Where a vendor puts the parts of a list response.

    Attributes:
        objects_key: Key of the object list, ``None`` if the body is the list
        has_more_key: Key of the "more results" flag, if the vendor has one
        next_token_key: Key of the next page token or URL, if the vendor has one
        position_param: Query parameter carrying the position
        limit_param: Query parameter carrying the page size
    """

    objects_key: Optional[str] = None
    has_more_key: Optional[str] = None
    next_token_key: Optional[str] = None
    position_param: str = "offset"
    limit_param: str = "limit"


@dataclass
class VendorResponse:
    """Outcome of one vendor fetch."""

    objects: List[Dict[str, Any]] = field(default_factory=list)
    next_token: Optional[Any] = None
    has_more: Optional[bool] = None
    status_code: int = 200
    retry_after: Optional[str] = None


class VendorHttpClient:
    """Single-attempt page fetcher over ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout_seconds: float,
        service_name: str = "Datasource",
        http_client_factory: Optional[Callable[..., httpx.AsyncClient]] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the client.

        Args:
            timeout_seconds: Timeout applied to every request
            service_name: Vendor name used in logs and error messages
            http_client_factory: Builds the ``httpx.AsyncClient``; tests inject
                one backed by ``httpx.MockTransport``
            logger: Logger to use, defaults to the package logger
        """
        self.timeout_seconds = timeout_seconds
        self.service_name = service_name
        self._http_client_factory = http_client_factory or httpx.AsyncClient
        self.logger = logger or default_logger.with_context(service=service_name)

    @asynccontextmanager
    async def http_client(self, **kwargs) -> AsyncIterator[httpx.AsyncClient]:
        """Yield an HTTP client and close it afterwards."""
        async with self._http_client_factory(**kwargs) as client:
            yield client

    async def fetch(
        self,
        base_url: str,
        credentials: Optional[str],
        entity_path: str,
        position: Optional[Any],
        limit: int,
        shape: ResponseShape = ResponseShape(),
        extra_params: Optional[Dict[str, Any]] = None,
    ) -> VendorResponse:
        """Fetch one page.

        A string ``position`` that is an absolute URL (a next-page link) is
        requested as is; any other position is sent as the position query
        parameter.

        Args:
            base_url: Vendor API base URL
            credentials: Value of the ``Authorization`` header, if any
            entity_path: Path of the listing relative to ``base_url``
            position: Offset or token of the page, ``None`` for the first page
            limit: Page size
            shape: Where the vendor puts objects, flags and tokens
            extra_params: Additional query parameters

        Returns:
            The parsed page

        Raises:
            UpstreamTimeoutError: The request timed out
            UpstreamUnavailableError: Transport failure or 5xx/429
            UpstreamAuthError: 401/403
            UpstreamRequestError: Other non-2xx statuses
            UpstreamDataShapeError: Body is not the expected JSON shape
        """
        headers = {"Accept": "application/json"}
        if credentials:
            headers["Authorization"] = credentials

        # Passing params to httpx replaces the query string of a next-page link
        params: Optional[Dict[str, Any]] = None
        if isinstance(position, str) and position.startswith(("https://", "http://")):
            url = position
        else:
            url = f"{base_url.rstrip('/')}/{entity_path.lstrip('/')}"
            params = {shape.limit_param: limit}
            if position is not None:
                params[shape.position_param] = position
            params.update(extra_params or {})

        self.logger.info(
            f"Sending request to {self.service_name}",
            extra={"request_url": url, "position": position, "limit": limit},
        )

        try:
            async with self.http_client(timeout=self.timeout_seconds) as client:
                response = await client.get(url, params=params, headers=headers)
        except httpx.RequestError as e:
            self.logger.error(
                f"Request to {self.service_name} failed: {type(e).__name__}: {e}",
                extra={"request_url": url},
            )
            raise transport_error(e, self.timeout_seconds, self.service_name) from e

        retry_after = response.headers.get("Retry-After")
        error = http_error(response.status_code, retry_after, self.service_name)
        if error is not None:
            self.logger.error(
                f"{self.service_name} responded with an error",
                extra={
                    "request_url": url,
                    "status_code": response.status_code,
                    "retry_after": retry_after,
                    "response_body": response.text[:200],
                },
            )
            raise error

        return self._parse_body(response, shape)

    def _parse_body(self, response: httpx.Response, shape: ResponseShape) -> VendorResponse:
        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamDataShapeError(
                "body",
                "JSON",
                "non-JSON content",
                message=f"Failed to parse {self.service_name} response body as JSON: {e}.",
            ) from e

        if shape.objects_key is None:
            objects = body
            objects_field = "body"
        else:
            if not isinstance(body, dict):
                raise UpstreamDataShapeError("body", "object", type_name(type(body)))
            objects = body.get(shape.objects_key, [])
            objects_field = shape.objects_key
            if objects is None:
                objects = []

        if not isinstance(objects, list):
            raise UpstreamDataShapeError(objects_field, "array", type_name(type(objects)))
        for index, obj in enumerate(objects):
            if not isinstance(obj, dict):
                raise UpstreamDataShapeError(
                    f"{objects_field}[{index}]", "object", type_name(type(obj))
                )

        has_more = None
        next_token = None
        if isinstance(body, dict):
            if shape.has_more_key:
                has_more = optional_field(body, shape.has_more_key, bool)
            if shape.next_token_key:
                next_token = optional_field(body, shape.next_token_key, (str, int))

        return VendorResponse(
            objects=objects,
            next_token=next_token,
            has_more=has_more,
            status_code=response.status_code,
            retry_after=response.headers.get("Retry-After"),
        )
