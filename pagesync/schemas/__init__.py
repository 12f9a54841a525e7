"""Schemas for the page protocol."""

from .page import PageRequest, PageResponse

__all__ = ["PageRequest", "PageResponse"]
