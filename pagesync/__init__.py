"""Resumable pagination cursors and page sequencing for REST connectors."""
