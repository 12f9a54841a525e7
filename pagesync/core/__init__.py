"""Core module for pagesync."""
