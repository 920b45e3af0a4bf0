"""Exceptions raised inside the crawler synthesis pipeline."""

from __future__ import annotations


class CrawlforgeError(Exception):
    """Base class for all crawlforge errors."""


class ConfigLoadingError(CrawlforgeError):
    """Configuration file is missing, unreadable or invalid."""


class CaptureError(CrawlforgeError):
    """The board list page could not be loaded, so there is nothing to analyze."""


class ResponseParsingError(CrawlforgeError):
    """A model reply did not contain the expected JSON object or code block."""


class CrawlerNotFoundError(CrawlforgeError):
    """A generated module exposes no callable crawler."""


class CrawlerTimeoutError(CrawlforgeError):
    """A generated crawler did not finish within the sandbox time budget."""
