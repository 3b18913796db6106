"""
Failure taxonomy for a scrape run and the per-attempt outcome tags
used by the fetcher's retry loop.
"""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    CONNECTION = ("connection", 503, "Cannot reach the target host. Try again in a few minutes.")
    TIMEOUT = ("timeout", 408, "The target host did not respond in time.")
    RATE_LIMITED = ("rate_limited", 429, "Rate limit reached on the target host.")
    SERVICE_UNAVAILABLE = ("service_unavailable", 503, "The target host is temporarily unavailable.")
    BLOCKED = ("blocked", 503, "Access blocked by the target host, possible bot detection.")
    GENERIC = ("generic", 500, "Internal error while scraping.")

    def __init__(self, code: str, status_code: int, message: str):
        self.code = code
        self.status_code = status_code
        self.message = message


class ScrapeError(Exception):
    """Terminal failure of a scrape, surfaced to the caller."""

    def __init__(self, category: ErrorCategory, reason: Optional[str] = None):
        self.category = category
        self.reason = reason or category.message
        super().__init__(self.reason)

    def __repr__(self) -> str:
        return f"ScrapeError({self.category.code!r}, {self.reason!r})"


class Retryable:
    """A failed attempt that may succeed if tried again."""

    __slots__ = ("reason", "category")

    def __init__(self, reason: str, category: ErrorCategory = ErrorCategory.GENERIC):
        self.reason = reason
        self.category = category

    def __repr__(self) -> str:
        return f"Retryable({self.category.code!r}, {self.reason!r})"


class Terminal:
    """A failed attempt that must not be retried."""

    __slots__ = ("reason", "category")

    def __init__(self, category: ErrorCategory, reason: Optional[str] = None):
        self.category = category
        self.reason = reason or category.message

    def __repr__(self) -> str:
        return f"Terminal({self.category.code!r}, {self.reason!r})"

    def to_error(self) -> ScrapeError:
        return ScrapeError(self.category, self.reason)
