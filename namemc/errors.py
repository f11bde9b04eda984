"""Exceptions raised or delivered by the NameMC caches."""

from __future__ import annotations

from typing import Optional


class NameMCError(Exception):
    """Base exception for everything this package raises or delivers."""


class InvalidArgument(NameMCError, ValueError):
    """Bad input detected synchronously, before any fetch is scheduled."""


class TransportError(NameMCError):
    """The remote call failed (network error, timeout or non-2xx status)."""

    def __init__(self, message: str, *, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class DecodeError(NameMCError):
    """The response body was not a JSON array of UUID strings."""


class FetchCancelledError(NameMCError):
    """The fetch task was cancelled before it completed (pool shutdown)."""
