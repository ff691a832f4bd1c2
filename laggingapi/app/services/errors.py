"""
Error taxonomy for the lagging indicator engine.
Routers translate these into HTTP status codes; nothing here is retried internally.
"""
from __future__ import annotations

from typing import Optional


class LaggingError(Exception):
    """Base class for every error raised by the engine."""


class InvalidParameter(LaggingError):
    """Bad year, range or id-list shape. Surfaced as a client error."""


class SourceUnavailable(LaggingError):
    """The record store could not be reached or failed mid-query."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class SourceTimeout(SourceUnavailable):
    """A fetch did not complete within the configured timeout."""

    def __init__(self, source: str, timeout: float):
        super().__init__(source, f"no response within {timeout:g}s")
        self.timeout = timeout


class ParseAmbiguity(LaggingError):
    """An accident code does not match the structured format.

    Never raised out of the engine: the record is bucketed as unclassified
    and this error is only used to log the condition.
    """

    def __init__(self, code: Optional[str], reason: str):
        super().__init__(f"accident code {code!r}: {reason}")
        self.code = code
        self.reason = reason
