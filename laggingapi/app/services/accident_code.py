"""
Parser for structured accident codes of the form ORG-SITE-YEAR-SEQ (e.g. HHH-AA-2025-001).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from .errors import ParseAmbiguity

UNCLASSIFIED_SITE = "unclassified"

ACCIDENT_CODE_PATTERN = re.compile(
    r"^(?P<org>[A-Z]{3})-(?P<site>[A-Z]{2})-(?P<year>\d{4})-(?P<seq>\d{3})$"
)
_SEGMENT_WIDTHS = (3, 2, 4, 3)


@dataclass(frozen=True)
class ParsedCode:
    code: str
    org: str
    site: str
    year: int
    sequence: int


@dataclass(frozen=True)
class UnparseableCode:
    code: Any
    reason: str

    def to_error(self) -> ParseAmbiguity:
        return ParseAmbiguity(None if self.code is None else str(self.code), self.reason)


ParseResult = Union[ParsedCode, UnparseableCode]


def _explain(code: str) -> str:
    parts = code.split("-")
    if len(parts) != len(_SEGMENT_WIDTHS):
        return f"expected {len(_SEGMENT_WIDTHS)} segments, found {len(parts)}"
    for name, part, width in zip(("organization", "site", "year", "sequence"), parts, _SEGMENT_WIDTHS):
        if len(part) != width:
            return f"{name} segment {part!r} must be {width} characters"
    return "segments do not match ORG-SITE-YEAR-SEQ"


def parse_accident_code(code: Any) -> ParseResult:
    """Split a structured accident code into its segments.

    Never raises: anything that is not a well-formed code comes back as
    ``UnparseableCode`` so the caller can bucket it explicitly.
    """
    if code is None:
        return UnparseableCode(code, "missing accident code")
    if not isinstance(code, str):
        return UnparseableCode(code, f"accident code must be text, got {type(code).__name__}")
    text = code.strip()
    if not text:
        return UnparseableCode(code, "empty accident code")
    match = ACCIDENT_CODE_PATTERN.match(text)
    if match is None:
        return UnparseableCode(code, _explain(text))
    return ParsedCode(
        code=text,
        org=match.group("org"),
        site=match.group("site"),
        year=int(match.group("year")),
        sequence=int(match.group("seq")),
    )


def site_of(code: Any) -> str:
    result = parse_accident_code(code)
    return result.site if isinstance(result, ParsedCode) else UNCLASSIFIED_SITE
