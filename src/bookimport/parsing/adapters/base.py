"""Shared adapter contract for per-format manuscript parsers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from bookimport.parsing.models import BookFormat, ParsedBook


@runtime_checkable
class FormatAdapter(Protocol):
    """Protocol that every format adapter must implement."""

    format: BookFormat

    def parse(self, raw: bytes, *, filename: str | None = None) -> ParsedBook:
        """Turn raw manuscript bytes into a ParsedBook or raise ParseError."""
