"""Error raised when a manuscript cannot become a ParsedBook."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ParseError(Exception):
    """Fatal parse failure; no partial book is ever returned alongside it."""

    message: str
    source: str | None = None

    def __str__(self) -> str:
        if self.source:
            return f"{self.message} (source={self.source})"
        return self.message
