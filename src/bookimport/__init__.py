"""Manuscript parsing and chapter import for publication platforms."""

from bookimport.importing import BookImporter, ImportRequest, ImportResult, import_manuscript
from bookimport.parsing import BookParser, ParseError, ParsedBook, ParsedChapter

__all__ = [
    "BookImporter",
    "BookParser",
    "ImportRequest",
    "ImportResult",
    "ParseError",
    "ParsedBook",
    "ParsedChapter",
    "import_manuscript",
]
