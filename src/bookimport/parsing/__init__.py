"""Manuscript parsing package interfaces."""

from .errors import ParseError
from .models import BookFormat, ParsedBook, ParsedChapter
from .parser import BookParser, detect_format

__all__ = ["BookFormat", "BookParser", "ParseError", "ParsedBook", "ParsedChapter", "detect_format"]
