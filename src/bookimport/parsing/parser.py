"""Routing entrypoint: read a manuscript and dispatch on its format."""

from __future__ import annotations

import logging
from pathlib import Path

from bookimport.parsing.adapters import ArchiveAdapter, MarkdownAdapter, PlainTextAdapter
from bookimport.parsing.archive import ZIP_MAGIC, DirectoryArchiveReader
from bookimport.parsing.errors import ParseError
from bookimport.parsing.models import BookFormat, ParsedBook

logger = logging.getLogger(__name__)

_EXTENSION_FORMATS: dict[str, BookFormat] = {
    ".md": BookFormat.MARKDOWN,
    ".markdown": BookFormat.MARKDOWN,
    ".txt": BookFormat.PLAINTEXT,
    ".zip": BookFormat.ARCHIVE,
    ".textpack": BookFormat.ARCHIVE,
}

_HINT_FORMATS: dict[str, BookFormat] = {
    "markdown": BookFormat.MARKDOWN,
    "md": BookFormat.MARKDOWN,
    "plaintext": BookFormat.PLAINTEXT,
    "text": BookFormat.PLAINTEXT,
    "txt": BookFormat.PLAINTEXT,
    "archive": BookFormat.ARCHIVE,
    "zip": BookFormat.ARCHIVE,
    "textpack": BookFormat.ARCHIVE,
    "textbundle": BookFormat.ARCHIVE,
}

SUPPORTED_SUFFIXES = frozenset(_EXTENSION_FORMATS)


def resolve_format_hint(hint: str | BookFormat | None) -> BookFormat | None:
    """Map a user-supplied format name to a BookFormat."""

    if hint is None or isinstance(hint, BookFormat):
        return hint
    key = hint.strip().lower().lstrip(".")
    if not key:
        return None
    try:
        return _HINT_FORMATS[key]
    except KeyError:
        raise ParseError(f"Unsupported format: {hint}") from None


def detect_format(
    filename: str | None,
    raw: bytes | None = None,
    format_hint: str | BookFormat | None = None,
) -> BookFormat | None:
    """Declared hint first, then extension, then content sniffing.

    Returns None for text of unknown type; the caller tries Markdown and
    falls back to plain text.
    """

    declared = resolve_format_hint(format_hint)
    if declared is not None:
        return declared
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix in _EXTENSION_FORMATS:
            return _EXTENSION_FORMATS[suffix]
    if raw is not None and raw.startswith(ZIP_MAGIC):
        return BookFormat.ARCHIVE
    return None


class BookParser:
    """Turn manuscript files into ParsedBook values; never writes to disk."""

    def __init__(
        self,
        *,
        markdown: MarkdownAdapter | None = None,
        plaintext: PlainTextAdapter | None = None,
        archive: ArchiveAdapter | None = None,
    ) -> None:
        self._markdown = markdown or MarkdownAdapter()
        self._plaintext = plaintext or PlainTextAdapter()
        self._archive = archive or ArchiveAdapter(self._markdown, self._plaintext)

    def parse(self, path: str | Path, format_hint: str | BookFormat | None = None) -> ParsedBook:
        """Parse a manuscript file, or an unpacked bundle directory."""

        source = Path(path)
        if source.is_dir():
            declared = resolve_format_hint(format_hint)
            if declared not in (None, BookFormat.ARCHIVE):
                raise ParseError("Directories can only be parsed as archive bundles", str(source))
            logger.info("Parsing bundle folder %s", source)
            return self._archive.parse_reader(DirectoryArchiveReader(source), filename=source.name)

        try:
            raw = source.read_bytes()
        except OSError as exc:
            raise ParseError(f"Failed to read manuscript: {exc}", str(source)) from exc
        return self.parse_bytes(raw, filename=source.name, format_hint=format_hint)

    def parse_bytes(
        self,
        raw: bytes,
        filename: str | None = None,
        format_hint: str | BookFormat | None = None,
    ) -> ParsedBook:
        """Parse an in-memory upload; ``filename`` drives detection and title fallback."""

        if not raw:
            raise ParseError("Manuscript file is empty", filename)

        book_format = detect_format(filename, raw, format_hint)
        logger.info("Parsing %s as %s", filename or "<upload>", book_format.value if book_format else "unknown text")

        match book_format:
            case BookFormat.MARKDOWN:
                return self._markdown.parse(raw, filename=filename)
            case BookFormat.PLAINTEXT:
                return self._plaintext.parse(raw, filename=filename)
            case BookFormat.ARCHIVE:
                return self._archive.parse(raw, filename=filename)
            case None:
                return self._parse_unknown_text(raw, filename)
        raise ParseError(f"Unsupported format: {book_format}", filename)

    def _parse_unknown_text(self, raw: bytes, filename: str | None) -> ParsedBook:
        try:
            return self._markdown.parse(raw, filename=filename)
        except ParseError as markdown_error:
            logger.debug("Markdown parse failed (%s); retrying as plain text", markdown_error)
        return self._plaintext.parse(raw, filename=filename)
