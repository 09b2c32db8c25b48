"""Invocation surface shared by the CLI and admin callers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from bookimport.importing.importer import BookImporter
from bookimport.importing.models import AccessLevel, ImportRequest, ImportResult, RunState
from bookimport.importing.storage import PublicationStore
from bookimport.parsing.errors import ParseError
from bookimport.parsing.models import BookFormat, ParsedBook
from bookimport.parsing.parser import BookParser

logger = logging.getLogger(__name__)


def failed_result(message: str) -> ImportResult:
    """A failed run that never reached storage, in the same shape as importer failures."""

    return ImportResult(success=False, errors=[message], state=RunState.FAILED)


def parse_error_result(exc: ParseError) -> ImportResult:
    logger.warning("Parse failed: %s", exc)
    return failed_result(f"Parse error: {exc}")


def import_parsed_book(
    book: ParsedBook,
    storage: PublicationStore,
    *,
    slug: str | None = None,
    publish: bool = False,
    access_level: str | AccessLevel = AccessLevel.FREE,
    replace_existing: bool = False,
    existing_publication_id: int | str | None = None,
    actor: str | None = None,
    dry_run: bool = False,
) -> ImportResult:
    """Import an already parsed book; failures come back as results."""

    try:
        level = AccessLevel.parse(access_level)
    except ValueError as exc:
        return failed_result(str(exc))

    request = ImportRequest(
        parsed_book=book,
        target_slug=slug,
        publish=publish,
        default_access_level=level,
        replace_existing=replace_existing,
        existing_publication_id=existing_publication_id,
        actor=actor,
        dry_run=dry_run,
    )
    return BookImporter(storage).import_book(request)


def import_manuscript(
    source: str | Path | bytes,
    storage: PublicationStore,
    *,
    filename: str | None = None,
    format_hint: str | BookFormat | None = None,
    slug: str | None = None,
    publish: bool = False,
    access_level: str | AccessLevel = AccessLevel.FREE,
    replace_existing: bool = False,
    existing_publication_id: int | str | None = None,
    actor: str | None = None,
    dry_run: bool = False,
    parser: BookParser | None = None,
) -> ImportResult:
    """Parse a manuscript (path or bytes) and import it; failures come back as results."""

    try:
        AccessLevel.parse(access_level)
    except ValueError as exc:
        return failed_result(str(exc))

    book_parser = parser or BookParser()
    try:
        if isinstance(source, bytes):
            book = book_parser.parse_bytes(source, filename=filename, format_hint=format_hint)
        else:
            book = book_parser.parse(source, format_hint=format_hint)
    except ParseError as exc:
        return parse_error_result(exc)

    return import_parsed_book(
        book,
        storage,
        slug=slug,
        publish=publish,
        access_level=access_level,
        replace_existing=replace_existing,
        existing_publication_id=existing_publication_id,
        actor=actor,
        dry_run=dry_run,
    )


def result_to_payload(result: ImportResult) -> dict[str, Any]:
    """JSON-ready view of a result for HTTP admin endpoints and ``--json``."""

    return result.to_dict()


def _section(title: str, items: list[str]) -> list[str]:
    lines = [f"{title} ({len(items)}):"]
    if not items:
        lines.append("  (none)")
    lines.extend(f"  - {item}" for item in items)
    return lines


def format_result_text(result: ImportResult) -> str:
    """Human-readable summary; warnings are always listed, even on success."""

    status = "OK" if result.success else "FAILED"
    header = f"Import {status}"
    if result.dry_run:
        header += " (dry run)"
    if result.publication_ref is not None:
        header += f" -> publication {result.publication_ref}"
    if result.publication_slug:
        header += f" [{result.publication_slug}]"

    lines = [header]
    lines.extend(_section("Created", result.chapters_created))
    lines.extend(_section("Updated", result.chapters_updated))
    lines.extend(_section("Skipped", result.chapters_skipped))
    label = "Warnings" if result.success else "Errors"
    lines.append(f"{label} ({len(result.errors)}):")
    lines.extend(f"  ! {entry}" for entry in result.errors)
    return "\n".join(lines)
