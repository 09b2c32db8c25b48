"""CLI command that parses a manuscript and prints its chapter structure."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from bookimport.parsing.errors import ParseError
from bookimport.parsing.models import ParsedBook
from bookimport.parsing.parser import BookParser


def _book_payload(path: Path, book: ParsedBook) -> dict[str, object]:
    return {
        "source_path": str(path),
        "title": book.title,
        "author": book.author,
        "description": book.description,
        "type": book.type,
        "format": book.format.value if book.format else None,
        "word_count": book.word_count,
        "chapters": [
            {"number": chapter.number, "title": chapter.title, "word_count": chapter.word_count}
            for chapter in book.chapters
        ],
        "warnings": list(book.warnings),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Parse a manuscript and report its chapters")
    parser.add_argument("--path", required=True, help="Manuscript file or bundle folder")
    parser.add_argument("--format", default=None, help="Format hint: markdown, text or archive")
    parser.add_argument("--verbose", action="store_true", help="Log parser decisions to stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    source_path = Path(args.path)
    try:
        book = BookParser().parse(source_path, format_hint=args.format)
    except ParseError as exc:
        print(json.dumps({"source_path": str(source_path), "error": str(exc)}, ensure_ascii=False, indent=2))
        return 1

    print(json.dumps(_book_payload(source_path, book), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
