"""Archive adapter: one chapter per text entry of a zip, textpack or folder."""

from __future__ import annotations

from dataclasses import dataclass, replace
import json
import logging
import re
from typing import Any

import yaml

from bookimport.parsing.adapters.markdown_adapter import MarkdownAdapter, parse_heading_line
from bookimport.parsing.adapters.txt_adapter import PlainTextAdapter, match_marker, split_marker_title
from bookimport.parsing.archive import ArchiveEntry, ArchiveReader, ZipArchiveReader
from bookimport.parsing.encoding import decode_text
from bookimport.parsing.errors import ParseError
from bookimport.parsing.frontmatter import METADATA_KEYS, split_front_matter
from bookimport.parsing.models import DEFAULT_BOOK_TYPE, BookFormat, ParsedBook, ParsedChapter
from bookimport.parsing.normalization import (
    humanize_filename,
    join_body,
    natural_sort_key,
    normalize_newlines,
    title_from_filename,
)
from bookimport.parsing.numbering import ChapterNumberer

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".md", ".markdown", ".txt"}
MARKDOWN_SUFFIXES = {".md", ".markdown"}
METADATA_FILES = ("metadata.json", "metadata.yaml", "metadata.yml")
MANIFEST_FILES = ("manifest.json", "manifest.txt")
INDEX_FILES = ("book.md", "index.md", "readme.md")
NO_ENTRIES_MESSAGE = "Archive contains no text or Markdown entries"

# iA Writer content blocks: "/chapter-1.md" optionally followed by a quoted title.
_CONTENT_BLOCK_RE = re.compile(r"""^/(?P<path>\S+\.(?:md|markdown|txt))(?:\s+["'(](?P<title>.+?)["')])?\s*$""", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ManifestItem:
    """One ordered chapter reference from a manifest or index file."""

    name: str
    title: str | None = None


def _strip_common_root(entries: list[ArchiveEntry]) -> list[ArchiveEntry]:
    """Drop a single top-level folder shared by every entry."""

    roots = {entry.name.split("/", 1)[0] for entry in entries}
    if len(roots) != 1 or not all("/" in entry.name for entry in entries):
        return entries
    prefix = next(iter(roots)) + "/"
    return [ArchiveEntry(name=entry.name[len(prefix):], data=entry.data) for entry in entries]


def _top_level(entries: list[ArchiveEntry]) -> dict[str, ArchiveEntry]:
    return {entry.name.casefold(): entry for entry in entries if "/" not in entry.name}


def _clean_reference(name: str) -> str:
    return name.strip().lstrip("/").removeprefix("./")


def _stringify_metadata(raw: dict[str, Any]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for key in METADATA_KEYS:
        value = raw.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            fields[key] = text
    return fields


class ArchiveAdapter:
    """Parse bundles whose text entries each hold one chapter."""

    format = BookFormat.ARCHIVE

    def __init__(
        self,
        markdown: MarkdownAdapter | None = None,
        plaintext: PlainTextAdapter | None = None,
    ) -> None:
        self._markdown = markdown or MarkdownAdapter()
        self._plaintext = plaintext or PlainTextAdapter()

    def parse(self, raw: bytes, *, filename: str | None = None) -> ParsedBook:
        return self.parse_reader(ZipArchiveReader(raw, source=filename), filename=filename)

    def parse_reader(self, reader: ArchiveReader, *, filename: str | None = None) -> ParsedBook:
        entries = _strip_common_root(reader.list_entries())
        if not entries:
            raise ParseError(NO_ENTRIES_MESSAGE, filename)

        bundled = self._parse_textbundle(entries, filename)
        if bundled is not None:
            return bundled

        warnings: list[str] = []
        top_level = _top_level(entries)
        metadata = self._read_metadata_file(top_level, warnings, filename)
        manifest, manifest_names = self._read_manifest(top_level, warnings, filename)

        candidates = [
            entry
            for entry in entries
            if entry.suffix in TEXT_SUFFIXES
            and entry.name.casefold() not in manifest_names
            and entry.name.casefold() not in MANIFEST_FILES
        ]
        ordered = self._order_entries(candidates, manifest, warnings)

        numberer = ChapterNumberer(warnings)
        chapters: list[ParsedChapter] = []
        bundle_metadata: dict[str, str] = {}
        for position, (entry, title_override) in enumerate(ordered):
            source = f"{filename}:{entry.name}" if filename else entry.name
            text = normalize_newlines(decode_text(entry.data, source=source))
            if not text.strip():
                warnings.append(f"Skipped empty entry '{entry.name}'")
                continue

            fields: dict[str, str] = {}
            body_text = text
            if entry.suffix in MARKDOWN_SUFFIXES:
                front_matter = split_front_matter(text)
                if front_matter.error:
                    warnings.append(f"{entry.name}: {front_matter.error}")
                fields = front_matter.fields
                body_text = front_matter.body
                if position == 0 and fields.get("title") and not body_text.strip():
                    bundle_metadata = fields
                    continue

            heading_title, body = self._split_entry_title(entry, body_text)
            number = numberer.assign()
            title = (
                title_override
                or fields.get("title")
                or heading_title
                or humanize_filename(entry.name)
                or f"Chapter {number}"
            )
            chapters.append(ParsedChapter(number=number, title=title, body=body))

        if not chapters:
            raise ParseError(NO_ENTRIES_MESSAGE, filename)

        book_fields = {**bundle_metadata, **metadata}
        logger.debug("Parsed %d archive chapters from %s", len(chapters), filename or "<bundle>")
        return ParsedBook(
            chapters=tuple(chapters),
            title=book_fields.get("title") or (title_from_filename(filename) if filename else None),
            author=book_fields.get("author"),
            description=book_fields.get("description"),
            type=book_fields.get("type") or DEFAULT_BOOK_TYPE,
            format=BookFormat.ARCHIVE,
            warnings=tuple(warnings),
        )

    def _parse_textbundle(self, entries: list[ArchiveEntry], filename: str | None) -> ParsedBook | None:
        """Handle TextBundle layouts: ``info.json`` plus one ``text.*`` file."""

        bundle_dirs = sorted(
            {
                entry.name.split("/", 1)[0]
                for entry in entries
                if "/" in entry.name and entry.name.split("/", 1)[0].lower().endswith(".textbundle")
            }
        )
        if bundle_dirs:
            prefix = bundle_dirs[0] + "/"
            entries = [
                ArchiveEntry(name=entry.name[len(prefix):], data=entry.data)
                for entry in entries
                if entry.name.startswith(prefix)
            ]

        top_level = _top_level(entries)
        if "info.json" not in top_level:
            return None

        text_entry = next(
            (top_level[name] for name in ("text.md", "text.markdown", "text.txt") if name in top_level),
            None,
        )
        if text_entry is None:
            raise ParseError("Invalid TextBundle: missing text file", filename)

        text = decode_text(text_entry.data, source=f"{filename}:{text_entry.name}" if filename else text_entry.name)
        if text_entry.suffix == ".txt":
            book = self._plaintext.parse_text(text, filename=filename)
        else:
            book = self._markdown.parse_text(text, filename=filename)
        return replace(book, format=BookFormat.ARCHIVE)

    def _read_metadata_file(
        self,
        top_level: dict[str, ArchiveEntry],
        warnings: list[str],
        filename: str | None,
    ) -> dict[str, str]:
        for name in METADATA_FILES:
            entry = top_level.get(name)
            if entry is None:
                continue
            text = decode_text(entry.data, source=f"{filename}:{entry.name}" if filename else entry.name)
            try:
                loaded = json.loads(text) if name.endswith(".json") else yaml.safe_load(text)
            except (json.JSONDecodeError, yaml.YAMLError):
                warnings.append(f"Ignored unreadable metadata file '{entry.name}'")
                return {}
            if not isinstance(loaded, dict):
                warnings.append(f"Ignored metadata file '{entry.name}': expected key/value pairs")
                return {}
            return _stringify_metadata(loaded)
        return {}

    def _read_manifest(
        self,
        top_level: dict[str, ArchiveEntry],
        warnings: list[str],
        filename: str | None,
    ) -> tuple[list[ManifestItem] | None, set[str]]:
        """Return the manifest order (None when absent) and names to exclude from chapters."""

        for name in MANIFEST_FILES:
            entry = top_level.get(name)
            if entry is None:
                continue
            text = decode_text(entry.data, source=f"{filename}:{entry.name}" if filename else entry.name)
            if name.endswith(".json"):
                items = self._manifest_from_json(text, entry.name, warnings)
            else:
                items = [
                    ManifestItem(name=_clean_reference(line))
                    for line in text.splitlines()
                    if line.strip() and not line.strip().startswith("#")
                ]
            if items is not None:
                return items, {name}

        for name in INDEX_FILES:
            entry = top_level.get(name)
            if entry is None:
                continue
            text = decode_text(entry.data, source=f"{filename}:{entry.name}" if filename else entry.name)
            items = []
            for line in split_front_matter(normalize_newlines(text)).body.split("\n"):
                match = _CONTENT_BLOCK_RE.match(line.strip())
                if match is not None:
                    items.append(ManifestItem(name=_clean_reference(match.group("path")), title=match.group("title")))
            if items:
                return items, {name}

        return None, set()

    def _manifest_from_json(self, text: str, name: str, warnings: list[str]) -> list[ManifestItem] | None:
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError:
            warnings.append(f"Ignored unreadable manifest '{name}'")
            return None

        raw_items = loaded.get("chapters") if isinstance(loaded, dict) else loaded
        if not isinstance(raw_items, list):
            warnings.append(f"Ignored manifest '{name}': expected a list of chapter files")
            return None

        items: list[ManifestItem] = []
        for raw in raw_items:
            if isinstance(raw, str) and raw.strip():
                items.append(ManifestItem(name=_clean_reference(raw)))
            elif isinstance(raw, dict) and isinstance(raw.get("file"), str):
                title = raw.get("title")
                items.append(
                    ManifestItem(
                        name=_clean_reference(raw["file"]),
                        title=str(title).strip() if title else None,
                    )
                )
            else:
                warnings.append(f"Ignored malformed manifest item in '{name}': {raw!r}")
        return items

    def _order_entries(
        self,
        candidates: list[ArchiveEntry],
        manifest: list[ManifestItem] | None,
        warnings: list[str],
    ) -> list[tuple[ArchiveEntry, str | None]]:
        if manifest is None:
            ordered = sorted(candidates, key=lambda entry: natural_sort_key(entry.name))
            return [(entry, None) for entry in ordered]

        by_name = {entry.name.casefold(): entry for entry in candidates}
        listed: set[str] = set()
        result: list[tuple[ArchiveEntry, str | None]] = []
        for item in manifest:
            key = item.name.casefold()
            entry = by_name.get(key)
            if entry is None:
                warnings.append(f"Manifest lists '{item.name}' but the archive has no such text entry")
                continue
            if key in listed:
                warnings.append(f"Manifest lists '{item.name}' more than once; later entry ignored")
                continue
            listed.add(key)
            result.append((entry, item.title))

        for entry in sorted(candidates, key=lambda candidate: natural_sort_key(candidate.name)):
            if entry.name.casefold() not in listed:
                warnings.append(f"Entry '{entry.name}' is not listed in the manifest; ignored")
        return result

    def _split_entry_title(self, entry: ArchiveEntry, text: str) -> tuple[str | None, str]:
        """Lift a leading ``# Heading`` or chapter marker off an entry's body."""

        lines = text.split("\n")
        for index, line in enumerate(lines):
            if not line.strip():
                continue
            rest = lines[index + 1 :]
            if entry.suffix in MARKDOWN_SUFFIXES:
                heading = parse_heading_line(line)
                if heading is not None:
                    return heading, join_body(rest)
            else:
                marker = match_marker(line)
                if marker is not None:
                    title = marker.title
                    if title is None:
                        title, rest = split_marker_title(rest)
                    return title, join_body(rest)
            break
        return None, join_body(lines)
