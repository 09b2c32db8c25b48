from __future__ import annotations

from io import BytesIO
import json
from pathlib import Path
import zipfile

import pytest

from bookimport.parsing.adapters.archive_adapter import ArchiveAdapter
from bookimport.parsing.archive import DirectoryArchiveReader
from bookimport.parsing.errors import ParseError
from bookimport.parsing.models import BookFormat


def _zip(files: dict[str, str | bytes]) -> bytes:
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            archive.writestr(name, data)
    return buffer.getvalue()


def _parse(files: dict[str, str | bytes], filename: str = "bundle.zip"):
    return ArchiveAdapter().parse(_zip(files), filename=filename)


def test_entries_are_ordered_naturally_one_chapter_each() -> None:
    book = _parse(
        {
            "chapter-10.md": "# Tenth\nten",
            "chapter-2.md": "# Second\ntwo",
            "chapter-1.md": "# First\none",
        }
    )

    assert book.format is BookFormat.ARCHIVE
    assert [(chapter.number, chapter.title) for chapter in book.chapters] == [
        (1, "First"),
        (2, "Second"),
        (3, "Tenth"),
    ]
    assert book.chapters[0].body == "one"
    assert book.title == "bundle"


def test_shared_root_folder_and_system_entries_are_ignored() -> None:
    book = _parse(
        {
            "My Book/01-opening.txt": "It starts.",
            "My Book/02-the_storm.txt": "It rains.",
            "My Book/.DS_Store": b"\x00\x01",
            "My Book/images/cover.png": b"\x89PNG",
        }
    )

    assert [chapter.title for chapter in book.chapters] == ["Opening", "The storm"]
    assert [chapter.body for chapter in book.chapters] == ["It starts.", "It rains."]


def test_manifest_controls_order_and_titles() -> None:
    manifest = {
        "chapters": [
            {"file": "b.md", "title": "Overridden"},
            "a.md",
            "missing.md",
        ]
    }
    book = _parse(
        {
            "manifest.json": json.dumps(manifest),
            "a.md": "# Alpha\nfirst",
            "b.md": "# Beta\nsecond",
            "c.md": "# Gamma\nthird",
        }
    )

    assert [chapter.title for chapter in book.chapters] == ["Overridden", "Alpha"]
    assert any("missing.md" in warning for warning in book.warnings)
    assert any("c.md" in warning and "not listed" in warning for warning in book.warnings)


def test_metadata_file_supplies_book_fields() -> None:
    book = _parse(
        {
            "metadata.yaml": "title: Collected Letters\nauthor: A. Writer\ntype: anthology\n",
            "1.md": "# Letter One\nDear reader.",
        }
    )

    assert book.title == "Collected Letters"
    assert book.author == "A. Writer"
    assert book.type == "anthology"
    assert len(book.chapters) == 1


def test_metadata_only_first_entry_is_not_a_chapter() -> None:
    book = _parse(
        {
            "00-meta.md": "---\ntitle: Bundle Title\nauthor: Someone\n---\n",
            "01-start.md": "# Start\nbody",
        }
    )

    assert book.title == "Bundle Title"
    assert book.author == "Someone"
    assert [(chapter.number, chapter.title) for chapter in book.chapters] == [(1, "Start")]


def test_index_content_blocks_define_order() -> None:
    book = _parse(
        {
            "index.md": "# Book\n\n/second.md\n/first.md \"Custom Title\"\n",
            "first.md": "# First\none",
            "second.md": "# Second\ntwo",
        }
    )

    assert [chapter.title for chapter in book.chapters] == ["Second", "Custom Title"]


def test_textbundle_is_parsed_as_single_manuscript() -> None:
    book = _parse(
        {
            "Draft.textbundle/info.json": json.dumps({"version": 2}),
            "Draft.textbundle/text.md": "# One\nfirst\n\n# Two\nsecond\n",
            "Draft.textbundle/assets/photo.jpg": b"\xff\xd8",
        },
        filename="Draft.textpack",
    )

    assert book.format is BookFormat.ARCHIVE
    assert [chapter.title for chapter in book.chapters] == ["One", "Two"]
    assert book.title == "Draft"


def test_empty_entries_are_skipped_with_warning() -> None:
    book = _parse({"1.md": "# Real\ncontent", "2.md": "   \n"})

    assert len(book.chapters) == 1
    assert any("Skipped empty entry '2.md'" == warning for warning in book.warnings)


def test_archive_without_text_entries_fails() -> None:
    with pytest.raises(ParseError, match="no text or Markdown entries"):
        _parse({"cover.png": b"\x89PNG", "notes.pdf": b"%PDF"})


def test_corrupt_archive_fails() -> None:
    raw = _zip({"1.md": "# One\nbody"})
    truncated = raw[: len(raw) // 2]

    with pytest.raises(ParseError, match="Corrupt archive"):
        ArchiveAdapter().parse(truncated, filename="broken.zip")


def _patch_headers(raw: bytes, *, flag_bits: int = 0, method: int | None = None) -> bytes:
    patched = bytearray(raw)
    local = patched.find(b"PK\x03\x04")
    central = patched.find(b"PK\x01\x02")
    patched[local + 6] |= flag_bits
    patched[central + 8] |= flag_bits
    if method is not None:
        patched[local + 8 : local + 10] = method.to_bytes(2, "little")
        patched[central + 10 : central + 12] = method.to_bytes(2, "little")
    return bytes(patched)


def test_encrypted_entry_fails_with_parse_error() -> None:
    raw = _patch_headers(_zip({"ch1.md": "# One\nbody"}), flag_bits=0x01)

    with pytest.raises(ParseError, match="Encrypted archive entries"):
        ArchiveAdapter().parse(raw, filename="book.zip")


def test_unsupported_compression_fails_with_parse_error() -> None:
    raw = _patch_headers(_zip({"ch1.md": "# One\nbody"}), method=42)

    with pytest.raises(ParseError, match="Unsupported archive compression"):
        ArchiveAdapter().parse(raw, filename="book.zip")


def test_entry_with_bad_encoding_fails() -> None:
    with pytest.raises(ParseError, match="Unreadable encoding"):
        _parse({"1.txt": "Глава первая".encode("cp1251")})


def test_directory_bundle_reads_like_archive(tmp_path: Path) -> None:
    (tmp_path / "02-two.md").write_text("# Two\nsecond", encoding="utf-8")
    (tmp_path / "01-one.md").write_text("# One\nfirst", encoding="utf-8")
    (tmp_path / ".hidden.md").write_text("# Hidden\nnope", encoding="utf-8")

    book = ArchiveAdapter().parse_reader(DirectoryArchiveReader(tmp_path), filename="folder")

    assert [chapter.title for chapter in book.chapters] == ["One", "Two"]
    assert book.title == "folder"
