from __future__ import annotations

import pytest

from bookimport.parsing.normalization import humanize_filename, is_substantive_preamble, natural_sort_key
from bookimport.parsing.numbering import ChapterNumberer
from bookimport.parsing.numerals import parse_chapter_label, roman_to_int, words_to_int


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("12", 12),
        ("XII", 12),
        ("xii", 12),
        ("twelve", 12),
        ("Forty-Two", 42),
        ("ninety nine", 99),
        ("IV.", 4),
        ("0", None),
        ("IIII", None),
        ("eleventy", None),
        ("", None),
    ],
)
def test_parse_chapter_label(label: str, expected: int | None) -> None:
    assert parse_chapter_label(label) == expected


def test_roman_and_words_helpers_reject_malformed_input() -> None:
    assert roman_to_int("MCMXCIV") == 1994
    assert roman_to_int("VX") is None
    assert words_to_int("twenty-twelve") is None
    assert words_to_int("one two") is None


def test_numberer_keeps_numbers_strictly_increasing() -> None:
    warnings: list[str] = []
    numberer = ChapterNumberer(warnings)

    assigned = [
        numberer.assign(),
        numberer.assign(5, label="Chapter 5"),
        numberer.assign(5, label="Chapter 5"),
        numberer.assign(),
        numberer.assign(2),
    ]

    assert assigned == [1, 5, 6, 7, 8]
    assert len(warnings) == 2
    assert "'Chapter 5'" in warnings[0]


def test_reserved_leading_chapter_shifts_later_explicit_numbers_once() -> None:
    warnings: list[str] = []
    numberer = ChapterNumberer(warnings)

    assigned = [
        numberer.reserve_leading(),
        numberer.assign(1),
        numberer.assign(2),
        numberer.assign(2),
    ]

    assert assigned == [1, 2, 3, 4]
    assert numberer.offset == 1
    assert len(warnings) == 1
    assert "renumbered to 4" in warnings[0]


def test_natural_sort_orders_embedded_numbers() -> None:
    names = ["chapter-10.md", "Chapter-2.md", "chapter-1.md", "appendix.md"]

    assert sorted(names, key=natural_sort_key) == [
        "appendix.md",
        "chapter-1.md",
        "Chapter-2.md",
        "chapter-10.md",
    ]


def test_humanize_filename() -> None:
    assert humanize_filename("03-the_storm.md") == "The storm"
    assert humanize_filename("part/intro.txt") == "Intro"


def test_preamble_heuristic_needs_lines_and_words() -> None:
    assert not is_substantive_preamble("one line only " * 10)
    assert not is_substantive_preamble("short\nlines")
    assert is_substantive_preamble(("word " * 12 + "\n") * 2)
