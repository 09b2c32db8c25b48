from __future__ import annotations

import pytest

from bookimport.parsing.adapters.txt_adapter import PlainTextAdapter, match_marker
from bookimport.parsing.errors import ParseError
from bookimport.parsing.models import BookFormat


def _parse(text: str, filename: str | None = "novel.txt"):
    return PlainTextAdapter().parse(text.encode("utf-8"), filename=filename)


@pytest.mark.parametrize("marker", ["CHAPTER III", "CHAPTER 3", "CHAPTER THREE", "Chapter three.", "chapter iii"])
def test_marker_styles_resolve_to_same_number(marker: str) -> None:
    book = _parse(f"{marker}\n\nThe third chapter begins here.\n")

    assert [chapter.number for chapter in book.chapters] == [3]
    assert book.chapters[0].title == "Chapter 3"
    assert book.chapters[0].body == "The third chapter begins here."


def test_classic_novel_layout_detects_book_and_chapter_titles() -> None:
    book = _parse(
        "Pride and Prejudice\n"
        "\n"
        "CHAPTER I\n"
        "The Beginning\n"
        "\n"
        "It is a truth universally acknowledged, that a single man in possession\n"
        "of a good fortune, must be in want of a wife.\n"
        "\n"
        "CHAPTER II.\n"
        "\n"
        "Mr. Bennet was among the earliest of those who waited on Mr. Bingley.\n"
    )

    assert book.format is BookFormat.PLAINTEXT
    assert book.title == "Pride and Prejudice"
    assert [(chapter.number, chapter.title) for chapter in book.chapters] == [
        (1, "The Beginning"),
        (2, "Chapter 2"),
    ]
    assert book.chapters[0].body.startswith("It is a truth universally acknowledged")
    assert book.chapters[1].body == "Mr. Bennet was among the earliest of those who waited on Mr. Bingley."
    assert book.warnings == ()


def test_header_lines_supply_metadata() -> None:
    book = _parse(
        "TITLE: The Long Road\n"
        "AUTHOR: J. Walker\n"
        "TYPE: Novel\n"
        "\n"
        "CHAPTER 1: Departure\n"
        "We left at dawn.\n"
        "\n"
        "CHAPTER 2 - Arrival\n"
        "We arrived at dusk.\n"
    )

    assert book.title == "The Long Road"
    assert book.author == "J. Walker"
    assert book.type == "novel"
    assert [(chapter.number, chapter.title) for chapter in book.chapters] == [
        (1, "Departure"),
        (2, "Arrival"),
    ]
    assert book.chapters[0].word_count == 4


def test_compound_spelled_numbers_are_supported() -> None:
    book = _parse("CHAPTER TWENTY-ONE\n\nLate in the story.\n")

    assert book.chapters[0].number == 21


def test_out_of_order_marker_is_renumbered_with_warning() -> None:
    book = _parse("CHAPTER 2\nfirst\n\nCHAPTER 1\nsecond\n")

    assert [chapter.number for chapter in book.chapters] == [2, 3]
    assert len(book.warnings) == 1
    assert "renumbered to 3" in book.warnings[0]


def test_substantive_preamble_is_discarded_with_word_count() -> None:
    preamble = (
        "A note before we begin: this edition restores the text of the first printing,\n"
        "including several passages that were cut from every later edition of the book.\n"
    )
    book = _parse(preamble + "\nCHAPTER 1\nStory.\n")

    assert len(book.chapters) == 1
    assert any(warning.startswith("Discarded") and "words" in warning for warning in book.warnings)


def test_sentence_starting_with_chapter_word_is_not_a_marker() -> None:
    assert match_marker("Chapter one of my life was hard.") is None
    assert match_marker("CHAPTER 0") is None
    assert match_marker("  CHAPTER XII  ").number == 12
    assert match_marker("Chapter 3 describes the method") is None


def test_title_after_label_without_separator() -> None:
    book = _parse(
        "CHAPTER IV The Storm\n"
        "Rain fell all night.\n"
        "\n"
        "CHAPTER 5 Aftermath\n"
        "The river had risen.\n"
        "\n"
        "CHAPTER SIX \"Home\"\n"
        "They walked back.\n"
    )

    assert [(chapter.number, chapter.title) for chapter in book.chapters] == [
        (4, "The Storm"),
        (5, "Aftermath"),
        (6, "\"Home\""),
    ]
    assert book.chapters[0].body == "Rain fell all night."
    assert book.warnings == ()


def test_text_without_markers_fails() -> None:
    with pytest.raises(ParseError, match="No chapters found"):
        _parse("Once upon a time there was no structure at all.\n")


def test_non_utf8_text_fails_with_encoding_error() -> None:
    raw = "ГЛАВА 1\nКогда-то давно жил-был кот.\n".encode("cp1251")

    with pytest.raises(ParseError, match="Unreadable encoding"):
        PlainTextAdapter().parse(raw, filename="cyrillic.txt")


def test_byte_order_mark_is_stripped() -> None:
    raw = "\ufeffCHAPTER 1\nHello there.\n".encode("utf-8")

    book = PlainTextAdapter().parse(raw, filename="bom.txt")

    assert book.chapters[0].number == 1
    assert book.chapters[0].body == "Hello there."
