"""Tests for cards and terminal output."""
import json

from shelfworker.models import Book
from shelfworker.render import (
    ADD,
    REMOVE,
    build_card,
    build_catalog_cards,
    display_books,
    format_card,
    format_cards,
    is_in_library,
)


def test_membership_by_id(sample_books):
    library = [sample_books[2]]
    assert is_in_library(sample_books[2], library)
    assert not is_in_library(sample_books[0], library)


def test_catalog_cards_hide_add_for_library_books(sample_books):
    cards = build_catalog_cards(sample_books, [sample_books[1]])
    assert [c.action(ADD) is not None for c in cards] == [True, False, True, True]


def test_library_card_has_remove(sample_books):
    card = build_card(sample_books[0], True, library_view=True)
    assert card.action(REMOVE) is not None
    assert card.action(ADD) is None


def test_format_card_shows_badges_and_controls(sample_books):
    card = build_card(sample_books[0], False)
    card.action(ADD).enabled = False

    text = format_card(card, 1)

    assert text.splitlines()[0] == "[1] Pride and Prejudice"
    assert "1800s · Love stories · Sisters" in text
    assert "England" not in text
    assert "(+ Add to Library)" in text
    assert "[Preview]" in text


def test_format_cards_empty_message():
    assert format_cards([], "Nothing here") == "Nothing here"


def test_display_books_json(sample_books, capsys):
    display_books(sample_books[:1], "json")

    data = json.loads(capsys.readouterr().out)
    assert data[0]["gutenberg_id"] == 1342


def test_display_books_compact(sample_books, capsys):
    display_books(sample_books[:2], "compact")

    lines = capsys.readouterr().out.splitlines()
    assert lines == ["1342. Pride and Prejudice - Austen, Jane", "84. Frankenstein - Shelley, Mary Wollstonecraft"]


def test_display_books_table(sample_books, capsys):
    display_books(sample_books, "table")

    out = capsys.readouterr().out
    assert "Moby Dick" in out
    assert "Unknown" in out


def test_untitled_book_renders_blank_title(capsys):
    book = Book(99, None, author="Anonymous")

    assert format_card(build_card(book, False)).splitlines()[0] == ""
    display_books([book], "compact")
    display_books([book], "table")

    out = capsys.readouterr().out
    assert out.splitlines()[0] == "99.  - Anonymous"
    assert "Anonymous" in out
