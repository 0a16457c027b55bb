"""Book cards and terminal output."""
from dataclasses import dataclass, field
import json
from typing import List, Optional

from tabulate import tabulate

from shelfworker.models import Book

MAX_GENRE_BADGES = 2

ADD = "add"
REMOVE = "remove"
PREVIEW = "preview"
EPUB = "epub"
TEXT = "text"

ADD_LABEL = "+ Add to Library"
ADDING_LABEL = "Adding..."
ADDED_LABEL = "✓ Added"
REMOVE_LABEL = "Remove"
PREVIEW_LABEL = "Preview"
EPUB_LABEL = "📖 EPUB"
TEXT_LABEL = "📄 Text"

NO_MATCHES_MESSAGE = "No books found matching your filters."
EMPTY_LIBRARY_MESSAGE = "Your library is empty. Add books from the catalog."


@dataclass
class CardAction:
    """A control on a book card."""
    kind: str
    label: str
    enabled: bool = True
    url: Optional[str] = None


@dataclass
class BookCard:
    """Rendered representation of one book."""
    book: Book
    badges: List[str] = field(default_factory=list)
    actions: List[CardAction] = field(default_factory=list)

    def action(self, kind: str) -> Optional[CardAction]:
        """Find the control of the given kind, if the card has one."""
        for action in self.actions:
            if action.kind == kind:
                return action
        return None


def is_in_library(book: Book, library_books: List[Book]) -> bool:
    """Membership by id; a linear scan is fine at library scale."""
    return any(lb.gutenberg_id == book.gutenberg_id for lb in library_books)


def build_card(book: Book, in_library: bool, library_view: bool = False) -> BookCard:
    """
    Build the card for a book.

    Args:
        book: Book to render
        in_library: Whether the book is already in the library
        library_view: True when rendering the library tab

    Returns:
        BookCard with badges and the controls allowed in this context
    """
    card = BookCard(book=book)

    if book.decade:
        card.badges.append(book.decade_label)
    if book.genres:
        card.badges.extend(book.genres[:MAX_GENRE_BADGES])

    if not library_view and not in_library:
        card.actions.append(CardAction(ADD, ADD_LABEL))
    if library_view:
        card.actions.append(CardAction(REMOVE, REMOVE_LABEL))
    if book.text_url:
        card.actions.append(CardAction(PREVIEW, PREVIEW_LABEL, url=book.text_url))
    if book.epub_url:
        card.actions.append(CardAction(EPUB, EPUB_LABEL, url=book.epub_url))
    if book.text_url:
        card.actions.append(CardAction(TEXT, TEXT_LABEL, url=book.text_url))

    return card


def build_catalog_cards(books: List[Book], library_books: List[Book]) -> List[BookCard]:
    return [build_card(book, is_in_library(book, library_books)) for book in books]


def build_library_cards(library_books: List[Book]) -> List[BookCard]:
    return [build_card(book, True, library_view=True) for book in library_books]


def format_card(card: BookCard, index: Optional[int] = None) -> str:
    """Format a card as a few lines of plain text."""
    prefix = f"[{index}] " if index is not None else ""
    indent = " " * len(prefix)
    lines = [f"{prefix}{card.book.title_str}", f"{indent}{card.book.author}"]

    if card.badges:
        lines.append(indent + " · ".join(card.badges))

    controls = [
        f"[{action.label}]" if action.enabled else f"({action.label})"
        for action in card.actions
    ]
    if controls:
        lines.append(indent + " ".join(controls))

    return "\n".join(lines)


def format_cards(cards: List[BookCard], empty_message: str) -> str:
    if not cards:
        return empty_message
    return "\n\n".join(format_card(card, i) for i, card in enumerate(cards, 1))


def display_books(books: List[Book], format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["ID", "Title", "Author", "Decade", "Genres"]
        rows = [
            [
                book.gutenberg_id,
                book.title_str[:50] + "..." if len(book.title_str) > 50 else book.title_str,
                book.author[:30] + "..." if len(book.author) > 30 else book.author,
                book.decade_label or "Unknown",
                book.genres_str[:40] + "..." if len(book.genres_str) > 40 else book.genres_str
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2, ensure_ascii=False))

    elif format_type == "compact":
        for book in books:
            print(f"{book.gutenberg_id}. {book.title_str} - {book.author}")
