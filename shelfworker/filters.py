"""Catalog filtering and filter vocabularies."""
from typing import Iterable, List, Set, Tuple

from shelfworker.models import Book, FilterState


def matches(book: Book, filters: FilterState) -> bool:
    """Check a single book against every active filter."""
    search = filters.search.lower()
    if search and search not in book.title_str.lower() and search not in book.author.lower():
        return False

    if filters.genre and filters.genre not in (book.genres or []):
        return False

    if filters.decade is not None and book.decade != filters.decade:
        return False

    return True


def apply_filters(books: List[Book], filters: FilterState) -> List[Book]:
    """
    Filter books by search text, genre and decade.

    Args:
        books: Catalog books
        filters: Active filters; empty components impose no restriction

    Returns:
        Matching books in their original order
    """
    return [book for book in books if matches(book, filters)]


def build_vocabularies(books: Iterable[Book]) -> Tuple[Set[str], Set[int]]:
    """
    Collect every genre and decade present in the catalog.

    Returns:
        (genres, decades)
    """
    genres = set()
    decades = set()

    for book in books:
        if book.genres:
            genres.update(book.genres)
        if book.decade:
            decades.add(book.decade)

    return genres, decades


def genre_options(genres: Set[str]) -> List[str]:
    """Genres in display order."""
    return sorted(genres)


def decade_options(decades: Set[int]) -> List[Tuple[int, str]]:
    """Decades in numeric order with their labels, e.g. (1900, '1900s')."""
    return [(decade, f"{decade}s") for decade in sorted(decades)]
