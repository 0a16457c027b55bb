"""Parse and normalize catalog, library and Gutendex payloads."""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from shelfworker.models import Book, UNKNOWN_AUTHOR

logger = logging.getLogger(__name__)

MAX_GENRES = 3
MAX_GENRE_LENGTH = 50

LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_book(item: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single book from a catalog node, library document or request body.

    Args:
        item: Mapping with Book fields; the id may be keyed
            ``gutenberg_id`` or ``id``

    Returns:
        Book object or None if the item has no usable id
    """
    if not isinstance(item, dict):
        return None

    book_id = _to_int(item.get("gutenberg_id", item.get("id")))
    if book_id is None:
        return None

    genres = item.get("genres") or []
    if not isinstance(genres, list):
        genres = []

    return Book(
        gutenberg_id=book_id,
        title=item.get("title"),
        author=item.get("author") or UNKNOWN_AUTHOR,
        genres=[str(g) for g in genres],
        decade=_to_int(item.get("decade")),
        epub_url=item.get("epub_url"),
        text_url=item.get("text_url")
    )


def parse_book_id(path: str) -> Optional[int]:
    """
    Read a library id from the tail of a request path.

    Only the last ``/``-separated segment counts, and only its leading
    digits: ``"12abc"`` is 12, ``"1/2"`` is 2, ``""`` and ``"abc"`` are None.
    """
    segment = (path or "").split("/")[-1]
    match = LEADING_INT.match(segment)
    if match is None:
        return None
    return int(match.group())


def parse_catalog_payload(resolved: Any) -> List[Book]:
    """
    Unwrap a ``graphql.resolve`` result into a flat list of books.

    Expects ``{"data": {"booksCollection": {"edges": [{"node": {...}}]}}}``.
    Anything absent or malformed yields an empty list.

    Args:
        resolved: Decoded JSON (or raw JSON text) returned by the store

    Returns:
        List of Book objects in edge order
    """
    if isinstance(resolved, (str, bytes)):
        try:
            resolved = json.loads(resolved)
        except ValueError:
            logger.warning("Catalog resolution returned invalid JSON")
            return []

    if not isinstance(resolved, dict):
        return []

    if resolved.get("errors"):
        logger.warning(f"Catalog resolution reported errors: {resolved['errors']}")

    data = resolved.get("data")
    collection = data.get("booksCollection") if isinstance(data, dict) else None
    edges = collection.get("edges") if isinstance(collection, dict) else None
    if not isinstance(edges, list):
        return []

    books = []
    for edge in edges:
        node = edge.get("node") if isinstance(edge, dict) else None
        book = parse_book(node)
        if book:
            books.append(book)
        else:
            logger.warning(f"Skipping catalog node without id: {node!r}")

    return books


def parse_decade(value: Optional[str]) -> Optional[int]:
    """
    Parse a decade selection such as ``"1900"`` or ``"1900s"``.

    Returns:
        The decade as int, or None for an empty selection
    """
    if value is None:
        return None
    text = str(value).strip().lower().rstrip("s")
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"Invalid decade: {value!r}") from None


def extract_genres(record: Dict[str, Any]) -> List[str]:
    """
    Derive up to three short genre tags from Gutendex subjects.

    Subjects like ``"Science fiction -- Fiction"`` keep only the part
    before ``" -- "``; tags that contain commas or are too long are dropped.
    """
    genres = []
    for subject in record.get("subjects") or []:
        cleaned = subject.split(" -- ")[0].strip()
        if len(cleaned) < MAX_GENRE_LENGTH and "," not in cleaned:
            genres.append(cleaned)

    return genres[:MAX_GENRES]


def extract_decade(record: Dict[str, Any]) -> Optional[int]:
    """Estimate the publication decade as 30 years after the first author's birth."""
    authors = record.get("authors") or []
    if authors:
        birth = authors[0].get("birth_year")
        if birth is not None:
            return (birth + 30) // 10 * 10

    return None


def get_format(record: Dict[str, Any], mime_type: str) -> Optional[str]:
    """Return the first download URL whose MIME type contains ``mime_type``."""
    formats = record.get("formats") or {}
    for mime, url in formats.items():
        if mime_type in mime:
            return url

    return None


def parse_gutendex_book(record: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single Gutendex result into a catalog Book.

    Args:
        record: Single item from the Gutendex ``results`` array

    Returns:
        Book object, or None when the record has no id or offers
        neither an EPUB nor a plain-text download
    """
    book_id = _to_int(record.get("id"))
    if book_id is None:
        return None

    epub_url = get_format(record, "epub")
    text_url = get_format(record, "text/plain")
    if not epub_url and not text_url:
        return None

    authors = record.get("authors") or []
    author = authors[0].get("name") if authors else None

    return Book(
        gutenberg_id=book_id,
        title=record.get("title") or "Unknown Title",
        author=author or UNKNOWN_AUTHOR,
        genres=extract_genres(record),
        decade=extract_decade(record),
        epub_url=epub_url,
        text_url=text_url
    )


def deduplicate_books(books: List[Book]) -> List[Book]:
    """
    Remove duplicate books by id, keeping the first occurrence.

    Args:
        books: List of Book objects

    Returns:
        Deduplicated list of books
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.gutenberg_id not in seen_ids:
            seen_ids.add(book.gutenberg_id)
            unique_books.append(book)

    return unique_books
