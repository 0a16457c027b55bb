"""Seed the catalog from Gutendex."""
from dataclasses import dataclass
import logging

from shelfworker.database import CatalogStore
from shelfworker.gutendex import GutendexClient
from shelfworker.parse import deduplicate_books, parse_gutendex_book

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    failed: int = 0


def seed_books(client: GutendexClient, store: CatalogStore, page: int = 1) -> ImportSummary:
    """
    Import one page of popular English books into the catalog.

    Records without an EPUB or plain-text download are skipped, as are
    ids already in the catalog. A failed insert is logged and the import
    moves on.

    Args:
        client: Gutendex client
        store: Catalog store
        page: Gutendex page number

    Returns:
        Counts of fetched, inserted, skipped and failed records
    """
    data = client.fetch_books(page)
    records = data.get("results") or []
    summary = ImportSummary(fetched=len(records))
    logger.info(f"Fetched {len(records)} books from Gutendex")

    books = []
    for record in records:
        book = parse_gutendex_book(record)
        if book is None:
            summary.skipped += 1
            continue
        books.append(book)

    unique = deduplicate_books(books)
    summary.skipped += len(books) - len(unique)

    for book in unique:
        try:
            if store.insert_book(book):
                summary.inserted += 1
                logger.info(f"✓ {book.title}")
            else:
                summary.skipped += 1
        except Exception as e:
            summary.failed += 1
            logger.error(f"✗ Failed to insert {book.title}: {e}")

    logger.info(
        f"Import finished: {summary.inserted} inserted, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    return summary
