"""Database layer: read-only catalog (PostgreSQL) and mutable library (MongoDB)."""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List
import logging

import psycopg2
from pymongo import ASCENDING, MongoClient
from pymongo.errors import DuplicateKeyError

from shelfworker.models import Book
from shelfworker.parse import parse_book, parse_catalog_payload

logger = logging.getLogger(__name__)

CATALOG_PAGE_SIZE = 100

CATALOG_QUERY = """
    SELECT graphql.resolve($$
        query {
            booksCollection(first: %d) {
                edges {
                    node {
                        gutenberg_id
                        title
                        author
                        genres
                        decade
                        epub_url
                        text_url
                    }
                }
            }
        }
    $$)
""" % CATALOG_PAGE_SIZE


class CatalogStore:
    """PostgreSQL catalog, queried through pg_graphql.

    Every operation opens its own connection and closes it before
    returning; there is no pooling.
    """

    def __init__(self, connection_string: str, connect: Callable = psycopg2.connect):
        """
        Initialize catalog store.

        Args:
            connection_string: PostgreSQL connection string
            connect: Connection factory (psycopg2.connect)
        """
        self.connection_string = connection_string
        self._connect = connect

    @contextmanager
    def connection(self) -> Iterator:
        """Open a connection that is closed on every exit path."""
        conn = self._connect(self.connection_string)
        try:
            yield conn
        finally:
            conn.close()

    def list_books(self) -> List[Book]:
        """
        Fetch up to one page of catalog books.

        Returns:
            List of Book objects (empty if the resolution payload is
            absent or malformed)
        """
        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(CATALOG_QUERY)
                row = cur.fetchone()

        if not row:
            return []
        return parse_catalog_payload(row[0])

    def init_schema(self):
        """Create the books table if it doesn't exist."""
        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS books (
                        gutenberg_id INTEGER PRIMARY KEY,
                        title TEXT NOT NULL,
                        author TEXT NOT NULL DEFAULT 'Unknown',
                        genres TEXT[] NOT NULL DEFAULT '{}',
                        decade INTEGER,
                        epub_url TEXT,
                        text_url TEXT,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cur.execute("""
                    CREATE INDEX IF NOT EXISTS idx_books_decade
                    ON books (decade)
                """)

            conn.commit()
            logger.info("Catalog schema initialized successfully")

    def insert_book(self, book: Book) -> bool:
        """
        Insert a book unless its id is already present.

        Args:
            book: Book object

        Returns:
            True if a row was inserted, False if the id already existed
        """
        with self.connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO books (
                            gutenberg_id, title, author, genres, decade,
                            epub_url, text_url
                        ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (gutenberg_id) DO NOTHING
                    """, (
                        book.gutenberg_id, book.title, book.author, book.genres,
                        book.decade, book.epub_url, book.text_url
                    ))
                    inserted = cur.rowcount == 1
                conn.commit()
                return inserted
            except Exception:
                conn.rollback()
                raise


class LibraryStore:
    """User library held in a MongoDB-compatible collection.

    A book is in the library iff a document with its ``gutenberg_id``
    exists. Each operation uses a fresh client that is closed afterwards.
    """

    def __init__(
        self,
        url: str,
        db_name: str = "shelfworker",
        collection_name: str = "library",
        client_factory: Callable = MongoClient
    ):
        self.url = url
        self.db_name = db_name
        self.collection_name = collection_name
        self._client_factory = client_factory

    @contextmanager
    def collection(self) -> Iterator:
        """Yield the library collection; the client is closed on every exit path."""
        client = self._client_factory(self.url)
        try:
            yield client[self.db_name][self.collection_name]
        finally:
            client.close()

    def list_books(self) -> List[Book]:
        """Return every library entry (full scan; the collection stays small)."""
        with self.collection() as library:
            documents = list(library.find({}))

        books = []
        for document in documents:
            book = parse_book(document)
            if book:
                books.append(book)
            else:
                logger.warning(f"Skipping library document without id: {document.get('_id')}")
        return books

    def add_book(self, book: Book) -> bool:
        """
        Add a book unless it is already in the library.

        Uses a single upsert with ``$setOnInsert`` so an existing entry is
        left untouched.

        Args:
            book: Book object

        Returns:
            True if a document was inserted, False if it already existed
        """
        document = book.to_dict()
        document["added_at"] = datetime.now(timezone.utc)

        with self.collection() as library:
            try:
                result = library.update_one(
                    {"gutenberg_id": book.gutenberg_id},
                    {"$setOnInsert": document},
                    upsert=True
                )
            except DuplicateKeyError:
                # A concurrent add won the upsert race against the unique index
                logger.info(f"Lost duplicate add race for {book.gutenberg_id}")
                return False

        return result.upserted_id is not None

    def remove_book(self, gutenberg_id: int) -> int:
        """
        Remove a book from the library; removing an absent id is a no-op.

        Returns:
            Number of documents deleted (0 or 1)
        """
        with self.collection() as library:
            result = library.delete_one({"gutenberg_id": gutenberg_id})

        return result.deleted_count

    def ensure_indexes(self):
        """Create the unique id index that makes concurrent adds safe."""
        with self.collection() as library:
            library.create_index([("gutenberg_id", ASCENDING)], unique=True)
        logger.info("Library indexes ensured")
