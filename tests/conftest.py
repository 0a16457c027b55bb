"""Shared fakes for the PostgreSQL and MongoDB drivers."""
from types import SimpleNamespace

import pytest

from shelfworker.database import CatalogStore, LibraryStore
from shelfworker.models import Book


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = -1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def execute(self, query, params=None):
        self.conn.server.queries.append((query, params))
        if self.conn.server.execute_error:
            raise self.conn.server.execute_error
        if query.strip().startswith("INSERT"):
            book_id = params[0]
            if book_id in self.conn.server.rows:
                self.rowcount = 0
            else:
                self.conn.server.rows[book_id] = params
                self.rowcount = 1

    def fetchone(self):
        return self.conn.server.row


class FakeConnection:
    def __init__(self, server):
        self.server = server
        self.closed = False
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


class FakePostgres:
    """Stands in for psycopg2.connect; records every connection it hands out."""

    def __init__(self):
        self.connections = []
        self.queries = []
        self.rows = {}
        self.row = None
        self.connect_error = None
        self.execute_error = None

    def connect(self, dsn):
        if self.connect_error:
            raise self.connect_error
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn

    def resolve_with(self, nodes):
        """Make the next catalog query return these nodes."""
        self.row = ({"data": {"booksCollection": {"edges": [{"node": n} for n in nodes]}}},)


class FakeCollection:
    def __init__(self):
        self.documents = []
        self.indexes = []
        self.error = None

    @staticmethod
    def _matches(document, query):
        return all(document.get(k) == v for k, v in query.items())

    def find(self, query):
        if self.error:
            raise self.error
        return iter([dict(d) for d in self.documents if self._matches(d, query)])

    def update_one(self, query, update, upsert=False):
        if self.error:
            raise self.error
        for document in self.documents:
            if self._matches(document, query):
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, upserted_id=None)
        document = dict(query)
        document.update(update.get("$setOnInsert", {}))
        document["_id"] = f"oid-{len(self.documents) + 1}"
        self.documents.append(document)
        return SimpleNamespace(matched_count=0, upserted_id=document["_id"])

    def delete_one(self, query):
        if self.error:
            raise self.error
        for document in self.documents:
            if self._matches(document, query):
                self.documents.remove(document)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def create_index(self, keys, unique=False):
        self.indexes.append((keys, unique))


class FakeMongoClient:
    def __init__(self, server):
        self.server = server
        self.closed = False

    def __getitem__(self, db_name):
        return {self.server.collection_name: self.server.collection}

    def close(self):
        self.closed = True


class FakeMongo:
    """Stands in for MongoClient; one shared collection across clients."""

    def __init__(self, collection_name="library"):
        self.collection_name = collection_name
        self.collection = FakeCollection()
        self.clients = []
        self.urls = []
        self.connect_error = None

    def __call__(self, url):
        if self.connect_error:
            raise self.connect_error
        self.urls.append(url)
        client = FakeMongoClient(self)
        self.clients.append(client)
        return client


@pytest.fixture
def pg():
    return FakePostgres()


@pytest.fixture
def mongo():
    return FakeMongo()


@pytest.fixture
def catalog_store(pg):
    return CatalogStore("postgresql://test", connect=pg.connect)


@pytest.fixture
def library_store(mongo):
    return LibraryStore("mongodb://test", client_factory=mongo)


def make_book(gutenberg_id, title="Test Book", author="Author", genres=None, decade=None,
              epub_url=None, text_url=None):
    return Book(
        gutenberg_id=gutenberg_id,
        title=title,
        author=author,
        genres=genres or [],
        decade=decade,
        epub_url=epub_url,
        text_url=text_url
    )


@pytest.fixture
def sample_books():
    return [
        make_book(1342, "Pride and Prejudice", "Austen, Jane", ["Love stories", "Sisters", "England"], 1800,
                  epub_url="https://example.com/1342.epub", text_url="https://example.com/1342.txt"),
        make_book(84, "Frankenstein", "Shelley, Mary Wollstonecraft", ["Science fiction", "Horror tales"], 1820,
                  epub_url="https://example.com/84.epub"),
        make_book(1661, "The Adventures of Sherlock Holmes", "Doyle, Arthur Conan",
                  ["Detective and mystery stories"], 1880, text_url="https://example.com/1661.txt"),
        make_book(2701, "Moby Dick", "Melville, Herman", [], None),
    ]
