"""Tests for the async API client."""
import asyncio
import json

import httpx
import pytest

from shelfworker.async_client import AsyncShelfClient, ShelfApiError
from conftest import make_book


def run(coro):
    return asyncio.run(coro)


def make_client(handler):
    return AsyncShelfClient("http://api.test/", transport=httpx.MockTransport(handler))


def test_list_books_parses_json():
    def handler(request):
        assert request.url.path == "/api/books"
        return httpx.Response(200, json=[{"gutenberg_id": 1, "title": "Test Book", "author": "Author"}])

    async def scenario():
        async with make_client(handler) as client:
            return await client.list_books()

    books = run(scenario())
    assert books[0].gutenberg_id == 1
    assert books[0].genres == []


def test_add_to_library_sends_book_fields():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"message": "Book added to library"})

    book = make_book(84, "Frankenstein", genres=None, decade=1820, epub_url="e.epub")

    async def scenario():
        async with make_client(handler) as client:
            return await client.add_to_library(book)

    assert run(scenario()) == "Book added to library"
    assert seen["method"] == "POST"
    assert seen["body"] == {
        "gutenberg_id": 84, "title": "Frankenstein", "author": "Author", "genres": [],
        "decade": 1820, "epub_url": "e.epub", "text_url": None
    }


def test_add_success_without_json_body():
    def handler(request):
        return httpx.Response(201, text="Created")

    async def scenario():
        async with make_client(handler) as client:
            return await client.add_to_library(make_book(84))

    assert run(scenario()) == ""


def test_list_rejects_non_array_body():
    def handler(request):
        return httpx.Response(200, json={"message": "ok"})

    async def scenario():
        async with make_client(handler) as client:
            await client.list_books()

    with pytest.raises(ShelfApiError):
        run(scenario())


def test_remove_uses_id_in_path():
    def handler(request):
        assert request.method == "DELETE"
        assert request.url.path == "/api/library/84"
        return httpx.Response(200, json={"message": "Book removed from library"})

    async def scenario():
        async with make_client(handler) as client:
            return await client.remove_from_library(84)

    assert run(scenario()) == "Book removed from library"


def test_error_status_raises_api_error():
    def handler(request):
        return httpx.Response(500, json={"error": "Connection failed"})

    async def scenario():
        async with make_client(handler) as client:
            await client.list_library()

    with pytest.raises(ShelfApiError) as excinfo:
        run(scenario())

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Connection failed"


def test_load_all_returns_exceptions_in_place():
    def handler(request):
        if request.url.path == "/api/library":
            raise httpx.ConnectError("refused")
        return httpx.Response(200, json=[])

    async def scenario():
        async with make_client(handler) as client:
            return await client.load_all()

    catalog, library = run(scenario())
    assert catalog == []
    assert isinstance(library, httpx.ConnectError)


def test_fetch_text():
    def handler(request):
        assert str(request.url) == "https://example.com/84.txt"
        return httpx.Response(200, text="It was on a dreary night of November")

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_text("https://example.com/84.txt")

    assert run(scenario()).startswith("It was on a dreary night")
