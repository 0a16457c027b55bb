"""Async HTTP client for the Shelfworker API."""
import asyncio
import httpx
from typing import Any, List, Optional, Tuple
import logging

from shelfworker.models import Book
from shelfworker.parse import parse_book

logger = logging.getLogger(__name__)


class ShelfApiError(Exception):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class AsyncShelfClient:
    """Async client for the catalog and library endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: API root, e.g. http://localhost:8787
            timeout: Request timeout
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        # Create async HTTP client
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=True
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Send a request to the API and decode its JSON body.

        Raises:
            ShelfApiError: on a non-2xx response
            httpx.HTTPError: on transport failures
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        response = await self.client.request(method, url, **kwargs)

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = body.get("error", response.text) if isinstance(body, dict) else response.text
            logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
            raise ShelfApiError(response.status_code, message)

        try:
            return response.json()
        except ValueError:
            # 2xx without a JSON body still counts as success
            logger.debug(f"{method} {path} returned a non-JSON body")
            return None

    async def _request_list(self, path: str) -> List[Book]:
        data = await self._request("GET", path)
        if not isinstance(data, list):
            raise ShelfApiError(200, f"Expected a JSON array from {path}")
        return [b for b in (parse_book(item) for item in data) if b]

    async def list_books(self) -> List[Book]:
        """Fetch the full catalog."""
        return await self._request_list("/api/books")

    async def list_library(self) -> List[Book]:
        """Fetch the full library."""
        return await self._request_list("/api/library")

    async def load_all(self) -> Tuple[Any, Any]:
        """
        Fetch catalog and library in parallel.

        Returns:
            (catalog, library); each is a list of books or the
            exception that fetch raised
        """
        catalog, library = await asyncio.gather(
            self.list_books(),
            self.list_library(),
            return_exceptions=True
        )
        return catalog, library

    async def add_to_library(self, book: Book) -> str:
        """
        Add a book to the library.

        Returns:
            Server message ("Book added to library" or "Book already in library")
        """
        payload = {
            "gutenberg_id": book.gutenberg_id,
            "title": book.title,
            "author": book.author,
            "genres": book.genres or [],
            "decade": book.decade,
            "epub_url": book.epub_url,
            "text_url": book.text_url
        }
        data = await self._request("POST", "/api/library", json=payload)
        return data.get("message", "") if isinstance(data, dict) else ""

    async def remove_from_library(self, gutenberg_id: int) -> str:
        """Remove a book from the library by id."""
        data = await self._request("DELETE", f"/api/library/{gutenberg_id}")
        return data.get("message", "") if isinstance(data, dict) else ""

    async def fetch_text(self, url: str) -> str:
        """Download a raw text resource (used for previews)."""
        response = await self.client.get(url)
        response.raise_for_status()
        return response.text

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
