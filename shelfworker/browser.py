"""Catalog/library browser state and actions."""
import asyncio
from dataclasses import dataclass
import logging
from typing import Callable, List, Optional
import webbrowser

import httpx

from shelfworker.async_client import AsyncShelfClient, ShelfApiError
from shelfworker.filters import (
    apply_filters,
    build_vocabularies,
    decade_options,
    genre_options,
)
from shelfworker.models import Book, FilterState
from shelfworker.render import (
    ADD,
    ADD_LABEL,
    ADDED_LABEL,
    ADDING_LABEL,
    EMPTY_LIBRARY_MESSAGE,
    EPUB,
    NO_MATCHES_MESSAGE,
    TEXT,
    BookCard,
    build_catalog_cards,
    build_library_cards,
    format_cards,
    is_in_library,
)

logger = logging.getLogger(__name__)

CATALOG = "catalog"
LIBRARY = "library"
VIEWS = (CATALOG, LIBRARY)

LOADING_MESSAGE = "Loading books..."
CATALOG_ERROR_MESSAGE = "Error loading books. Please try again."
ADD_FAILED_MESSAGE = "Failed to add book. Please try again."
REMOVE_FAILED_MESSAGE = "Failed to remove book. Please try again."

PREVIEW_LENGTH = 3000
PREVIEW_LOADING_MESSAGE = "Loading preview..."
PREVIEW_FAILED_MESSAGE = "Failed to load preview."
TRUNCATION_MARKER = "\n\n[... preview truncated ...]"


@dataclass
class PreviewModal:
    """Overlay showing a plain-text excerpt."""
    active: bool = False
    content: str = ""


def _log_notification(message: str):
    logger.error(message)


class CatalogBrowser:
    """
    Owns the catalog, the library and everything rendered from them.

    All mutation happens on the event loop thread; network calls are the
    only suspension points. Library state changes only after the API has
    acknowledged an add or remove.
    """

    def __init__(
        self,
        api: AsyncShelfClient,
        notify: Optional[Callable[[str], None]] = None,
        opener: Callable[[str], object] = webbrowser.open_new_tab,
        rerender_delay: float = 1.0
    ):
        """
        Initialize browser.

        Args:
            api: API client
            notify: Blocking user notification for failed actions
            opener: Opens a download URL in a new browser tab
            rerender_delay: Seconds between "Added" and the catalog re-render
        """
        self.api = api
        self.notify = notify or _log_notification
        self.opener = opener
        self.rerender_delay = rerender_delay

        self.catalog_books: List[Book] = []
        self.library_books: List[Book] = []
        self.genres = set()
        self.decades = set()
        self.view = CATALOG
        self.filters = FilterState()

        self.catalog_cards: List[BookCard] = []
        self.library_cards: List[BookCard] = []
        self.status_message: Optional[str] = LOADING_MESSAGE
        self.catalog_empty_visible = False
        self.library_empty_visible = False
        self.modal = PreviewModal()
        self._pending_rerender: Optional[asyncio.TimerHandle] = None

    async def load(self) -> bool:
        """
        Fetch catalog and library concurrently and render the catalog.

        A library failure is logged and leaves the library empty; a
        catalog failure leaves an error message in place of the catalog.

        Returns:
            True if the catalog loaded
        """
        catalog, library = await self.api.load_all()
        for result in (catalog, library):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        if isinstance(library, Exception):
            logger.error(f"Error loading library: {library}")
            self.library_books = []
        else:
            self.library_books = list(library)

        if isinstance(catalog, Exception):
            logger.error(f"Error loading catalog: {catalog}")
            self.catalog_books = []
            self.catalog_cards = []
            self.status_message = CATALOG_ERROR_MESSAGE
            return False

        self.catalog_books = list(catalog)
        self.genres, self.decades = build_vocabularies(self.catalog_books)
        self.status_message = None
        self.render_catalog()
        logger.info(f"Loaded {len(self.catalog_books)} catalog and {len(self.library_books)} library books")
        return True

    @property
    def genre_options(self) -> List[str]:
        return genre_options(self.genres)

    @property
    def decade_options(self):
        return decade_options(self.decades)

    def switch_view(self, view: str):
        """Show the catalog or the library tab."""
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view!r}")

        self.view = view
        if view == LIBRARY:
            self.render_library()

    def set_search(self, text: str):
        self.filters.search = text or ""
        self.apply_filters()

    def set_genre(self, genre: str):
        self.filters.genre = genre or ""
        self.apply_filters()

    def set_decade(self, decade: Optional[int]):
        self.filters.decade = decade
        self.apply_filters()

    def apply_filters(self):
        """Re-render the catalog through the active filters."""
        self.render_catalog(apply_filters(self.catalog_books, self.filters))

    def clear_filters(self):
        """Reset all filters and show the full catalog."""
        self.filters = FilterState()
        self.render_catalog()

    def render_catalog(self, books: Optional[List[Book]] = None):
        if books is None:
            books = self.catalog_books

        self.catalog_cards = build_catalog_cards(books, self.library_books)
        self.catalog_empty_visible = not books

    def render_library(self):
        self.library_cards = build_library_cards(self.library_books)
        self.library_empty_visible = not self.library_books

    def visible_cards(self) -> List[BookCard]:
        return self.library_cards if self.view == LIBRARY else self.catalog_cards

    async def add_to_library(self, card: BookCard) -> bool:
        """
        Add the card's book to the library.

        The add control is disabled and relabelled before the request is
        sent. On failure it is restored and the user is notified.

        Returns:
            True if the API accepted the book
        """
        action = card.action(ADD)
        if action is None or not action.enabled:
            return False

        book = card.book
        action.enabled = False
        action.label = ADDING_LABEL
        logger.info(f"Adding to library: {book.title}")

        try:
            await self.api.add_to_library(book)
        except (ShelfApiError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Error adding to library: {e}")
            action.enabled = True
            action.label = ADD_LABEL
            self.notify(ADD_FAILED_MESSAGE)
            return False

        if not is_in_library(book, self.library_books):
            self.library_books.append(book)
        action.label = ADDED_LABEL
        self._schedule_rerender()
        return True

    def _schedule_rerender(self):
        if self._pending_rerender is not None:
            self._pending_rerender.cancel()
        loop = asyncio.get_running_loop()
        self._pending_rerender = loop.call_later(self.rerender_delay, self._rerender_catalog)

    def _rerender_catalog(self):
        self._pending_rerender = None
        self.apply_filters()

    async def remove_from_library(self, card: BookCard) -> bool:
        """
        Remove the card's book from the library.

        On success the card is dropped from the library view without a
        full re-render.

        Returns:
            True if the API acknowledged the removal
        """
        book = card.book
        logger.info(f"Removing from library: {book.title}")

        try:
            await self.api.remove_from_library(book.gutenberg_id)
        except (ShelfApiError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Error removing from library: {e}")
            self.notify(REMOVE_FAILED_MESSAGE)
            return False

        self.library_books = [b for b in self.library_books if b.gutenberg_id != book.gutenberg_id]
        self.library_cards = [c for c in self.library_cards if c is not card]

        if not self.library_books:
            self.library_empty_visible = True
        return True

    async def preview(self, book: Book):
        """Show the opening of the book's plain text in the modal."""
        if not book.text_url:
            raise ValueError(f"No text available for {book.title!r}")

        self.modal.content = PREVIEW_LOADING_MESSAGE
        self.modal.active = True

        try:
            text = await self.api.fetch_text(book.text_url)
        except httpx.HTTPError as e:
            logger.error(f"Error loading preview: {e}")
            self.modal.content = PREVIEW_FAILED_MESSAGE
            return

        self.modal.content = text[:PREVIEW_LENGTH] + TRUNCATION_MARKER

    def close_preview(self):
        self.modal.active = False

    def click_modal(self, on_backdrop: bool):
        """Clicks on the backdrop close the modal; clicks on its content don't."""
        if on_backdrop:
            self.close_preview()

    def open_download(self, card: BookCard, kind: str):
        """Open the EPUB or text download of a card in a new tab."""
        if kind not in (EPUB, TEXT):
            raise ValueError(f"Unknown download format: {kind!r}")

        action = card.action(kind)
        if action is None:
            raise ValueError(f"{card.book.title!r} has no {kind} download")
        self.opener(action.url)

    def render_text(self) -> str:
        """Plain-text screen for the current view."""
        tabs = " | ".join(
            f"*{view.title()}*" if view == self.view else view.title()
            for view in VIEWS
        )
        lines = [tabs, ""]

        if self.modal.active:
            lines.append(self.modal.content)
            return "\n".join(lines)

        if self.view == LIBRARY:
            empty = EMPTY_LIBRARY_MESSAGE if self.library_empty_visible else ""
            lines.append(format_cards(self.library_cards, empty))
            return "\n".join(lines)

        active = []
        if self.filters.search:
            active.append(f"search={self.filters.search!r}")
        if self.filters.genre:
            active.append(f"genre={self.filters.genre!r}")
        if self.filters.decade is not None:
            active.append(f"decade={self.filters.decade}s")
        if active:
            lines.append("Filters: " + ", ".join(active))
            lines.append("")

        if self.status_message:
            lines.append(self.status_message)
        else:
            empty = NO_MATCHES_MESSAGE if self.catalog_empty_visible else ""
            lines.append(format_cards(self.catalog_cards, empty))

        return "\n".join(lines)
