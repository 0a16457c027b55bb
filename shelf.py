#!/usr/bin/env python3
"""Shelfworker CLI - public-domain catalog browser and personal library."""
import argparse
import asyncio
import sys
from typing import Optional
from shelfworker.async_client import AsyncShelfClient
from shelfworker.browser import LIBRARY, CatalogBrowser
from shelfworker.config import Config
from shelfworker.database import CatalogStore, LibraryStore
from shelfworker.filters import apply_filters
from shelfworker.gutendex import GutendexClient
from shelfworker.importer import seed_books
from shelfworker.models import FilterState
from shelfworker.parse import parse_decade
from shelfworker.render import ADD, EPUB, PREVIEW, REMOVE, TEXT, BookCard, display_books
import logging

logger = logging.getLogger(__name__)

BROWSE_HELP = """
Commands:
  tab catalog|library     switch view
  search TEXT             filter by title/author (empty to reset)
  genre NAME              filter by genre (empty to reset)
  decade N                filter by decade, e.g. 1900 or 1900s (empty to reset)
  clear                   clear all filters
  genres / decades        list filter values
  add N / remove N        add or remove the N-th card
  preview N               show the opening of the N-th book
  close                   close the preview
  epub N / text N         open a download in the browser
  help / quit
"""


def setup_logging(config: Config):
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def print_notification(message: str):
    """Report a failed action on stderr."""
    print(f"❌ {message}", file=sys.stderr)


def wait_for_acknowledgement(message: str):
    """Blocking notification used by the interactive browser."""
    print_notification(message)
    input("Press Enter to continue...")


def make_browser(client: AsyncShelfClient, config: Config, notify=print_notification) -> CatalogBrowser:
    return CatalogBrowser(
        client,
        notify=notify,
        rerender_delay=config.ADDED_RERENDER_DELAY
    )


def find_card(browser: CatalogBrowser, gutenberg_id: int, view: str = "catalog") -> Optional[BookCard]:
    browser.switch_view(view)
    for card in browser.visible_cards():
        if card.book.gutenberg_id == gutenberg_id:
            return card
    return None


async def list_books(args, config: Config):
    """List the catalog, optionally filtered."""
    filters = FilterState(
        search=args.search or "",
        genre=args.genre or "",
        decade=parse_decade(args.decade)
    )

    async with AsyncShelfClient(config.API_BASE, timeout=config.DEFAULT_TIMEOUT) as client:
        books = await client.list_books()

    books = apply_filters(books, filters)
    logger.info(f"Found {len(books)} books")
    display_books(books, args.format)


async def list_library(args, config: Config):
    """List the library."""
    async with AsyncShelfClient(config.API_BASE, timeout=config.DEFAULT_TIMEOUT) as client:
        books = await client.list_library()

    display_books(books, args.format)


async def add_book(args, config: Config) -> bool:
    """Add a catalog book to the library."""
    async with AsyncShelfClient(config.API_BASE, timeout=config.DEFAULT_TIMEOUT) as client:
        browser = make_browser(client, config)
        if not await browser.load():
            raise RuntimeError(browser.status_message)

        card = find_card(browser, args.id)
        if card is None:
            print_notification(f"Book {args.id} is not in the catalog")
            return False
        if card.action(ADD) is None:
            print(f"{card.book.title_str} is already in your library")
            return True

        print(f"Adding {card.book.title_str}...")
        if not await browser.add_to_library(card):
            return False

        print(f"✓ Added {card.book.title_str}")
        return True


async def remove_book(args, config: Config) -> bool:
    """Remove a book from the library."""
    async with AsyncShelfClient(config.API_BASE, timeout=config.DEFAULT_TIMEOUT) as client:
        browser = make_browser(client, config)
        await browser.load()

        card = find_card(browser, args.id, LIBRARY)
        if card is None:
            print(f"Book {args.id} is not in your library")
            return True

        if not await browser.remove_from_library(card):
            return False

        print(f"✓ Removed {card.book.title_str}")
        return True


async def preview_book(args, config: Config) -> bool:
    """Print the opening of a book."""
    async with AsyncShelfClient(config.API_BASE, timeout=config.DEFAULT_TIMEOUT) as client:
        browser = make_browser(client, config)
        await browser.load()

        card = find_card(browser, args.id) or find_card(browser, args.id, LIBRARY)
        if card is None or card.action(PREVIEW) is None:
            print_notification(f"No preview available for book {args.id}")
            return False

        await browser.preview(card.book)
        print(browser.modal.content)
        return True


def _card_at(browser: CatalogBrowser, arg: str) -> Optional[BookCard]:
    cards = browser.visible_cards()
    try:
        index = int(arg)
    except ValueError:
        print_notification(f"Not a card number: {arg!r}")
        return None
    if not 1 <= index <= len(cards):
        print_notification(f"No card {index}; {len(cards)} shown")
        return None
    return cards[index - 1]


async def browse(args, config: Config):
    """Interactive catalog and library browser."""
    loop = asyncio.get_running_loop()

    async with AsyncShelfClient(config.API_BASE, timeout=config.DEFAULT_TIMEOUT) as client:
        browser = make_browser(client, config, notify=wait_for_acknowledgement)
        await browser.load()
        print(browser.render_text())

        while True:
            try:
                line = await loop.run_in_executor(None, input, "\nshelf> ")
            except EOFError:
                break

            command, _, arg = line.strip().partition(" ")
            arg = arg.strip()

            if command in ("quit", "exit", "q"):
                break
            elif command in ("", "help"):
                print(BROWSE_HELP)
                continue
            elif command == "tab":
                try:
                    browser.switch_view(arg)
                except ValueError as e:
                    print_notification(str(e))
                    continue
            elif command == "search":
                browser.set_search(arg)
            elif command == "genre":
                browser.set_genre(arg)
            elif command == "decade":
                try:
                    browser.set_decade(parse_decade(arg))
                except ValueError as e:
                    print_notification(str(e))
                    continue
            elif command == "clear":
                browser.clear_filters()
            elif command == "genres":
                print("\n".join(browser.genre_options) or "No genres")
                continue
            elif command == "decades":
                print("\n".join(label for _, label in browser.decade_options) or "No decades")
                continue
            elif command == "close":
                browser.close_preview()
            elif command in ("add", "remove", "preview", "epub", "text"):
                card = _card_at(browser, arg)
                if card is None:
                    continue
                kind = {"add": ADD, "remove": REMOVE, "preview": PREVIEW, "epub": EPUB, "text": TEXT}[command]
                if card.action(kind) is None:
                    print_notification(f"'{command}' is not available for {card.book.title_str}")
                    continue
                if kind == ADD:
                    await browser.add_to_library(card)
                elif kind == REMOVE:
                    await browser.remove_from_library(card)
                elif kind == PREVIEW:
                    await browser.preview(card.book)
                else:
                    browser.open_download(card, kind)
                    continue
            else:
                print_notification(f"Unknown command: {command}")
                continue

            print(browser.render_text())


def seed(args, config: Config):
    """Import books from Gutendex into the catalog."""
    store = CatalogStore(config.DATABASE_URL)

    with GutendexClient(config.GUTENDEX_API, timeout=config.DEFAULT_TIMEOUT) as client:
        summary = seed_books(client, store, page=args.page)

    print(f"\nSuccessfully inserted {summary.inserted} books")
    print(f"Skipped: {summary.skipped}  Failed: {summary.failed}")


def init_db(args, config: Config):
    """Create the catalog table and the library index."""
    CatalogStore(config.DATABASE_URL).init_schema()
    LibraryStore(
        config.FERRETDB_URL,
        db_name=config.LIBRARY_DB_NAME,
        collection_name=config.LIBRARY_COLLECTION
    ).ensure_indexes()
    print("✅ Stores initialized")


def serve(args, config: Config):
    """Run the HTTP API."""
    from shelfworker import gateway

    gateway.run(config, host=args.host, port=args.port)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Shelfworker - public-domain catalog and personal library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the API
  %(prog)s serve --port 8787

  # Browse interactively
  %(prog)s browse

  # Filter the catalog
  %(prog)s books --search dickens --decade 1840s

  # Manage the library
  %(prog)s add 1342
  %(prog)s remove 1342
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: HOST or 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, help="Port (default: PORT or 8787)")

    subparsers.add_parser("browse", help="Interactive browser")

    books_parser = subparsers.add_parser("books", help="List catalog books")
    books_parser.add_argument("--search", help="Title/author text")
    books_parser.add_argument("--genre", help="Genre")
    books_parser.add_argument("--decade", help="Decade, e.g. 1900 or 1900s")
    books_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    library_parser = subparsers.add_parser("library", help="List library books")
    library_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    for name, help_text in (("add", "Add a book to the library"),
                            ("remove", "Remove a book from the library"),
                            ("preview", "Show the opening of a book")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("id", type=int, help="Gutenberg id")

    seed_parser = subparsers.add_parser("seed", help="Import books from Gutendex")
    seed_parser.add_argument("--page", type=int, default=1, help="Gutendex page (default: 1)")

    subparsers.add_parser("init-db", help="Create catalog table and library index")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()
    setup_logging(config)

    ok = True
    try:
        if args.command == "serve":
            serve(args, config)
        elif args.command == "browse":
            asyncio.run(browse(args, config))
        elif args.command == "books":
            asyncio.run(list_books(args, config))
        elif args.command == "library":
            asyncio.run(list_library(args, config))
        elif args.command == "add":
            ok = asyncio.run(add_book(args, config))
        elif args.command == "remove":
            ok = asyncio.run(remove_book(args, config))
        elif args.command == "preview":
            ok = asyncio.run(preview_book(args, config))
        elif args.command == "seed":
            seed(args, config)
        elif args.command == "init-db":
            init_db(args, config)

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
