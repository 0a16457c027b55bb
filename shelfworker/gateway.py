"""Shelfworker HTTP API: catalog listing and library add/remove."""
import logging
from typing import Any, Optional

import uvicorn
from fastapi import Body, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shelfworker.config import Config
from shelfworker.database import CatalogStore, LibraryStore
from shelfworker.parse import parse_book, parse_book_id

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Max-Age": "86400",
}


def json_response(data: Any, status_code: int = 200) -> JSONResponse:
    """JSON response carrying the CORS headers."""
    return JSONResponse(data, status_code=status_code, headers=CORS_HEADERS)


def create_app(
    catalog: Optional[CatalogStore] = None,
    library: Optional[LibraryStore] = None,
    config: Optional[Config] = None
) -> FastAPI:
    """
    Build the API application.

    Args:
        catalog: Catalog store (built from config when omitted)
        library: Library store (built from config when omitted)
        config: Application configuration

    Returns:
        FastAPI application
    """
    config = config or Config()
    if catalog is None:
        catalog = CatalogStore(config.DATABASE_URL)
    if library is None:
        library = LibraryStore(
            config.FERRETDB_URL,
            db_name=config.LIBRARY_DB_NAME,
            collection_name=config.LIBRARY_COLLECTION
        )

    app = FastAPI(
        title="Shelfworker API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )

    @app.middleware("http")
    async def cors_and_errors(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Gateway error on {request.method} {request.url.path}: {e}", exc_info=True)
            return json_response({"error": str(e)}, 500)

        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Unknown paths and known paths with the wrong method both count as unroutable
        if exc.status_code in (404, 405):
            return json_response({"error": "Not found"}, 404)
        return json_response({"error": str(exc.detail)}, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return json_response({"error": "Request body must be a JSON book"}, 400)

    @app.get("/api/books")
    def list_catalog():
        books = catalog.list_books()
        logger.info(f"Listed {len(books)} catalog books")
        return json_response([book.to_dict() for book in books])

    @app.get("/api/library")
    def list_library():
        books = library.list_books()
        logger.info(f"Listed {len(books)} library books")
        return json_response([book.to_dict() for book in books])

    @app.post("/api/library")
    def add_to_library(payload: Any = Body(None)):
        book = parse_book(payload)
        if book is None:
            return json_response({"error": "Book payload requires gutenberg_id"}, 400)

        if library.add_book(book):
            logger.info(f"Added to library: {book.gutenberg_id} {book.title}")
            return json_response({"message": "Book added to library"}, 201)

        logger.info(f"Already in library: {book.gutenberg_id}")
        return json_response({"message": "Book already in library"}, 200)

    @app.delete("/api/library/{book_path:path}")
    def remove_from_library(book_path: str):
        gutenberg_id = parse_book_id(book_path)
        if gutenberg_id is None:
            # Matches no document, so removal is a no-op
            logger.warning(f"Ignoring removal of non-numeric id: {book_path!r}")
            return json_response({"message": "Book removed from library"})

        deleted = library.remove_book(gutenberg_id)
        logger.info(f"Removed from library: {gutenberg_id} (deleted={deleted})")
        return json_response({"message": "Book removed from library"})

    return app


app = create_app()


def run(config: Config, host: Optional[str] = None, port: Optional[int] = None):
    """Serve the API with uvicorn."""
    uvicorn.run(
        create_app(config=config),
        host=host or config.HOST,
        port=port or config.PORT,
        log_level=config.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run(Config())
