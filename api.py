import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from book import Book, BookStatus, ConditionState, CoverType
from config import settings
from database import initialize_database
from errors import LibraryError
from library import Library
from log import setup_logging

logger = logging.getLogger(__name__)


# --- Models ---
class BookModel(BaseModel):
    id: int
    title: str
    author: str
    cover_type: str | None = None
    publication_year: int | None = None
    genre: str | None = None
    page_count: int | None = None
    condition_state: str | None = None
    status: BookStatus
    borrowed_date: str | None = None
    borrower_phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class BookCreateModel(BaseModel):
    """Body of POST /books. Keys are camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    author: str | None = None
    cover_type: CoverType | None = Field(default=None, alias="coverType")
    publication_year: int | None = Field(default=None, alias="publicationYear")
    genre: str | None = None
    page_count: int | None = Field(default=None, alias="pageCount")
    condition_state: ConditionState | None = Field(default=None, alias="conditionState")
    status: BookStatus


class ReaderModel(BaseModel):
    phone: str
    first_name: str
    last_name: str
    birth_date: str | None = None
    registration_date: str | None = None


class ReaderCreateModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    dob: str | None = None


class BorrowModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: int | None = Field(default=None, alias="bookId")
    phone: str | None = None


class ReturnModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: int | None = Field(default=None, alias="bookId")


class MessageModel(BaseModel):
    message: str


class CreatedModel(MessageModel):
    id: int | str


class StatsModel(BaseModel):
    total_books: int
    borrowed_books: int
    readers: int


# --- Dependencies ---
def get_library(request: Request) -> Library:
    return request.app.state.library


def create_app(db_file: Optional[str] = None) -> FastAPI:
    """Build the API around a freshly opened store.

    The store is owned by the app and closed on shutdown.
    """
    setup_logging()
    db = initialize_database(db_file)
    library = Library(db)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            library.close()
            logger.info("Database pool closed")

    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug, lifespan=lifespan)
    app.state.library = library

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Errors ---
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"Invalid value for {field}: {first.get('msg')}" if field else str(first.get("msg"))
        else:
            message = "Invalid request."
        return JSONResponse(status_code=400, content={"error": message})

    # --- Health ---
    @app.get("/health")
    def health(library: Library = Depends(get_library)):
        """Lightweight health endpoint: probes the store with SELECT 1."""
        db_ok = library.db.ping()
        return {
            "status": "healthy" if db_ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "db": db_ok,
        }

    @app.get("/stats", response_model=StatsModel)
    def get_stats(library: Library = Depends(get_library)):
        return StatsModel(**library.get_statistics())

    # --- Books ---
    @app.get("/books", response_model=List[BookModel])
    def list_books(library: Library = Depends(get_library)):
        """All books, title ascending, with the borrower's name when lent out."""
        return [BookModel(**b.to_dict()) for b in library.list_books()]

    @app.get("/books/{book_id}", response_model=BookModel)
    def get_book(book_id: int, library: Library = Depends(get_library)):
        return BookModel(**library.get_book(book_id).to_dict())

    @app.post("/books", response_model=CreatedModel)
    def add_book(payload: BookCreateModel, library: Library = Depends(get_library)):
        book = Book(
            title=payload.title or "",
            author=payload.author or "",
            cover_type=payload.cover_type.value if payload.cover_type else None,
            publication_year=payload.publication_year,
            genre=payload.genre,
            page_count=payload.page_count,
            condition_state=payload.condition_state.value if payload.condition_state else None,
            status=payload.status.value,
        )
        book_id = library.add_book(book)
        return CreatedModel(message="Book added.", id=book_id)

    @app.delete("/books/{book_id}", response_model=MessageModel)
    def delete_book(book_id: int, library: Library = Depends(get_library)):
        library.delete_book(book_id)
        return MessageModel(message="Book deleted.")

    # --- Readers ---
    @app.get("/readers", response_model=List[ReaderModel])
    def list_readers(library: Library = Depends(get_library)):
        return [ReaderModel(**r.to_dict()) for r in library.list_readers()]

    @app.post("/readers", response_model=CreatedModel)
    def register_reader(payload: ReaderCreateModel, library: Library = Depends(get_library)):
        phone = library.register_reader(payload.phone, payload.first_name, payload.last_name, payload.dob)
        return CreatedModel(message="Reader registered.", id=phone)

    # --- Lending ---
    @app.post("/borrow", response_model=MessageModel)
    def borrow_book(payload: BorrowModel, library: Library = Depends(get_library)):
        library.borrow_book(payload.book_id, payload.phone)
        return MessageModel(message="Book borrowed.")

    @app.post("/return", response_model=MessageModel)
    def return_book(payload: ReturnModel, library: Library = Depends(get_library)):
        library.return_book(payload.book_id)
        return MessageModel(message="Book returned.")

    return app
