import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from lending_library import (
    Book,
    ConflictError,
    InvalidArgumentError,
    Library,
    LibraryError,
    NotFoundError,
    PolicyViolationError,
    StorageError,
    User,
)
from lending_library import lend_book, pay_fines, return_book
from lending_library.config import settings

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

library = Library()

app = FastAPI(title=settings.app_name, version=settings.app_version)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error mapping ---
_STATUS_CODES = {
    NotFoundError: 404,
    ConflictError: 409,
    PolicyViolationError: 403,
    InvalidArgumentError: 422,
    StorageError: 500,
}


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    status_code = next((code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 400)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# --- Models ---
class BookModel(BaseModel):
    title: str
    author: str
    year: int
    isbn: str


class UserCreateModel(BaseModel):
    name: str
    email: str


class UserModel(BaseModel):
    id: str
    name: str
    email: str


class LendRequest(BaseModel):
    isbn: str
    user_id: str
    due_days: int = Field(default=settings.default_loan_days, ge=1, description="Loan length in days")


class ReturnRequest(BaseModel):
    isbn: str
    user_id: str


class LoanModel(BaseModel):
    user_id: str
    isbn: str
    due_date: Optional[int] = None
    borrowed_at: int


class HistoryEntryModel(LoanModel):
    returned_at: int


class FineModel(BaseModel):
    user_id: str
    fine: int


class MessageModel(BaseModel):
    message: str


class StatusModel(BaseModel):
    books: int
    users: int
    borrowed_books: int


# --- Health ---
@app.get("/health")
def health():
    """Lightweight health endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **library.status_summary,
    }


@app.get("/status", response_model=StatusModel)
def get_status():
    """Counts of books, users and active loans."""
    return StatusModel(**library.status_summary)


# --- Books ---
@app.get("/books", response_model=List[BookModel])
def get_books():
    return [BookModel(**b.to_dict()) for b in library.get_all_books()]


@app.get("/books/search", response_model=List[BookModel])
def search_books(q: str = Query(..., description="Title, author or year fragment")):
    return [BookModel(**b.to_dict()) for b in library.search_book(q)]


@app.get("/books/{isbn}", response_model=BookModel)
def get_book(isbn: str):
    book = library.get_book(isbn)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found.")
    return BookModel(**book.to_dict())


@app.post("/books", response_model=BookModel, status_code=201)
def add_book(payload: BookModel):
    book = Book.from_dict(payload.model_dump())
    library.add_book(book)
    return BookModel(**book.to_dict())


@app.delete("/books/{isbn}", response_model=MessageModel)
def delete_book(isbn: str):
    return MessageModel(message=library.remove_book(isbn))


# --- Users ---
@app.get("/users", response_model=List[UserModel])
def get_users():
    return [UserModel(**u.to_dict()) for u in library.get_all_users()]


@app.get("/users/{user_id}", response_model=UserModel)
def get_user(user_id: str):
    user = library.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    return UserModel(**user.to_dict())


@app.post("/users", response_model=UserModel, status_code=201)
def register_user(payload: UserCreateModel):
    user = User(name=payload.name, email=payload.email)
    library.register_user(user)
    return UserModel(**user.to_dict())


@app.delete("/users/{user_id}", response_model=MessageModel)
def delete_user(user_id: str):
    return MessageModel(message=library.remove_user(user_id))


@app.get("/users/{user_id}/borrowings", response_model=List[str])
def get_user_borrowings(user_id: str):
    return sorted(library.get_user_borrowings(user_id))


# --- Loans ---
@app.get("/loans", response_model=List[LoanModel])
def get_loans():
    return library.list_borrowing_record()


@app.get("/loans/overdue", response_model=List[LoanModel])
def get_overdue_loans():
    return library.list_overdue_books()


@app.post("/loans", response_model=MessageModel, status_code=201)
def lend(payload: LendRequest):
    return MessageModel(message=lend_book(library, payload.isbn, payload.user_id, payload.due_days))


@app.post("/loans/return", response_model=MessageModel)
async def give_back(payload: ReturnRequest):
    return MessageModel(message=await return_book(library, payload.isbn, payload.user_id))


# --- Fines ---
@app.get("/fines", response_model=List[FineModel])
def get_fines():
    return library.list_overdue_fines()


@app.get("/fines/{user_id}", response_model=FineModel)
def get_user_fines(user_id: str):
    return FineModel(user_id=user_id, fine=library.get_overdue_fines(user_id))


@app.post("/fines/{user_id}/pay", response_model=MessageModel)
def pay_user_fines(user_id: str):
    return MessageModel(message=pay_fines(library, user_id))


# --- History ---
@app.get("/history", response_model=List[HistoryEntryModel])
async def get_history(user_id: Optional[str] = Query(None, description="Filter by user id")):
    return await library.history_repository.get_history(user_id=user_id)
