from __future__ import annotations

from enum import Enum


class BookStatus(str, Enum):
    AVAILABLE = "available"
    BORROWED = "borrowed"


class CoverType(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class ConditionState(str, Enum):
    NEW = "new"
    GOOD = "good"
    USED = "used"
    WORN = "worn"


class Book:
    """Represents a single catalog item and its lending state."""

    def __init__(self, title: str, author: str, id: int | None = None, cover_type: str | None = None,
                 publication_year: int | None = None, genre: str | None = None, page_count: int | None = None,
                 condition_state: str | None = None, status: str = BookStatus.AVAILABLE.value,
                 # Lending fields, only set by borrow/return
                 borrower_phone: str | None = None, borrowed_date: str | None = None,
                 # Resolved from readers when listing
                 first_name: str | None = None, last_name: str | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.cover_type = cover_type
        self.publication_year = publication_year
        self.genre = genre
        self.page_count = page_count
        self.condition_state = condition_state
        self.status = BookStatus(status).value

        self.borrower_phone = borrower_phone
        self.borrowed_date = borrowed_date

        self.first_name = first_name
        self.last_name = last_name

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (#{self.id})"

    @property
    def is_borrowed(self) -> bool:
        return self.status == BookStatus.BORROWED.value

    @property
    def borrower_name(self) -> str | None:
        if not self.first_name and not self.last_name:
            return None
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "cover_type": self.cover_type,
            "publication_year": self.publication_year,
            "genre": self.genre,
            "page_count": self.page_count,
            "condition_state": self.condition_state,
            "status": self.status,
            "borrowed_date": self.borrowed_date,
            "borrower_phone": self.borrower_phone,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"],
            author=data["author"],
            cover_type=data.get("cover_type"),
            publication_year=data.get("publication_year"),
            genre=data.get("genre"),
            page_count=data.get("page_count"),
            condition_state=data.get("condition_state"),
            status=data.get("status") or BookStatus.AVAILABLE.value,
            borrower_phone=data.get("borrower_phone"),
            borrowed_date=data.get("borrowed_date"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
        )
