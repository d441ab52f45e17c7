"""
Catalog-specific Pydantic schemas for API request/response models.
"""
from typing import Optional, List, Literal, Dict, Any, Mapping
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


SortBy = Literal["created_at", "title", "author", "rating"]
SortOrder = Literal["asc", "desc"]


# Book Create / Update
class BookCreate(BaseModel):
    """Request body for creating a book."""
    title: str = Field(..., min_length=1, max_length=500, description="Book title")
    author: str = Field(..., min_length=1, max_length=255, description="Author name")
    isbn: Optional[str] = Field(default=None, min_length=1, max_length=50, description="ISBN")
    pages: Optional[int] = Field(default=None, gt=0, description="Page count")
    rating: Optional[Decimal] = Field(default=None, ge=1, le=5, decimal_places=1, description="Rating 1.0-5.0")


class BookUpdate(BaseModel):
    """Request body for updating a book.

    Omitted fields are left unchanged; an explicit null clears ``isbn``,
    ``pages`` or ``rating`` but is rejected for ``title`` and ``author``.
    """
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    author: Optional[str] = Field(default=None, min_length=1, max_length=255)
    isbn: Optional[str] = Field(default=None, min_length=1, max_length=50)
    pages: Optional[int] = Field(default=None, gt=0)
    rating: Optional[Decimal] = Field(default=None, ge=1, le=5, decimal_places=1)

    @model_validator(mode='after')
    def reject_null_required_fields(self) -> "BookUpdate":
        for name in ('title', 'author'):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} may not be null")
        return self


# Book Response
class BookItem(BaseModel):
    """Single book as returned by the API."""
    book_id: UUID
    title: str
    author: str
    isbn: Optional[str] = None
    pages: Optional[int] = None
    rating: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'BookItem':
        rating = record['rating']
        return cls(
            book_id=record['book_id'],
            title=record['title'],
            author=record['author'],
            isbn=record['isbn'],
            pages=record['pages'],
            rating=float(rating) if rating is not None else None,
            created_at=record['created_at'],
            updated_at=record['updated_at'],
        )


# Search Query Parameters
class BookSearchParams(BaseModel):
    """Query parameters for GET /api/catalog/books/search."""
    title: Optional[str] = Field(default=None, description="Case-insensitive partial match on title")
    author: Optional[str] = Field(default=None, description="Case-insensitive partial match on author")
    min_rating: Optional[Decimal] = Field(default=None, ge=1, le=5, description="Inclusive lower rating bound")
    max_rating: Optional[Decimal] = Field(default=None, ge=1, le=5, description="Inclusive upper rating bound")
    search_query: Optional[str] = Field(default=None, description="Full-text query over title and author")
    limit: int = Field(default=10, ge=1, description="Page size (clamped to 100)")
    cursor: Optional[str] = Field(default=None, description="Pagination cursor from previous response")
    sort_by: SortBy = Field(default="created_at", description="Sort column")
    sort_order: SortOrder = Field(default="desc", description="Sort order")

    def filters(self) -> Dict[str, Any]:
        """Return only the filters that were supplied."""
        values = {
            'title': self.title,
            'author': self.author,
            'min_rating': self.min_rating,
            'max_rating': self.max_rating,
            'search_query': self.search_query,
        }
        return {k: v for k, v in values.items() if v is not None}


class PaginatedBooksResponse(BaseModel):
    """One page of search results."""
    data: List[BookItem]
    has_next_page: bool
    next_cursor: Optional[str] = None


class BookCountResponse(BaseModel):
    """Response model for the book count endpoint."""
    total: int


class HealthResponse(BaseModel):
    """Readiness of the service and its database."""
    service: str
    status: Literal["ok"]
    database: Literal["up"]
