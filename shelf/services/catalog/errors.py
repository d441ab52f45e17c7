"""Catalog error kinds raised below the HTTP layer."""


class CatalogError(Exception):
    """Base class for catalog domain errors."""


class BookNotFoundError(CatalogError):
    def __init__(self, book_id: str | None = None) -> None:
        self.book_id = book_id
        super().__init__(f"Book with ID {book_id} not found" if book_id else "Book not found")


class DuplicateIsbnError(CatalogError):
    def __init__(self, isbn: str) -> None:
        self.isbn = isbn
        super().__init__(f"ISBN {isbn} is already in use")


class StorageError(CatalogError):
    """The database was unreachable or a query failed. Not retried."""
