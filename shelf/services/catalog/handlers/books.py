"""Book CRUD handlers for Catalog."""

import logging
from typing import Any, Dict
from uuid import UUID

import asyncpg
from asyncpg.exceptions import UniqueViolationError
from fastapi import HTTPException

from shelf.services.catalog.book_query import BOOK_COLUMNS, BOOK_TABLE
from shelf.services.catalog.errors import BookNotFoundError, DuplicateIsbnError
from shelf.services.catalog.handlers.base import HandlerMixin
from shelf.services.catalog.schemas import BookCountResponse, BookCreate, BookItem, BookUpdate

logger = logging.getLogger(__name__)

_RETURNING = ", ".join(BOOK_COLUMNS)


class BookHandlersMixin(HandlerMixin):
    """Mixin providing book CRUD handlers.

    Handles:
        - Create, read, update and delete by external ``book_id``
        - ISBN uniqueness checks
        - Total book count
    """

    async def _ensure_isbn_free(
            self, conn: asyncpg.Connection, isbn: str, book_id: UUID | None = None) -> None:
        """Raise DuplicateIsbnError if another book already uses ``isbn``."""
        existing = await conn.fetchval(
            f"SELECT book_id FROM {BOOK_TABLE} WHERE isbn = $1", isbn
        )
        if existing is not None and existing != book_id:
            raise DuplicateIsbnError(isbn)

    async def _fetch_book(self, conn: asyncpg.Connection, book_id: UUID) -> asyncpg.Record:
        record = await conn.fetchrow(
            f"SELECT {_RETURNING} FROM {BOOK_TABLE} WHERE book_id = $1", book_id
        )
        if record is None:
            raise BookNotFoundError(str(book_id))
        return record

    async def handle_create_book(self, book: BookCreate) -> BookItem:
        """Create a book.

        Args:
            book (BookCreate): Validated request body.

        Returns:
            BookItem: The stored book.

        Raises:
            HTTPException: 409 if the ISBN is already used, 500 on database errors.
        """
        logger.info("Catalog.handle_create_book: title=%s, author=%s", book.title, book.author)
        try:
            async with self.pool.acquire() as conn:
                if book.isbn:
                    await self._ensure_isbn_free(conn, book.isbn)
                record = await conn.fetchrow(
                    f"""
                    INSERT INTO {BOOK_TABLE} (title, author, isbn, pages, rating)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING {_RETURNING};
                    """,
                    book.title, book.author, book.isbn, book.pages, book.rating
                )
        except DuplicateIsbnError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except UniqueViolationError:
            raise HTTPException(status_code=409, detail=str(DuplicateIsbnError(book.isbn or "")))
        except Exception as e:
            logger.error(f"Catalog.handle_create_book: Error creating book: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Database error while creating book")

        return BookItem.from_record(record)

    async def handle_get_book(self, book_id: UUID) -> BookItem:
        """Return a single book by its external identifier.

        Raises:
            HTTPException: 404 if no such book, 500 on database errors.
        """
        try:
            async with self.pool.acquire() as conn:
                record = await self._fetch_book(conn, book_id)
        except BookNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            logger.error(f"Catalog.handle_get_book: Error fetching book {book_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Database error while fetching book")

        return BookItem.from_record(record)

    async def handle_update_book(self, book_id: UUID, update: BookUpdate) -> BookItem:
        """Apply a partial update to a book.

        Args:
            book_id (UUID): External book identifier.
            update (BookUpdate): Fields to change; unset fields are kept.

        Returns:
            BookItem: The updated book.

        Raises:
            HTTPException: 404 if missing, 409 if the new ISBN is taken,
                500 on database errors.
        """
        changes: Dict[str, Any] = update.model_dump(exclude_unset=True)
        logger.info("Catalog.handle_update_book: book_id=%s, fields=%s", book_id, sorted(changes))

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    record = await self._fetch_book(conn, book_id)
                    if changes.get('isbn'):
                        await self._ensure_isbn_free(conn, changes['isbn'], book_id)
                    if changes:
                        assignments = ", ".join(
                            f"{column} = ${idx}" for idx, column in enumerate(changes, start=2)
                        )
                        record = await conn.fetchrow(
                            f"""
                            UPDATE {BOOK_TABLE}
                            SET {assignments}, updated_at = NOW()
                            WHERE book_id = $1
                            RETURNING {_RETURNING};
                            """,
                            book_id, *changes.values()
                        )
        except BookNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except DuplicateIsbnError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except UniqueViolationError:
            raise HTTPException(status_code=409, detail=str(DuplicateIsbnError(changes.get('isbn', ''))))
        except Exception as e:
            logger.error(f"Catalog.handle_update_book: Error updating book {book_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Database error while updating book")

        return BookItem.from_record(record)

    async def handle_delete_book(self, book_id: UUID) -> None:
        """Delete a book.

        Raises:
            HTTPException: 404 if missing, 500 on database errors.
        """
        logger.info("Catalog.handle_delete_book: book_id=%s", book_id)
        try:
            async with self.pool.acquire() as conn:
                status = await conn.execute(
                    f"DELETE FROM {BOOK_TABLE} WHERE book_id = $1", book_id
                )
            if status == "DELETE 0":
                raise BookNotFoundError(str(book_id))
        except BookNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            logger.error(f"Catalog.handle_delete_book: Error deleting book {book_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Database error while deleting book")

    async def handle_count_books(self) -> BookCountResponse:
        """Return the total number of books."""
        try:
            total = await self.pool.fetchval(f"SELECT COUNT(*) FROM {BOOK_TABLE}")
        except Exception as e:
            logger.error(f"Catalog.handle_count_books: Error counting books: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Database error while counting books")
        return BookCountResponse(total=total or 0)
