"""Book search handler for Catalog."""

import logging
from typing import Annotated

from fastapi import HTTPException, Query

from shelf.lib.common.cursor import InvalidCursorError
from shelf.services.catalog.errors import StorageError
from shelf.services.catalog.handlers.base import HandlerMixin
from shelf.services.catalog.schemas import BookItem, BookSearchParams, PaginatedBooksResponse
from shelf.services.catalog.utils import SearchSpec

logger = logging.getLogger(__name__)


class SearchHandlersMixin(HandlerMixin):
    """Mixin providing filtered, cursor-paginated book search."""

    async def handle_search_books(
            self, params: Annotated[BookSearchParams, Query()]) -> PaginatedBooksResponse:
        """Search books with filters, sorting and keyset pagination.

        Args:
            params (BookSearchParams): Query parameters parsed by FastAPI.

        Returns:
            PaginatedBooksResponse: Up to ``limit`` books and the next cursor.

        Raises:
            HTTPException: 400 if the cursor is invalid or expired (clients
                should restart from the first page), 500 on database errors.
        """
        logger.info(
            "Catalog.handle_search_books: sort=%s %s, limit=%s, cursor=%s",
            params.sort_by, params.sort_order, params.limit,
            params.cursor[:20] + "..." if params.cursor else None
        )

        spec = SearchSpec(
            filters=params.filters(),
            sort_by=params.sort_by,
            sort_order=params.sort_order,
            limit=params.limit,
            cursor=params.cursor,
        )

        try:
            page = await self.paginator.search(spec)
        except InvalidCursorError as e:
            logger.info("Catalog.handle_search_books: rejected cursor")
            raise HTTPException(status_code=400, detail=f"{e}, restart pagination")
        except ValueError as ve:
            logger.warning(f"Catalog.handle_search_books: Invalid input value: {ve}")
            raise HTTPException(status_code=400, detail=f"Invalid input value: {ve}")
        except StorageError:
            raise HTTPException(status_code=500, detail="Database error while searching books")

        logger.info(
            "Catalog.handle_search_books: Returning %s books (has_next_page=%s).",
            len(page.data), page.has_next_page
        )
        return PaginatedBooksResponse(
            data=[BookItem.from_record(record) for record in page.data],
            has_next_page=page.has_next_page,
            next_cursor=page.next_cursor,
        )
