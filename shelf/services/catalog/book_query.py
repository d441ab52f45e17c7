"""How the ``book.books`` table is filtered, sorted and paginated."""

from decimal import Decimal

import asyncpg

from shelf.lib.common.cursor import CursorCodec
from shelf.services.catalog.utils import (
    Column, FilterField, KeysetPaginator, PgQueryExecutor, SortField
)

BOOK_TABLE = 'book.books'
BOOK_COLUMNS = (
    'id', 'book_id', 'title', 'author', 'isbn', 'pages', 'rating', 'created_at', 'updated_at'
)

# search_vector is maintained with this configuration (simple, then english_stem).
BOOK_SEARCH_CONFIG = 'book_search'

# Ratings are 1.0-5.0, so unrated books sort below every rated one.
RATING_COLUMN = Column('rating', null_as=Decimal('0'))

BOOK_SORT_FIELDS = (
    SortField('created_at', Column('created_at')),
    SortField('title', Column('title')),
    SortField('author', Column('author')),
    SortField('rating', RATING_COLUMN, to_cursor=str, from_cursor=lambda v: Decimal(str(v))),
)

BOOK_FILTER_FIELDS = (
    FilterField('title', 'partial', 'title'),
    FilterField('author', 'partial', 'author'),
    FilterField('min_rating', 'min', 'rating'),
    FilterField('max_rating', 'max', 'rating'),
    FilterField('search_query', 'fulltext', 'search_vector', ts_config=BOOK_SEARCH_CONFIG),
)


def build_book_paginator(pool: asyncpg.Pool, codec: CursorCodec) -> KeysetPaginator:
    """Create the paginator used by the book search endpoint."""
    executor = PgQueryExecutor(pool, BOOK_TABLE, BOOK_COLUMNS)
    return KeysetPaginator(codec, executor, BOOK_SORT_FIELDS, BOOK_FILTER_FIELDS)
