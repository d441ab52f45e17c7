"""Catalog test fixtures and utilities."""
import operator
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from shelf.services.catalog.book_query import BOOK_FILTER_FIELDS, BOOK_SORT_FIELDS
from shelf.services.catalog.utils import (
    And, Compare, KeysetPaginator, KeysetQuery, Or, Predicate, TextSearch
)

BASE_TIME = datetime(2025, 9, 1, 12, 0, 0, tzinfo=timezone.utc)

_OPS = {
    '=': operator.eq,
    '<': operator.lt,
    '>': operator.gt,
    '<=': operator.le,
    '>=': operator.ge,
}


class MockRecord:
    """Mock asyncpg record that supports both dictionary and attribute access."""

    def __init__(self, **kwargs):
        self._data = kwargs
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __getitem__(self, key):
        return self._data[key]

    def get(self, key, default=None):
        return self._data.get(key, default)

    def __contains__(self, key):
        return key in self._data

    def keys(self):
        """Support dict() conversion."""
        return self._data.keys()

    def __iter__(self):
        """Support dict() conversion."""
        return iter(self._data)

    def items(self):
        """Support dict() conversion."""
        return self._data.items()

    def values(self):
        """Support dict() conversion."""
        return self._data.values()


def evaluate(predicate: Predicate, row: Dict[str, Any]) -> bool:
    """Evaluate a predicate tree against an in-memory row."""
    if isinstance(predicate, And):
        return all(evaluate(child, row) for child in predicate.children)
    if isinstance(predicate, Or):
        return any(evaluate(child, row) for child in predicate.children)
    if isinstance(predicate, Compare):
        left = predicate.column.value(row)
        if left is None:
            return False
        if predicate.op == 'ILIKE':
            return predicate.value.strip('%').lower() in left.lower()
        return _OPS[predicate.op](left, predicate.value)
    if isinstance(predicate, TextSearch):
        text = f"{row['title']} {row['author']}".lower()
        return all(word in text for word in predicate.query.lower().split())
    raise TypeError(f"Unsupported predicate: {predicate!r}")


class InMemoryExecutor:
    """Query executor over a list of rows; records every query it runs."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows: List[Dict[str, Any]] = list(rows or [])
        self.queries: List[KeysetQuery] = []

    async def fetch(self, query: KeysetQuery) -> List[Dict[str, Any]]:
        self.queries.append(query)
        matched = [row for row in self.rows if evaluate(query.where, row)]
        matched.sort(
            key=lambda row: tuple(col.value(row) for col in query.order_by),
            reverse=query.direction == 'desc',
        )
        return matched[:query.fetch_limit]


def make_book(
        id: int,
        created_at: Optional[datetime] = None,
        title: Optional[str] = None,
        author: str = "Author",
        rating: Optional[Decimal] = None,
        isbn: Optional[str] = None,
        pages: Optional[int] = None) -> Dict[str, Any]:
    """Build a book row as the database would return it."""
    created = created_at or BASE_TIME + timedelta(minutes=id)
    return {
        'id': id,
        'book_id': uuid.uuid4(),
        'title': title or f"Book {id:03d}",
        'author': author,
        'isbn': isbn,
        'pages': pages,
        'rating': rating,
        'created_at': created,
        'updated_at': created,
    }


@pytest.fixture
def executor() -> InMemoryExecutor:
    return InMemoryExecutor()


@pytest.fixture
def paginator(codec, executor: InMemoryExecutor) -> KeysetPaginator:
    """Book paginator over the in-memory executor."""
    return KeysetPaginator(codec, executor, BOOK_SORT_FIELDS, BOOK_FILTER_FIELDS)
