"""Keyset (cursor) pagination over a filtered, sorted table.

The paginator turns a ``SearchSpec`` into a ``KeysetQuery``: conjunctive
filters, a composite ``ORDER BY`` that always ends in ``created_at`` and the
surrogate ``id``, and, when a cursor is supplied, a lexicographic "strictly
after" predicate anchored to the cursor's values. One extra row is fetched
to detect whether another page exists.
"""

from dataclasses import dataclass, field
from typing import (
    Any, Callable, Dict, Generic, List, Mapping, Optional, Protocol, Sequence, Tuple, TypeVar
)

import asyncpg

from shelf.lib.common.cursor import CursorCodec, InvalidCursorError, KeysetPosition
from shelf.services.catalog.errors import StorageError
from shelf.services.catalog.utils.query_builder import (
    And, Column, Compare, FilterBuilder, Predicate, TextSearch, keyset_predicate
)

import logging
logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
SORT_ORDERS = ('asc', 'desc')

T = TypeVar('T')


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class SortField:
    """A sortable column and how its value travels inside a cursor.

    ``to_cursor`` converts the row value into a JSON scalar; ``from_cursor``
    converts it back into the type bound as a query parameter.
    """
    name: str
    column: Column
    to_cursor: Callable[[Any], Any] = _identity
    from_cursor: Callable[[Any], Any] = _identity


@dataclass(frozen=True)
class FilterField:
    """A caller-facing filter name mapped onto a column predicate.

    Kinds: ``partial`` (case-insensitive substring), ``exact``, ``min`` and
    ``max`` (inclusive bounds), ``fulltext`` (tsvector match using
    ``ts_config``).
    """
    name: str
    kind: str
    column: str
    ts_config: str = 'english'

    def predicate(self, value: Any) -> Optional[Predicate]:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None

        if self.kind == 'partial':
            return Compare(Column(self.column), 'ILIKE', f"%{value}%")
        if self.kind == 'exact':
            return Compare(Column(self.column), '=', value)
        if self.kind == 'min':
            return Compare(Column(self.column), '>=', value)
        if self.kind == 'max':
            return Compare(Column(self.column), '<=', value)
        if self.kind == 'fulltext':
            return TextSearch(self.column, str(value), self.ts_config)
        raise ValueError(f"Unknown filter kind: {self.kind}")


@dataclass(frozen=True)
class SearchSpec:
    """Caller-supplied search request; built fresh for every call."""
    filters: Mapping[str, Any] = field(default_factory=dict)
    sort_by: Optional[str] = None
    sort_order: str = 'desc'
    limit: Optional[int] = None
    cursor: Optional[str] = None


@dataclass(frozen=True)
class KeysetQuery:
    """Everything a storage collaborator needs to run one page fetch."""
    where: Predicate
    order_by: Tuple[Column, ...]
    direction: str
    page_size: int

    @property
    def fetch_limit(self) -> int:
        """Rows to request: one more than the page to probe for a next page."""
        return self.page_size + 1


@dataclass
class Page(Generic[T]):
    """One page of results; ``next_cursor`` is set iff ``has_next_page``."""
    data: List[T]
    has_next_page: bool
    next_cursor: Optional[str] = None


class QueryExecutor(Protocol):
    """Storage collaborator that runs a ``KeysetQuery``."""

    async def fetch(self, query: KeysetQuery) -> Sequence[Mapping[str, Any]]:
        ...


class PgQueryExecutor:
    """Run keyset queries against a PostgreSQL table through an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool, table: str, columns: Sequence[str]) -> None:
        self._pool = pool
        self._table = table
        self._columns = ", ".join(columns)

    def render(self, query: KeysetQuery) -> Tuple[str, List[Any]]:
        """Render a ``KeysetQuery`` to SQL text and positional parameters."""
        builder = FilterBuilder()
        builder.add(query.where)
        order_sql = ", ".join(f"{col.sql} {query.direction.upper()}" for col in query.order_by)
        sql = f"""
            SELECT {self._columns}
            FROM {self._table}
            WHERE {builder.where_clause}
            ORDER BY {order_sql}
            LIMIT ${builder.next_param_idx};
        """
        return sql, builder.params + [query.fetch_limit]

    async def fetch(self, query: KeysetQuery) -> Sequence[Mapping[str, Any]]:
        sql, params = self.render(query)
        logger.debug(f"Executing keyset query: {sql} with params: {params}")
        try:
            return await self._pool.fetch(sql, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Keyset query on {self._table} failed: {e}", exc_info=True)
            raise StorageError(f"Query on {self._table} failed") from e


class KeysetPaginator:
    """Build keyset queries from a ``SearchSpec`` and assemble pages."""

    def __init__(
            self,
            codec: CursorCodec,
            executor: QueryExecutor,
            sort_fields: Sequence[SortField],
            filter_fields: Sequence[FilterField],
            created_at: Column = Column('created_at'),
            tie_break: Column = Column('id'),
            default_limit: int = DEFAULT_LIMIT,
            max_limit: int = MAX_LIMIT) -> None:
        """Configure a paginator for one table.

        Args:
            codec (CursorCodec): Signs and verifies cursors.
            executor (QueryExecutor): Runs the built queries.
            sort_fields (Sequence[SortField]): Allowed ``sort_by`` columns; the
                first one is the default.
            filter_fields (Sequence[FilterField]): Allowed filter names.
            created_at (Column): Secondary ordering column.
            tie_break (Column): Unique, monotonic surrogate key.
            default_limit (int): Page size when none is requested.
            max_limit (int): Upper bound requested limits are clamped to.
        """
        if not sort_fields:
            raise ValueError("At least one sort field is required")
        self._codec = codec
        self._executor = executor
        self._sort_fields: Dict[str, SortField] = {f.name: f for f in sort_fields}
        self._default_sort = sort_fields[0].name
        self._filter_fields: Dict[str, FilterField] = {f.name: f for f in filter_fields}
        self._created_at = created_at
        self._tie_break = tie_break
        self._default_limit = default_limit
        self._max_limit = max_limit

    def clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self._default_limit
        return max(1, min(limit, self._max_limit))

    def _sort_field(self, sort_by: Optional[str]) -> SortField:
        name = sort_by or self._default_sort
        if name not in self._sort_fields:
            raise ValueError(f"Invalid sort_by column: {name}")
        return self._sort_fields[name]

    def _is_primary_created_at(self, sort_field: SortField) -> bool:
        return sort_field.column.name == self._created_at.name

    def order_columns(self, sort_field: SortField) -> Tuple[Column, ...]:
        """Composite ordering: requested column, ``created_at``, then ``id``."""
        if self._is_primary_created_at(sort_field):
            return (self._created_at, self._tie_break)
        return (sort_field.column, self._created_at, self._tie_break)

    def position_of(self, row: Mapping[str, Any], sort_field: SortField) -> KeysetPosition:
        """Extract the keyset position of a fetched row."""
        position = KeysetPosition(
            created_at=self._created_at.value(row),
            id=self._tie_break.value(row),
        )
        if self._is_primary_created_at(sort_field):
            return position
        return KeysetPosition(
            created_at=position.created_at,
            id=position.id,
            sort_by=sort_field.name,
            sort_value=sort_field.to_cursor(sort_field.column.value(row)),
        )

    def _keyset_values(self, position: KeysetPosition, sort_field: SortField) -> List[Tuple[Column, Any]]:
        tail = [(self._created_at, position.created_at), (self._tie_break, position.id)]
        if self._is_primary_created_at(sort_field):
            if position.sort_by is not None:
                logger.debug("Cursor sort column %s does not match %s", position.sort_by, sort_field.name)
                raise InvalidCursorError()
            return tail

        if position.sort_by != sort_field.name or position.sort_value is None:
            logger.debug("Cursor sort column %s does not match %s", position.sort_by, sort_field.name)
            raise InvalidCursorError()
        try:
            value = sort_field.from_cursor(position.sort_value)
        except (ValueError, TypeError, ArithmeticError):
            logger.debug("Cursor sort value for %s is not convertible", sort_field.name)
            raise InvalidCursorError() from None
        return [(sort_field.column, value)] + tail

    def build(self, spec: SearchSpec, position: Optional[KeysetPosition] = None) -> KeysetQuery:
        """Translate a search spec (and decoded cursor) into a ``KeysetQuery``.

        Raises:
            ValueError: Unknown filter, sort column or sort order.
            InvalidCursorError: The cursor was issued for a different sort.
        """
        if spec.sort_order not in SORT_ORDERS:
            raise ValueError(f"Invalid sort_order value: {spec.sort_order}")
        sort_field = self._sort_field(spec.sort_by)

        predicates: List[Predicate] = []
        for name, value in spec.filters.items():
            if name not in self._filter_fields:
                raise ValueError(f"Unknown filter: {name}")
            predicate = self._filter_fields[name].predicate(value)
            if predicate is not None:
                predicates.append(predicate)

        if position is not None:
            predicates.append(keyset_predicate(self._keyset_values(position, sort_field), spec.sort_order))

        return KeysetQuery(
            where=And(tuple(predicates)),
            order_by=self.order_columns(sort_field),
            direction=spec.sort_order,
            page_size=self.clamp_limit(spec.limit),
        )

    async def search(self, spec: SearchSpec) -> Page[Mapping[str, Any]]:
        """Fetch one page for ``spec``.

        The cursor is verified before any storage access. ``InvalidCursorError``
        and ``StorageError`` propagate unchanged.

        Returns:
            Page: Up to ``limit`` rows plus the next cursor when more remain.
        """
        position = self._codec.decode(spec.cursor) if spec.cursor else None
        query = self.build(spec, position)
        sort_field = self._sort_field(spec.sort_by)

        rows = await self._executor.fetch(query)

        has_next_page = len(rows) > query.page_size
        data = list(rows[:query.page_size])
        next_cursor: Optional[str] = None
        if has_next_page and data:
            next_cursor = self._codec.encode(self.position_of(data[-1], sort_field))

        logger.debug(
            "Keyset page: %s rows (has_next_page=%s, sort=%s %s)",
            len(data), has_next_page, sort_field.name, spec.sort_order
        )
        return Page(data=data, has_next_page=has_next_page, next_cursor=next_cursor)
