"""Composable WHERE-clause predicates and a parameterised SQL renderer."""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple

COMPARISON_OPS = ('=', '<', '>', '<=', '>=', 'ILIKE')


@dataclass(frozen=True)
class Column:
    """A column reference, optionally coalesced to a constant when NULL.

    ``null_as`` must be a trusted literal (it is inlined into the SQL).
    """
    name: str
    null_as: Any = None

    @property
    def sql(self) -> str:
        if self.null_as is None:
            return self.name
        return f"COALESCE({self.name}, {self.null_as})"

    def value(self, row: Mapping[str, Any]) -> Any:
        """Return this column's value from a fetched row, applying ``null_as``."""
        value = row[self.name]
        return self.null_as if value is None else value


class Predicate:
    """Base class for WHERE-clause nodes."""

    def render(self, builder: 'FilterBuilder') -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Compare(Predicate):
    """``column <op> value`` with the value bound as a parameter."""
    column: Column
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in COMPARISON_OPS:
            raise ValueError(f"Unsupported comparison operator: {self.op}")

    def render(self, builder: 'FilterBuilder') -> str:
        return f"{self.column.sql} {self.op} {builder.bind(self.value)}"


@dataclass(frozen=True)
class TextSearch(Predicate):
    """Full-text match of a plain query against a precomputed tsvector column.

    ``config`` must be the text-search configuration the vector was built with.
    """
    vector_column: str
    query: str
    config: str = 'english'

    def render(self, builder: 'FilterBuilder') -> str:
        return f"{self.vector_column} @@ plainto_tsquery('{self.config}', {builder.bind(self.query)})"


@dataclass(frozen=True)
class And(Predicate):
    children: Tuple[Predicate, ...] = field(default_factory=tuple)

    def render(self, builder: 'FilterBuilder') -> str:
        if not self.children:
            return "TRUE"
        if len(self.children) == 1:
            return self.children[0].render(builder)
        return "(" + " AND ".join(child.render(builder) for child in self.children) + ")"


@dataclass(frozen=True)
class Or(Predicate):
    children: Tuple[Predicate, ...] = field(default_factory=tuple)

    def render(self, builder: 'FilterBuilder') -> str:
        if not self.children:
            return "FALSE"
        if len(self.children) == 1:
            return self.children[0].render(builder)
        return "(" + " OR ".join(child.render(builder) for child in self.children) + ")"


def keyset_predicate(keys: Sequence[Tuple[Column, Any]], direction: str) -> Predicate:
    """Build the lexicographic "strictly after" predicate for a composite key.

    For keys ``(a, b, c)`` in descending order this yields::

        a < $a OR (a = $a AND b < $b) OR (a = $a AND b = $b AND c < $c)

    Args:
        keys: ``(column, cursor_value)`` pairs, most significant first.
        direction: ``'asc'`` or ``'desc'``.

    Returns:
        Predicate: Disjunction of strict comparisons with equality fallthrough.
    """
    if direction not in ('asc', 'desc'):
        raise ValueError(f"Invalid sort direction: {direction}")
    if not keys:
        raise ValueError("keyset_predicate needs at least one key")

    strict = '<' if direction == 'desc' else '>'
    branches: List[Predicate] = []
    for i, (column, value) in enumerate(keys):
        equalities = [Compare(col, '=', val) for col, val in keys[:i]]
        branches.append(And(tuple(equalities) + (Compare(column, strict, value),)))
    return Or(tuple(branches))


class FilterBuilder:
    """Build parameterized SQL WHERE clauses from predicates.

    Usage:
        builder = FilterBuilder()
        builder.add(Compare(Column('title'), 'ILIKE', '%dune%'))
        builder.add(keyset_predicate(keys, 'desc'))

        query = f"SELECT * FROM book.books WHERE {builder.where_clause}"
        results = await conn.fetch(query, *builder.params)
    """

    def __init__(self, start_idx: int = 1):
        """Initialize FilterBuilder.

        Args:
            start_idx: Starting parameter index (default $1).
        """
        self.filters: List[str] = []
        self.params: List[Any] = []
        self._param_idx = start_idx

    def bind(self, value: Any) -> str:
        """Register a parameter value and return its placeholder."""
        placeholder = f"${self._param_idx}"
        self.params.append(value)
        self._param_idx += 1
        return placeholder

    def add(self, predicate: Optional[Predicate]) -> 'FilterBuilder':
        """Add a predicate; ``None`` is skipped.

        Returns:
            Self for method chaining.
        """
        if predicate is None:
            return self
        self.filters.append(predicate.render(self))
        return self

    @property
    def where_clause(self) -> str:
        """Get the WHERE clause string (without 'WHERE' keyword)."""
        return " AND ".join(self.filters) if self.filters else "TRUE"

    @property
    def next_param_idx(self) -> int:
        """Get the next available parameter index."""
        return self._param_idx
