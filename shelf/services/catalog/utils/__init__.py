"""Catalog utility modules."""

from shelf.services.catalog.utils.pagination import (
    FilterField, KeysetPaginator, KeysetQuery, Page, PgQueryExecutor, SearchSpec, SortField
)
from shelf.services.catalog.utils.query_builder import (
    And, Column, Compare, FilterBuilder, Or, Predicate, TextSearch, keyset_predicate
)

__all__ = [
    'And', 'Column', 'Compare', 'FilterBuilder', 'Or', 'Predicate', 'TextSearch', 'keyset_predicate',
    'FilterField', 'KeysetPaginator', 'KeysetQuery', 'Page', 'PgQueryExecutor', 'SearchSpec', 'SortField',
]
