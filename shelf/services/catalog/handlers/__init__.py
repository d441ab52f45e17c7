"""Catalog handler mixins package.

Each mixin handles one area and is combined into the Catalog class via
multiple inheritance:

- BookHandlersMixin: Book CRUD and count
- SearchHandlersMixin: Filtered, keyset-paginated search
"""

from shelf.services.catalog.handlers.books import BookHandlersMixin
from shelf.services.catalog.handlers.search import SearchHandlersMixin

__all__ = [
    'BookHandlersMixin',
    'SearchHandlersMixin',
]
