"""Base class for Catalog handler mixins."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncpg
    from shelf.services.catalog.utils import KeysetPaginator


class HandlerMixin:
    """Base mixin providing access to Catalog dependencies.

    Handler mixins inherit from this to access shared resources.
    The actual implementations of these properties come from the
    Catalog class that inherits from the mixins.
    """

    # These are provided by Catalog class
    pool: 'asyncpg.Pool'
    paginator: 'KeysetPaginator'
