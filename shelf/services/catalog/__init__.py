"""Book catalog service."""

from shelf.services.catalog.core import Catalog

__all__ = ['Catalog']
