"""Catalog provider over the static product dataset."""
from .service import DEFAULT_CATALOG_PATH, CatalogService

__all__ = ["CatalogService", "DEFAULT_CATALOG_PATH"]
