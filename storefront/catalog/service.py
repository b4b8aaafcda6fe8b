"""
Catalog Service

Read-only product and category lookups over a static JSON dataset.
Methods are async so a network-backed catalog can replace this one
without touching callers.
"""

import json
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError

from storefront.errors import ERROR_CATALOG_UNREADABLE, CatalogError
from storefront.logging import get_logger, sanitize_string_for_logging
from storefront.models import Category, Product, SearchFilters

logger = get_logger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "catalog.json"

FEATURED_LIMIT = 6
RECOMMENDED_LIMIT = 4


class CatalogService:
    """Static in-memory catalog."""

    def __init__(self, categories: Sequence[Category], products: Sequence[Product]):
        self._categories: List[Category] = list(categories)
        self._products: List[Product] = list(products)
        self._by_id = {product.id: product for product in self._products}

    @classmethod
    def from_file(cls, path: Optional[Path | str] = None) -> "CatalogService":
        """
        Load ``{"categories": [...], "products": [...]}`` from a JSON file.

        Raises:
            CatalogError: file missing, not JSON, or records fail validation
        """
        catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
        try:
            data = json.loads(catalog_path.read_text(encoding="utf-8"))
            categories = [Category.model_validate(c) for c in data.get("categories", [])]
            products = [Product.model_validate(p) for p in data.get("products", [])]
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            raise CatalogError(f"{ERROR_CATALOG_UNREADABLE}: {catalog_path}: {e}") from e

        logger.info(f"Catalog loaded: {len(products)} products, {len(categories)} categories")
        return cls(categories, products)

    async def get_categories(self) -> List[Category]:
        return list(self._categories)

    async def get_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self._categories if c.id == category_id), None)

    async def get_products(self, category_id: Optional[str] = None) -> List[Product]:
        """All products, or only those in ``category_id``."""
        if category_id:
            return [p for p in self._products if p.category_id == category_id]
        return list(self._products)

    async def get_product(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)

    async def search_products(self, filters: SearchFilters) -> List[Product]:
        """
        Filter products.

        - category_id: exact match
        - query: case-insensitive substring of name, manufacturer, part number or description
        - manufacturer: case-insensitive exact match
        - min_price / max_price: inclusive bounds
        """
        results = self._products

        if filters.category_id:
            results = [p for p in results if p.category_id == filters.category_id]

        if filters.query:
            query = filters.query.lower()
            results = [
                p for p in results
                if query in p.name.lower()
                or query in p.manufacturer.lower()
                or query in p.part_number.lower()
                or query in p.description.lower()
            ]

        if filters.manufacturer:
            manufacturer = filters.manufacturer.lower()
            results = [p for p in results if p.manufacturer.lower() == manufacturer]

        if filters.min_price is not None:
            results = [p for p in results if p.price >= filters.min_price]
        if filters.max_price is not None:
            results = [p for p in results if p.price <= filters.max_price]

        logger.debug(
            f"Catalog search '{sanitize_string_for_logging(filters.query)}' -> {len(results)} result(s)"
        )
        return list(results)

    async def get_featured_products(self) -> List[Product]:
        return self._products[:FEATURED_LIMIT]

    async def get_recommended_products(self, product_id: str) -> List[Product]:
        """Other products from the same category."""
        current = self._by_id.get(product_id)
        if current is None:
            return []
        return [
            p for p in self._products
            if p.category_id == current.category_id and p.id != product_id
        ][:RECOMMENDED_LIMIT]


__all__ = ["CatalogService", "DEFAULT_CATALOG_PATH"]
