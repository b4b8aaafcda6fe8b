"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import AsyncMock, Mock

from storefront.cart import CartStore, MemoryStorage
from storefront.catalog import CatalogService
from storefront.config import StoreConfig
from storefront.models import Product

# Keep tests offline and quiet
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("GEMINI_API_KEY", None)


def _make_product(product_id: str = "prod-1", price: float = 100.0, **fields) -> Product:
    """Build a catalog product with sensible defaults."""
    data = {
        "id": product_id,
        "category_id": "lighting",
        "name": f"Product {product_id}",
        "manufacturer": "Philips",
        "part_number": f"PN-{product_id}",
        "description": "Test product",
        "price": price,
        "image_url": "https://example.com/img.jpg",
        "stock": 10,
    }
    data.update(fields)
    return Product.model_validate(data)


@pytest.fixture
def product_a():
    return _make_product("prod-a", 99.0, name="LED Bulb 9W")


@pytest.fixture
def product_b():
    return _make_product("prod-b", 285.5, name="Armoured Cable", category_id="cables_wires")


@pytest.fixture
def storage():
    """Fresh in-memory storage"""
    return MemoryStorage()


@pytest.fixture
def store(storage):
    """Cart store over in-memory storage (not hydrated)"""
    return CartStore(storage, storage_key="test_cart")


@pytest.fixture
def failing_storage():
    """Storage whose reads and writes always fail"""
    backend = Mock()
    backend.get = AsyncMock(side_effect=ConnectionError("storage offline"))
    backend.set = AsyncMock(side_effect=OSError("disk full"))
    return backend


@pytest.fixture
def config():
    """Offline config with in-memory cart storage"""
    return StoreConfig(cart_storage_backend="memory", enable_ai_assistant=False)


@pytest.fixture
def catalog():
    """Catalog loaded from the packaged sample data"""
    return CatalogService.from_file()


@pytest.fixture
def mock_gemini_client():
    """Mock google-genai client"""
    client = Mock()
    mock_response = Mock()
    mock_response.text = '{"message": "Test response"}'
    client.aio.models.generate_content = AsyncMock(return_value=mock_response)
    return client


@pytest.fixture
def make_product():
    """Factory for products: make_product("id", price, **fields)"""
    return _make_product
