"""
Common Errors

Centralized error messages and the storefront exception hierarchy.
"""

# Cart errors
ERROR_CART_EMPTY = "Cart is empty"
ERROR_CART_LOAD_FAILED = "Failed to load cart"
ERROR_CART_SAVE_FAILED = "Failed to save cart"
ERROR_CART_CORRUPTED = "Stored cart data is corrupted"

# Product errors
ERROR_INVALID_PRODUCT_ID = "product id must be a non-empty string"
ERROR_INVALID_QUANTITY = "quantity must be a positive integer"

# Catalog errors
ERROR_CATALOG_UNREADABLE = "Catalog file could not be read"

# Storage errors
ERROR_STORAGE_BACKEND_UNKNOWN = "Unknown cart storage backend"
ERROR_REDIS_NOT_CONFIGURED = "UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set"


class StorefrontError(Exception):
    """Base class for storefront errors."""


class StorageError(StorefrontError):
    """Persistence backend is misconfigured or unusable."""


class CatalogError(StorefrontError):
    """Catalog data could not be loaded."""


class EmptyCartError(StorefrontError):
    """Checkout attempted with nothing in the cart."""

    def __init__(self, message: str = ERROR_CART_EMPTY):
        super().__init__(message)
