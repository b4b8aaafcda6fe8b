"""Cart package: models, storage, persistence and the cart store."""
from .models import EMPTY_CART, Cart, CartItem
from .service import CartListener, CartStore
from .storage import FileStorage, KeyValueStorage, MemoryStorage, RedisStorage, create_storage

__all__ = [
    "CartItem",
    "Cart",
    "EMPTY_CART",
    "CartStore",
    "CartListener",
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
    "create_storage",
]
