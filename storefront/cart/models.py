"""Cart models: immutable snapshots with Decimal-based totals."""
from dataclasses import dataclass
from typing import Iterable, Tuple

from storefront.models import Product
from storefront.money import multiply, to_float, total_of


@dataclass(frozen=True)
class CartItem:
    """Single product line in the cart."""
    product: Product
    quantity: int

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def line_total(self) -> float:
        """Price for all units of this line."""
        return to_float(multiply(self.product.price, self.quantity))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "product": self.product.model_dump(mode="json"),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        """Create from dictionary. Raises on malformed data."""
        quantity = data["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError(f"Invalid cart item quantity: {quantity!r}")
        return cls(
            product=Product.model_validate(data["product"]),
            quantity=quantity,
        )


def calculate_total(items: Iterable[CartItem]) -> float:
    """Sum of price * quantity over all items."""
    return to_float(total_of(multiply(item.product.price, item.quantity) for item in items))


@dataclass(frozen=True)
class Cart:
    """
    Shopping cart snapshot.

    ``total`` is derived from ``items``; build carts with ``Cart.of`` so the
    two never disagree.
    """
    items: Tuple[CartItem, ...] = ()
    total: float = 0.0

    @classmethod
    def of(cls, items: Iterable[CartItem]) -> "Cart":
        items = tuple(items)
        return cls(items=items, total=calculate_total(items))

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        """Total number of units (not distinct products)."""
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> dict:
        """Convert to the persisted JSON shape."""
        return {
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cart":
        """
        Create from the persisted JSON shape.

        The stored total is not trusted; it is recomputed from the items.
        Duplicate product ids are rejected rather than merged.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Cart payload must be an object, got {type(data).__name__}")
        raw_items = data.get("items", [])
        if not isinstance(raw_items, list):
            raise TypeError("Cart items must be a list")

        items = [CartItem.from_dict(raw) for raw in raw_items]
        seen = set()
        for item in items:
            if item.product_id in seen:
                raise ValueError(f"Duplicate product in stored cart: {item.product_id}")
            seen.add(item.product_id)
        return cls.of(items)


EMPTY_CART = Cart()

__all__ = ["CartItem", "Cart", "EMPTY_CART", "calculate_total"]
