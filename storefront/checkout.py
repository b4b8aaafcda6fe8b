"""
Checkout - order summary and order placement

Delivery is free once the subtotal exceeds the configured threshold.
Placing an order snapshots the cart, clears it and returns a confirmation;
there is no payment or fulfilment backend behind it.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, field_validator

from storefront.cart import Cart, CartStore
from storefront.config import StoreConfig
from storefront.errors import EmptyCartError
from storefront.logging import get_logger
from storefront.money import add, format_money, round_money, subtract, to_decimal, to_float

logger = get_logger(__name__)


class PaymentMethod(str, Enum):
    """How the customer pays."""
    CASH_ON_DELIVERY = "cod"
    ONLINE = "online"

    @property
    def label(self) -> str:
        return "Cash on Delivery" if self is PaymentMethod.CASH_ON_DELIVERY else "Online Payment"


class DeliveryAddress(BaseModel):
    """Delivery address entered at checkout."""
    name: str
    phone: str
    address: str
    city: str
    pincode: str

    @field_validator("name", "address", "city")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError("phone number must have at least 10 characters")
        return v

    @field_validator("pincode")
    @classmethod
    def valid_pincode(cls, v: str) -> str:
        v = v.strip()
        if len(v) != 6 or not v.isdigit():
            raise ValueError("pincode must be 6 digits")
        return v


@dataclass(frozen=True)
class CheckoutSummary:
    """Amounts shown on the checkout screen."""
    subtotal: float
    delivery_charge: float
    total: float
    amount_to_free_delivery: float
    currency: str = "INR"

    @property
    def free_delivery(self) -> bool:
        return self.delivery_charge == 0

    def format(self, amount: float) -> str:
        return format_money(amount, self.currency)


def summarize(cart: Cart, config: StoreConfig) -> CheckoutSummary:
    """
    Compute checkout amounts for a cart snapshot.

    An empty cart has nothing to deliver, so no delivery charge applies.
    """
    subtotal = to_decimal(cart.total)
    threshold = to_decimal(config.free_delivery_threshold)

    # Empty cart: nothing ships, so no charge (place_order refuses it anyway)
    if cart.is_empty or subtotal > threshold:
        delivery = to_decimal(0)
    else:
        delivery = to_decimal(config.delivery_charge)

    remaining = subtract(threshold, subtotal)
    if remaining < 0 or delivery == 0:
        remaining = to_decimal(0)

    return CheckoutSummary(
        subtotal=to_float(subtotal),
        delivery_charge=to_float(delivery),
        total=to_float(round_money(add(subtotal, delivery))),
        amount_to_free_delivery=to_float(remaining),
        currency=config.currency,
    )


@dataclass(frozen=True)
class OrderConfirmation:
    """Result of a placed order."""
    order_number: str
    cart: Cart
    summary: CheckoutSummary
    address: DeliveryAddress
    payment_method: PaymentMethod
    placed_at: str

    def message(self) -> str:
        a = self.address
        return (
            "Your order has been placed successfully. Order will be delivered to:\n\n"
            f"{a.name}\n{a.address}\n{a.city}, {a.pincode}\n\n"
            f"Payment Method: {self.payment_method.label}\n\n"
            f"Total Amount: {self.summary.format(self.summary.total)}"
        )


def generate_order_number() -> str:
    return f"EQ-{secrets.randbelow(1_000_000):06d}"


class CheckoutService:
    """Turns the current cart into an order confirmation."""

    def __init__(self, cart_store: CartStore, config: StoreConfig):
        self.cart_store = cart_store
        self.config = config

    def get_summary(self) -> CheckoutSummary:
        return summarize(self.cart_store.get_cart(), self.config)

    def place_order(
        self,
        address: DeliveryAddress | dict,
        payment_method: PaymentMethod | str = PaymentMethod.CASH_ON_DELIVERY,
    ) -> OrderConfirmation:
        """
        Place an order for everything in the cart and clear it.

        Raises:
            EmptyCartError: nothing to order
            pydantic.ValidationError: invalid address
            ValueError: unknown payment method
        """
        cart = self.cart_store.get_cart()
        if cart.is_empty:
            raise EmptyCartError()

        if not isinstance(address, DeliveryAddress):
            address = DeliveryAddress.model_validate(address)
        payment_method = PaymentMethod(payment_method)

        confirmation = OrderConfirmation(
            order_number=generate_order_number(),
            cart=cart,
            summary=summarize(cart, self.config),
            address=address,
            payment_method=payment_method,
            placed_at=datetime.now(timezone.utc).isoformat(),
        )
        self.cart_store.clear_cart()

        logger.info(
            f"Order {confirmation.order_number} placed: {cart.item_count} unit(s), "
            f"total {confirmation.summary.total}"
        )
        return confirmation


__all__ = [
    "PaymentMethod",
    "DeliveryAddress",
    "CheckoutSummary",
    "OrderConfirmation",
    "CheckoutService",
    "summarize",
]
