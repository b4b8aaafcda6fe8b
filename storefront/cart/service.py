"""
Cart Store - single source of truth for the shopping cart

Holds the current cart as an immutable snapshot, recomputes the total on
every mutation, schedules a whole-snapshot write to storage and notifies
subscribers synchronously. Persistence problems are logged, never raised:
in-memory state stays authoritative.
"""

import asyncio
import copy
import json
from dataclasses import replace
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from storefront.config import DEFAULT_CART_STORAGE_KEY
from storefront.errors import (
    ERROR_CART_CORRUPTED,
    ERROR_CART_LOAD_FAILED,
    ERROR_INVALID_PRODUCT_ID,
    ERROR_INVALID_QUANTITY,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import Product

from .events import Publisher, Unsubscribe
from .models import EMPTY_CART, Cart, CartItem
from .persistence import SnapshotWriter
from .storage import KeyValueStorage

logger = get_logger(__name__)

CartListener = Callable[[Cart], None]


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class CartStore:
    """
    Shopping cart state owner.

    Lifecycle:
    - construct with an injected storage backend
    - ``start()`` (inside the event loop) schedules one hydration from storage
    - mutate for the life of the process
    - ``flush()`` waits for hydration and outstanding writes (tests, shutdown)

    Writes are held until hydration finishes. A saved cart found during
    hydration wins over mutations made before it arrived; otherwise those
    mutations are kept and written.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_key: str = DEFAULT_CART_STORAGE_KEY,
    ):
        self._storage = storage
        self._key = storage_key
        self._cart: Cart = EMPTY_CART
        self._events: Publisher[Cart] = Publisher()
        self._writer = SnapshotWriter(storage, storage_key, paused=True)
        self._hydration_task: Optional[asyncio.Task] = None
        self._hydrated = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def writer(self) -> SnapshotWriter:
        return self._writer

    def start(self) -> "asyncio.Task[Cart]":
        """
        Schedule hydration from storage. Idempotent.

        Must be called with a running event loop.
        """
        if self._hydration_task is None:
            loop = asyncio.get_running_loop()
            self._hydration_task = loop.create_task(self._hydrate())
        return self._hydration_task

    async def hydrate(self) -> Cart:
        """Run (or join) hydration and return the resulting cart."""
        return await self.start()

    async def flush(self) -> None:
        """Wait for hydration (if started) and all pending writes."""
        if self._hydration_task is not None:
            await self._hydration_task
        await self._writer.flush()

    async def _read_saved_cart(self) -> Optional[Cart]:
        try:
            raw = await self._storage.get(self._key)
        except Exception as e:
            logger.error(f"{ERROR_CART_LOAD_FAILED}: {e}", exc_info=True)
            return None

        if not raw:
            return None

        try:
            return Cart.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, RecursionError) as e:
            # Covers JSONDecodeError, pydantic ValidationError and absurdly nested JSON
            logger.warning(f"{ERROR_CART_CORRUPTED}, starting with an empty cart: {e}")
            return None

    async def _hydrate(self) -> Cart:
        loaded: Optional[Cart] = None
        try:
            loaded = await self._read_saved_cart()
            if loaded is not None:
                # Storage already holds this value; writes queued before it arrived are stale
                self._writer.discard_pending()
                self._cart = loaded
        finally:
            self._hydrated = True
            self._writer.resume()

        if loaded is not None:
            logger.info(f"Cart hydrated with {len(loaded.items)} item(s)")
            self._events.publish(self._snapshot())
        return self._snapshot()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _commit(self, cart: Cart) -> None:
        """Install a new snapshot, schedule its write and notify listeners."""
        self._cart = cart
        self._persist(cart)
        self._events.publish(self._snapshot())

    def _snapshot(self) -> Cart:
        # Products may carry extra list/dict fields; callers get their own copy
        return copy.deepcopy(self._cart)

    def _persist(self, cart: Cart) -> None:
        try:
            payload = json.dumps(cart.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize cart: {e}", exc_info=True)
            return
        self._writer.schedule(payload)

    def _index_of(self, product_id: str) -> Optional[int]:
        for index, item in enumerate(self._cart.items):
            if item.product_id == product_id:
                return index
        return None

    def add_item(self, product: Union[Product, Mapping[str, Any]], quantity: int = 1) -> None:
        """
        Add ``quantity`` units of a product.

        Merges into an existing line for the same product id (the stored
        product snapshot is kept). Invalid input is logged and ignored.
        """
        if not isinstance(product, Product):
            try:
                product = Product.model_validate(product)
            except ValidationError as e:
                logger.warning(f"add_item ignored, invalid product: {e}")
                return

        if not isinstance(product.id, str) or not product.id.strip():
            logger.warning(f"add_item ignored: {ERROR_INVALID_PRODUCT_ID}")
            return
        if not _is_positive_int(quantity):
            logger.warning(
                f"add_item ignored for {sanitize_id_for_logging(product.id)}: {ERROR_INVALID_QUANTITY}"
            )
            return

        items = list(self._cart.items)
        index = self._index_of(product.id)
        if index is None:
            items.append(CartItem(product=product.model_copy(deep=True), quantity=quantity))
        else:
            existing = items[index]
            items[index] = replace(existing, quantity=existing.quantity + quantity)

        self._commit(Cart.of(items))

    def remove_item(self, product_id: str) -> None:
        """Remove a product line. Removing an absent product is not an error."""
        items = [item for item in self._cart.items if item.product_id != product_id]
        self._commit(Cart.of(items))

    def update_item_quantity(self, product_id: str, quantity: int) -> None:
        """
        Set the absolute quantity of a product already in the cart.

        ``quantity <= 0`` removes the product. Unknown ids are ignored;
        this never creates a line.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            logger.warning(
                f"update_item_quantity ignored for {sanitize_id_for_logging(product_id)}: "
                f"{ERROR_INVALID_QUANTITY}"
            )
            return

        if quantity <= 0:
            self.remove_item(product_id)
            return

        index = self._index_of(product_id)
        if index is None:
            logger.debug(f"update_item_quantity: {sanitize_id_for_logging(product_id)} not in cart")
            return

        items = list(self._cart.items)
        items[index] = replace(items[index], quantity=quantity)
        self._commit(Cart.of(items))

    def clear_cart(self) -> None:
        self._commit(EMPTY_CART)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cart(self) -> Cart:
        """Current snapshot, a deep copy: changing it never touches the store."""
        return self._snapshot()

    def get_item_count(self) -> int:
        return self._cart.item_count

    def is_in_cart(self, product_id: str) -> bool:
        return self._index_of(product_id) is not None

    def get_product_quantity(self, product_id: str) -> int:
        index = self._index_of(product_id)
        return 0 if index is None else self._cart.items[index].quantity

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: CartListener) -> Unsubscribe:
        """
        Register a listener called with the cart snapshot after every change.

        Returns a function that removes this registration; calling it again
        does nothing.
        """
        return self._events.subscribe(listener)

    @property
    def subscriber_count(self) -> int:
        return len(self._events)


__all__ = ["CartStore", "CartListener"]
