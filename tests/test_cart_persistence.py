"""
Tests for cart persistence: storage backends, snapshot writer, hydration
"""

import asyncio
import json
from unittest.mock import AsyncMock, Mock

import pytest

from storefront.cart import (
    EMPTY_CART,
    Cart,
    CartItem,
    CartStore,
    FileStorage,
    MemoryStorage,
    RedisStorage,
    create_storage,
)
from storefront.cart.persistence import SnapshotWriter
from storefront.config import StoreConfig
from storefront.errors import StorageError


class GatedStorage(MemoryStorage):
    """Records write starts and blocks each write until the gate opens."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.started = []

    async def set(self, key, value):
        self.started.append(value)
        await self.gate.wait()
        await super().set(key, value)


async def _let_tasks_run():
    for _ in range(5):
        await asyncio.sleep(0)


def _saved_cart(make_product, quantity=2) -> str:
    cart = Cart.of([CartItem(make_product("saved", 40.0), quantity)])
    return json.dumps(cart.to_dict())


# ============================================================
# Storage backends
# ============================================================

class TestMemoryStorage:

    @pytest.mark.asyncio
    async def test_get_set(self):
        storage = MemoryStorage()
        assert await storage.get("k") is None
        await storage.set("k", "v")
        assert await storage.get("k") == "v"


class TestFileStorage:

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        storage = FileStorage(tmp_path / "carts")

        assert await storage.get("electro_quick_cart") is None
        await storage.set("electro_quick_cart", '{"items": [], "total": 0}')

        assert await storage.get("electro_quick_cart") == '{"items": [], "total": 0}'
        assert (tmp_path / "carts" / "electro_quick_cart.json").exists()

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_files(self, tmp_path):
        storage = FileStorage(tmp_path)
        await storage.set("cart", "one")
        await storage.set("cart", "two")

        assert await storage.get("cart") == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["cart.json"]

    @pytest.mark.asyncio
    async def test_rejects_path_like_keys(self, tmp_path):
        storage = FileStorage(tmp_path)
        with pytest.raises(ValueError):
            await storage.set("../escape", "x")


class TestRedisStorage:

    @pytest.mark.asyncio
    async def test_set_with_ttl(self):
        client = Mock()
        client.set = AsyncMock()
        storage = RedisStorage(client, ttl_seconds=86400)

        await storage.set("cart", "payload")

        client.set.assert_awaited_once_with("cart", "payload", ex=86400)

    @pytest.mark.asyncio
    async def test_set_without_ttl_and_get(self):
        client = Mock()
        client.set = AsyncMock()
        client.get = AsyncMock(return_value="payload")
        storage = RedisStorage(client)

        await storage.set("cart", "payload")

        client.set.assert_awaited_once_with("cart", "payload")
        assert await storage.get("cart") == "payload"

    def test_from_credentials_requires_url_and_token(self):
        with pytest.raises(StorageError):
            RedisStorage.from_credentials("", "")


class TestCreateStorage:

    def test_memory(self):
        storage = create_storage(StoreConfig(cart_storage_backend="memory"))
        assert isinstance(storage, MemoryStorage)

    def test_file(self, tmp_path):
        storage = create_storage(StoreConfig(cart_storage_backend="file", cart_storage_dir=str(tmp_path)))
        assert isinstance(storage, FileStorage)
        assert storage.directory == tmp_path

    def test_redis_without_credentials(self):
        with pytest.raises(StorageError):
            create_storage(StoreConfig(cart_storage_backend="redis"))

    def test_unknown_backend(self):
        with pytest.raises(StorageError):
            create_storage(StoreConfig(cart_storage_backend="sqlite"))


# ============================================================
# Snapshot writer
# ============================================================

class TestSnapshotWriter:

    @pytest.mark.asyncio
    async def test_rapid_schedules_coalesce(self):
        storage = GatedStorage()
        storage.gate.set()
        writer = SnapshotWriter(storage, "cart")

        writer.schedule("1")
        writer.schedule("2")
        writer.schedule("3")
        await writer.flush()

        assert storage.started == ["3"]
        assert storage.peek("cart") == "3"

    @pytest.mark.asyncio
    async def test_writes_never_overlap_and_latest_wins(self):
        storage = GatedStorage()
        writer = SnapshotWriter(storage, "cart")

        writer.schedule("a")
        await _let_tasks_run()
        assert storage.started == ["a"]

        # While "a" is in flight only the newest payload is kept
        writer.schedule("b")
        writer.schedule("c")
        await _let_tasks_run()
        assert storage.started == ["a"]

        storage.gate.set()
        await writer.flush()

        assert storage.started == ["a", "c"]
        assert storage.peek("cart") == "c"
        assert writer.writes_completed == 2

    @pytest.mark.asyncio
    async def test_failed_write_is_logged_not_raised(self):
        storage = Mock()
        storage.set = AsyncMock(side_effect=[OSError("disk full"), None])
        writer = SnapshotWriter(storage, "cart")

        writer.schedule("first")
        await writer.flush()
        writer.schedule("second")
        await writer.flush()

        assert writer.writes_failed == 1
        assert writer.writes_completed == 1
        storage.set.assert_awaited_with("cart", "second")

    @pytest.mark.asyncio
    async def test_paused_writer_holds_payload(self):
        storage = MemoryStorage()
        writer = SnapshotWriter(storage, "cart", paused=True)

        writer.schedule("held")
        await writer.flush()
        assert storage.peek("cart") is None
        assert writer.has_pending

        writer.resume()
        await writer.flush()
        assert storage.peek("cart") == "held"

    @pytest.mark.asyncio
    async def test_discard_pending(self):
        storage = MemoryStorage()
        writer = SnapshotWriter(storage, "cart", paused=True)

        writer.schedule("stale")
        writer.discard_pending()
        writer.resume()
        await writer.flush()

        assert storage.peek("cart") is None

    def test_schedule_without_event_loop_stays_pending(self):
        storage = MemoryStorage()
        writer = SnapshotWriter(storage, "cart")

        writer.schedule("offline")

        assert writer.has_pending
        asyncio.run(writer.flush())
        assert storage.peek("cart") == "offline"


# ============================================================
# Cart store persistence and hydration
# ============================================================

class TestCartStorePersistence:

    @pytest.mark.asyncio
    async def test_mutations_persist_full_snapshot(self, storage, store, product_a, product_b):
        store.start()
        await store.flush()

        store.add_item(product_a, 2)
        store.add_item(product_b)
        await store.flush()

        saved = json.loads(storage.peek("test_cart"))
        assert [i["product"]["id"] for i in saved["items"]] == ["prod-a", "prod-b"]
        assert saved["items"][0]["quantity"] == 2
        assert saved["total"] == pytest.approx(99.0 * 2 + 285.5)

    @pytest.mark.asyncio
    async def test_last_mutation_is_what_gets_stored(self, storage, store, product_a):
        store.start()
        await store.flush()

        store.add_item(product_a)
        for quantity in range(2, 20):
            store.update_item_quantity("prod-a", quantity)
        store.clear_cart()
        store.add_item(product_a, 7)
        await store.flush()

        saved = Cart.from_dict(json.loads(storage.peek("test_cart")))
        assert saved == store.get_cart()
        assert saved.items[0].quantity == 7

    @pytest.mark.asyncio
    async def test_round_trip_across_store_instances(self, storage, store, product_a, product_b):
        store.start()
        await store.flush()
        store.add_item(product_a, 2)
        store.add_item(product_b, 1)
        await store.flush()

        restarted = CartStore(storage, storage_key="test_cart")
        cart = await restarted.hydrate()

        assert cart == store.get_cart()
        assert restarted.get_cart().total == pytest.approx(store.get_cart().total)

    @pytest.mark.asyncio
    async def test_round_trip_through_file_storage(self, tmp_path, product_a):
        first = CartStore(FileStorage(tmp_path))
        await first.hydrate()
        first.add_item(product_a, 3)
        await first.flush()

        second = CartStore(FileStorage(tmp_path))
        await second.hydrate()

        assert second.get_product_quantity("prod-a") == 3

    @pytest.mark.asyncio
    async def test_write_failure_does_not_break_mutation(self, failing_storage, product_a):
        store = CartStore(failing_storage)
        await store.hydrate()
        calls = []
        store.subscribe(calls.append)

        store.add_item(product_a)
        await store.flush()

        assert store.get_product_quantity("prod-a") == 1
        assert len(calls) == 1
        assert store.writer.writes_failed == 1


class TestCartStoreHydration:

    @pytest.mark.asyncio
    async def test_hydrates_saved_cart_and_notifies(self, make_product):
        storage = MemoryStorage({"test_cart": _saved_cart(make_product)})
        store = CartStore(storage, storage_key="test_cart")
        calls = []
        store.subscribe(calls.append)

        await store.hydrate()

        assert store.hydrated
        assert store.get_product_quantity("saved") == 2
        assert store.get_cart().total == 80.0
        assert calls == [store.get_cart()]

    @pytest.mark.asyncio
    async def test_nothing_saved_keeps_empty_cart_silently(self, store):
        calls = []
        store.subscribe(calls.append)

        cart = await store.hydrate()

        assert cart == EMPTY_CART
        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        "{not json",
        '"just a string"',
        '{"items": [{"product": {"id": "x"}, "quantity": 1}]}',
        '{"items": [{"product": {"id": "x", "price": 5}, "quantity": 0}]}',
        pytest.param("[" * 200_000, id="deeply-nested-array"),
    ])
    async def test_corrupt_payload_is_discarded(self, raw):
        storage = MemoryStorage({"test_cart": raw})
        store = CartStore(storage, storage_key="test_cart")

        cart = await store.hydrate()

        assert cart == EMPTY_CART
        # Nothing mutated, so the corrupt value is left for the next write to replace
        assert storage.peek("test_cart") == raw

    @pytest.mark.asyncio
    async def test_deeply_nested_payload_does_not_break_flush(self, product_a):
        storage = MemoryStorage({"test_cart": '{"items": ' + "[" * 200_000})
        store = CartStore(storage, storage_key="test_cart")
        store.start()
        store.add_item(product_a)

        await store.flush()

        assert store.hydrated
        assert store.get_product_quantity("prod-a") == 1
        assert "prod-a" in storage.peek("test_cart")

    @pytest.mark.asyncio
    async def test_read_failure_starts_empty(self, failing_storage):
        store = CartStore(failing_storage)
        cart = await store.hydrate()
        assert cart == EMPTY_CART
        assert store.hydrated

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, make_product):
        storage = MemoryStorage({"test_cart": _saved_cart(make_product)})
        storage.get = AsyncMock(wraps=storage.get)
        store = CartStore(storage, storage_key="test_cart")

        first = store.start()
        second = store.start()
        await store.hydrate()

        assert first is second
        assert storage.get.await_count == 1

    @pytest.mark.asyncio
    async def test_writes_held_until_hydration_finishes(self, storage, store, product_a):
        store.add_item(product_a)
        await asyncio.sleep(0)
        assert storage.peek("test_cart") is None

        await store.hydrate()
        await store.flush()

        assert Cart.from_dict(json.loads(storage.peek("test_cart"))) == store.get_cart()

    @pytest.mark.asyncio
    async def test_saved_cart_wins_over_mutation_before_hydration(self, make_product, product_a):
        raw = _saved_cart(make_product)
        storage = MemoryStorage({"test_cart": raw})
        store = CartStore(storage, storage_key="test_cart")
        calls = []
        store.subscribe(calls.append)

        store.start()
        store.add_item(product_a)
        await store.flush()

        assert not store.is_in_cart("prod-a")
        assert store.get_product_quantity("saved") == 2
        # Memory and storage agree
        assert storage.peek("test_cart") == raw
        assert len(calls) == 2
        assert calls[-1] == store.get_cart()

    @pytest.mark.asyncio
    async def test_mutation_before_hydration_kept_when_nothing_saved(self, storage, store, product_a):
        store.start()
        store.add_item(product_a, 2)
        await store.flush()

        assert store.get_product_quantity("prod-a") == 2
        saved = Cart.from_dict(json.loads(storage.peek("test_cart")))
        assert saved == store.get_cart()

    @pytest.mark.asyncio
    async def test_mutation_after_hydration_wins(self, make_product, product_a):
        storage = MemoryStorage({"test_cart": _saved_cart(make_product)})
        store = CartStore(storage, storage_key="test_cart")

        await store.hydrate()
        store.add_item(product_a)
        await store.flush()

        saved = Cart.from_dict(json.loads(storage.peek("test_cart")))
        assert {i.product_id for i in saved.items} == {"saved", "prod-a"}
