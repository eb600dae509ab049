"""Live snapshots of the five vendor collections."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from atelier.config import STORE_POLL_INTERVAL_SECONDS
from atelier.data import DEFAULT_SETTINGS
from atelier.models import AppSettings, InventoryItem, Order, Product, Supplier
from atelier.persistence import AuthNotConfiguredError, DocumentStore, StoreError, Watch

logger = logging.getLogger(__name__)

PRODUCTS = "products"
SUPPLIERS = "Fournisseurs"
ORDERS = "Commandes"
INVENTORY = "Inventory"
SETTINGS = "Settings"
SETTINGS_DOC_ID = "general"

# key, attribute, order_by, descending, parser
_FEEDS: tuple[tuple[str, str, str | None, bool, Callable[[dict[str, Any]], Any]], ...] = (
    (PRODUCTS, "products", "createdAt", True, Product.from_document),
    (SUPPLIERS, "suppliers", None, False, Supplier.from_document),
    (ORDERS, "orders", "date", True, Order.from_document),
    (INVENTORY, "inventory", "name", False, InventoryItem.from_document),
)

Listener = Callable[[Any], None]


async def establish_identity(store: DocumentStore) -> str | None:
    """Open an anonymous session; a missing or failing session is not fatal."""
    try:
        uid = await store.sign_in_anonymously()
    except AuthNotConfiguredError:
        return None
    except Exception as exc:
        logger.warning("anonymous session failed: %s", exc)
        return None
    logger.info("anonymous session %s", uid)
    return uid


class RealtimeStore:
    """Owns the products, suppliers, orders, inventory and settings snapshots.

    Use as an async context manager: every subscription opened by `start`
    is cancelled by `close`, together. Other components only read the
    slices and register listeners; writes go through `atelier.commands`.
    """

    def __init__(self, store: DocumentStore, defaults: AppSettings = DEFAULT_SETTINGS) -> None:
        self.store = store
        self.defaults = defaults
        self.products: tuple[Product, ...] = ()
        self.suppliers: tuple[Supplier, ...] = ()
        self.orders: tuple[Order, ...] = ()
        self.inventory: tuple[InventoryItem, ...] = ()
        self.settings: AppSettings = defaults
        self.identity: str | None = None
        self.ready = asyncio.Event()
        self._pending = {PRODUCTS, SUPPLIERS, ORDERS, INVENTORY, SETTINGS}
        self._received: set[str] = set()
        self._watches: list[Watch] = []
        self._listeners: dict[str, list[Listener]] = {}
        self._settings_seeded = False
        self._background: set[asyncio.Task[Any]] = set()
        self._poller: asyncio.Task[None] | None = None
        self._started = False
        self._closed = False

    @property
    def loading(self) -> bool:
        return not self.ready.is_set()

    def has_snapshot(self, key: str) -> bool:
        """True once at least one snapshot for ``key`` has been applied."""
        return key in self._received

    async def __aenter__(self) -> RealtimeStore:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def listen(self, key: str, callback: Listener) -> Callable[[], None]:
        """Call ``callback`` with each new slice for ``key``; returns an unsubscribe function."""
        callbacks = self._listeners.setdefault(key, [])
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    async def start(self, poll_interval: float | None = STORE_POLL_INTERVAL_SECONDS) -> None:
        """Establish identity, then open the five subscriptions."""
        if self._started:
            return
        self._started = True
        self.identity = await establish_identity(self.store)
        if self._closed:
            return

        try:
            self._watches.append(
                self.store.watch_document(SETTINGS, SETTINGS_DOC_ID, self._on_settings, self._failure_handler(SETTINGS))
            )
        except StoreError as exc:
            self._on_feed_error(SETTINGS, exc)

        for key, attr, order_by, descending, parser in _FEEDS:
            try:
                watch = self.store.watch(
                    key,
                    self._snapshot_handler(key, attr, parser),
                    self._failure_handler(key),
                    order_by=order_by,
                    descending=descending,
                )
            except StoreError as exc:
                self._on_feed_error(key, exc)
                continue
            self._watches.append(watch)

        if poll_interval is not None:
            self._poller = asyncio.create_task(self.store.poll_changes(poll_interval))

    async def close(self) -> None:
        """Cancel every subscription and the change poller, and wait for pending seed writes.

        Safe to call twice.
        """
        if self._closed:
            return
        self._closed = True
        for watch in self._watches:
            watch.cancel()
        self._watches.clear()
        if self._poller is not None:
            self._poller.cancel()
            try:
                await self._poller
            except asyncio.CancelledError:
                pass
            self._poller = None
        # Let a settings seed already in flight finish its write.
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
            self._background.clear()
        self._listeners.clear()
        logger.info("realtime subscriptions closed")

    def _snapshot_handler(self, key: str, attr: str, parser: Callable[[dict[str, Any]], Any]) -> Callable[[Any], None]:
        def handle(docs: list[dict[str, Any]]) -> None:
            try:
                items = tuple(parser(doc) for doc in docs)
            except (KeyError, TypeError, ValueError) as exc:
                self._on_feed_error(key, exc)
                return
            setattr(self, attr, items)
            self._received.add(key)
            self._settle(key)
            self._publish(key, items)

        return handle

    def _failure_handler(self, key: str) -> Callable[[Exception], None]:
        return lambda exc: self._on_feed_error(key, exc)

    def _on_feed_error(self, key: str, exc: Exception) -> None:
        logger.warning("feed %s unavailable, keeping last snapshot: %s", key, exc)
        self._settle(key)

    def _on_settings(self, doc: dict[str, Any] | None) -> None:
        if doc is None:
            if not self._settings_seeded:
                self._settings_seeded = True
                task = asyncio.create_task(self._seed_settings())
                self._background.add(task)
                task.add_done_callback(self._background.discard)
            self.settings = self.defaults
        else:
            self.settings = self.defaults.merged(doc)
        self._received.add(SETTINGS)
        self._settle(SETTINGS)
        self._publish(SETTINGS, self.settings)

    async def _seed_settings(self) -> None:
        try:
            await self.store.set(SETTINGS, SETTINGS_DOC_ID, self.defaults.to_document())
        except StoreError as exc:
            logger.info("default settings not created: %s", exc)

    def _settle(self, key: str) -> None:
        if key not in self._pending:
            return
        self._pending.discard(key)
        if not self._pending:
            self.ready.set()
            logger.info("realtime store ready")

    def _publish(self, key: str, value: Any) -> None:
        for callback in list(self._listeners.get(key, [])):
            callback(value)
