"""
App Context - lifecycle owner for storefront components

Constructs exactly one of each component and hands them to consumers
(screens, bots, API handlers) instead of module-level singletons:

    context = AppContext.create()
    await context.start()
    context.cart.add_item(product, 2)
    ...
    await context.flush()
"""

from dataclasses import dataclass
from typing import Optional

from google import genai

from storefront.assistant import ShoppingAssistant, create_genai_client
from storefront.cart import CartStore, KeyValueStorage, create_storage
from storefront.catalog import CatalogService
from storefront.checkout import CheckoutService
from storefront.config import StoreConfig, load_config
from storefront.logging import get_logger, set_log_level

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Handles to the storefront components, built once per process."""
    config: StoreConfig
    storage: KeyValueStorage
    catalog: CatalogService
    cart: CartStore
    checkout: CheckoutService
    assistant: ShoppingAssistant

    @classmethod
    def create(
        cls,
        config: Optional[StoreConfig] = None,
        storage: Optional[KeyValueStorage] = None,
        catalog: Optional[CatalogService] = None,
        genai_client: Optional[genai.Client] = None,
    ) -> "AppContext":
        """
        Wire all components.

        Args:
            config: Settings (default: load from environment)
            storage: Cart storage (default: backend named in config)
            catalog: Catalog (default: JSON file from config)
            genai_client: Gemini client (default: created when AI is enabled)
        """
        config = config or load_config()
        set_log_level(config.log_level)
        storage = storage if storage is not None else create_storage(config)
        catalog = catalog or CatalogService.from_file(config.catalog_path)
        if genai_client is None:
            genai_client = create_genai_client(config)

        cart = CartStore(storage, storage_key=config.cart_storage_key)
        return cls(
            config=config,
            storage=storage,
            catalog=catalog,
            cart=cart,
            checkout=CheckoutService(cart, config),
            assistant=ShoppingAssistant(catalog, config, client=genai_client),
        )

    async def start(self) -> None:
        """Schedule cart hydration and warm the assistant's catalog cache."""
        self.cart.start()
        await self.assistant.load()
        logger.info(
            f"{self.config.app_name} started (AI assistant: {'on' if self.assistant.has_model else 'offline'})"
        )

    async def flush(self) -> None:
        """Wait for cart hydration and outstanding cart writes."""
        await self.cart.flush()
