"""
Storefront configuration.

Reads environment variables (and a local .env file when present) into a
frozen StoreConfig. Parsers are tolerant: an unparsable value falls back to
the default instead of failing at startup.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

# Placeholder shipped in .env.example; treated as "no key"
GEMINI_API_KEY_PLACEHOLDER = "your_actual_gemini_api_key_here"

DEFAULT_CART_STORAGE_KEY = "electro_quick_cart"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

STORAGE_BACKENDS = ("memory", "file", "redis")


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if not value:
        return default
    return value.strip().lower() == "true"


def _parse_float(value: Optional[str], default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: Optional[str], default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_optional_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class StoreConfig:
    """Typed access to storefront settings."""

    # AI
    gemini_api_key: str = ""
    gemini_model_name: str = DEFAULT_GEMINI_MODEL
    enable_ai_assistant: bool = True
    ai_chat_history_limit: int = 10

    # App info
    app_name: str = "ElectroQuick"
    company_name: str = "ElectroQuick Solutions"
    company_email: str = "support@electroquick.com"
    company_phone: str = "+91-9876543210"
    log_level: str = "INFO"

    # Business
    currency: str = "INR"
    currency_symbol: str = "₹"
    tax_rate: float = 0.18
    delivery_charge: float = 50.0
    free_delivery_threshold: float = 500.0

    # Cart persistence
    cart_storage_backend: str = "file"
    cart_storage_key: str = DEFAULT_CART_STORAGE_KEY
    cart_storage_dir: str = ".storefront"
    cart_ttl_seconds: Optional[int] = None
    upstash_redis_rest_url: str = ""
    upstash_redis_rest_token: str = ""

    # Catalog
    catalog_path: Optional[str] = None

    @property
    def has_gemini_key(self) -> bool:
        return bool(self.gemini_api_key) and self.gemini_api_key != GEMINI_API_KEY_PLACEHOLDER

    @property
    def ai_enabled(self) -> bool:
        """AI calls are made only when the feature is on and a real key exists."""
        return self.enable_ai_assistant and self.has_gemini_key

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """Build config from a mapping of environment variables (defaults to os.environ)."""
        env = os.environ if env is None else env
        defaults = cls()

        backend = env.get("CART_STORAGE_BACKEND", defaults.cart_storage_backend).strip().lower()
        if backend not in STORAGE_BACKENDS:
            backend = defaults.cart_storage_backend

        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY", ""),
            gemini_model_name=env.get("GEMINI_MODEL_NAME") or defaults.gemini_model_name,
            enable_ai_assistant=_parse_bool(env.get("ENABLE_AI_ASSISTANT"), defaults.enable_ai_assistant),
            ai_chat_history_limit=_parse_int(env.get("AI_CHAT_HISTORY_LIMIT"), defaults.ai_chat_history_limit),
            app_name=env.get("APP_NAME") or defaults.app_name,
            company_name=env.get("COMPANY_NAME") or defaults.company_name,
            company_email=env.get("COMPANY_EMAIL") or defaults.company_email,
            company_phone=env.get("COMPANY_PHONE") or defaults.company_phone,
            log_level=(env.get("LOG_LEVEL") or defaults.log_level).upper(),
            currency=env.get("CURRENCY") or defaults.currency,
            currency_symbol=env.get("CURRENCY_SYMBOL") or defaults.currency_symbol,
            tax_rate=_parse_float(env.get("TAX_RATE"), defaults.tax_rate),
            delivery_charge=_parse_float(env.get("DELIVERY_CHARGE"), defaults.delivery_charge),
            free_delivery_threshold=_parse_float(
                env.get("FREE_DELIVERY_THRESHOLD"), defaults.free_delivery_threshold
            ),
            cart_storage_backend=backend,
            cart_storage_key=env.get("CART_STORAGE_KEY") or defaults.cart_storage_key,
            cart_storage_dir=env.get("CART_STORAGE_DIR") or defaults.cart_storage_dir,
            cart_ttl_seconds=_parse_optional_int(env.get("CART_TTL_SECONDS")),
            upstash_redis_rest_url=env.get("UPSTASH_REDIS_REST_URL", ""),
            upstash_redis_rest_token=env.get("UPSTASH_REDIS_REST_TOKEN", ""),
            catalog_path=env.get("CATALOG_PATH") or None,
        )


def load_config(env_file: Optional[Path] = None) -> StoreConfig:
    """
    Load configuration from the process environment.

    A .env file (explicit path, or one found from the working directory) is
    read first; variables already set in the environment take precedence.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()
    return StoreConfig.from_env()
