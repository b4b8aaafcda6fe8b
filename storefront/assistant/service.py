"""
Shopping Assistant - Gemini integration with offline fallback

Provides:
- Product recommendations and cost estimates for free-text queries
- Smart search returning catalog products
- Quotations for cart contents
- Retry logic with tenacity; every Gemini failure degrades to templates
"""

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from google import genai
from google.genai import types
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from storefront.cart import CartItem
from storefront.catalog import CatalogService
from storefront.checkout import generate_order_number
from storefront.config import StoreConfig
from storefront.logging import get_logger, sanitize_string_for_logging
from storefront.models import AssistantResponse, Budget, Category, GeminiReply, Product
from storefront.money import add, format_money, multiply, round_money, to_decimal, to_float, total_of

from .prompts import (
    BUDGET_KEYWORDS,
    BUDGET_RECOMMENDATIONS,
    BUDGET_TIPS,
    FALLBACK_TOPICS,
    HELP_TOPICS,
    QUOTATION_PROMPT,
    QUOTATION_TERMS,
    SMART_SEARCH_PROMPT,
    TEXT_QUERY_PROMPT,
    FallbackTopic,
    build_context,
    build_product_database,
    bullet_list,
    format_history,
    format_product_line,
)

logger = get_logger(__name__)

FALLBACK_PRODUCT_LIMIT = 5
SEARCH_KEYWORD_MIN_LENGTH = 3
SEARCH_KEYWORD_MATCH_RATIO = 0.6
QUOTATION_VALIDITY_DAYS = 30

CURRENCY_NAMES = {"INR": "Indian Rupees", "USD": "US Dollars", "EUR": "Euros", "GBP": "Pounds Sterling"}


def create_genai_client(config: StoreConfig) -> Optional[genai.Client]:
    """Gemini client when AI is enabled and keyed, otherwise None."""
    if not config.ai_enabled:
        return None
    return genai.Client(api_key=config.gemini_api_key)


def _strip_code_fence(text: str) -> str:
    """Gemini sometimes wraps JSON in ```json fences."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class ShoppingAssistant:
    """
    AI shopping assistant over the static catalog.

    Works without a Gemini client: every operation has a deterministic
    fallback built from catalog data.
    """

    def __init__(
        self,
        catalog: CatalogService,
        config: StoreConfig,
        client: Optional[genai.Client] = None,
    ):
        self.catalog = catalog
        self.config = config
        self.client = client
        self.model_name = config.gemini_model_name
        self.products: List[Product] = []
        self.categories: List[Category] = []
        self.chat_history: List[Dict[str, str]] = []
        self._product_database = ""
        self._loaded = False

    @property
    def has_model(self) -> bool:
        return self.client is not None

    async def load(self) -> None:
        """Cache catalog data for prompts and fallbacks."""
        self.products = await self.catalog.get_products()
        self.categories = await self.catalog.get_categories()
        self._product_database = build_product_database(self.products, self.categories)
        self._loaded = True
        logger.info(
            f"Assistant loaded {len(self.products)} products and {len(self.categories)} categories"
        )

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load()

    def add_to_chat_history(self, role: str, content: str) -> None:
        """Append a message, keeping only the most recent ones."""
        self.chat_history.append({"role": role, "content": content})
        limit = max(self.config.ai_chat_history_limit, 0)
        if len(self.chat_history) > limit:
            self.chat_history = self.chat_history[-limit:] if limit else []

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        reraise=True,
    )
    async def _generate(self, prompt: str, json_output: bool = False) -> str:
        config = types.GenerateContentConfig(
            temperature=0.7,
            max_output_tokens=2048,
            response_mime_type="application/json" if json_output else "text/plain",
        )
        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=config,
        )
        if not response.text:
            raise ValueError("Empty response from Gemini")
        return response.text

    # ------------------------------------------------------------------
    # Text queries
    # ------------------------------------------------------------------

    async def process_text_query(self, query: str) -> AssistantResponse:
        """
        Answer a free-text request with recommendations and a cost estimate.

        Args:
            query: User's message

        Returns:
            AssistantResponse with catalog products resolved from ids
        """
        await self._ensure_loaded()
        self.add_to_chat_history("user", query)

        response: Optional[AssistantResponse] = None
        if self.has_model:
            try:
                response = await self._query_model(query)
            except Exception as e:
                logger.error(
                    f"Assistant query failed for '{sanitize_string_for_logging(query)}': {e}",
                    exc_info=True,
                )

        if response is None:
            response = self.fallback_response(query)

        self.add_to_chat_history("assistant", response.message)
        return response

    async def _query_model(self, query: str) -> AssistantResponse:
        prompt = TEXT_QUERY_PROMPT.format(
            app_name=self.config.app_name,
            product_count=len(self.products),
            product_database=self._product_database,
            categories=json.dumps([c.model_dump() for c in self.categories], indent=2, ensure_ascii=False),
            context=build_context(self.config, self.products, self.categories),
            history=format_history(self.chat_history[:-1]),
            query=query,
            currency_name=CURRENCY_NAMES.get(self.config.currency, self.config.currency),
            currency_symbol=self.config.currency_symbol,
        )
        text = await self._generate(prompt, json_output=True)

        try:
            reply = GeminiReply.model_validate_json(_strip_code_fence(text))
        except ValidationError:
            # Not the JSON we asked for; show the text as-is
            return AssistantResponse(message=text)

        wanted = set(reply.suggested_products)
        return AssistantResponse(
            message=reply.message,
            suggested_products=[p for p in self.products if p.id in wanted],
            total_cost=reply.total_cost,
            budget=reply.budget,
            extracted_items=reply.extracted_items,
        )

    def fallback_response(self, query: str) -> AssistantResponse:
        """Keyword-driven reply used when Gemini is unavailable."""
        lower_query = query.lower()

        for topic in FALLBACK_TOPICS:
            if topic.matches(lower_query):
                return self._topic_response(topic)

        if any(keyword in lower_query for keyword in BUDGET_KEYWORDS):
            return self._budget_response()

        return self._help_response()

    def _topic_response(self, topic: FallbackTopic) -> AssistantResponse:
        currency = self.config.currency
        available = [
            p for p in self.products
            if p.category_id in topic.category_ids and p.in_stock
        ]
        shown = available[:FALLBACK_PRODUCT_LIMIT]
        total = to_float(total_of(p.price for p in available))

        parts = [topic.title, "", topic.intro.format(count=len(available)), ""]
        parts.extend(format_product_line(p, currency) for p in shown)
        if available:
            low = min(p.price for p in available)
            high = max(p.price for p in available)
            parts += ["", f"💰 **Price Range**: {format_money(low, currency)} - {format_money(high, currency)}"]
        parts += ["", topic.tips_heading, *bullet_list(topic.tips)]

        return AssistantResponse(
            message="\n".join(parts),
            suggested_products=shown,
            total_cost=total,
            budget=Budget(
                total=total,
                breakdown={topic.breakdown_label: total},
                recommendations=list(topic.recommendations),
            ),
        )

    def _budget_response(self) -> AssistantResponse:
        currency = self.config.currency
        inventory_total = total_of(p.price for p in self.products)
        average = inventory_total / len(self.products) if self.products else Decimal("0")

        breakdown: Dict[str, float] = {}
        ranges: List[str] = []
        for category in self.categories:
            prices = [p.price for p in self.products if p.category_id == category.id]
            breakdown[category.name] = to_float(total_of(prices))
            if prices:
                ranges.append(
                    f"**{category.name}**: {format_money(min(prices), currency)} - "
                    f"{format_money(max(prices), currency)}"
                )

        parts = [
            "💰 **Budget Analysis**",
            "",
            f"**Complete Inventory Value**: {format_money(inventory_total, currency)}",
            f"**Average Product Price**: {format_money(average, currency)}",
            "",
            "**Price Ranges by Category**:",
            *bullet_list(ranges),
            "",
            "💡 **Budget Tips**:",
            *bullet_list(BUDGET_TIPS),
            "",
            "Tell me your specific requirements for a detailed cost breakdown!",
        ]
        total = to_float(inventory_total)
        return AssistantResponse(
            message="\n".join(parts),
            total_cost=total,
            budget=Budget(
                total=total,
                breakdown=breakdown,
                recommendations=list(BUDGET_RECOMMENDATIONS),
            ),
        )

    def _help_response(self) -> AssistantResponse:
        parts = [
            f"🔧 **{self.config.app_name} Equipment Assistant**",
            "",
            f"I have access to **{len(self.products)} electrical products** "
            f"across **{len(self.categories)} categories**!",
            "",
            "🏭 **Equipment Categories**:",
            *bullet_list([c.name for c in self.categories]),
            "",
            "💡 **I can help with**:",
            *bullet_list(HELP_TOPICS),
            "",
            "Tell me what equipment you need, your budget, or the specifications you are working with.",
        ]
        return AssistantResponse(message="\n".join(parts), categories=list(self.categories))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def smart_search(self, query: str) -> List[Product]:
        """Products relevant to ``query``, best match first."""
        await self._ensure_loaded()

        if self.has_model:
            prompt = SMART_SEARCH_PROMPT.format(query=query, product_database=self._product_database)
            try:
                text = await self._generate(prompt, json_output=True)
                ids = json.loads(_strip_code_fence(text))
                if not isinstance(ids, list):
                    raise ValueError("Expected a JSON array of product ids")
                by_id = {p.id: p for p in self.products}
                return [by_id[i] for i in ids if isinstance(i, str) and i in by_id]
            except Exception as e:
                logger.error(f"Smart search failed, using keyword search: {e}", exc_info=True)

        return self.keyword_search(query)

    def keyword_search(self, query: str) -> List[Product]:
        """
        Offline search.

        A product matches when its text contains the whole query, or at least
        60% of the query keywords (words of 3+ characters). In-stock products
        and name matches rank first.
        """
        lower_query = query.lower().strip()
        if not lower_query:
            return []
        keywords = [w for w in lower_query.split() if len(w) >= SEARCH_KEYWORD_MIN_LENGTH]

        def matches(product: Product) -> bool:
            text = " ".join(
                (product.name, product.manufacturer, product.part_number, product.description)
            ).lower()
            if lower_query in text:
                return True
            if not keywords:
                return False
            hits = sum(1 for keyword in keywords if keyword in text)
            return hits >= len(keywords) * SEARCH_KEYWORD_MATCH_RATIO

        def score(product: Product) -> int:
            return (10 if product.in_stock else 0) + (5 if lower_query in product.name.lower() else 0)

        # sorted() is stable: equal scores keep catalog order
        return sorted((p for p in self.products if matches(p)), key=score, reverse=True)

    # ------------------------------------------------------------------
    # Quotations
    # ------------------------------------------------------------------

    def _quotation_data(self, items: Sequence[CartItem]) -> Dict[str, Any]:
        today = datetime.now(timezone.utc).date()
        lines = [
            {
                "id": item.product.id,
                "name": item.product.name,
                "part_number": item.product.part_number,
                "quantity": item.quantity,
                "rate": item.product.price,
                "line_total": item.line_total,
            }
            for item in items
        ]
        subtotal = total_of(multiply(item.product.price, item.quantity) for item in items)
        tax = round_money(multiply(subtotal, self.config.tax_rate))
        delivery = to_decimal(self.config.delivery_charge)
        return {
            "quotation_number": generate_order_number(),
            "date": today.isoformat(),
            "valid_until": (today + timedelta(days=QUOTATION_VALIDITY_DAYS)).isoformat(),
            "items": lines,
            "total_items": len(lines),
            "subtotal": to_float(subtotal),
            "tax_rate": self.config.tax_rate,
            "tax": to_float(tax),
            "delivery": to_float(delivery),
            "total": to_float(add(add(subtotal, tax), delivery)),
        }

    async def generate_quotation(self, items: Sequence[CartItem]) -> str:
        """Quotation text for cart items, including GST and delivery."""
        data = self._quotation_data(items)

        if self.has_model:
            prompt = QUOTATION_PROMPT.format(
                company_name=self.config.company_name,
                quotation_data=json.dumps(data, indent=2, ensure_ascii=False),
            )
            try:
                return await self._generate(prompt)
            except Exception as e:
                logger.error(f"Quotation generation failed, using template: {e}", exc_info=True)

        return self.format_quotation(data)

    def format_quotation(self, data: Dict[str, Any]) -> str:
        """Fixed-width plain-text quotation."""
        currency = self.config.currency
        rule = "=" * 64

        def amount_row(label: str, value: float) -> str:
            return f"{label:<44}{format_money(value, currency):>20}"

        rows = [
            f"{item['name'][:30]:<30} {item['quantity']:>4} "
            f"{format_money(item['rate'], currency):>12} {format_money(item['line_total'], currency):>15}"
            for item in data["items"]
        ]
        lines = [
            rule,
            self.config.company_name.upper().center(64),
            "QUOTATION".center(64),
            rule,
            f"Quotation No: {data['quotation_number']}",
            f"Date: {data['date']}",
            f"Valid Until: {data['valid_until']}",
            rule,
            f"{'ITEM DESCRIPTION':<30} {'QTY':>4} {'RATE':>12} {'AMOUNT':>15}",
            rule,
            *rows,
            rule,
            amount_row("Subtotal:", data["subtotal"]),
            amount_row(f"GST ({data['tax_rate']:.0%}):", data["tax"]),
            amount_row("Delivery Charges:", data["delivery"]),
            rule,
            amount_row("TOTAL:", data["total"]),
            rule,
            "Terms & Conditions:",
            *bullet_list(QUOTATION_TERMS),
            "",
            f"Contact: {self.config.company_email} | {self.config.company_phone}",
            rule,
        ]
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_product_stats(self) -> Dict[str, Any]:
        prices = [p.price for p in self.products]
        return {
            "total_products": len(self.products),
            "categories": len(self.categories),
            "in_stock": sum(1 for p in self.products if p.in_stock),
            "price_range": {
                "min": min(prices) if prices else 0.0,
                "max": max(prices) if prices else 0.0,
                "average": to_float(total_of(prices) / len(prices)) if prices else 0.0,
            },
        }


__all__ = ["ShoppingAssistant", "create_genai_client"]
