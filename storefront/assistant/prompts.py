"""
Assistant prompts and offline reply templates.

Gemini prompts embed the full catalog as JSON so the model can answer with
exact product ids. The fallback topics drive keyword replies when no model
is available.
"""

import json
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from storefront.config import StoreConfig
from storefront.models import Category, Product
from storefront.money import format_money

# ============================================================
# Gemini Prompts
# ============================================================

TEXT_QUERY_PROMPT = """You are the {app_name} AI Assistant, an electrical equipment consultant with access to the complete product catalog.

PRODUCT CATALOG ({product_count} products):
{product_database}

CATEGORIES:
{categories}

CONTEXT:
{context}

RECENT CONVERSATION:
{history}

USER QUERY: "{query}"

INSTRUCTIONS:
1. Work out what equipment the user needs
2. Recommend specific catalog products, referencing them by id
3. Respect technical specifications (voltage, current)
4. Estimate the cost and break it down by category
5. Offer alternatives when stock is low or zero
6. Quote all prices in {currency_name} ({currency_symbol})

Respond with JSON only:
{{
  "message": "helpful answer with concrete recommendations",
  "suggestedProducts": ["product_id"],
  "totalCost": 0,
  "budget": {{"total": 0, "breakdown": {{"category": 0}}, "recommendations": ["tip"]}},
  "extractedItems": ["item the user mentioned"]
}}
"""

SMART_SEARCH_PROMPT = """Search query: "{query}"

Available products:
{product_database}

Return the ids of the most relevant products as a JSON array, best match first,
for example ["id1", "id2"]. Consider names, descriptions, specifications, use cases
and stock availability. Return [] when nothing fits.
"""

QUOTATION_PROMPT = """Write a professional business quotation for {company_name} using this data:
{quotation_data}

Include: a header with company details, quotation number and date, an itemized
list with quantities and prices, subtotal, GST, delivery and grand total, and
terms and conditions. Use plain text with aligned columns.
"""


def build_product_database(products: Sequence[Product], categories: Sequence[Category]) -> str:
    """Serialize the catalog for prompt context."""
    names = {c.id: c.name for c in categories}
    rows = [
        {
            "id": p.id,
            "name": p.name,
            "manufacturer": p.manufacturer,
            "part_number": p.part_number,
            "price": p.price,
            "category": names.get(p.category_id, "Unknown"),
            "voltage": p.voltage,
            "current": p.current,
            "description": p.description,
            "stock": p.stock,
        }
        for p in products
    ]
    return json.dumps(rows, indent=2, ensure_ascii=False)


def build_context(config: StoreConfig, products: Sequence[Product], categories: Sequence[Category]) -> str:
    category_names = ", ".join(c.name for c in categories)
    return (
        f"{config.app_name} is an electrical equipment store.\n"
        f"We offer {len(products)} products across {len(categories)} categories: {category_names}.\n"
        "Customers are electricians, contractors, engineers and DIY enthusiasts.\n"
        f"Currency: {config.currency} ({config.currency_symbol})\n"
        f"Tax rate: {config.tax_rate:.0%}\n"
        f"Free delivery on orders above {format_money(config.free_delivery_threshold, config.currency)}"
    )


def format_history(history: Sequence[Dict[str, str]]) -> str:
    if not history:
        return "(none)"
    return "\n".join(f"{m['role']}: {m['content']}" for m in history)


# ============================================================
# Offline Templates
# ============================================================

@dataclass(frozen=True)
class FallbackTopic:
    """Keyword-triggered reply over one or more categories."""
    keywords: Tuple[str, ...]
    category_ids: Tuple[str, ...]
    title: str
    intro: str
    breakdown_label: str
    tips_heading: str
    tips: Tuple[str, ...]
    recommendations: Tuple[str, ...]

    def matches(self, lower_query: str) -> bool:
        return any(keyword in lower_query for keyword in self.keywords)


FALLBACK_TOPICS: Tuple[FallbackTopic, ...] = (
    FallbackTopic(
        keywords=("motor", "transformer"),
        category_ids=("transformers_motors",),
        title="⚙️ **Motor & Transformer Solutions**",
        intro="I found {count} available products:",
        breakdown_label="Motors & Transformers",
        tips_heading="🔧 **Before you buy**:",
        tips=(
            "Tell me the voltage, current or application for a tighter match",
        ),
        recommendations=(
            "Consider single-phase vs three-phase requirements",
            "Check voltage compatibility with your system",
            "Factor in installation and maintenance costs",
        ),
    ),
    FallbackTopic(
        keywords=("cable", "wire"),
        category_ids=("cables_wires",),
        title="🔌 **Cable & Wire Solutions**",
        intro="Available options ({count} products):",
        breakdown_label="Cables & Wires",
        tips_heading="💡 **Recommendations**:",
        tips=(
            "PVC cables for indoor use",
            "Armoured cables for outdoor/industrial",
            "Check current rating for your load",
            "Consider cable length requirements",
        ),
        recommendations=(
            "Calculate total cable length needed",
            "Consider voltage drop for long runs",
            "Choose appropriate insulation type",
        ),
    ),
    FallbackTopic(
        keywords=("light", "led", "bulb"),
        category_ids=("lighting",),
        title="💡 **Lighting Solutions**",
        intro="Brighten your space with {count} options:",
        breakdown_label="Lighting",
        tips_heading="🌟 **Lighting Tips**:",
        tips=(
            "LED bulbs save up to 80% energy",
            "Consider lumens for brightness",
            "Check voltage compatibility",
        ),
        recommendations=(
            "Calculate total lumens needed for your space",
            "Consider energy efficiency ratings",
            "Plan for future maintenance",
        ),
    ),
    FallbackTopic(
        keywords=("switch", "breaker", "protection"),
        category_ids=("switch_protection", "circuit_breakers"),
        title="⚡ **Switch & Protection Equipment**",
        intro="Safety first with {count} products:",
        breakdown_label="Protection Equipment",
        tips_heading="🛡️ **Safety Guidelines**:",
        tips=(
            "Match breaker rating to circuit load",
            "Consider surge protection for sensitive equipment",
            "Always consult a qualified electrician",
        ),
        recommendations=(
            "Calculate total circuit load",
            "Consider safety regulations",
            "Plan for emergency backup systems",
        ),
    ),
)

BUDGET_KEYWORDS = ("budget", "cost", "price")

BUDGET_TIPS = (
    "Start with essential equipment",
    "Consider bulk discounts for large orders",
    "Factor in installation and maintenance",
)

BUDGET_RECOMMENDATIONS = (
    "Prioritize safety-critical equipment",
    "Consider energy-efficient options for long-term savings",
    "Plan for 10-15% contingency budget",
)

HELP_TOPICS = (
    "Equipment recommendations based on your needs",
    "Cost calculations and budget planning",
    "Technical specifications and compatibility",
    "Project quotations",
)

QUOTATION_TERMS = (
    "Prices valid for 30 days",
    "Delivery within 3-5 business days",
    "Payment: 50% advance, balance on delivery",
    "Warranty as per manufacturer terms",
    "Installation charges extra if required",
)


def format_product_line(product: Product, currency: str) -> str:
    specs = " ".join(
        part for part in (
            f"{product.voltage:g}V" if product.voltage is not None else "",
            f"{product.current:g}A" if product.current is not None else "",
        ) if part
    )
    lines = [
        f"• **{product.name}** ({product.manufacturer})",
        f"  - Part: {product.part_number}",
        f"  - Price: {format_money(product.price, currency)}",
    ]
    if specs:
        lines.append(f"  - {specs}")
    return "\n".join(lines)


def bullet_list(lines: Sequence[str]) -> List[str]:
    return [f"• {line}" for line in lines]
