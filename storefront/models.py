"""
Pydantic Models - Catalog entities and assistant schemas

Contains the value objects shared across the storefront:
- Catalog entities (Category, Product, SearchFilters)
- AI response schemas (for Gemini structured JSON replies)
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Catalog Models
# ============================================================

class Category(BaseModel):
    """Product category."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str


class Product(BaseModel):
    """
    Catalog product.

    Frozen so a product handed to the cart cannot change under it. Unknown
    fields are kept so that persisting a cart round-trips the whole record.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    category_id: str = ""
    name: str = ""
    manufacturer: str = ""
    part_number: str = ""
    description: str = ""
    price: float = Field(ge=0)
    image_url: str = ""
    stock: int = 0
    voltage: Optional[float] = None
    current: Optional[float] = None
    dimensions_mm: Optional[Tuple[float, ...]] = None

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class SearchFilters(BaseModel):
    """Catalog search criteria. Empty/None fields do not filter."""
    query: str = ""
    category_id: Optional[str] = None
    manufacturer: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


# ============================================================
# AI Response Models (for Gemini JSON output)
# ============================================================

class Budget(BaseModel):
    """Cost estimate attached to an assistant reply."""
    total: float = Field(default=0.0, description="Estimated total cost")
    breakdown: Dict[str, float] = Field(
        default_factory=dict,
        description="Cost per category name"
    )
    recommendations: List[str] = Field(
        default_factory=list,
        description="Budget planning tips"
    )


class GeminiReply(BaseModel):
    """Raw JSON reply requested from Gemini (product ids, not products)."""
    message: str = Field(description="Helpful response shown to the user")
    suggested_products: List[str] = Field(
        default_factory=list,
        alias="suggestedProducts",
        description="Catalog product ids"
    )
    total_cost: Optional[float] = Field(default=None, alias="totalCost")
    budget: Optional[Budget] = None
    extracted_items: List[str] = Field(default_factory=list, alias="extractedItems")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AssistantResponse(BaseModel):
    """Assistant reply with catalog products resolved."""
    message: str
    suggested_products: List[Product] = Field(default_factory=list)
    total_cost: Optional[float] = None
    budget: Optional[Budget] = None
    extracted_items: List[str] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
