"""AI shopping assistant: recommendations, cost estimates, quotations."""
from .service import ShoppingAssistant, create_genai_client

__all__ = ["ShoppingAssistant", "create_genai_client"]
