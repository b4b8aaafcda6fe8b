"""ElectroQuick storefront core: catalog, cart, checkout and shopping assistant."""

__version__ = "0.1.0"
