"""Dataclass-based domain configuration pattern.

The storefront defines its thresholds, endpoints and limits as frozen
dataclasses:
- Type safety (IDE autocompletion, mypy checking)
- Default values that work against a local WooCommerce install
- Immutability (frozen=True prevents accidental mutation)
- Overrides from environment variables
"""

import os
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogConfig:
    """Where and how the catalog snapshot is fetched."""

    base_url: str = "http://localhost:8080"
    timeout_seconds: float = 10.0  # whole snapshot, all pages
    per_page: int = 100
    max_pages: int = 20


@dataclass(frozen=True)
class CartConfig:
    """Cart backend used when a composed bundle line item is added."""

    base_url: str = "http://localhost:8080"
    api_key: str | None = None
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class PricingConfig:
    """Currency the engine prices in. Amounts are integer minor units."""

    currency: str = "AED"
    currency_minor_unit: int = 2


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorefrontConfig:
    """Complete configuration for the bundle storefront.

    Usage::

        config = StorefrontConfig.from_env()
        catalog = WooCommerceCatalog(config.catalog)
    """

    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    cart: CartConfig = field(default_factory=CartConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)

    @classmethod
    def default(cls) -> "StorefrontConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "STOREFRONT_") -> "StorefrontConfig":
        """Create config from environment variables.

        Example: STOREFRONT_CATALOG_URL=https://cms.example.com
        """
        catalog_overrides: dict = {}
        cart_overrides: dict = {}
        pricing_overrides: dict = {}

        catalog_url = os.getenv(f"{prefix}CATALOG_URL")
        if catalog_url:
            catalog_overrides["base_url"] = catalog_url
            cart_overrides["base_url"] = catalog_url
        catalog_timeout = os.getenv(f"{prefix}CATALOG_TIMEOUT")
        if catalog_timeout:
            catalog_overrides["timeout_seconds"] = float(catalog_timeout)
        per_page = os.getenv(f"{prefix}CATALOG_PER_PAGE")
        if per_page:
            catalog_overrides["per_page"] = int(per_page)

        cart_url = os.getenv(f"{prefix}CART_URL")
        if cart_url:
            cart_overrides["base_url"] = cart_url
        cart_key = os.getenv(f"{prefix}CART_API_KEY")
        if cart_key:
            cart_overrides["api_key"] = cart_key

        currency = os.getenv(f"{prefix}CURRENCY")
        if currency:
            pricing_overrides["currency"] = currency.upper()
        minor_unit = os.getenv(f"{prefix}CURRENCY_MINOR_UNIT")
        if minor_unit:
            pricing_overrides["currency_minor_unit"] = int(minor_unit)

        return cls(
            catalog=CatalogConfig(**catalog_overrides),
            cart=CartConfig(**cart_overrides),
            pricing=PricingConfig(**pricing_overrides),
        )
