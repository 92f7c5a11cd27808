"""Shopify CLI integration."""

from .cli import (
    MockShopifyCLI,
    ShopifyCLI,
    ThemeCheckResult,
    ThemeInfo,
    ThemePushResult,
    get_shopify_cli,
)

__all__ = [
    "MockShopifyCLI",
    "ShopifyCLI",
    "ThemeCheckResult",
    "ThemeInfo",
    "ThemePushResult",
    "get_shopify_cli",
]
