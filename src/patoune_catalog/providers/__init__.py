"""External product providers (Open Pet Food Facts, Open Food Facts)."""

from .chain import ProviderChain, build_provider_chain
from .client import OpenFoodFactsClient
from .formatter import format_product

__all__ = [
    "OpenFoodFactsClient",
    "ProviderChain",
    "build_provider_chain",
    "format_product",
]
