"""Провайдеры импорта товаров.

    from bookbright.providers import ProviderRegistry, build_registry
"""

from bookbright.providers.alibaba_provider import AlibabaProvider
from bookbright.providers.base import BaseImportProvider
from bookbright.providers.ebay_provider import EbayProvider
from bookbright.providers.registry import ProviderRegistry, build_registry
from bookbright.providers.temu_provider import TemuProvider

__all__ = [
    "AlibabaProvider",
    "BaseImportProvider",
    "EbayProvider",
    "ProviderRegistry",
    "TemuProvider",
    "build_registry",
]
