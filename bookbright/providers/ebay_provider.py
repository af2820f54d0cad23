"""Провайдер eBay."""

from bookbright.models import SupplierSource
from bookbright.providers.base import BaseImportProvider


class EbayProvider(BaseImportProvider):
    """Импорт лотов eBay через headless-скрапер."""

    source = SupplierSource.EBAY
    display_name = "eBay"
