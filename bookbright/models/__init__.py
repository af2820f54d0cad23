"""Пакет доменных моделей.

    from bookbright.models import RawProduct, MappedProduct, SupplierSource
"""

from bookbright.models.order import (
    Order,
    OrderItem,
    SupplierDispatchData,
    SupplierOrderResponse,
    SupplierOrderStatus,
)
from bookbright.models.product import (
    BulkImportResult,
    ImportedProduct,
    MappedProduct,
    NormalizedVariant,
    Price,
    ProductVariant,
    RawProduct,
    ScrapeResult,
    StoredProduct,
    StoredVariant,
    SupplierSource,
)

__all__ = [
    "BulkImportResult",
    "ImportedProduct",
    "MappedProduct",
    "NormalizedVariant",
    "Order",
    "OrderItem",
    "Price",
    "ProductVariant",
    "RawProduct",
    "ScrapeResult",
    "StoredProduct",
    "StoredVariant",
    "SupplierDispatchData",
    "SupplierOrderResponse",
    "SupplierOrderStatus",
    "SupplierSource",
]
