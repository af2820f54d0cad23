"""Провайдер Temu."""

from bookbright.models import Price, SupplierSource
from bookbright.providers.base import BaseImportProvider


class TemuProvider(BaseImportProvider):
    """Импорт товаров Temu через лёгкий скрапер.

    Если цена не найдена, используется номинальная 9.99 USD:
    страница Temu почти всегда её содержит, а нулевая цена
    сломала бы расчёт наценки.
    """

    source = SupplierSource.TEMU
    display_name = "Temu"
    default_price = Price(amount=9.99, currency="USD")
