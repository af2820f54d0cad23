"""Провайдер Alibaba.

Alibaba продаёт оптом: у товара есть минимальная партия (MOQ) и
диапазон цен, зависящий от объёма. Оба значения попадают в
характеристики товара, а если точной цены нет, берётся нижняя
граница диапазона.
"""

from bookbright.models import Price, RawProduct, SupplierSource
from bookbright.providers.base import BaseImportProvider


def _format_amount(amount: float) -> str:
    return f"{amount:g}"


class AlibabaProvider(BaseImportProvider):
    """Импорт товаров Alibaba и 1688 через headless-скрапер."""

    source = SupplierSource.ALIBABA
    display_name = "Alibaba"

    def _price_of(self, raw: RawProduct) -> Price:
        if raw.price is not None and raw.price.amount > 0:
            return raw.price
        if raw.price_range is not None and raw.price_range[0] > 0:
            return Price(amount=raw.price_range[0], currency=self.default_price.currency)
        return self.default_price

    def _specs_of(self, raw: RawProduct) -> dict[str, str]:
        specs = dict(raw.specs)
        if raw.moq:
            specs["MOQ"] = str(raw.moq)
        if raw.price_range is not None:
            low, high = raw.price_range
            if low != high:
                currency = raw.price.currency if raw.price else "USD"
                specs["Price range"] = (
                    f"{_format_amount(low)} - {_format_amount(high)} {currency}"
                )
        return specs
