"""Базовый интерфейс провайдера импорта.

Провайдер связывает скрапер поставщика с конвейером импорта:
нормализует URL, превращает неуспешный ScrapeResult в исключение
и приводит RawProduct к каноническому MappedProduct.
"""

from abc import ABC
from dataclasses import replace

from bookbright.config import get_logger
from bookbright.errors import ProviderFetchError
from bookbright.models import (
    MappedProduct,
    Price,
    ProductVariant,
    RawProduct,
    SupplierSource,
)
from bookbright.scrapers.base import BaseScraper
from bookbright.utils.url_validation import is_valid_supplier_url, normalize_url

logger = get_logger("provider")

DEFAULT_VARIANT_NAME = "Standard"


class BaseImportProvider(ABC):
    """Провайдер одного поставщика.

    Подклассы задают source, display_name и default_price, а при
    необходимости расширяют map_to_product.

    Attributes:
        _scraper: Скрапер страницы товара этого поставщика.
    """

    source: SupplierSource
    display_name: str
    default_price: Price = Price(amount=0.0, currency="USD")

    def __init__(self, scraper: BaseScraper) -> None:
        self._scraper = scraper

    def get_name(self) -> str:
        return self.source.value

    def can_handle(self, url: str) -> bool:
        """Принадлежит ли URL этому поставщику."""
        return is_valid_supplier_url(url, self.source)

    def normalize_url(self, url: str) -> str:
        return normalize_url(url)

    async def fetch_product(self, url: str) -> RawProduct:
        """Скрапит товар по URL.

        Args:
            url: URL товара (нормализуется перед загрузкой).

        Returns:
            Сырые данные товара.

        Raises:
            ProviderFetchError: Скрапер вернул неуспешный результат;
                сообщение скрапера сохраняется.
        """
        normalized = self.normalize_url(url)
        result = await self._scraper.scrape_product(normalized)

        if not result.success or result.data is None:
            message = (
                result.error
                or f"Failed to fetch product data from {self.display_name}"
            )
            logger.warning(
                "provider_fetch_failed",
                provider=self.get_name(),
                url=normalized,
                error=message,
            )
            raise ProviderFetchError(message, supplier=self.get_name())

        return result.data

    def map_to_product(self, raw: RawProduct, original_url: str) -> MappedProduct:
        """Приводит сырые данные к MappedProduct. Никогда не падает.

        Пропуски заполняются значениями по умолчанию: название
        "<Поставщик> Product", цена default_price, пустые описание,
        изображения, характеристики и варианты, доступность True.
        """
        return MappedProduct(
            supplier=self.source,
            url=original_url,
            title=raw.title or f"{self.display_name} Product",
            description=raw.description or "",
            price=self._price_of(raw),
            images=list(raw.images),
            specs=self._specs_of(raw),
            shipping_estimate=raw.shipping_estimate or None,
            availability=raw.availability is not False,
            variants=[self._map_variant(v) for v in raw.variants],
        )

    def _price_of(self, raw: RawProduct) -> Price:
        if raw.price is not None and raw.price.amount > 0:
            return raw.price
        return self.default_price

    def _specs_of(self, raw: RawProduct) -> dict[str, str]:
        return dict(raw.specs)

    @staticmethod
    def _map_variant(variant: ProductVariant) -> ProductVariant:
        return replace(
            variant,
            name=variant.name or DEFAULT_VARIANT_NAME,
            attributes=dict(variant.attributes),
        )
