"""Базовый интерфейс скрапера страницы товара."""

from abc import ABC, abstractmethod

from bookbright.config import get_logger
from bookbright.models import RawProduct, ScrapeResult, SupplierSource

logger = get_logger("scraper")


class BaseScraper(ABC):
    """Скрапер одного поставщика.

    scrape_product не выбрасывает исключений для ожидаемых сбоев
    (изменилась вёрстка, товар снят, антибот, таймаут) и возвращает
    ScrapeResult.fail с понятной причиной.
    """

    supplier: SupplierSource

    @abstractmethod
    async def scrape_product(self, url: str) -> ScrapeResult:
        """Загружает страницу и извлекает данные товара."""

    def _finish(self, raw: RawProduct) -> ScrapeResult:
        """Проверяет обязательные поля и формирует результат.

        Без названия или цены результат считается неуспешным,
        отсутствие остальных полей ошибкой не является.
        """
        if not raw.title:
            logger.warning(
                "scrape_missing_title", supplier=self.supplier.value, url=raw.url
            )
            return ScrapeResult.fail("Could not find product title on the page")
        if raw.price is None:
            logger.warning(
                "scrape_missing_price", supplier=self.supplier.value, url=raw.url
            )
            return ScrapeResult.fail("Could not find product price on the page")

        logger.info(
            "scrape_success",
            supplier=self.supplier.value,
            url=raw.url,
            images=len(raw.images),
            variants=len(raw.variants),
            specs=len(raw.specs),
        )
        return ScrapeResult.ok(raw)
