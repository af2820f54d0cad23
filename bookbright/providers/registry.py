"""Реестр провайдеров импорта.

Набор поставщиков закрыт, поэтому реестр - таблица диспетчеризации
SupplierSource -> фабрика провайдера. Фабрики, а не готовые
экземпляры: тесты подменяют их фейками через register().
"""

from collections.abc import Callable

from bookbright.config import Settings, get_logger
from bookbright.models import SupplierSource
from bookbright.providers.alibaba_provider import AlibabaProvider
from bookbright.providers.base import BaseImportProvider
from bookbright.providers.ebay_provider import EbayProvider
from bookbright.providers.temu_provider import TemuProvider
from bookbright.scrapers.alibaba_scraper import AlibabaScraper
from bookbright.scrapers.ebay_scraper import EbayScraper
from bookbright.scrapers.temu_scraper import TemuScraper
from bookbright.services.browser_service import BrowserService
from bookbright.services.http_fetcher import HtmlFetcher
from bookbright.services.supplier_identifier import identify_supplier

logger = get_logger("provider_registry")

ProviderFactory = Callable[[], BaseImportProvider]


class ProviderRegistry:
    """Выбор провайдера по имени или по URL.

    Attributes:
        _factories: Фабрики провайдеров по поставщику.
    """

    def __init__(self, factories: dict[SupplierSource, ProviderFactory]) -> None:
        self._factories = dict(factories)

    def register(self, source: SupplierSource, factory: ProviderFactory) -> None:
        """Регистрирует (или заменяет) фабрику провайдера."""
        self._factories[source] = factory

    def get_provider(self, name: str | SupplierSource | None) -> BaseImportProvider | None:
        """Провайдер по имени ('temu', 'alibaba', 'ebay') или None."""
        source = name if isinstance(name, SupplierSource) else SupplierSource.parse(name)
        if source is None or source not in self._factories:
            return None
        return self._factories[source]()

    def detect_provider(self, url: str) -> BaseImportProvider | None:
        """Провайдер по хосту URL или None для неподдерживаемых URL."""
        return self.get_provider(identify_supplier(url))

    def get_provider_for_url(
        self, url: str, provider_name: str | None = None
    ) -> BaseImportProvider | None:
        """Провайдер для URL с учётом явно выбранного имени.

        Если имя указано, провайдер должен ещё и уметь обработать URL,
        иначе возвращается None. Без имени провайдер определяется по URL.
        """
        if provider_name:
            provider = self.get_provider(provider_name)
            if provider is None or not provider.can_handle(url):
                return None
            return provider
        return self.detect_provider(url)

    def get_all_providers(self) -> list[BaseImportProvider]:
        return [factory() for factory in self._factories.values()]

    def is_url_supported(self, url: str) -> bool:
        return self.detect_provider(url) is not None


def build_registry(
    settings: Settings,
    fetcher: HtmlFetcher | None = None,
    browser: BrowserService | None = None,
) -> ProviderRegistry:
    """Собирает реестр с реальными скраперами.

    Args:
        settings: Настройки сервиса.
        fetcher: Общий HTTP-загрузчик (создаётся, если не передан).
        browser: Фабрика браузерных сессий (создаётся, если не передана).
    """
    fetcher = fetcher or HtmlFetcher(settings.http)
    browser = browser or BrowserService(settings.browser)

    logger.debug("provider_registry_built", providers=[s.value for s in SupplierSource])
    return ProviderRegistry(
        {
            SupplierSource.TEMU: lambda: TemuProvider(TemuScraper(fetcher)),
            SupplierSource.ALIBABA: lambda: AlibabaProvider(AlibabaScraper(browser)),
            SupplierSource.EBAY: lambda: EbayProvider(EbayScraper(browser)),
        }
    )
