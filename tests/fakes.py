"""Фейки внешних зависимостей для тестов: скрапер, браузер,
загрузчик HTML, API поставщика, хостинг изображений."""

import asyncio
from contextlib import asynccontextmanager

from bookbright.errors import ImageUploadError, SupplierApiError
from bookbright.models import (
    Order,
    OrderItem,
    Price,
    RawProduct,
    ScrapeResult,
    SupplierOrderResponse,
    SupplierSource,
)
from bookbright.providers import (
    AlibabaProvider,
    EbayProvider,
    ProviderRegistry,
    TemuProvider,
)
from bookbright.scrapers.base import BaseScraper
from bookbright.services.http_fetcher import FetchError
from bookbright.services.image_upload_service import HostedImage, ImageHost

TEMU_URL = (
    "https://www.temu.com/wireless-speaker-g-601099512345678.html"
    "?goods_id=601099512345678"
)
ALIBABA_URL = "https://www.alibaba.com/product-detail/Wireless-Earbuds_1600123456789.html"
EBAY_URL = "https://www.ebay.com/itm/123456789012"

PROVIDER_CLASSES = {
    SupplierSource.TEMU: TemuProvider,
    SupplierSource.ALIBABA: AlibabaProvider,
    SupplierSource.EBAY: EbayProvider,
}


def make_raw(supplier: SupplierSource = SupplierSource.TEMU, **fields) -> RawProduct:
    """RawProduct с заполненными названием, ценой и изображением."""
    defaults = {
        "url": TEMU_URL,
        "title": "Wireless Bluetooth Speaker",
        "price": Price(amount=9.99, currency="USD"),
        "images": ["https://img.example.com/speaker.jpg"],
    }
    defaults.update(fields)
    return RawProduct(supplier=supplier, **defaults)


class FakeScraper(BaseScraper):
    """Скрапер с заранее заданным результатом."""

    def __init__(
        self,
        supplier: SupplierSource,
        result: ScrapeResult | None = None,
        delay: float = 0.0,
    ) -> None:
        self.supplier = supplier
        self.result = result or ScrapeResult.ok(make_raw(supplier))
        self.delay = delay
        self.calls: list[str] = []

    async def scrape_product(self, url: str) -> ScrapeResult:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.result


def make_registry(scrapers: dict[SupplierSource, BaseScraper]) -> ProviderRegistry:
    """Реестр настоящих провайдеров поверх фейковых скраперов."""
    return ProviderRegistry(
        {
            source: (lambda source=source, scraper=scraper: PROVIDER_CLASSES[source](scraper))
            for source, scraper in scrapers.items()
        }
    )


class FakeFetcher:
    """HtmlFetcher, возвращающий готовый HTML или ошибку."""

    def __init__(self, html: str = "", error: FetchError | None = None) -> None:
        self.html = html
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html


class FakeBrowserSession:
    def __init__(self, html: str, title: str, url: str, delay: float) -> None:
        self._html = html
        self._title = title
        self._delay = delay
        self.url = url

    async def navigate(self, url: str) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)
        self.url = self.url or url

    async def scroll(self) -> None:
        return None

    async def content(self) -> str:
        return self._html

    async def title(self) -> str:
        return self._title


class FakeBrowser:
    """BrowserService, считающий открытые и закрытые сессии."""

    def __init__(
        self,
        html: str = "",
        title: str = "Product page",
        url: str = "",
        delay: float = 0.0,
    ) -> None:
        self.html = html
        self.title = title
        self.url = url
        self.delay = delay
        self.opened = 0
        self.released = 0

    @asynccontextmanager
    async def session(self):
        self.opened += 1
        try:
            yield FakeBrowserSession(self.html, self.title, self.url, self.delay)
        finally:
            self.released += 1


class FakeSupplierClient:
    """Клиент API поставщика с заданным ответом или ошибкой."""

    def __init__(
        self,
        supplier_order_id: str | None = "SUP-1001",
        error: SupplierApiError | None = None,
    ) -> None:
        self.supplier_order_id = supplier_order_id
        self.error = error
        self.calls: list[tuple[SupplierSource, str]] = []

    async def create_order(
        self, supplier: SupplierSource, order: Order
    ) -> SupplierOrderResponse:
        self.calls.append((supplier, order.id))
        if self.error is not None:
            raise self.error
        return SupplierOrderResponse(
            supplier_order_id=self.supplier_order_id, status="accepted"
        )

    async def close(self) -> None:
        return None


class FakeImageHost(ImageHost):
    """Хостинг изображений в памяти; может отказать на заданном файле."""

    def __init__(self, configured: bool = True, fail_on: str | None = None) -> None:
        self._configured = configured
        self.fail_on = fail_on
        self.stored: dict[str, str] = {}
        self.deleted: list[str] = []

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def upload(self, image) -> HostedImage:
        if image.filename == self.fail_on:
            raise ImageUploadError(f"Upload of {image.filename} failed: rejected")
        public_id = f"products/{image.filename}"
        url = f"https://res.example.com/{public_id}"
        self.stored[public_id] = url
        return HostedImage(url=url, public_id=public_id)

    async def delete(self, public_id: str) -> None:
        self.deleted.append(public_id)
        self.stored.pop(public_id, None)


def make_order(order_id: str = "order-1", items: list[OrderItem] | None = None) -> Order:
    return Order(
        id=order_id,
        customer_name="Kari Nordmann",
        customer_email="kari@example.no",
        shipping_address="Storgata 1",
        shipping_postal_code="0155",
        shipping_city="Oslo",
        total=499,
        items=items if items is not None else [],
    )
