"""Тесты провайдеров и реестра."""

import pytest

from bookbright.errors import ProviderFetchError
from bookbright.models import Price, ProductVariant, RawProduct, ScrapeResult, SupplierSource
from bookbright.providers import AlibabaProvider, EbayProvider, TemuProvider

from fakes import ALIBABA_URL, EBAY_URL, TEMU_URL, FakeScraper, make_raw, make_registry


class TestFetchProduct:
    """Неуспешный скрапинг превращается в исключение"""

    @pytest.mark.asyncio
    async def test_success_returns_raw(self):
        raw = make_raw()
        provider = TemuProvider(FakeScraper(SupplierSource.TEMU, ScrapeResult.ok(raw)))
        assert await provider.fetch_product(TEMU_URL) is raw

    @pytest.mark.asyncio
    async def test_failure_keeps_scraper_message(self):
        scraper = FakeScraper(
            SupplierSource.EBAY, ScrapeResult.fail("eBay blocked the request (robot check)")
        )
        with pytest.raises(ProviderFetchError) as exc_info:
            await EbayProvider(scraper).fetch_product(EBAY_URL)

        assert exc_info.value.message == "eBay blocked the request (robot check)"
        assert exc_info.value.supplier == "ebay"

    @pytest.mark.asyncio
    async def test_failure_without_message(self):
        scraper = FakeScraper(SupplierSource.ALIBABA, ScrapeResult(success=False))
        with pytest.raises(ProviderFetchError, match="Failed to fetch product data from Alibaba"):
            await AlibabaProvider(scraper).fetch_product(ALIBABA_URL)

    @pytest.mark.asyncio
    async def test_url_normalized_before_scrape(self):
        scraper = FakeScraper(SupplierSource.EBAY)
        await EbayProvider(scraper).fetch_product(EBAY_URL + "?_trksid=p1&hash=item1")
        assert scraper.calls == [EBAY_URL]


class TestMapToProduct:
    """Маппинг никогда не падает и заполняет пропуски"""

    def test_empty_raw_gets_defaults(self):
        provider = TemuProvider(FakeScraper(SupplierSource.TEMU))
        mapped = provider.map_to_product(
            RawProduct(supplier=SupplierSource.TEMU, url=TEMU_URL), TEMU_URL
        )

        assert mapped.title == "Temu Product"
        assert mapped.description == ""
        assert mapped.price == Price(amount=9.99, currency="USD")
        assert mapped.images == []
        assert mapped.specs == {}
        assert mapped.variants == []
        assert mapped.availability is True
        assert mapped.url == TEMU_URL

    def test_ebay_placeholder_title(self):
        provider = EbayProvider(FakeScraper(SupplierSource.EBAY))
        mapped = provider.map_to_product(
            RawProduct(supplier=SupplierSource.EBAY, url=EBAY_URL), EBAY_URL
        )
        assert mapped.title == "eBay Product"
        assert mapped.price.currency == "USD"

    def test_unavailable_kept(self):
        provider = TemuProvider(FakeScraper(SupplierSource.TEMU))
        mapped = provider.map_to_product(make_raw(availability=False), TEMU_URL)
        assert mapped.availability is False

    def test_variant_name_defaulted(self):
        provider = TemuProvider(FakeScraper(SupplierSource.TEMU))
        raw = make_raw(variants=[ProductVariant(price=5.0), ProductVariant(name="Red")])
        mapped = provider.map_to_product(raw, TEMU_URL)
        assert [v.name for v in mapped.variants] == ["Standard", "Red"]

    def test_alibaba_moq_and_range(self):
        provider = AlibabaProvider(FakeScraper(SupplierSource.ALIBABA))
        raw = make_raw(
            SupplierSource.ALIBABA,
            url=ALIBABA_URL,
            price=None,
            moq=2,
            price_range=(2.8, 3.5),
            specs={"Color": "Black"},
        )
        mapped = provider.map_to_product(raw, ALIBABA_URL)

        assert mapped.price == Price(amount=2.8, currency="USD")
        assert mapped.specs == {
            "Color": "Black",
            "MOQ": "2",
            "Price range": "2.8 - 3.5 USD",
        }


class TestRegistry:
    """Выбор провайдера по имени и по URL"""

    def setup_method(self):
        self.registry = make_registry(
            {
                SupplierSource.TEMU: FakeScraper(SupplierSource.TEMU),
                SupplierSource.ALIBABA: FakeScraper(SupplierSource.ALIBABA),
                SupplierSource.EBAY: FakeScraper(SupplierSource.EBAY),
            }
        )

    def test_get_provider_by_name(self):
        assert isinstance(self.registry.get_provider("TEMU"), TemuProvider)
        assert isinstance(self.registry.get_provider(SupplierSource.EBAY), EbayProvider)
        assert self.registry.get_provider("amazon") is None
        assert self.registry.get_provider(None) is None

    def test_detect_by_url(self):
        assert isinstance(self.registry.detect_provider(ALIBABA_URL), AlibabaProvider)
        assert self.registry.detect_provider("https://www.amazon.com/dp/1") is None

    def test_explicit_name_must_match_url(self):
        assert self.registry.get_provider_for_url(TEMU_URL, "ebay") is None
        assert isinstance(self.registry.get_provider_for_url(TEMU_URL, "temu"), TemuProvider)

    def test_all_providers(self):
        names = sorted(p.get_name() for p in self.registry.get_all_providers())
        assert names == ["alibaba", "ebay", "temu"]
        assert self.registry.is_url_supported(EBAY_URL)
        assert not self.registry.is_url_supported("https://example.com")
