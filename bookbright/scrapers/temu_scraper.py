"""Скрапер Temu (лёгкая стратегия, без браузера).

Temu отдаёт данные товара прямо в HTML: в объекте window.rawData,
в JSON-LD и в OpenGraph-тегах. Источники опрашиваются по порядку,
каждый следующий заполняет только недостающие поля.
"""

from typing import Any

from bookbright.config import get_logger
from bookbright.models import (
    Price,
    ProductVariant,
    RawProduct,
    ScrapeResult,
    SupplierSource,
)
from bookbright.scrapers.base import BaseScraper
from bookbright.scrapers.parsing import (
    clean_text,
    coerce_price,
    extract_json_assignment,
    find_node,
    first_value,
    ld_availability,
    ld_images,
    ld_price,
    ld_specs,
    make_soup,
    meta_content,
    parse_json_ld,
    parse_price_text,
    unique_images,
)
from bookbright.services.http_fetcher import FetchError, HtmlFetcher
from bookbright.utils.url_validation import extract_temu_params, normalize_url

logger = get_logger("temu_scraper")

_TITLE_KEYS = ("goodsName", "goods_name", "title")
_PRICE_TEXT_KEYS = ("priceStr", "salePriceStr", "minPriceStr")
_PRICE_NUMBER_KEYS = ("price", "salePrice", "minPrice")


class TemuScraper(BaseScraper):
    """Извлекает товар Temu из HTML, загруженного HtmlFetcher.

    Attributes:
        _fetcher: Загрузчик HTML с повторами и проверкой антибота.
    """

    supplier = SupplierSource.TEMU

    def __init__(self, fetcher: HtmlFetcher) -> None:
        self._fetcher = fetcher

    async def scrape_product(self, url: str) -> ScrapeResult:
        url = normalize_url(url)
        logger.info("temu_scrape_started", url=url)

        try:
            html = await self._fetcher.fetch(url)
        except FetchError as e:
            logger.warning("temu_fetch_failed", url=url, error=str(e))
            return ScrapeResult.fail(f"Could not load Temu page: {e}")

        raw = self.parse_html(html, url)
        return self._finish(raw)

    def parse_html(self, html: str, url: str) -> RawProduct:
        """Разбирает HTML страницы Temu в RawProduct (без проверки полноты)."""
        raw = RawProduct(supplier=self.supplier, url=url)

        raw_data = extract_json_assignment(html, "window.rawData")
        if raw_data is None:
            raw_data = extract_json_assignment(html, "rawData")
        if raw_data is not None:
            self._apply_raw_data(raw, raw_data)

        soup = make_soup(html)
        node = parse_json_ld(soup)
        if node:
            raw.title = raw.title or clean_text(node.get("name")) or None
            raw.description = raw.description or clean_text(node.get("description")) or None
            raw.price = raw.price or ld_price(node)
            if raw.availability is None:
                raw.availability = ld_availability(node)
            if not raw.images:
                raw.images = unique_images(ld_images(node))
            for key, value in ld_specs(node).items():
                raw.specs.setdefault(key, value)

        raw.title = raw.title or meta_content(soup, "og:title", "twitter:title")
        raw.description = raw.description or meta_content(
            soup, "og:description", "description"
        )
        if raw.price is None:
            amount = meta_content(soup, "product:price:amount", "og:price:amount")
            currency = meta_content(
                soup, "product:price:currency", "og:price:currency"
            )
            raw.price = coerce_price(amount, currency)
        if not raw.images:
            og_image = meta_content(soup, "og:image")
            gallery = extract_temu_params(url).get("top_gallery_url")
            raw.images = unique_images([og_image, gallery])

        if not raw.images:
            raw.warnings.append("No product images found")
        return raw

    def _apply_raw_data(self, raw: RawProduct, data: Any) -> None:
        goods = find_node(data, _TITLE_KEYS)
        if goods is None:
            logger.debug("temu_raw_data_without_goods", url=raw.url)
            return

        raw.title = clean_text(first_value(goods, *_TITLE_KEYS)) or None
        raw.description = clean_text(
            first_value(goods, "goodsDesc", "description")
        ) or None
        raw.price = self._price_of(goods)

        gallery = first_value(goods, "gallery", "images", "imageList") or []
        raw.images = unique_images(
            [item.get("url") if isinstance(item, dict) else item for item in gallery]
        )

        for prop in goods.get("goodsProperty") or []:
            if not isinstance(prop, dict):
                continue
            key = clean_text(prop.get("key"))
            values = prop.get("values")
            if isinstance(values, list):
                values = ", ".join(str(v) for v in values)
            if key and values:
                raw.specs[key] = clean_text(str(values))

        for sku in goods.get("skuList") or []:
            if isinstance(sku, dict):
                raw.variants.append(self._variant_of(sku))

        if "soldOut" in goods:
            raw.availability = not bool(goods.get("soldOut"))

    @staticmethod
    def _price_of(node: dict) -> Price | None:
        text = first_value(node, *_PRICE_TEXT_KEYS)
        if isinstance(text, str):
            price = parse_price_text(text)
            if price is not None:
                return price
        return coerce_price(first_value(node, *_PRICE_NUMBER_KEYS))

    def _variant_of(self, sku: dict) -> ProductVariant:
        attributes: dict[str, str] = {}
        for spec in sku.get("specs") or []:
            if isinstance(spec, dict) and spec.get("specKey"):
                attributes[clean_text(spec["specKey"])] = clean_text(
                    str(spec.get("specValue", ""))
                )

        price = self._price_of(sku)
        stock = sku.get("stockQuantity", sku.get("stock"))
        images = unique_images([sku.get("thumbUrl")])
        return ProductVariant(
            name=" / ".join(v for v in attributes.values() if v) or None,
            price=price.amount if price else None,
            image=images[0] if images else None,
            attributes=attributes,
            stock=stock if isinstance(stock, int) else None,
        )
