"""Скрапер eBay (headless-стратегия).

Страница лота eBay: JSON-LD с названием и ценой, затем селекторы
карточки для того, чего в JSON-LD нет (карусель изображений,
item specifics, строка доставки, варианты мульти-лота).
"""

from urllib.parse import urljoin

from bs4 import BeautifulSoup

from bookbright.config import get_logger
from bookbright.models import ProductVariant, RawProduct, ScrapeResult, SupplierSource
from bookbright.scrapers.base import BaseScraper
from bookbright.scrapers.parsing import (
    clean_text,
    coerce_price,
    extract_json_assignment,
    is_blocked_page,
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
from bookbright.services.browser_service import BrowserError, BrowserService
from bookbright.utils.url_validation import normalize_url

logger = get_logger("ebay_scraper")

TITLE_SELECTORS: tuple[str, ...] = (
    "h1.x-item-title__mainTitle span",
    "h1.x-item-title__mainTitle",
    "h1#itemTitle",
    "h1",
)

PRICE_SELECTORS: tuple[str, ...] = (
    ".x-price-primary span.ux-textspans",
    ".x-price-primary",
    "#prcIsum",
    "#mm-saleDscPrc",
    "[itemprop='price']",
)

IMAGE_SELECTORS: tuple[str, ...] = (
    ".ux-image-carousel-item img",
    ".ux-image-filmstrip-carousel img",
    "#icImg",
)

SHIPPING_SELECTORS: tuple[str, ...] = (
    ".ux-labels-values--shipping .ux-labels-values__values",
    ".ux-labels-values--deliverto .ux-labels-values__values",
    "#fshippingCost",
)

_IMAGE_ATTRS = ("data-zoom-src", "data-src", "src")
_OUT_OF_STOCK_MARKERS = ("this listing has ended", "out of stock", "sold out")


class EbayScraper(BaseScraper):
    """Извлекает лот eBay из страницы, отрисованной в браузере.

    Attributes:
        _browser: Фабрика изолированных браузерных сессий.
    """

    supplier = SupplierSource.EBAY

    def __init__(self, browser: BrowserService) -> None:
        self._browser = browser

    async def scrape_product(self, url: str) -> ScrapeResult:
        url = normalize_url(url)
        logger.info("ebay_scrape_started", url=url)

        try:
            async with self._browser.session() as session:
                await session.navigate(url)
                title = await session.title()
                if is_blocked_page(title, session.url):
                    logger.warning("ebay_blocked", url=url, title=title[:80])
                    return ScrapeResult.fail("eBay blocked the request (robot check)")
                html = await session.content()
        except BrowserError as e:
            return ScrapeResult.fail(f"Could not load eBay page: {e}")

        return self._finish(self.parse_html(html, url))

    def parse_html(self, html: str, url: str) -> RawProduct:
        """Разбирает HTML страницы лота eBay в RawProduct."""
        raw = RawProduct(supplier=self.supplier, url=url)
        soup = make_soup(html)

        node = parse_json_ld(soup)
        if node:
            raw.title = clean_text(node.get("name")) or None
            raw.description = clean_text(node.get("description")) or None
            raw.price = ld_price(node)
            raw.availability = ld_availability(node)
            raw.images = unique_images(ld_images(node))
            raw.specs.update(ld_specs(node))

        if not raw.title:
            raw.title = self._first_text(soup, TITLE_SELECTORS) or meta_content(
                soup, "og:title"
            )

        if raw.price is None:
            raw.price = parse_price_text(self._first_text(soup, PRICE_SELECTORS))

        carousel = self._carousel_images(soup, url)
        if carousel:
            raw.images = unique_images(raw.images + carousel)
        if not raw.images:
            raw.images = unique_images([meta_content(soup, "og:image")])

        for key, value in self._item_specifics(soup).items():
            raw.specs.setdefault(key, value)

        raw.shipping_estimate = self._first_text(soup, SHIPPING_SELECTORS)
        raw.variants = self._variations(html)

        if raw.availability is None:
            page_text = soup.get_text(" ", strip=True).lower()
            if any(marker in page_text for marker in _OUT_OF_STOCK_MARKERS):
                raw.availability = False
        return raw

    @staticmethod
    def _first_text(soup: BeautifulSoup, selectors: tuple[str, ...]) -> str | None:
        for selector in selectors:
            tag = soup.select_one(selector)
            if tag is not None:
                text = clean_text(tag.get_text(" ", strip=True))
                if text:
                    return text
        return None

    @staticmethod
    def _carousel_images(soup: BeautifulSoup, url: str) -> list[str]:
        found: list[str] = []
        for selector in IMAGE_SELECTORS:
            for img in soup.select(selector):
                src = next((img.get(a) for a in _IMAGE_ATTRS if img.get(a)), None)
                if src:
                    found.append(src if src.startswith("//") else urljoin(url, src))
        return found

    @staticmethod
    def _item_specifics(soup: BeautifulSoup) -> dict[str, str]:
        """Блок "Item specifics": пары подпись/значение."""
        specs: dict[str, str] = {}
        for row in soup.select(".ux-layout-section-evo__col, .ux-labels-values"):
            label = row.select_one(".ux-labels-values__labels")
            value = row.select_one(".ux-labels-values__values")
            if label is None or value is None:
                continue
            key = clean_text(label.get_text(" ", strip=True)).rstrip(":")
            text = clean_text(value.get_text(" ", strip=True))
            if key and text and len(key) < 100 and len(text) < 500:
                specs[key] = text
        return specs

    @staticmethod
    def _variations(html: str) -> list[ProductVariant]:
        """Варианты мульти-лота из встроенного MSKU-JSON.

        В MSKU лежат меню выбора (selectionMenus) и комбинации
        (variationCombinations -> variationId); цены и остатки - в
        variations по variationId.
        """
        msku = extract_json_assignment(html, "MSKU")
        if not isinstance(msku, dict):
            return []

        values = msku.get("menuItemMap") or {}
        menus = {
            str(menu.get("menuId")): clean_text(menu.get("displayLabel"))
            for menu in msku.get("selectionMenus") or []
            if isinstance(menu, dict)
        }
        variations = msku.get("variationsMap") or {}

        result: list[ProductVariant] = []
        for combo_key, variation_id in (msku.get("variationCombinations") or {}).items():
            variation = variations.get(str(variation_id)) or {}
            attributes: dict[str, str] = {}
            for value_id in str(combo_key).split("_"):
                item = values.get(value_id) or {}
                label = menus.get(str(item.get("menuId") or ""), "Option")
                name = clean_text(item.get("displayName") or item.get("valueName"))
                if name:
                    attributes[label or "Option"] = name

            bin_price = ((variation.get("binModel") or {}).get("price") or {}).get(
                "value"
            ) or {}
            price = coerce_price(bin_price.get("value"), bin_price.get("currency"))

            quantity = (variation.get("quantity") or {}).get("totalQuantity")
            result.append(
                ProductVariant(
                    name=" / ".join(attributes.values()) or None,
                    price=price.amount if price else None,
                    attributes=attributes,
                    stock=quantity if isinstance(quantity, int) else None,
                )
            )
        return result
