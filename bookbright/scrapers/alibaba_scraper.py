"""Скрапер Alibaba (headless-стратегия).

Карточка Alibaba отрисовывается JavaScript, поэтому страница
загружается в изолированной браузерной сессии. Разбор идёт от
структурированных данных к вёрстке:
    1. JSON-LD (schema.org Product);
    2. встроенный JSON (__INIT_DATA__, __NEXT_DATA__, productData);
    3. HTML-селекторы.
Каждый следующий шаг заполняет только недостающие поля.
"""

import re
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

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
    is_blocked_page,
    ld_availability,
    ld_images,
    ld_price,
    ld_specs,
    make_soup,
    meta_content,
    parse_json_ld,
    parse_number,
    parse_price_range,
    parse_price_text,
    script_json,
    unique_images,
)
from bookbright.services.browser_service import BrowserError, BrowserService
from bookbright.utils.url_validation import normalize_url

logger = get_logger("alibaba_scraper")

BLOCKED_MESSAGE = "Alibaba blocked the request (captcha/verify page)"

TITLE_SELECTORS: tuple[str, ...] = (
    ".module-pc-detail-heading .title",
    "h1.product-title",
    "h1.detail-title",
    ".product-title",
    ".detail-title",
    "h1",
)

PRICE_SELECTORS: tuple[str, ...] = (
    ".price .price-text",
    ".price-range",
    ".product-price",
    ".detail-price",
    ".unit-price",
    "[class*='price']",
)

IMAGE_SELECTORS: tuple[str, ...] = (
    ".product-image-gallery img",
    ".detail-images img",
    ".product-images img",
    "[class*='image-gallery'] img",
    "[class*='gallery'] img",
    ".swiper-slide img",
)

SPEC_SELECTORS: tuple[str, ...] = (
    ".do-entry-list li",
    ".spec-list li",
    ".product-specs li",
    ".attributes li",
    "table.specs tr",
)

SHIPPING_SELECTORS: tuple[str, ...] = (
    ".module-pc-ship .text",
    "[class*='shipping']",
    "[class*='delivery']",
)

_IMAGE_ATTRS = ("src", "data-src", "data-lazy-src", "data-original")
_MOQ_PATTERN = re.compile(
    r"(?:MOQ|Min\.?\s*Order|Minimum(?:\s+order)?)\s*(?:quantity)?\s*:?\s*(\d[\d,]*)",
    re.IGNORECASE,
)

_TITLE_KEYS = ("subject", "productTitle", "productName", "title")
_PRICE_KEYS = (
    "price",
    "productPrice",
    "unitPrice",
    "salePrice",
    "priceRange",
    "ladderPrices",
)
_MOQ_KEYS = ("moq", "minOrderQuantity", "minimumOrderQuantity")


class AlibabaScraper(BaseScraper):
    """Извлекает товар Alibaba из страницы, отрисованной в браузере.

    Attributes:
        _browser: Фабрика изолированных браузерных сессий.
    """

    supplier = SupplierSource.ALIBABA

    def __init__(self, browser: BrowserService) -> None:
        self._browser = browser

    async def scrape_product(self, url: str) -> ScrapeResult:
        url = normalize_url(url)
        logger.info("alibaba_scrape_started", url=url)

        try:
            async with self._browser.session() as session:
                await session.navigate(url)
                title = await session.title()
                if is_blocked_page(title, session.url):
                    logger.warning("alibaba_blocked", url=url, title=title[:80])
                    return ScrapeResult.fail(BLOCKED_MESSAGE)
                await session.scroll()
                html = await session.content()
        except BrowserError as e:
            return ScrapeResult.fail(f"Could not load Alibaba page: {e}")

        raw = self.parse_html(html, url)
        if not raw.title and is_blocked_page(html[:20000]):
            logger.warning("alibaba_blocked", url=url)
            return ScrapeResult.fail(BLOCKED_MESSAGE)
        return self._finish(raw)

    def parse_html(self, html: str, url: str) -> RawProduct:
        """Разбирает HTML карточки Alibaba в RawProduct."""
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

        for embedded in self._embedded_candidates(html, soup):
            self._apply_embedded(raw, embedded)

        self._apply_html(raw, soup, url)

        if raw.price is None and raw.price_range is not None:
            raw.price = Price(amount=raw.price_range[0])
        return raw

    @staticmethod
    def _embedded_candidates(html: str, soup: BeautifulSoup) -> list[Any]:
        candidates = [
            extract_json_assignment(html, "window.__INIT_DATA__"),
            script_json(soup, "__NEXT_DATA__"),
            extract_json_assignment(html, "productData"),
        ]
        return [c for c in candidates if c is not None]

    def _apply_embedded(self, raw: RawProduct, data: Any) -> None:
        product = find_node(data, _TITLE_KEYS)
        if product is None:
            return

        raw.title = raw.title or clean_text(first_value(product, *_TITLE_KEYS)) or None
        raw.description = raw.description or clean_text(
            first_value(product, "description", "productDescription")
        ) or None

        price_node = find_node(data, _PRICE_KEYS)
        if price_node is not None:
            price, price_range = self._price_of(price_node)
            raw.price = raw.price or price
            raw.price_range = raw.price_range or price_range

        if raw.moq is None:
            moq_node = find_node(data, _MOQ_KEYS)
            if moq_node is not None:
                moq = parse_number(str(first_value(moq_node, *_MOQ_KEYS)))
                raw.moq = int(moq) if moq else None

        if not raw.images:
            images = first_value(product, "images", "imageList", "mediaItems") or []
            raw.images = unique_images(
                [
                    first_value(item, "imageUrl", "url", "big")
                    if isinstance(item, dict)
                    else item
                    for item in images
                ]
            )

        for item in product.get("skuList") or product.get("options") or []:
            if isinstance(item, dict):
                raw.variants.append(self._variant_of(item))

    @staticmethod
    def _price_of(node: dict) -> tuple[Price | None, tuple[float, float] | None]:
        """Цена и диапазон из узла встроенного JSON.

        Поддерживаются число, текст ("$1.20 - 3.50"), объект
        {from, to, currency} и лестница оптовых цен.
        """
        currency = node.get("currency") or node.get("priceCurrency")
        ladder = node.get("ladderPrices")
        if isinstance(ladder, list):
            amounts = [
                p.get("price")
                for p in ladder
                if isinstance(p, dict) and isinstance(p.get("price"), (int, float))
            ]
            if amounts:
                low, high = min(amounts), max(amounts)
                return coerce_price(low, currency), (float(low), float(high))

        value = first_value(node, *_PRICE_KEYS)
        if isinstance(value, dict):
            currency = value.get("currency") or currency
            low = first_value(value, "fromPrice", "from", "minPrice", "min", "amount")
            high = first_value(value, "toPrice", "to", "maxPrice", "max")
            price = coerce_price(low, currency)
            if price is not None and isinstance(high, (int, float)):
                return price, (price.amount, float(high))
            return price, None
        if isinstance(value, str):
            return parse_price_text(value, (currency or "USD").upper()), parse_price_range(value)
        return coerce_price(value, currency), None

    @staticmethod
    def _variant_of(item: dict) -> ProductVariant:
        attributes = item.get("attributes")
        if not isinstance(attributes, dict):
            attributes = {}
        price = coerce_price(item.get("price"))
        images = unique_images([item.get("image"), item.get("imageUrl")])
        stock = item.get("stock")
        return ProductVariant(
            name=clean_text(first_value(item, "name", "label")) or None,
            price=price.amount if price else None,
            image=images[0] if images else None,
            attributes={str(k): str(v) for k, v in attributes.items()},
            stock=stock if isinstance(stock, int) else None,
        )

    def _apply_html(self, raw: RawProduct, soup: BeautifulSoup, url: str) -> None:
        if not raw.title:
            raw.title = self._first_text(soup, TITLE_SELECTORS, min_length=4)
            raw.title = raw.title or meta_content(soup, "og:title")

        if raw.price is None:
            text = self._first_text(soup, PRICE_SELECTORS)
            if text is None:
                tag = soup.select_one("[data-price]")
                text = tag.get("data-price") if tag is not None else None
            raw.price = parse_price_text(text)
            raw.price_range = raw.price_range or parse_price_range(text)

        if not raw.images:
            found: list[str] = []
            for selector in IMAGE_SELECTORS:
                for img in soup.select(selector):
                    src = next((img.get(a) for a in _IMAGE_ATTRS if img.get(a)), None)
                    if src:
                        found.append(src if src.startswith("//") else urljoin(url, src))
            found.append(meta_content(soup, "og:image"))
            raw.images = unique_images(found)

        if not raw.specs:
            raw.specs.update(self._specs_from_html(soup))

        if raw.moq is None:
            match = _MOQ_PATTERN.search(soup.get_text(" ", strip=True))
            if match:
                raw.moq = int(match.group(1).replace(",", ""))

        if not raw.description:
            raw.description = meta_content(soup, "og:description", "description")

        if not raw.shipping_estimate:
            raw.shipping_estimate = self._first_text(soup, SHIPPING_SELECTORS)

    @staticmethod
    def _first_text(
        soup: BeautifulSoup, selectors: tuple[str, ...], min_length: int = 1
    ) -> str | None:
        for selector in selectors:
            tag = soup.select_one(selector)
            if tag is None:
                continue
            text = clean_text(tag.get_text(" ", strip=True))
            if len(text) >= min_length:
                return text
        return None

    @staticmethod
    def _specs_from_html(soup: BeautifulSoup) -> dict[str, str]:
        specs: dict[str, str] = {}
        for selector in SPEC_SELECTORS:
            for row in soup.select(selector):
                cells = row.find_all("td")
                if cells:
                    key = clean_text(cells[0].get_text())
                    value = clean_text(cells[-1].get_text())
                else:
                    key_tag = row.select_one(".do-entry-item, .spec-key, .spec-name")
                    value_tag = row.select_one(".do-entry-value, .spec-value, .spec-val")
                    key = clean_text(key_tag.get_text()) if key_tag else ""
                    value = clean_text(value_tag.get_text()) if value_tag else ""
                    if not key or not value:
                        key, _, value = clean_text(row.get_text(" ")).partition(":")
                        key, value = key.strip(), value.strip()
                if key and value and len(key) < 100 and len(value) < 500:
                    specs[key] = value
        return specs
