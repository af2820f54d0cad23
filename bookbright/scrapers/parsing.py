"""Вспомогательные функции разбора страниц товара.

Общие для всех скраперов источники данных:
    - JSON-LD (schema.org Product / Offer);
    - OpenGraph и обычные meta-теги;
    - JSON, встроенный в скрипты страницы (window.rawData и др.);
    - текст цены ("US $1,299.99", "12,50 €", "$1.20 - 3.50").
"""

import json
import re
from typing import Any

from bs4 import BeautifulSoup

from bookbright.models import Price

# Признаки страниц антибот-защиты вместо карточки товара.
BLOCK_MARKERS: tuple[str, ...] = (
    "captcha",
    "punish",
    "/verify",
    "security verification",
    "access denied",
    "robot check",
    "are you a human",
    "unusual traffic",
    "pardon our interruption",
)

# Порядок важен: "US $" и "US$" проверяются раньше одиночного "$".
_CURRENCY_MARKERS: tuple[tuple[str, str], ...] = (
    ("US $", "USD"),
    ("US$", "USD"),
    ("USD", "USD"),
    ("€", "EUR"),
    ("EUR", "EUR"),
    ("£", "GBP"),
    ("GBP", "GBP"),
    ("NOK", "NOK"),
    ("kr", "NOK"),
    ("¥", "CNY"),
    ("CNY", "CNY"),
    ("$", "USD"),
)

# Неразрывные пробелы встречаются как разделитель тысяч.
_NUMBER = re.compile(r"\d[\d.,\u00a0\u202f]*\d|\d")
_RANGE_SEPARATOR = re.compile(r"\d\s*[-–~]\s*\D{0,5}\d")
_SPACES = re.compile(r"\s+")


def make_soup(html: str) -> BeautifulSoup:
    """Разбирает HTML парсером lxml."""
    return BeautifulSoup(html or "", "lxml")


def clean_text(value: Any) -> str:
    """Схлопывает пробельные символы; None и не-строки дают ''."""
    if not isinstance(value, str):
        return ""
    return _SPACES.sub(" ", value).strip()


def parse_number(text: str) -> float | None:
    """Извлекает первое число из текста.

    Понимает разделители тысяч и десятичную запятую:
    "1,299.99" -> 1299.99, "1.299,99" -> 1299.99, "12,50" -> 12.5,
    "1,299" -> 1299.0.
    """
    numbers = _parse_numbers(text)
    return numbers[0] if numbers else None


def _parse_numbers(text: str) -> list[float]:
    if not isinstance(text, str):
        return []
    result: list[float] = []
    for match in _NUMBER.finditer(text):
        value = _to_float(match.group(0))
        if value is not None:
            result.append(value)
    return result


def _to_float(raw: str) -> float | None:
    raw = re.sub(r"[\u00a0\u202f]", "", raw)
    if "," in raw and "." in raw:
        if raw.rfind(",") > raw.rfind("."):
            raw = raw.replace(".", "").replace(",", ".")
        else:
            raw = raw.replace(",", "")
    elif "," in raw:
        groups = raw.split(",")
        if all(len(g) == 3 for g in groups[1:]):
            raw = raw.replace(",", "")
        else:
            raw = raw.replace(",", ".", 1).replace(",", "")
    elif raw.count(".") > 1:
        raw = raw.replace(".", "")
    try:
        return float(raw)
    except ValueError:
        return None


def detect_currency(text: str, default: str = "USD") -> str:
    """Определяет валюту по символу или коду в тексте цены."""
    if not isinstance(text, str):
        return default
    for marker, code in _CURRENCY_MARKERS:
        if marker in text:
            return code
    return default


def parse_price_text(text: str | None, default_currency: str = "USD") -> Price | None:
    """Разбирает текст цены в Price.

    Для диапазона берётся нижняя граница. Нулевая или отрицательная
    сумма считается отсутствием цены.

    Returns:
        Price или None, если число не найдено.
    """
    if not text:
        return None
    amount = parse_number(text)
    if amount is None or amount <= 0:
        return None
    return Price(amount=amount, currency=detect_currency(text, default_currency))


def parse_price_range(text: str | None) -> tuple[float, float] | None:
    """Разбирает диапазон цен вида "$1.20 - 3.50".

    Returns:
        Кортеж (от, до) или None, если в тексте не диапазон.
    """
    if not text or not _RANGE_SEPARATOR.search(text):
        return None
    numbers = _parse_numbers(text)
    if len(numbers) < 2:
        return None
    low, high = numbers[0], numbers[1]
    return (min(low, high), max(low, high))


def coerce_price(value: Any, currency: str | None = None) -> Price | None:
    """Приводит число или строку из JSON к Price."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if value <= 0:
            return None
        return Price(amount=float(value), currency=(currency or "USD").upper())
    if isinstance(value, str):
        return parse_price_text(value, (currency or "USD").upper())
    return None


def absolute_image_url(url: Any) -> str | None:
    """Дополняет protocol-relative URL изображения до https."""
    if not isinstance(url, str):
        return None
    url = url.strip()
    if not url or url.startswith("data:"):
        return None
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return None


def unique_images(urls: list[Any], limit: int | None = None) -> list[str]:
    """Оставляет валидные URL изображений без повторов, в исходном порядке."""
    result: list[str] = []
    seen: set[str] = set()
    for raw in urls:
        url = absolute_image_url(raw)
        if url is None or url in seen:
            continue
        seen.add(url)
        result.append(url)
        if limit is not None and len(result) >= limit:
            break
    return result


def is_blocked_page(*texts: str | None) -> bool:
    """True, если заголовок, URL или HTML похожи на страницу антибота."""
    for text in texts:
        if not text:
            continue
        lowered = text.lower()
        if any(marker in lowered for marker in BLOCK_MARKERS):
            return True
    return False


def meta_content(soup: BeautifulSoup, *names: str) -> str | None:
    """Значение первого найденного meta-тега по property или name."""
    for name in names:
        tag = soup.find("meta", attrs={"property": name}) or soup.find(
            "meta", attrs={"name": name}
        )
        if tag is not None:
            content = clean_text(tag.get("content"))
            if content:
                return content
    return None


def _iter_ld_nodes(data: Any):
    if isinstance(data, list):
        for item in data:
            yield from _iter_ld_nodes(item)
    elif isinstance(data, dict):
        yield data
        graph = data.get("@graph")
        if isinstance(graph, list):
            yield from _iter_ld_nodes(graph)


def _is_product_node(node: dict) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return "Product" in node_type
    return node_type == "Product"


def parse_json_ld(soup: BeautifulSoup) -> dict:
    """Возвращает первый узел schema.org Product из JSON-LD страницы.

    Битые блоки JSON-LD пропускаются.

    Returns:
        Словарь узла Product или пустой словарь.
    """
    for tag in soup.find_all("script", type=lambda t: t and "ld+json" in t):
        try:
            data = json.loads(tag.string or "{}")
        except json.JSONDecodeError:
            continue
        for node in _iter_ld_nodes(data):
            if _is_product_node(node):
                return node
    return {}


def ld_price(node: dict) -> Price | None:
    """Цена из offers узла Product (price или lowPrice)."""
    offers = node.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return None
    currency = offers.get("priceCurrency")
    for key in ("price", "lowPrice"):
        price = coerce_price(offers.get(key), currency)
        if price is not None:
            return price
    return None


def ld_availability(node: dict) -> bool | None:
    offers = node.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return None
    availability = offers.get("availability")
    if not isinstance(availability, str):
        return None
    return not any(
        state in availability for state in ("OutOfStock", "Discontinued", "SoldOut")
    )


def ld_images(node: dict) -> list[str]:
    image = node.get("image")
    if isinstance(image, str):
        return [image]
    if isinstance(image, dict):
        return [image.get("url")] if image.get("url") else []
    if isinstance(image, list):
        result = []
        for item in image:
            if isinstance(item, dict):
                item = item.get("url")
            if isinstance(item, str):
                result.append(item)
        return result
    return []


def ld_specs(node: dict) -> dict[str, str]:
    """Характеристики из additionalProperty и бренда узла Product."""
    specs: dict[str, str] = {}
    brand = node.get("brand")
    if isinstance(brand, dict):
        brand = brand.get("name")
    if isinstance(brand, str) and brand.strip():
        specs["Brand"] = brand.strip()
    properties = node.get("additionalProperty")
    if isinstance(properties, list):
        for prop in properties:
            if not isinstance(prop, dict):
                continue
            name = clean_text(prop.get("name"))
            value = prop.get("value")
            if name and value not in (None, ""):
                specs[name] = clean_text(str(value))
    return specs


def extract_json_assignment(html: str, name: str) -> Any | None:
    """Извлекает JSON, присвоенный переменной в скрипте страницы.

    Ищет конструкции вида `window.rawData = {...}` или
    `productData: {...}` и декодирует объект с помощью
    JSONDecoder.raw_decode, игнорируя хвост скрипта.

    Args:
        html: Исходный HTML страницы.
        name: Имя переменной (rawData, __INIT_DATA__, productData...).

    Returns:
        Декодированный объект или None.
    """
    if not html:
        return None
    decoder = json.JSONDecoder()
    pattern = re.compile(rf"{re.escape(name)}[\"']?\s*[=:]\s*(?=[{{\[])")
    for match in pattern.finditer(html):
        try:
            value, _ = decoder.raw_decode(html, match.end())
        except json.JSONDecodeError:
            continue
        return value
    return None


def script_json(soup: BeautifulSoup, script_id: str) -> Any | None:
    """JSON из <script id="..."> (например __NEXT_DATA__)."""
    tag = soup.find("script", id=script_id)
    if tag is None or not tag.string:
        return None
    try:
        return json.loads(tag.string)
    except json.JSONDecodeError:
        return None


def find_node(data: Any, keys: tuple[str, ...], max_depth: int = 12) -> dict | None:
    """Ищет в JSON первый словарь, содержащий хотя бы один из ключей.

    Обход в ширину: узлы ближе к корню находятся раньше.
    """
    queue: list[tuple[Any, int]] = [(data, 0)]
    while queue:
        node, depth = queue.pop(0)
        if isinstance(node, dict):
            if any(key in node and node[key] not in (None, "") for key in keys):
                return node
            children = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue
        if depth < max_depth:
            queue.extend((child, depth + 1) for child in children)
    return None


def first_value(node: dict, *keys: str) -> Any | None:
    """Значение первого непустого ключа из перечисленных."""
    for key in keys:
        value = node.get(key)
        if value not in (None, "", [], {}):
            return value
    return None
