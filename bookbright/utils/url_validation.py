"""Нормализация и валидация URL товаров поставщиков.

Нормализация приводит разные ссылки на один и тот же товар
(с трекинг-параметрами, http, мобильным поддоменом) к одному виду,
чтобы повторный импорт находил уже сохранённый товар по supplier_url.
Валидация работает "закрыто": всё, что не удалось разобрать
или что не похоже на страницу поставщика, отклоняется до сети.
"""

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from bookbright.config import get_logger
from bookbright.models import SupplierSource

logger = get_logger("url_validation")

TRACKING_PARAMS: frozenset[str] = frozenset({
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "ref",
    "referrer",
    "affiliate_id",
    "aff_id",
    "click_id",
    "gclid",
    "fbclid",
    "twclid",
    "li_fat_id",
    "mc_cid",
    "mc_eid",
    "_ga",
    "_gid",
    # Alibaba
    "spm",
    "scm",
    "trace",
    "tracelog",
    # eBay
    "_trkparms",
    "_trksid",
    "hash",
    "mkevt",
    "mkcid",
    "mkrid",
    "campid",
    "toolid",
    "customid",
})

# Параметры, по которым Temu опознаёт товар и галерею.
TEMU_ESSENTIAL_PARAMS: tuple[str, ...] = (
    "goods_id",
    "top_gallery_url",
    "spec_gallery_id",
)

# Хост должен оканчиваться на <бренд>.<TLD>, поэтому наборы
# шаблонов не пересекаются: у хоста ровно один такой суффикс.
_REGIONAL_TLD = r"(com|[a-z]{2}|co\.[a-z]{2}|com\.[a-z]{2})"
_TEMU_HOST = re.compile(rf"(^|\.)temu\.{_REGIONAL_TLD}$")
_ALIBABA_HOST = re.compile(r"(^|\.)(alibaba\.com|1688\.com)$")
_EBAY_HOST = re.compile(rf"(^|\.)ebay\.{_REGIONAL_TLD}$")

_ALIBABA_PRODUCT_ID = re.compile(r"/product-detail/(?:[^/]*?_)?(\d+)")
_EBAY_ITEM_ID = re.compile(r"/itm/(?:[^/]+/)?(\d{9,})")


def _with_scheme(url: str) -> str:
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def get_hostname(url: str | None) -> str:
    """Возвращает хост URL в нижнем регистре или пустую строку.

    Схема необязательна: "temu.com/x" разбирается как https.
    """
    if not url or not isinstance(url, str):
        return ""
    trimmed = url.strip()
    if not trimmed or any(ch.isspace() for ch in trimmed):
        return ""
    try:
        return (urlsplit(_with_scheme(trimmed)).hostname or "").lower()
    except ValueError:
        return ""


def normalize_url(url: str) -> str:
    """Приводит URL товара к каноническому виду.

    - обрезает пробелы и добавляет https://, если схемы нет;
    - всегда использует https;
    - удаляет трекинг-параметры и фрагмент, сохраняя параметры
      товара Temu (goods_id и др.);
    - приводит хосты Temu, Alibaba и 1688 к www-виду.

    Args:
        url: Исходный URL.

    Returns:
        Нормализованный URL. Если URL не удаётся разобрать,
        возвращается обрезанная исходная строка.
    """
    if not url or not isinstance(url, str):
        return url

    trimmed = url.strip()
    if not trimmed:
        return trimmed

    try:
        parts = urlsplit(_with_scheme(trimmed))
        hostname = (parts.hostname or "").lower()
        if not hostname:
            return trimmed

        if _TEMU_HOST.search(hostname):
            hostname = "www.temu.com"
        elif _ALIBABA_HOST.search(hostname):
            if hostname.endswith("1688.com"):
                hostname = "www.1688.com"
            else:
                hostname = "www.alibaba.com"

        netloc = hostname
        if parts.port and parts.port not in (80, 443):
            netloc = f"{hostname}:{parts.port}"

        query = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key.lower() not in TRACKING_PARAMS
            and not key.lower().startswith("utm_")
        ]

        return urlunsplit(
            ("https", netloc, parts.path or "/", urlencode(query), "")
        )
    except ValueError as e:
        logger.warning("url_normalize_failed", url=trimmed, error=str(e))
        return trimmed


def is_valid_temu_url(url: str | None) -> bool:
    """True, если хост принадлежит Temu (temu.com и региональные домены)."""
    return bool(_TEMU_HOST.search(get_hostname(url)))


def is_valid_alibaba_url(url: str | None) -> bool:
    """True, если хост - alibaba.com или 1688.com (включая поддомены)."""
    return bool(_ALIBABA_HOST.search(get_hostname(url)))


def is_valid_ebay_url(url: str | None) -> bool:
    """True, если хост принадлежит eBay (ebay.com, ebay.co.uk, ebay.de ...)."""
    return bool(_EBAY_HOST.search(get_hostname(url)))


def is_alibaba_product_url(url: str | None) -> bool:
    """True, если путь похож на карточку товара Alibaba (/product-detail/)."""
    if not get_hostname(url):
        return False
    path = urlsplit(_with_scheme(url.strip())).path.lower()
    return "/product-detail/" in path


_VALIDATORS = {
    SupplierSource.TEMU: is_valid_temu_url,
    SupplierSource.ALIBABA: is_valid_alibaba_url,
    SupplierSource.EBAY: is_valid_ebay_url,
}


def is_valid_supplier_url(url: str | None, supplier: SupplierSource) -> bool:
    """Проверяет URL валидатором конкретного поставщика."""
    return _VALIDATORS[supplier](url)


def validate_and_normalize_url(
    url: str | None, supplier: SupplierSource
) -> str | None:
    """Валидирует URL для поставщика и нормализует его.

    Returns:
        Нормализованный URL или None, если URL пуст или не
        принадлежит поставщику.
    """
    if not url or not isinstance(url, str) or not url.strip():
        return None
    if not is_valid_supplier_url(url, supplier):
        return None
    return normalize_url(url)


def extract_temu_params(url: str) -> dict[str, str]:
    """Извлекает параметры товара Temu (goods_id, галереи) из URL."""
    if not get_hostname(url):
        return {}
    query = dict(parse_qsl(urlsplit(normalize_url(url)).query))
    return {key: query[key] for key in TEMU_ESSENTIAL_PARAMS if query.get(key)}


def extract_temu_goods_id(url: str) -> str | None:
    """goods_id товара Temu из параметров или из пути вида '...-g-<id>.html'."""
    goods_id = extract_temu_params(url).get("goods_id")
    if goods_id:
        return goods_id
    match = re.search(r"-g-(\d+)\.html", url or "")
    return match.group(1) if match else None


def extract_alibaba_product_id(url: str) -> str | None:
    """ID товара Alibaba из пути /product-detail/<slug>_<id>.html."""
    if not get_hostname(url):
        return None
    match = _ALIBABA_PRODUCT_ID.search(urlsplit(normalize_url(url)).path)
    return match.group(1) if match else None


def extract_ebay_item_id(url: str) -> str | None:
    """Номер лота eBay из пути /itm/<id> или /itm/<slug>/<id>."""
    if not get_hostname(url):
        return None
    match = _EBAY_ITEM_ID.search(urlsplit(normalize_url(url)).path)
    return match.group(1) if match else None
