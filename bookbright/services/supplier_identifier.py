"""Определение поставщика по URL товара."""

from bookbright.models import SupplierSource
from bookbright.utils.url_validation import (
    get_hostname,
    is_valid_alibaba_url,
    is_valid_ebay_url,
    is_valid_temu_url,
)

# Шаблоны хостов не пересекаются, поэтому порядок проверки
# на результат не влияет.
_HOST_CHECKS = (
    (SupplierSource.TEMU, is_valid_temu_url),
    (SupplierSource.ALIBABA, is_valid_alibaba_url),
    (SupplierSource.EBAY, is_valid_ebay_url),
)


def identify_supplier(url: str | None) -> SupplierSource | None:
    """Определяет поставщика по хосту URL.

    Функция чистая и никогда не выбрасывает исключений: пустая
    строка, произвольный текст и None дают None. URL без схемы
    разбирается как https.

    Args:
        url: URL товара (temu.com, temu.to, alibaba.com, 1688.com,
            ebay.com, ebay.co.uk, ebay.us и другие региональные домены).

    Returns:
        Поставщик или None, если хост не распознан.
    """
    if not get_hostname(url):
        return None
    for supplier, check in _HOST_CHECKS:
        if check(url):
            return supplier
    return None
