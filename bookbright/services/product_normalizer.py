"""Нормализация товара: цены в локальной валюте, название, теги, варианты.

Курс USD фиксированный (USD_TO_LOCAL_RATE), живого источника курсов
нет. Цена варианта ниже 100 считается долларовой и пересчитывается
по курсу, цена от 100 включительно считается уже локальной. Эвристика
ошибается для дорогих долларовых и дешёвых локальных вариантов; это
принятое упрощение, граница 100 зафиксирована тестами.
"""

import math
import re

from bookbright.config import PricingSettings, get_logger
from bookbright.models import (
    ImportedProduct,
    MappedProduct,
    NormalizedVariant,
    ProductVariant,
    SupplierSource,
)
from bookbright.utils.titles import improve_title

logger = get_logger("product_normalizer")

DEFAULT_VARIANT_NAME = "Standard"
LOCAL_PRICE_THRESHOLD = 100
SHORT_DESCRIPTION_LIMIT = 150

# Категории витрины по ключевым словам названия, первое совпадение.
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Mobil & Tilbehør", ("phone", "iphone", "mobil")),
    ("Datamaskiner", ("computer", "laptop", "pc", "tastatur", "keyboard")),
    ("TV & Lyd", ("tv", "speaker", "høyttaler")),
    ("Gaming", ("game", "gaming")),
    ("Hjem & Fritid", ("home", "hjem")),
)


def round_half_up(value: float) -> int:
    """Округление к ближайшему целому, половины вверх (2.5 -> 3)."""
    return math.floor(value + 0.5)


def detect_category(title: str, default: str) -> str:
    """Категория по ключевым словам названия (целые слова, без регистра)."""
    lowered = title.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if re.search(rf"\b{re.escape(keyword)}s?\b", lowered):
                return category
    return default


def short_description(title: str) -> str:
    """Название, обрезанное до 147 символов с "...", если длиннее 150."""
    if len(title) > SHORT_DESCRIPTION_LIMIT:
        return title[: SHORT_DESCRIPTION_LIMIT - 3] + "..."
    return title


class ProductNormalizer:
    """Превращает MappedProduct в ImportedProduct.

    Чистая детерминированная функция над настройками ценообразования:
    повторная нормализация одного и того же товара даёт тот же результат.

    Attributes:
        _pricing: Курс, наценка и лимиты.
    """

    def __init__(self, pricing: PricingSettings) -> None:
        self._pricing = pricing

    def convert(self, amount: float, currency: str) -> float:
        """Пересчитывает сумму в локальную валюту (только USD)."""
        if currency.upper() == "USD":
            return amount * self._pricing.usd_to_local_rate
        return amount

    def normalize(
        self, mapped: MappedProduct, supplier: SupplierSource
    ) -> ImportedProduct:
        """Нормализует товар.

        Args:
            mapped: Товар после маппинга провайдером.
            supplier: Поставщик, выбранный для импорта.

        Returns:
            ImportedProduct с ценами в локальной валюте и минимум
            одним вариантом.
        """
        pricing = self._pricing
        converted = self.convert(mapped.price.amount, mapped.price.currency)

        suggested = round_half_up(converted * pricing.markup_factor)
        compare_at = round_half_up(suggested * pricing.compare_at_factor)
        images = list(mapped.images[: pricing.max_images])

        variants = [
            self._normalize_variant(v, converted, images) for v in mapped.variants
        ]
        if not variants:
            variants = [self._default_variant(converted, images)]

        return ImportedProduct(
            name=improve_title(mapped.title),
            price=suggested,
            suggested_price=suggested,
            compare_at_price=compare_at,
            supplier_price=round_half_up(converted),
            description=mapped.description,
            short_description=short_description(mapped.title),
            category=detect_category(mapped.title, pricing.default_category),
            images=images,
            tags=list(mapped.specs.keys())[: pricing.max_tags],
            supplier=supplier,
            supplier_url=mapped.url,
            specs=dict(mapped.specs),
            variants=variants,
            shipping_estimate=mapped.shipping_estimate,
            availability=mapped.availability,
        )

    def _default_variant(self, converted: float, images: list[str]) -> NormalizedVariant:
        return NormalizedVariant(
            name=DEFAULT_VARIANT_NAME,
            price=round_half_up(converted),
            supplier_price=round_half_up(converted),
            stock=self._pricing.default_stock,
            attributes={},
            image=images[0] if images else None,
        )

    def _local_price(self, amount: float) -> int:
        if amount < LOCAL_PRICE_THRESHOLD:
            return round_half_up(amount * self._pricing.usd_to_local_rate)
        return round_half_up(amount)

    def _normalize_variant(
        self,
        variant: ProductVariant,
        converted: float,
        images: list[str],
    ) -> NormalizedVariant:
        if variant.price is None:
            price = round_half_up(converted)
        else:
            price = self._local_price(variant.price)

        compare_at = None
        if variant.compare_at_price:
            compare_at = self._local_price(variant.compare_at_price)

        if variant.supplier_price is None:
            supplier_price = round_half_up(converted / self._pricing.markup_factor)
        else:
            supplier_price = round_half_up(variant.supplier_price)

        if variant.stock is None:
            stock = self._pricing.default_stock
        else:
            stock = max(0, variant.stock)

        return NormalizedVariant(
            name=variant.name or DEFAULT_VARIANT_NAME,
            price=price,
            supplier_price=supplier_price,
            stock=stock,
            attributes=dict(variant.attributes),
            compare_at_price=compare_at,
            image=variant.image or (images[0] if images else None),
        )
