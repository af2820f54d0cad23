"""Доменные модели товара на разных этапах импорта.

    - RawProduct: то, что удалось извлечь со страницы поставщика
    - ScrapeResult: результат скрапера (успех/ошибка без исключений)
    - MappedProduct: канонический вид после маппинга провайдером
    - ImportedProduct: товар с пересчитанными ценами и вариантами,
      готовый к сохранению в витрину
    - StoredProduct: сохранённая строка товара
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class SupplierSource(str, Enum):
    """Поддерживаемые поставщики. Набор закрыт."""

    TEMU = "temu"
    ALIBABA = "alibaba"
    EBAY = "ebay"

    @classmethod
    def parse(cls, value: str | None) -> "SupplierSource | None":
        """Возвращает поставщика по имени (без учёта регистра) или None."""
        if not value or not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Price:
    """Цена в валюте поставщика.

    Attributes:
        amount: Сумма.
        currency: ISO-код валюты в верхнем регистре.
    """

    amount: float
    currency: str = "USD"


@dataclass(frozen=True)
class ProductVariant:
    """Вариант товара (цвет, размер и т.п.) в том виде, как его дал поставщик.

    Все поля, кроме attributes, могут отсутствовать - политику
    заполнения пробелов определяет ProductNormalizer.
    """

    name: str | None = None
    price: float | None = None
    compare_at_price: float | None = None
    supplier_price: float | None = None
    image: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    stock: int | None = None


@dataclass
class RawProduct:
    """Сырые данные товара, извлечённые скрапером.

    Гарантированы только supplier и url. Скрапер возвращает успех
    лишь при наличии title и price, остальные поля - по возможности.

    Attributes:
        supplier: Поставщик, с чьей страницы получены данные.
        url: Нормализованный URL страницы.
        title: Название товара.
        price: Цена (может быть нижней границей диапазона).
        description: Описание (текст или HTML).
        images: Упорядоченный список URL изображений.
        specs: Характеристики "название -> значение".
        variants: Варианты товара.
        shipping_estimate: Срок/стоимость доставки в свободной форме.
        availability: Доступен ли товар к заказу.
        moq: Минимальная партия (Alibaba).
        price_range: Диапазон цен (от, до), если поставщик дал диапазон.
        warnings: Некритичные замечания скрапера.
    """

    supplier: SupplierSource
    url: str
    title: str | None = None
    price: Price | None = None
    description: str | None = None
    images: list[str] = field(default_factory=list)
    specs: dict[str, str] = field(default_factory=dict)
    variants: list[ProductVariant] = field(default_factory=list)
    shipping_estimate: str | None = None
    availability: bool | None = None
    moq: int | None = None
    price_range: tuple[float, float] | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScrapeResult:
    """Результат работы скрапера.

    Скрапер не выбрасывает исключения для ожидаемых сбоев (структура
    страницы изменилась, товар снят, блокировка) - вместо этого
    возвращает success=False и читаемую причину в error.
    """

    success: bool
    data: RawProduct | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: RawProduct) -> "ScrapeResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ScrapeResult":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class MappedProduct:
    """Канонический товар после маппинга провайдером.

    Все поля заполнены: у каждого есть детерминированное значение
    по умолчанию, поэтому маппинг никогда не падает.
    """

    supplier: SupplierSource
    url: str
    title: str
    description: str
    price: Price
    images: list[str] = field(default_factory=list)
    specs: dict[str, str] = field(default_factory=dict)
    shipping_estimate: str | None = None
    availability: bool = True
    variants: list[ProductVariant] = field(default_factory=list)


@dataclass(frozen=True)
class NormalizedVariant:
    """Вариант, готовый к сохранению: цены в локальной валюте, целые."""

    name: str
    price: int
    supplier_price: int
    stock: int
    attributes: dict[str, str] = field(default_factory=dict)
    compare_at_price: int | None = None
    image: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "price": self.price,
            "compareAtPrice": self.compare_at_price,
            "supplierPrice": self.supplier_price,
            "image": self.image,
            "attributes": dict(self.attributes),
            "stock": self.stock,
        }


@dataclass(frozen=True)
class ImportedProduct:
    """Товар после нормализации: пересчитанные цены, теги, варианты.

    Инвариант: variants содержит как минимум один элемент.
    """

    name: str
    price: int
    suggested_price: int
    compare_at_price: int
    supplier_price: int
    description: str
    short_description: str
    category: str
    images: list[str]
    tags: list[str]
    supplier: SupplierSource
    supplier_url: str
    specs: dict[str, str]
    variants: list[NormalizedVariant]
    shipping_estimate: str | None = None
    availability: bool = True

    def to_dict(self) -> dict:
        """JSON-представление для админки (camelCase)."""
        return {
            "name": self.name,
            "price": self.price,
            "suggestedPrice": self.suggested_price,
            "compareAtPrice": self.compare_at_price,
            "supplierPrice": self.supplier_price,
            "description": self.description,
            "shortDescription": self.short_description,
            "category": self.category,
            "images": list(self.images),
            "tags": list(self.tags),
            "supplier": self.supplier.value,
            "supplierUrl": self.supplier_url,
            "specs": dict(self.specs),
            "shippingEstimate": self.shipping_estimate,
            "availability": self.availability,
            "variants": [v.to_dict() for v in self.variants],
        }


@dataclass(frozen=True)
class StoredVariant:
    """Сохранённый вариант товара."""

    id: str
    name: str
    price: int
    supplier_price: int
    stock: int
    attributes: dict[str, str] = field(default_factory=dict)
    compare_at_price: int | None = None
    image: str | None = None
    sort_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class StoredProduct:
    """Товар витрины, прочитанный из хранилища."""

    id: str
    name: str
    slug: str
    sku: str
    price: int
    compare_at_price: int | None
    supplier_price: int | None
    description: str
    short_description: str
    category: str
    images: list[str]
    tags: list[str]
    supplier_name: SupplierSource | None
    supplier_url: str | None
    stock: int = 0
    is_active: bool = True
    is_hero: bool = False
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    variants: list[StoredVariant] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "sku": self.sku,
            "price": self.price,
            "compareAtPrice": self.compare_at_price,
            "description": self.description,
            "shortDescription": self.short_description,
            "category": self.category,
            "images": list(self.images),
            "tags": list(self.tags),
            "stock": self.stock,
            "isHero": self.is_hero,
            "variants": [
                {
                    "id": v.id,
                    "name": v.name,
                    "price": v.price,
                    "compareAtPrice": v.compare_at_price,
                    "image": v.image,
                    "attributes": dict(v.attributes),
                    "stock": v.stock,
                }
                for v in self.variants
            ],
        }


@dataclass(frozen=True)
class BulkImportResult:
    """Итог импорта одного URL в массовом импорте."""

    input_url: str
    normalized_url: str
    provider_used: str
    status: str
    message: str
    created_product_id: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "inputUrl": self.input_url,
            "normalizedUrl": self.normalized_url,
            "providerUsed": self.provider_used,
            "status": self.status,
            "message": self.message,
            "createdProductId": self.created_product_id,
            "warnings": list(self.warnings),
        }
