"""Модели заказа и статуса отправки поставщику."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from bookbright.models.product import SupplierSource


class SupplierOrderStatus(str, Enum):
    """Статус заказа на стороне поставщика.

    NOT_SENT - заказ ещё не отправлялся;
    PENDING - поставщик принял запрос, но номер заказа не выдал;
    SENT - заказ создан у поставщика, номер сохранён;
    FAILED - последняя попытка отправки завершилась ошибкой.
    """

    NOT_SENT = "not_sent"
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class OrderItem:
    """Позиция заказа со ссылкой на товар поставщика."""

    id: str
    product_id: str
    quantity: int
    unit_price: int
    product_name: str = ""
    variant_name: str | None = None
    supplier_name: SupplierSource | None = None
    supplier_url: str | None = None


@dataclass(frozen=True)
class Order:
    """Заказ покупателя.

    Поля supplier_order_status и supplier_order_id меняет только
    SupplierOrderService.
    """

    id: str
    customer_name: str
    customer_email: str
    shipping_address: str
    shipping_postal_code: str
    shipping_city: str
    shipping_country: str = "NO"
    total: int = 0
    items: list[OrderItem] = field(default_factory=list)
    supplier_order_status: SupplierOrderStatus = SupplierOrderStatus.NOT_SENT
    supplier_order_id: str | None = None
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    updated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


@dataclass(frozen=True)
class SupplierOrderResponse:
    """Ответ API поставщика на создание заказа."""

    supplier_order_id: str | None
    status: str


@dataclass(frozen=True)
class SupplierDispatchData:
    """Данные об отправке, которые возвращает эндпоинт send-to-supplier."""

    supplier_status: SupplierOrderStatus
    supplier_order_ref: str | None
    supplier_sent_at: datetime
    supplier_order_id: str | None
    supplier_provider: str

    def to_dict(self) -> dict:
        return {
            "supplierStatus": self.supplier_status.value,
            "supplierOrderRef": self.supplier_order_ref,
            "supplierSentAt": self.supplier_sent_at.isoformat(),
            "supplierOrderId": self.supplier_order_id,
            "supplierProvider": self.supplier_provider,
        }
