"""Отправка заказов поставщику и учёт статуса на стороне поставщика.

Поля supplier_order_status и supplier_order_id заказа меняет только
этот сервис. Каждый исход отправки записывается: sent (номер получен),
pending (поставщик принял заказ без номера), failed (ошибка API).
"""

from bookbright.config import get_logger
from bookbright.errors import OrderNotFoundError, SupplierApiError, SupplierDispatchError
from bookbright.models import (
    Order,
    SupplierDispatchData,
    SupplierOrderStatus,
    SupplierSource,
)
from bookbright.repositories import BaseOrderRepository
from bookbright.services.supplier_client import SupplierClient

logger = get_logger("supplier_order_service")

DEFAULT_SUPPLIER = SupplierSource.TEMU


def supplier_of(order: Order) -> SupplierSource | None:
    """Поставщик товара первой позиции заказа."""
    if not order.items:
        return None
    return order.items[0].supplier_name


class SupplierOrderService:
    """Сервис отправки заказов поставщику.

    Attributes:
        _repository: Хранилище заказов.
        _client: Клиент API поставщика.
    """

    def __init__(self, repository: BaseOrderRepository, client: SupplierClient) -> None:
        self._repository = repository
        self._client = client

    async def send_order_to_supplier(self, order_id: str) -> None:
        """Отправляет заказ поставщику и записывает результат в заказ.

        Функция ничего не возвращает: актуальное состояние нужно
        перечитать из хранилища.

        Raises:
            OrderNotFoundError: Заказа нет или в нём нет позиций
                (статус при этом не меняется).
            SupplierDispatchError: API поставщика вернуло ошибку
                (статус failed уже записан).
        """
        order = self._repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError("Order not found")
        if not order.items:
            raise OrderNotFoundError("Order has no items")

        supplier = supplier_of(order) or DEFAULT_SUPPLIER

        try:
            response = await self._client.create_order(supplier, order)
        except SupplierApiError as e:
            self._repository.update_supplier_status(
                order_id, SupplierOrderStatus.FAILED
            )
            logger.error(
                "supplier_dispatch_failed",
                order_id=order_id,
                supplier=supplier.value,
                error=e.message,
            )
            raise SupplierDispatchError(e.message, supplier=supplier.value) from e

        if response.supplier_order_id:
            status = SupplierOrderStatus.SENT
        else:
            status = SupplierOrderStatus.PENDING

        self._repository.update_supplier_status(
            order_id, status, response.supplier_order_id
        )
        logger.info(
            "supplier_dispatch_completed",
            order_id=order_id,
            supplier=supplier.value,
            status=status.value,
            supplier_order_id=response.supplier_order_id,
        )

    async def dispatch_order(self, order_id: str) -> SupplierDispatchData:
        """Отправляет заказ и возвращает итоговое состояние для админки.

        Метка поставщика берётся до отправки: поставщик первой
        позиции в верхнем регистре или "TEMU".

        Raises:
            OrderNotFoundError: Заказ не найден (до или после отправки)
                или не содержит позиций.
            SupplierDispatchError: Ошибка API поставщика.
        """
        order = self._repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError("Order not found")

        supplier = supplier_of(order)
        label = supplier.value.upper() if supplier else DEFAULT_SUPPLIER.value.upper()

        await self.send_order_to_supplier(order_id)

        updated = self._repository.get_order(order_id)
        if updated is None:
            raise OrderNotFoundError("Order not found after sending")

        supplier_order_ref = None
        if updated.supplier_order_id:
            supplier_order_ref = f"{label}-{updated.supplier_order_id}"

        return SupplierDispatchData(
            supplier_status=updated.supplier_order_status,
            supplier_order_ref=supplier_order_ref,
            supplier_sent_at=updated.updated_at,
            supplier_order_id=updated.supplier_order_id,
            supplier_provider=label,
        )
