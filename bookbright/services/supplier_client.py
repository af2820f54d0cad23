"""HTTP-клиент API дропшиппинг-поставщика.

Заказ создаётся запросом POST {SUPPLIER_API_URL}/{supplier}/orders.
Повторов нет: повторная отправка могла бы создать у поставщика
дубликат заказа.
"""

import asyncio

import aiohttp

from bookbright.config import SupplierApiSettings, get_logger
from bookbright.errors import SupplierApiError
from bookbright.models import Order, SupplierOrderResponse, SupplierSource

logger = get_logger("supplier_client")


class SupplierClient:
    """Клиент API поставщика.

    Attributes:
        _settings: URL, ключ и таймаут API.
        _session: Общая aiohttp-сессия для переиспользования соединений.
    """

    def __init__(self, settings: SupplierApiSettings) -> None:
        self._settings = settings
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._settings.timeout),
            )
        return self._session

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def build_payload(order: Order) -> dict:
        """Тело запроса создания заказа у поставщика."""
        return {
            "reference": order.id,
            "customer": {
                "name": order.customer_name,
                "email": order.customer_email,
            },
            "shippingAddress": {
                "address": order.shipping_address,
                "postalCode": order.shipping_postal_code,
                "city": order.shipping_city,
                "country": order.shipping_country,
            },
            "items": [
                {
                    "productUrl": item.supplier_url,
                    "name": item.product_name,
                    "variant": item.variant_name,
                    "quantity": item.quantity,
                }
                for item in order.items
            ],
        }

    async def create_order(
        self, supplier: SupplierSource, order: Order
    ) -> SupplierOrderResponse:
        """Создаёт заказ у поставщика.

        Args:
            supplier: Поставщик, которому отправляется заказ.
            order: Заказ с позициями.

        Returns:
            Ответ поставщика; supplier_order_id может отсутствовать,
            если поставщик принял заказ в обработку без номера.

        Raises:
            SupplierApiError: API не настроено, недоступно, не ответило
                за таймаут, вернуло статус ошибки или не-JSON ответ.
        """
        if not self._settings.api_url:
            raise SupplierApiError("Supplier API is not configured")

        url = f"{self._settings.api_url}/{supplier.value}/orders"
        logger.info(
            "supplier_order_request",
            supplier=supplier.value,
            order_id=order.id,
            items=len(order.items),
        )

        try:
            session = await self._get_session()
            async with session.post(
                url,
                json=self.build_payload(order),
                headers=self._build_headers(),
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise SupplierApiError(
                        f"Supplier API returned status {response.status}: "
                        f"{body[:200]}",
                        supplier=supplier.value,
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(
                "supplier_api_unreachable",
                supplier=supplier.value,
                order_id=order.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            reason = str(e) or "request timed out"
            raise SupplierApiError(
                f"Supplier API is unreachable: {reason}",
                supplier=supplier.value,
            ) from e
        except ValueError as e:
            logger.error(
                "supplier_api_invalid_response",
                supplier=supplier.value,
                order_id=order.id,
                error=str(e),
            )
            raise SupplierApiError(
                "Supplier API returned an invalid response", supplier=supplier.value
            ) from e

        if not isinstance(data, dict):
            data = {}
        supplier_order_id = data.get("orderId") or data.get("id")
        return SupplierOrderResponse(
            supplier_order_id=str(supplier_order_id) if supplier_order_id else None,
            status=str(data.get("status") or "accepted"),
        )

    async def close(self) -> None:
        """Закрывает aiohttp-сессию."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.info("supplier_session_closed")
