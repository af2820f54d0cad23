"""Тесты отправки заказов поставщику."""

import asyncio
from contextlib import asynccontextmanager

import pytest
from aiohttp import test_utils, web

from bookbright.config import PricingSettings, SupplierApiSettings
from bookbright.errors import OrderNotFoundError, SupplierApiError, SupplierDispatchError
from bookbright.models import OrderItem, SupplierOrderStatus, SupplierSource
from bookbright.providers import EbayProvider, TemuProvider
from bookbright.services.product_normalizer import ProductNormalizer
from bookbright.services.supplier_client import SupplierClient
from bookbright.services.supplier_order_service import SupplierOrderService

from fakes import (
    EBAY_URL,
    TEMU_URL,
    FakeScraper,
    FakeSupplierClient,
    make_order,
    make_raw,
)

PROVIDERS = {SupplierSource.TEMU: TemuProvider, SupplierSource.EBAY: EbayProvider}
URLS = {SupplierSource.TEMU: TEMU_URL, SupplierSource.EBAY: EBAY_URL}


def store_product(repository, supplier: SupplierSource = SupplierSource.TEMU):
    provider = PROVIDERS[supplier](FakeScraper(supplier))
    mapped = provider.map_to_product(make_raw(supplier, url=URLS[supplier]), URLS[supplier])
    product = ProductNormalizer(PricingSettings()).normalize(mapped, supplier)
    return repository.create_product(product, slug=f"{supplier.value}-speaker", sku=f"{supplier.value.upper()}-1")


def store_order(repository, supplier: SupplierSource = SupplierSource.TEMU, order_id: str = "order-1"):
    product = store_product(repository, supplier)
    item = OrderItem(
        id=f"{order_id}-item-1",
        product_id=product.id,
        quantity=2,
        unit_price=product.price,
        product_name=product.name,
    )
    repository.create_order(make_order(order_id, items=[item]))
    return product


class TestSendOrderToSupplier:
    """Отправка заказа и запись статуса"""

    @pytest.mark.asyncio
    async def test_unknown_order(self, repository):
        service = SupplierOrderService(repository, FakeSupplierClient())
        with pytest.raises(OrderNotFoundError, match="Order not found"):
            await service.send_order_to_supplier("missing")

    @pytest.mark.asyncio
    async def test_order_without_items_keeps_status(self, repository):
        client = FakeSupplierClient()
        repository.create_order(make_order("empty-order"))
        service = SupplierOrderService(repository, client)

        with pytest.raises(OrderNotFoundError) as exc_info:
            await service.send_order_to_supplier("empty-order")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Order has no items"
        assert client.calls == []
        order = repository.get_order("empty-order")
        assert order.supplier_order_status is SupplierOrderStatus.NOT_SENT
        assert order.supplier_order_id is None

    @pytest.mark.asyncio
    async def test_sent_with_supplier_order_id(self, repository):
        store_order(repository)
        client = FakeSupplierClient(supplier_order_id="SUP-1001")
        service = SupplierOrderService(repository, client)

        await service.send_order_to_supplier("order-1")

        order = repository.get_order("order-1")
        assert order.supplier_order_status is SupplierOrderStatus.SENT
        assert order.supplier_order_id == "SUP-1001"
        assert client.calls == [(SupplierSource.TEMU, "order-1")]

    @pytest.mark.asyncio
    async def test_pending_without_supplier_order_id(self, repository):
        store_order(repository)
        service = SupplierOrderService(repository, FakeSupplierClient(supplier_order_id=None))

        await service.send_order_to_supplier("order-1")

        order = repository.get_order("order-1")
        assert order.supplier_order_status is SupplierOrderStatus.PENDING
        assert order.supplier_order_id is None

    @pytest.mark.asyncio
    async def test_api_failure_marks_failed(self, repository):
        store_order(repository, SupplierSource.EBAY)
        client = FakeSupplierClient(
            error=SupplierApiError("Supplier API returned 503: unavailable")
        )
        service = SupplierOrderService(repository, client)

        with pytest.raises(SupplierDispatchError) as exc_info:
            await service.send_order_to_supplier("order-1")

        assert exc_info.value.message == "Supplier API returned 503: unavailable"
        assert exc_info.value.supplier == "ebay"
        order = repository.get_order("order-1")
        assert order.supplier_order_status is SupplierOrderStatus.FAILED

    @pytest.mark.asyncio
    async def test_item_without_stored_product_uses_default_supplier(self, repository):
        item = OrderItem(id="item-1", product_id="deleted-product", quantity=1, unit_price=100)
        repository.create_order(make_order("order-2", items=[item]))
        client = FakeSupplierClient()
        service = SupplierOrderService(repository, client)

        await service.send_order_to_supplier("order-2")

        assert client.calls == [(SupplierSource.TEMU, "order-2")]


class TestDispatchOrder:
    """Ответ для админки после отправки"""

    @pytest.mark.asyncio
    async def test_dispatch_data(self, repository):
        store_order(repository)
        service = SupplierOrderService(repository, FakeSupplierClient("SUP-1001"))

        data = await service.dispatch_order("order-1")

        assert data.supplier_status is SupplierOrderStatus.SENT
        assert data.supplier_order_id == "SUP-1001"
        assert data.supplier_order_ref == "TEMU-SUP-1001"
        assert data.supplier_provider == "TEMU"
        body = data.to_dict()
        assert body["supplierStatus"] == "sent"
        assert body["supplierOrderRef"] == "TEMU-SUP-1001"

    @pytest.mark.asyncio
    async def test_dispatch_pending_has_no_ref(self, repository):
        store_order(repository, SupplierSource.EBAY)
        service = SupplierOrderService(repository, FakeSupplierClient(None))

        data = await service.dispatch_order("order-1")

        assert data.supplier_status is SupplierOrderStatus.PENDING
        assert data.supplier_order_ref is None
        assert data.supplier_provider == "EBAY"

    @pytest.mark.asyncio
    async def test_dispatch_unknown_order(self, repository):
        service = SupplierOrderService(repository, FakeSupplierClient())
        with pytest.raises(OrderNotFoundError):
            await service.dispatch_order("missing")


@asynccontextmanager
async def supplier_api(handler, timeout: float = 5.0):
    """Локальный HTTP-сервер поставщика и клиент, настроенный на него."""
    app = web.Application()
    app.router.add_post("/{supplier}/orders", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    client = SupplierClient(
        SupplierApiSettings(
            api_url=f"http://{server.host}:{server.port}",
            api_key="test-key",
            timeout=timeout,
        )
    )
    try:
        yield client
    finally:
        await client.close()
        await server.close()


async def html_reply(request):
    return web.Response(text="<html>Service temporarily unavailable</html>", content_type="text/html")


async def slow_reply(request):
    await asyncio.sleep(1)
    return web.json_response({"orderId": "SUP-LATE"})


async def error_reply(request):
    return web.Response(status=503, text="maintenance")


async def created_reply(request):
    body = await request.json()
    assert request.headers["Authorization"] == "Bearer test-key"
    return web.json_response({"orderId": f"SUP-{body['reference']}", "status": "created"})


class TestSupplierClient:
    """Ответы API поставщика по HTTP"""

    @pytest.mark.asyncio
    async def test_created(self):
        async with supplier_api(created_reply) as client:
            response = await client.create_order(SupplierSource.TEMU, make_order("order-7"))

        assert response.supplier_order_id == "SUP-order-7"
        assert response.status == "created"

    @pytest.mark.asyncio
    async def test_error_status(self):
        async with supplier_api(error_reply) as client:
            with pytest.raises(SupplierApiError, match="status 503: maintenance"):
                await client.create_order(SupplierSource.TEMU, make_order())

    @pytest.mark.asyncio
    async def test_non_json_reply(self):
        async with supplier_api(html_reply) as client:
            with pytest.raises(SupplierApiError, match="invalid response") as exc_info:
                await client.create_order(SupplierSource.EBAY, make_order())

        assert exc_info.value.supplier == "ebay"

    @pytest.mark.asyncio
    async def test_timeout(self):
        async with supplier_api(slow_reply, timeout=0.2) as client:
            with pytest.raises(SupplierApiError, match="unreachable"):
                await client.create_order(SupplierSource.TEMU, make_order())

    @pytest.mark.asyncio
    async def test_not_configured(self):
        client = SupplierClient(SupplierApiSettings())
        with pytest.raises(SupplierApiError, match="not configured"):
            await client.create_order(SupplierSource.TEMU, make_order())


class TestDispatchFailures:
    """Сбой API поставщика записывается в заказ как failed"""

    @pytest.mark.asyncio
    async def test_non_json_reply_marks_failed(self, repository):
        store_order(repository)

        async with supplier_api(html_reply) as client:
            service = SupplierOrderService(repository, client)
            with pytest.raises(SupplierDispatchError):
                await service.dispatch_order("order-1")

        order = repository.get_order("order-1")
        assert order.supplier_order_status is SupplierOrderStatus.FAILED

    @pytest.mark.asyncio
    async def test_timeout_marks_failed(self, repository):
        store_order(repository)

        async with supplier_api(slow_reply, timeout=0.2) as client:
            service = SupplierOrderService(repository, client)
            with pytest.raises(SupplierDispatchError) as exc_info:
                await service.send_order_to_supplier("order-1")

        assert exc_info.value.supplier == "temu"
        assert repository.get_order("order-1").supplier_order_status is SupplierOrderStatus.FAILED
