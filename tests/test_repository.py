"""Тесты SQLite-хранилища товаров и заказов."""

import pytest

from bookbright.config import PricingSettings
from bookbright.models import ProductVariant, SupplierOrderStatus, SupplierSource
from bookbright.providers import TemuProvider
from bookbright.services.product_normalizer import ProductNormalizer

from fakes import TEMU_URL, FakeScraper, make_order, make_raw


def imported(variants=None):
    raw = make_raw(variants=variants or [])
    mapped = TemuProvider(FakeScraper(SupplierSource.TEMU)).map_to_product(raw, TEMU_URL)
    return ProductNormalizer(PricingSettings()).normalize(mapped, SupplierSource.TEMU)


class TestProducts:
    """Товары и варианты"""

    def test_create_and_find_by_supplier_url(self, repository):
        stored = repository.create_product(imported(), slug="speaker", sku="TEMU-1")

        found = repository.find_product_by_supplier_url(TEMU_URL)
        assert found.id == stored.id
        assert found.supplier_name is SupplierSource.TEMU
        assert repository.find_product_by_supplier_url("https://www.temu.com/other") is None

    def test_variants_keep_order_and_stock(self, repository):
        product = imported(
            variants=[
                ProductVariant(name="Black", price=12.0, stock=3),
                ProductVariant(name="White", price=12.0, stock=0),
            ]
        )
        stored = repository.create_product(product, slug="speaker", sku="TEMU-2")

        loaded = repository.get_product(stored.id)
        assert [v.name for v in loaded.variants] == ["Black", "White"]
        assert [v.stock for v in loaded.variants] == [3, 0]
        assert loaded.stock == 3

    def test_out_of_stock_product_is_not_hero_candidate(self, repository):
        product = imported(variants=[ProductVariant(name="Black", price=12.0, stock=0)])
        repository.create_product(product, slug="speaker", sku="TEMU-3")

        assert repository.find_newest_product() is None


class TestOrders:
    """Статус заказа у поставщика"""

    def test_new_order_not_sent(self, repository):
        repository.create_order(make_order("order-9"))
        order = repository.get_order("order-9")
        assert order.supplier_order_status is SupplierOrderStatus.NOT_SENT
        assert order.items == []

    def test_failed_status_keeps_previous_supplier_id(self, repository):
        repository.create_order(make_order("order-9"))
        repository.update_supplier_status("order-9", SupplierOrderStatus.SENT, "SUP-1")
        repository.update_supplier_status("order-9", SupplierOrderStatus.FAILED)

        order = repository.get_order("order-9")
        assert order.supplier_order_status is SupplierOrderStatus.FAILED
        assert order.supplier_order_id == "SUP-1"

    def test_unknown_order(self, repository):
        assert repository.get_order("missing") is None


def test_unknown_hero_raises(repository):
    with pytest.raises(ValueError):
        repository.set_hero_product("missing")
