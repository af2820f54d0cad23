"""Тесты HTTP API на фейковых скраперах, поставщике и хостинге."""

import pytest
from fastapi.testclient import TestClient

from bookbright.api import create_app
from bookbright.container import Container
from bookbright.models import ScrapeResult, SupplierSource
from bookbright.services.auth_service import (
    AdminAuthorizer,
    AdminPolicy,
    TokenSessionProvider,
)
from bookbright.services.export_service import ExportService
from bookbright.services.image_upload_service import ImageUploadService
from bookbright.services.import_service import TEMU_HINT, ImportService
from bookbright.services.product_normalizer import ProductNormalizer
from bookbright.services.supplier_order_service import SupplierOrderService

from fakes import (
    EBAY_URL,
    TEMU_URL,
    FakeImageHost,
    FakeScraper,
    FakeSupplierClient,
    make_order,
    make_registry,
)

ADMIN = {"Authorization": "Bearer admin-token"}
USER = {"Authorization": "Bearer user-token"}


@pytest.fixture
def scrapers():
    return {
        SupplierSource.TEMU: FakeScraper(SupplierSource.TEMU),
        SupplierSource.EBAY: FakeScraper(SupplierSource.EBAY),
    }


@pytest.fixture
def image_host():
    return FakeImageHost()


@pytest.fixture
def client(settings, repository, scrapers, image_host, tmp_path):
    admins = tmp_path / "admins.txt"
    admins.write_text("admin@bookbright.no\n", encoding="utf-8")

    container = Container(
        settings=settings,
        repository=repository,
        import_service=ImportService(
            registry=make_registry(scrapers),
            normalizer=ProductNormalizer(settings.pricing),
            settings=settings.imports,
            repository=repository,
        ),
        supplier_orders=SupplierOrderService(repository, FakeSupplierClient()),
        image_uploads=ImageUploadService(image_host, settings.images),
        authorizer=AdminAuthorizer(
            TokenSessionProvider(
                {"admin-token": "admin@bookbright.no", "user-token": "kari@example.no"}
            ),
            AdminPolicy(str(admins)),
        ),
        export_service=ExportService(),
    )
    return TestClient(create_app(settings, container=container))


class TestAdminAccess:
    """Доступ к /api/admin/* проверяется до конвейера"""

    def test_no_token(self, client, scrapers):
        response = client.post("/api/admin/scrape-product", json={"url": TEMU_URL})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert scrapers[SupplierSource.TEMU].calls == []

    def test_not_admin(self, client, scrapers):
        response = client.post(
            "/api/admin/products/bulk-import", json={"urls": [TEMU_URL]}, headers=USER
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden"}
        assert scrapers[SupplierSource.TEMU].calls == []

    def test_wrong_scheme(self, client):
        response = client.post(
            "/api/admin/scrape-product",
            json={"url": TEMU_URL},
            headers={"Authorization": "Basic admin-token"},
        )
        assert response.status_code == 401


class TestScrapeEndpoint:
    """POST /api/admin/scrape-product"""

    def test_success(self, client):
        response = client.post("/api/admin/scrape-product", json={"url": TEMU_URL}, headers=ADMIN)
        assert response.status_code == 200
        body = response.json()
        assert body["price"] == 157
        assert body["compareAtPrice"] == 181
        assert body["supplier"] == "temu"
        assert body["variants"][0]["name"] == "Standard"

    def test_missing_url(self, client):
        response = client.post("/api/admin/scrape-product", json={}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json() == {"error": "URL is required"}

    def test_provider_mismatch(self, client, scrapers):
        response = client.post(
            "/api/admin/scrape-product",
            json={"url": TEMU_URL, "provider": "ebay"},
            headers=ADMIN,
        )
        assert response.status_code == 400
        assert scrapers[SupplierSource.EBAY].calls == []

    def test_fetch_failure_has_hint(self, client, scrapers):
        scrapers[SupplierSource.TEMU].result = ScrapeResult.fail("Temu blocked the request")
        response = client.post("/api/admin/scrape-product", json={"url": TEMU_URL}, headers=ADMIN)
        assert response.status_code == 500
        assert response.json() == {
            "error": "Temu blocked the request",
            "supplier": "temu",
            "hint": TEMU_HINT,
        }

    def test_invalid_body(self, client):
        response = client.post(
            "/api/admin/scrape-product",
            content="not json",
            headers={**ADMIN, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}


class TestBulkImportEndpoint:
    """POST /api/admin/products/bulk-import"""

    def test_results_and_summary(self, client, repository, scrapers):
        scrapers[SupplierSource.EBAY].result = ScrapeResult.fail("eBay blocked the request")
        response = client.post(
            "/api/admin/products/bulk-import",
            json={"urls": [TEMU_URL, EBAY_URL]},
            headers=ADMIN,
        )
        assert response.status_code == 200
        body = response.json()
        assert [r["status"] for r in body["results"]] == ["success", "error"]
        assert body["summary"] == {"success": 1, "warning": 0, "error": 1}
        assert body["results"][0]["createdProductId"]
        assert repository.count_products() == 1

    def test_empty_list(self, client):
        response = client.post("/api/admin/products/bulk-import", json={"urls": []}, headers=ADMIN)
        assert response.status_code == 400


class TestSendToSupplierEndpoint:
    """POST /api/admin/orders/{id}/send-to-supplier"""

    def test_order_without_items(self, client, repository):
        repository.create_order(make_order("empty"))
        response = client.post("/api/admin/orders/empty/send-to-supplier", headers=ADMIN)
        assert response.status_code == 404
        assert response.json() == {"ok": False, "error": "Order has no items"}

    def test_unknown_order(self, client):
        response = client.post("/api/admin/orders/missing/send-to-supplier", headers=ADMIN)
        assert response.status_code == 404
        assert response.json()["ok"] is False


class TestUploadImageEndpoint:
    """POST /api/admin/upload-image"""

    def test_upload(self, client, image_host):
        response = client.post(
            "/api/admin/upload-image",
            files=[
                ("files", ("a.jpg", b"jpeg-bytes", "image/jpeg")),
                ("files", ("b.png", b"png-bytes", "image/png")),
            ],
            headers=ADMIN,
        )
        assert response.status_code == 200
        assert response.json() == {
            "urls": [
                "https://res.example.com/products/a.jpg",
                "https://res.example.com/products/b.png",
            ]
        }
        assert len(image_host.stored) == 2

    def test_disallowed_type(self, client, image_host):
        response = client.post(
            "/api/admin/upload-image",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
            headers=ADMIN,
        )
        assert response.status_code == 400
        assert "notes.txt" in response.json()["error"]
        assert image_host.stored == {}

    def test_no_files(self, client):
        response = client.post("/api/admin/upload-image", headers=ADMIN)
        assert response.status_code == 400
        assert response.json() == {"error": "No files were sent"}


class TestPublicEndpoints:
    """Публичные маршруты"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_trace_id_echoed(self, client):
        response = client.get("/health", headers={"X-Trace-Id": "trace-123"})
        assert response.headers["X-Trace-Id"] == "trace-123"

    def test_hero_empty_store(self, client):
        response = client.get("/api/products/hero")
        assert response.status_code == 200
        assert response.json() == {"product": None, "source": "none"}

    def test_hero_after_import(self, client):
        client.post("/api/admin/products/bulk-import", json={"urls": [TEMU_URL]}, headers=ADMIN)
        body = client.get("/api/products/hero").json()
        assert body["source"] == "newest"
        assert body["product"]["price"] == 157
