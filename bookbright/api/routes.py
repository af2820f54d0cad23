"""Маршруты API.

Все маршруты /api/admin/* проходят через require_admin до того,
как начнётся любая работа конвейера.
"""

from typing import Any

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bookbright.api.dependencies import get_container, require_admin
from bookbright.config import get_logger
from bookbright.container import Container
from bookbright.errors import BookBrightError
from bookbright.services.hero_product import get_hero_product
from bookbright.services.image_upload_service import UploadedImage
from bookbright.services.import_service import summarize

logger = get_logger("api")

admin_router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])
public_router = APIRouter()


class ScrapeRequest(BaseModel):
    url: Any = None
    provider: str | None = None


class BulkImportRequest(BaseModel):
    urls: list[Any] | None = None
    provider: str | None = None


@admin_router.post("/scrape-product")
async def scrape_product(
    body: ScrapeRequest,
    container: Container = Depends(get_container),
) -> dict:
    url = body.url if isinstance(body.url, str) else None
    product = await container.import_service.scrape_product(url, body.provider)
    return product.to_dict()


@admin_router.post("/products/bulk-import")
async def bulk_import(
    body: BulkImportRequest,
    container: Container = Depends(get_container),
) -> dict:
    results = await container.import_service.bulk_import(body.urls or [], body.provider)
    return {
        "results": [r.to_dict() for r in results],
        "summary": summarize(results),
    }


@admin_router.post("/orders/{order_id}/send-to-supplier")
async def send_to_supplier(
    order_id: str,
    container: Container = Depends(get_container),
):
    try:
        data = await container.supplier_orders.dispatch_order(order_id)
    except BookBrightError as e:
        return JSONResponse(
            {"ok": False, "error": e.message}, status_code=e.status_code
        )
    return {"ok": True, "data": data.to_dict()}


@admin_router.post("/upload-image")
async def upload_image(
    files: list[UploadFile] | None = File(default=None),
    container: Container = Depends(get_container),
) -> dict:
    images = [
        UploadedImage(
            filename=f.filename or "image",
            content_type=f.content_type or "",
            data=await f.read(),
        )
        for f in files or []
    ]
    urls = await container.image_uploads.upload_batch(images)
    return {"urls": urls}


@public_router.get("/api/products/hero")
async def hero_product(container: Container = Depends(get_container)) -> dict:
    result = await get_hero_product(container.repository)
    return result.to_dict()


@public_router.get("/health")
async def health() -> dict:
    return {"status": "ok"}
