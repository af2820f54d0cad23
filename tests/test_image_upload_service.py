"""Тесты пакетной загрузки изображений."""

import hashlib
from contextlib import asynccontextmanager

import pytest
from aiohttp import test_utils, web

from bookbright.config import ImageHostSettings
from bookbright.errors import (
    ImageHostNotConfiguredError,
    ImageUploadError,
    ImageValidationError,
)
from bookbright.services import image_upload_service
from bookbright.services.image_upload_service import (
    CloudinaryImageHost,
    ImageUploadService,
    UploadedImage,
    error_message,
    sign_params,
)

from fakes import FakeImageHost

MB = 1024 * 1024


def image(name: str, size: int = 1024, content_type: str = "image/jpeg") -> UploadedImage:
    return UploadedImage(filename=name, content_type=content_type, data=b"x" * size)


class TestValidation:
    """Проверка пачки до загрузки"""

    def setup_method(self):
        self.service = ImageUploadService(FakeImageHost(), ImageHostSettings())

    def test_empty_batch(self):
        with pytest.raises(ImageValidationError, match="No files were sent"):
            self.service.validate([])

    def test_too_many_files(self):
        files = [image(f"img-{i}.jpg") for i in range(11)]
        with pytest.raises(ImageValidationError, match="At most 10 images"):
            self.service.validate(files)

    def test_disallowed_type_names_file(self):
        with pytest.raises(ImageValidationError) as exc_info:
            self.service.validate([image("a.jpg"), image("doc.pdf", content_type="application/pdf")])
        assert "doc.pdf" in exc_info.value.message
        assert "application/pdf" in exc_info.value.message

    def test_file_at_limit_is_allowed(self):
        self.service.validate([image("exact.png", size=10 * MB, content_type="image/png")])

    def test_all_allowed_types(self):
        types = ["image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif", "image/avif"]
        self.service.validate([image(f"f{i}", content_type=t) for i, t in enumerate(types)])


class TestUploadBatch:
    """Загрузка по принципу всё или ничего"""

    @pytest.mark.asyncio
    async def test_uploads_in_order(self):
        host = FakeImageHost()
        service = ImageUploadService(host, ImageHostSettings())

        urls = await service.upload_batch([image("a.jpg"), image("b.png", content_type="image/png")])

        assert urls == [
            "https://res.example.com/products/a.jpg",
            "https://res.example.com/products/b.png",
        ]

    @pytest.mark.asyncio
    async def test_oversized_file_rejects_whole_batch(self):
        host = FakeImageHost()
        service = ImageUploadService(host, ImageHostSettings())
        files = [image("one.jpg"), image("two.jpg"), image("huge.jpg", size=11 * MB), image("three.jpg")]

        with pytest.raises(ImageValidationError) as exc_info:
            await service.upload_batch(files)

        assert exc_info.value.status_code == 400
        assert "huge.jpg" in exc_info.value.message
        assert "Max size: 10MB" in exc_info.value.message
        assert host.stored == {}
        assert host.deleted == []

    @pytest.mark.asyncio
    async def test_not_configured(self):
        service = ImageUploadService(FakeImageHost(configured=False), ImageHostSettings())
        with pytest.raises(ImageHostNotConfiguredError) as exc_info:
            await service.upload_batch([image("a.jpg")])
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_failed_upload_rolls_back_batch(self):
        host = FakeImageHost(fail_on="b.jpg")
        service = ImageUploadService(host, ImageHostSettings())

        with pytest.raises(ImageUploadError, match="b.jpg"):
            await service.upload_batch([image("a.jpg"), image("b.jpg"), image("c.jpg")])

        assert host.stored == {}
        assert sorted(host.deleted) == ["products/a.jpg", "products/c.jpg"]


class TestSignParams:
    """Подпись запросов Cloudinary"""

    def test_sorted_params_with_secret(self):
        signature = sign_params({"timestamp": "1700000000", "folder": "bookbright"}, "secret")
        expected = hashlib.sha1(b"folder=bookbright&timestamp=1700000000secret").hexdigest()
        assert signature == expected

    def test_empty_values_skipped(self):
        assert sign_params({"folder": "", "timestamp": "1"}, "s") == sign_params({"timestamp": "1"}, "s")


class TestErrorMessage:
    """Текст ошибки из ответа хостинга"""

    def test_nested_message(self):
        assert error_message({"error": {"message": "Invalid Signature"}}) == "Invalid Signature"

    def test_string_error(self):
        assert error_message({"error": "Upload preset not found"}) == "Upload preset not found"

    def test_no_error(self):
        assert error_message({}) == ""
        assert error_message({"error": ["unexpected"]}) == ""


@asynccontextmanager
async def cloudinary(monkeypatch, status: int, reply):
    """Локальный сервер вместо API Cloudinary и хост, настроенный на него."""

    async def handler(request):
        await request.read()
        if isinstance(reply, str):
            return web.Response(status=status, text=reply, content_type="text/html")
        return web.json_response(reply, status=status)

    app = web.Application()
    app.router.add_post("/demo/image/upload", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    monkeypatch.setattr(
        image_upload_service, "CLOUDINARY_API_URL", f"http://{server.host}:{server.port}"
    )
    host = CloudinaryImageHost(
        ImageHostSettings(cloud_name="demo", api_key="key", api_secret="secret")
    )
    try:
        yield host
    finally:
        await host.close()
        await server.close()


class TestCloudinaryImageHost:
    """Ответы API загрузки Cloudinary"""

    @pytest.mark.asyncio
    async def test_uploaded(self, monkeypatch):
        reply = {"secure_url": "https://res.cloudinary.com/demo/a.jpg", "public_id": "bookbright/a"}
        async with cloudinary(monkeypatch, 200, reply) as host:
            hosted = await host.upload(image("a.jpg"))

        assert hosted.url == "https://res.cloudinary.com/demo/a.jpg"
        assert hosted.public_id == "bookbright/a"

    @pytest.mark.asyncio
    async def test_string_error_field(self, monkeypatch):
        async with cloudinary(monkeypatch, 400, {"error": "Invalid Signature"}) as host:
            with pytest.raises(ImageUploadError, match="a.jpg failed: Invalid Signature"):
                await host.upload(image("a.jpg"))

    @pytest.mark.asyncio
    async def test_list_reply(self, monkeypatch):
        async with cloudinary(monkeypatch, 400, ["bad request"]) as host:
            with pytest.raises(ImageUploadError, match="failed: status 400"):
                await host.upload(image("a.jpg"))

    @pytest.mark.asyncio
    async def test_html_error_page(self, monkeypatch):
        async with cloudinary(monkeypatch, 502, "<html>Bad Gateway</html>") as host:
            with pytest.raises(ImageUploadError, match="failed: status 502"):
                await host.upload(image("a.jpg"))

    @pytest.mark.asyncio
    async def test_success_without_url(self, monkeypatch):
        async with cloudinary(monkeypatch, 200, []) as host:
            with pytest.raises(ImageUploadError, match="No URL received"):
                await host.upload(image("a.jpg"))
