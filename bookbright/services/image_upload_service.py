"""Пакетная загрузка изображений товаров на хостинг (Cloudinary).

Пачка загружается по принципу "всё или ничего": все файлы проверяются
до первой загрузки, загрузки идут параллельно, а при сбое любой из них
уже загруженные изображения пачки удаляются с хостинга.
"""

import asyncio
import hashlib
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import aiohttp

from bookbright.config import ImageHostSettings, get_logger
from bookbright.errors import (
    ImageHostNotConfiguredError,
    ImageUploadError,
    ImageValidationError,
)
from bookbright.utils import async_retry

logger = get_logger("image_upload_service")

ALLOWED_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/avif",
)

CLOUDINARY_API_URL = "https://api.cloudinary.com/v1_1"


@dataclass(frozen=True)
class UploadedImage:
    """Файл изображения из multipart-запроса."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class HostedImage:
    """Изображение, сохранённое на хостинге."""

    url: str
    public_id: str


class ImageHost(ABC):
    """Контракт хостинга изображений."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Заданы ли реквизиты хостинга."""

    @abstractmethod
    async def upload(self, image: UploadedImage) -> HostedImage:
        """Загружает одно изображение.

        Raises:
            ImageUploadError: Хостинг отклонил файл или недоступен.
        """

    @abstractmethod
    async def delete(self, public_id: str) -> None:
        """Удаляет изображение с хостинга."""

    async def close(self) -> None:
        """Освобождает сетевые ресурсы (если есть)."""


def error_message(data: dict) -> str:
    """Текст ошибки из ответа Cloudinary: {"error": {"message": ...}} или строка."""
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or "")
    if isinstance(error, str):
        return error
    return ""


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Подпись запроса Cloudinary.

    Параметры сортируются по имени и склеиваются как k=v через "&",
    к строке дописывается секрет, от результата берётся SHA-1.
    """
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


class CloudinaryImageHost(ImageHost):
    """Загрузка в Cloudinary через подписанный REST API.

    Attributes:
        _settings: Реквизиты облака и папка загрузки.
        _session: Общая aiohttp-сессия.
    """

    def __init__(self, settings: ImageHostSettings, timeout: float = 60.0) -> None:
        self._settings = settings
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    def _endpoint(self, action: str) -> str:
        return f"{CLOUDINARY_API_URL}/{self._settings.cloud_name}/image/{action}"

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        params = dict(params, timestamp=str(int(time.time())))
        signed = dict(params)
        signed["signature"] = sign_params(params, self._settings.api_secret)
        signed["api_key"] = self._settings.api_key
        return signed

    async def upload(self, image: UploadedImage) -> HostedImage:
        form = aiohttp.FormData()
        for key, value in self._signed({"folder": self._settings.folder}).items():
            form.add_field(key, value)
        form.add_field(
            "file",
            image.data,
            filename=image.filename,
            content_type=image.content_type,
        )

        try:
            session = await self._get_session()
            async with session.post(self._endpoint("upload"), data=form) as response:
                status = response.status
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            reason = str(e) or "request timed out"
            raise ImageUploadError(f"Upload of {image.filename} failed: {reason}") from e

        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        data = payload if isinstance(payload, dict) else {}

        if status >= 400:
            message = error_message(data) or f"status {status}"
            raise ImageUploadError(f"Upload of {image.filename} failed: {message}")

        secure_url = data.get("secure_url")
        if not secure_url:
            raise ImageUploadError("No URL received from the image host")

        logger.info(
            "image_uploaded",
            filename=image.filename,
            size=image.size,
            public_id=data.get("public_id"),
        )
        return HostedImage(url=secure_url, public_id=str(data.get("public_id", "")))

    @async_retry(max_retries=3, delay=1.0, exceptions=(aiohttp.ClientError,))
    async def delete(self, public_id: str) -> None:
        session = await self._get_session()
        async with session.post(
            self._endpoint("destroy"), data=self._signed({"public_id": public_id})
        ) as response:
            response.raise_for_status()
        logger.info("image_deleted", public_id=public_id)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.info("image_host_session_closed")


class ImageUploadService:
    """Проверяет и загружает пачку изображений.

    Attributes:
        _host: Хостинг изображений.
        _settings: Лимиты пачки (количество файлов, размер файла).
    """

    def __init__(self, host: ImageHost, settings: ImageHostSettings) -> None:
        self._host = host
        self._settings = settings

    def validate(self, files: list[UploadedImage]) -> None:
        """Проверяет пачку целиком до любой загрузки.

        Raises:
            ImageValidationError: Нет файлов, их больше лимита, тип
                не разрешён или файл больше лимита (с именем файла).
        """
        if not files:
            raise ImageValidationError("No files were sent")

        max_files = self._settings.max_files
        if len(files) > max_files:
            raise ImageValidationError(
                f"At most {max_files} images can be uploaded at once"
            )

        max_mb = self._settings.max_file_size / 1024 / 1024
        for image in files:
            if image.content_type not in ALLOWED_TYPES:
                raise ImageValidationError(
                    f"File type {image.content_type or 'unknown'} of "
                    f"{image.filename} is not allowed. "
                    "Allowed types: jpg, png, webp, gif, avif"
                )
            if image.size > self._settings.max_file_size:
                raise ImageValidationError(
                    f"Image {image.filename} is too large. "
                    f"Max size: {max_mb:g}MB"
                )

    async def upload_batch(self, files: list[UploadedImage]) -> list[str]:
        """Загружает пачку изображений.

        Args:
            files: Файлы из запроса.

        Returns:
            URL загруженных изображений в порядке файлов.

        Raises:
            ImageHostNotConfiguredError: Реквизиты хостинга не заданы.
            ImageValidationError: Пачка не прошла проверку (ничего
                не загружено).
            ImageUploadError: Загрузка одного из файлов не удалась;
                остальные файлы пачки удалены с хостинга.
        """
        if not self._host.is_configured:
            logger.error("image_host_not_configured")
            raise ImageHostNotConfiguredError(
                "Image upload is not configured. Contact the administrator."
            )

        self.validate(files)
        logger.info("image_batch_started", files=len(files))

        results = await asyncio.gather(
            *(self._host.upload(image) for image in files),
            return_exceptions=True,
        )

        uploaded = [r for r in results if isinstance(r, HostedImage)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            await self._rollback(uploaded)
            error = failures[0]
            logger.error(
                "image_batch_failed",
                files=len(files),
                failed=len(failures),
                rolled_back=len(uploaded),
                error=str(error),
            )
            if isinstance(error, ImageUploadError):
                raise error
            raise ImageUploadError(f"Image upload failed: {error}") from error

        logger.info("image_batch_completed", files=len(uploaded))
        return [image.url for image in uploaded]

    async def _rollback(self, uploaded: list[HostedImage]) -> None:
        """Удаляет уже загруженные изображения неудавшейся пачки."""
        for image in uploaded:
            try:
                await self._host.delete(image.public_id)
            except Exception as e:
                logger.warning(
                    "image_rollback_failed",
                    public_id=image.public_id,
                    error=str(e),
                )
