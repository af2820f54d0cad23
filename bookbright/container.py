"""Сборка компонентов сервиса.

Фабричные функции создают репозиторий, загрузчики страниц и сервисы
из настроек; Container хранит готовые экземпляры для API и CLI и
закрывает их ресурсы при остановке.
"""

from dataclasses import dataclass

from bookbright.config import Settings, get_logger
from bookbright.providers import build_registry
from bookbright.repositories import SQLiteStoreRepository
from bookbright.services.auth_service import (
    AdminAuthorizer,
    AdminPolicy,
    TokenSessionProvider,
)
from bookbright.services.browser_service import BrowserService
from bookbright.services.export_service import ExportService
from bookbright.services.http_fetcher import HtmlFetcher
from bookbright.services.image_upload_service import (
    CloudinaryImageHost,
    ImageHost,
    ImageUploadService,
)
from bookbright.services.import_service import ImportService
from bookbright.services.product_normalizer import ProductNormalizer
from bookbright.services.supplier_client import SupplierClient
from bookbright.services.supplier_order_service import SupplierOrderService

logger = get_logger("container")


def create_repository(settings: Settings) -> SQLiteStoreRepository:
    """Создаёт репозиторий и таблицы в нём.

    Args:
        settings: Настройки приложения.

    Returns:
        Инициализированный SQLite-репозиторий.
    """
    repository = SQLiteStoreRepository(db_path=settings.database.db_path)
    repository.initialize()
    return repository


def create_import_service(
    settings: Settings,
    repository: SQLiteStoreRepository,
    fetcher: HtmlFetcher,
    browser: BrowserService,
) -> ImportService:
    """Создаёт сервис импорта с реестром реальных провайдеров."""
    return ImportService(
        registry=build_registry(settings, fetcher=fetcher, browser=browser),
        normalizer=ProductNormalizer(settings.pricing),
        settings=settings.imports,
        repository=repository,
    )


def create_authorizer(settings: Settings) -> AdminAuthorizer:
    """Создаёт проверку доступа к админ-API."""
    return AdminAuthorizer(
        sessions=TokenSessionProvider(settings.auth.tokens),
        policy=AdminPolicy(settings.auth.admin_emails_file),
    )


@dataclass
class Container:
    """Готовые к работе компоненты сервиса."""

    settings: Settings
    repository: SQLiteStoreRepository
    import_service: ImportService
    supplier_orders: SupplierOrderService
    image_uploads: ImageUploadService
    authorizer: AdminAuthorizer
    export_service: ExportService
    fetcher: HtmlFetcher | None = None
    supplier_client: SupplierClient | None = None
    image_host: ImageHost | None = None

    async def close(self) -> None:
        """Закрывает сетевые сессии и соединение с базой."""
        try:
            if self.fetcher is not None:
                await self.fetcher.close()
            if self.supplier_client is not None:
                await self.supplier_client.close()
            if self.image_host is not None:
                await self.image_host.close()
        finally:
            self.repository.close()
            logger.info("all_resources_closed")


def build_container(settings: Settings) -> Container:
    """Собирает все компоненты из настроек."""
    repository = create_repository(settings)
    fetcher = HtmlFetcher(settings.http)
    browser = BrowserService(settings.browser)
    supplier_client = SupplierClient(settings.supplier_api)
    image_host = CloudinaryImageHost(settings.images)

    return Container(
        settings=settings,
        repository=repository,
        import_service=create_import_service(settings, repository, fetcher, browser),
        supplier_orders=SupplierOrderService(repository, supplier_client),
        image_uploads=ImageUploadService(image_host, settings.images),
        authorizer=create_authorizer(settings),
        export_service=ExportService(),
        fetcher=fetcher,
        supplier_client=supplier_client,
        image_host=image_host,
    )
