"""Сервис импорта товаров поставщиков.

Два сценария:
    - scrape_product: один URL -> нормализованный товар для админки,
      без сохранения (администратор правит и сохраняет сам);
    - bulk_import: список URL -> товары сохраняются в витрину,
      по каждому URL возвращается отдельный результат.

Вызов провайдера всегда ограничен по времени (IMPORT_TIMEOUT).
"""

import asyncio
import uuid

from slugify import slugify

from bookbright.config import ImportSettings, get_logger
from bookbright.errors import (
    ImportTimeoutError,
    ImportValidationError,
    ProviderFetchError,
    UnsupportedSupplierError,
)
from bookbright.models import (
    BulkImportResult,
    ImportedProduct,
    RawProduct,
    SupplierSource,
)
from bookbright.providers import BaseImportProvider, ProviderRegistry
from bookbright.repositories import BaseProductRepository
from bookbright.services.product_normalizer import ProductNormalizer
from bookbright.services.supplier_identifier import identify_supplier
from bookbright.utils.url_validation import get_hostname, validate_and_normalize_url

logger = get_logger("import_service")

TEMU_HINT = (
    "Temu pages are hard to scrape. Copy the URL directly from the "
    "product page and try again."
)
RETRY_HINT = (
    "Reload the product page, check that the URL is correct and that "
    "the product still exists, then try again."
)

STATUS_SUCCESS = "success"
STATUS_WARNING = "warning"
STATUS_ERROR = "error"


def hint_for(supplier: SupplierSource | None) -> str:
    """Подсказка администратору при неудачном скрапинге."""
    if supplier is SupplierSource.TEMU:
        return TEMU_HINT
    return RETRY_HINT


def summarize(results: list[BulkImportResult]) -> dict[str, int]:
    """Количество результатов по статусам success / warning / error."""
    summary = {STATUS_SUCCESS: 0, STATUS_WARNING: 0, STATUS_ERROR: 0}
    for result in results:
        summary[result.status] = summary.get(result.status, 0) + 1
    return summary


class ImportService:
    """Оркестрирует импорт: провайдер -> маппинг -> нормализация.

    Attributes:
        _registry: Реестр провайдеров.
        _normalizer: Нормализатор цен и вариантов.
        _settings: Таймаут и параллельность импорта.
        _repository: Хранилище товаров (нужно только для bulk_import).
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        normalizer: ProductNormalizer,
        settings: ImportSettings,
        repository: BaseProductRepository | None = None,
    ) -> None:
        self._registry = registry
        self._normalizer = normalizer
        self._settings = settings
        self._repository = repository

    def _resolve(
        self, url: str | None, provider_name: str | None
    ) -> tuple[BaseImportProvider, SupplierSource, str]:
        """Проверяет URL и выбирает провайдера до любого сетевого вызова.

        Returns:
            Провайдер, поставщик и нормализованный URL.

        Raises:
            ImportValidationError: URL пуст, не разбирается, не совпадает
                с явно указанным провайдером или не прошёл валидацию.
            UnsupportedSupplierError: Поставщик не поддерживается.
        """
        if not url or not isinstance(url, str) or not url.strip():
            raise ImportValidationError("URL is required")
        url = url.strip()
        if not get_hostname(url):
            raise ImportValidationError("Invalid URL format")

        detected = identify_supplier(url)

        if provider_name:
            requested = SupplierSource.parse(provider_name)
            if requested is None:
                raise UnsupportedSupplierError(
                    f"Unsupported provider: {provider_name}. "
                    f"Supported: {self._supported()}"
                )
            if detected is not requested:
                raise ImportValidationError(
                    f"URL does not belong to provider '{requested.value}'",
                    hint="Choose the provider that matches the URL or leave it empty.",
                    supplier=requested.value,
                )

        if detected is None:
            raise UnsupportedSupplierError(
                f"Unsupported supplier URL. Supported: {self._supported()}"
            )

        normalized = validate_and_normalize_url(url, detected)
        if normalized is None:
            raise ImportValidationError(
                f"Invalid {detected.value} URL", supplier=detected.value
            )

        provider = self._registry.get_provider_for_url(normalized, provider_name)
        if provider is None:
            raise UnsupportedSupplierError(
                f"No provider available for {detected.value}",
                supplier=detected.value,
            )
        return provider, detected, normalized

    def _supported(self) -> str:
        return ", ".join(p.get_name() for p in self._registry.get_all_providers())

    async def _fetch(
        self, provider: BaseImportProvider, supplier: SupplierSource, url: str
    ) -> RawProduct:
        try:
            return await asyncio.wait_for(
                provider.fetch_product(url), timeout=self._settings.timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                "import_timeout",
                supplier=supplier.value,
                url=url,
                timeout=self._settings.timeout,
            )
            raise ImportTimeoutError(
                f"Timed out after {self._settings.timeout:g}s while fetching "
                f"the product from {supplier.value}",
                hint=hint_for(supplier),
                supplier=supplier.value,
            ) from e
        except ProviderFetchError as e:
            e.supplier = e.supplier or supplier.value
            e.hint = e.hint or hint_for(supplier)
            raise

    async def scrape_product(
        self, url: str | None, provider_name: str | None = None
    ) -> ImportedProduct:
        """Скрапит и нормализует один товар без сохранения.

        Args:
            url: URL товара.
            provider_name: Явно выбранный провайдер (необязателен).

        Returns:
            Нормализованный товар.

        Raises:
            ImportValidationError: Некорректный URL или несовпадение
                URL с провайдером.
            UnsupportedSupplierError: Поставщик не поддерживается.
            ProviderFetchError: Скрапинг не удался (с hint и supplier).
            ImportTimeoutError: Провайдер не уложился в таймаут.
        """
        provider, supplier, normalized = self._resolve(url, provider_name)
        logger.info("scrape_started", supplier=supplier.value, url=normalized)

        raw = await self._fetch(provider, supplier, normalized)
        mapped = provider.map_to_product(raw, normalized)
        product = self._normalizer.normalize(mapped, supplier)

        logger.info(
            "scrape_completed",
            supplier=supplier.value,
            url=normalized,
            price=product.price,
            variants=len(product.variants),
        )
        return product

    async def bulk_import(
        self, urls: list[str], provider_name: str | None = None
    ) -> list[BulkImportResult]:
        """Импортирует список URL в витрину.

        URL обрабатываются параллельно (не больше IMPORT_MAX_CONCURRENCY
        одновременно), порядок результатов совпадает с порядком URL.
        Повтор URL внутри списка и товар, уже сохранённый с тем же
        нормализованным URL, дают статус warning без создания товара.

        Raises:
            ImportValidationError: Список пуст или содержит строки,
                не являющиеся http(s)-URL.
            RuntimeError: Хранилище не подключено.
        """
        if self._repository is None:
            raise RuntimeError("Bulk import requires a product repository")
        if not urls:
            raise ImportValidationError("At least one URL is required")

        invalid = [
            u for u in urls
            if not isinstance(u, str)
            or not u.strip().startswith(("http://", "https://"))
        ]
        if invalid:
            shown = ", ".join(str(u) for u in invalid[:3])
            suffix = "..." if len(invalid) > 3 else ""
            raise ImportValidationError(f"Invalid URLs found: {shown}{suffix}")

        semaphore = asyncio.Semaphore(self._settings.max_concurrency)
        seen: set[str] = set()
        tasks = []

        for url in urls:
            url = url.strip()
            key = self._dedupe_key(url)
            if key in seen:
                tasks.append(self._duplicate_result(url, key))
                continue
            seen.add(key)
            tasks.append(self._guarded_import(semaphore, url, provider_name))

        results = list(await asyncio.gather(*tasks))
        logger.info("bulk_import_completed", total=len(results), **summarize(results))
        return results

    @staticmethod
    def _dedupe_key(url: str) -> str:
        supplier = identify_supplier(url)
        if supplier is None:
            return url
        return validate_and_normalize_url(url, supplier) or url

    @staticmethod
    async def _duplicate_result(url: str, key: str) -> BulkImportResult:
        supplier = identify_supplier(url)
        return BulkImportResult(
            input_url=url,
            normalized_url=key,
            provider_used=supplier.value if supplier else "none",
            status=STATUS_WARNING,
            message="Duplicate URL in this import, skipped",
            warnings=["The same product appears more than once in the list"],
        )

    async def _guarded_import(
        self,
        semaphore: asyncio.Semaphore,
        url: str,
        provider_name: str | None,
    ) -> BulkImportResult:
        async with semaphore:
            try:
                return await self._import_one(url, provider_name)
            except Exception as e:
                logger.error(
                    "bulk_import_unexpected_error",
                    exc_info=True,
                    url=url,
                    error=str(e),
                )
                return BulkImportResult(
                    input_url=url,
                    normalized_url=url,
                    provider_used="unknown",
                    status=STATUS_ERROR,
                    message="An unexpected error occurred while importing this URL.",
                )

    async def _import_one(
        self, url: str, provider_name: str | None
    ) -> BulkImportResult:
        assert self._repository is not None

        try:
            provider, supplier, normalized = self._resolve(url, provider_name)
        except (ImportValidationError, UnsupportedSupplierError) as e:
            return BulkImportResult(
                input_url=url,
                normalized_url=url,
                provider_used="none",
                status=STATUS_ERROR,
                message=e.message,
            )

        try:
            raw = await self._fetch(provider, supplier, normalized)
        except ProviderFetchError as e:
            logger.warning(
                "bulk_import_fetch_failed",
                supplier=supplier.value,
                url=normalized,
                error=e.message,
            )
            return BulkImportResult(
                input_url=url,
                normalized_url=normalized,
                provider_used=supplier.value,
                status=STATUS_ERROR,
                message=(
                    "Could not fetch product data. Check that the URL is "
                    "correct and that the product exists."
                ),
            )

        warnings = list(raw.warnings)
        existing = self._repository.find_product_by_supplier_url(normalized)
        if existing is not None:
            return BulkImportResult(
                input_url=url,
                normalized_url=normalized,
                provider_used=supplier.value,
                status=STATUS_WARNING,
                message=f"Product already exists: {existing.name}",
                warnings=warnings
                + ["The product was not created because it already exists"],
            )

        mapped = provider.map_to_product(raw, normalized)
        product = self._normalizer.normalize(mapped, supplier)

        try:
            stored = self._repository.create_product(
                product, slug=self._make_slug(product.name), sku=self._make_sku(supplier)
            )
        except RuntimeError:
            return BulkImportResult(
                input_url=url,
                normalized_url=normalized,
                provider_used=supplier.value,
                status=STATUS_ERROR,
                message="Could not save the product. Try again later.",
                warnings=warnings,
            )

        if not product.images:
            warnings.append("No images found for the product")
        if raw.price is None or raw.price.amount < 1:
            warnings.append("Price looks invalid or missing")

        return BulkImportResult(
            input_url=url,
            normalized_url=normalized,
            provider_used=supplier.value,
            status=STATUS_WARNING if warnings else STATUS_SUCCESS,
            message=f"Product imported: {stored.name}",
            created_product_id=stored.id,
            warnings=warnings,
        )

    @staticmethod
    def _make_slug(name: str) -> str:
        base = slugify(name, max_length=80) or "product"
        return f"{base}-{uuid.uuid4().hex[:4]}"

    @staticmethod
    def _make_sku(supplier: SupplierSource) -> str:
        return f"{supplier.value.upper()}-{uuid.uuid4().hex[:8].upper()}"
