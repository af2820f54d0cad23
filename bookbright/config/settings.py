"""Модуль конфигурации сервиса импорта.

Загружает переменные окружения из .env файла, валидирует параметры
и предоставляет единый иммутабельный объект Settings для всех
компонентов: браузера, HTTP-клиента, ценообразования, API поставщика,
загрузки изображений и авторизации администраторов.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _load_env() -> None:
    """Загружает переменные окружения из .env файла в корне проекта.

    Если файл не найден, переменные берутся из системного окружения.
    """
    project_root = Path(__file__).resolve().parent.parent.parent
    env_path = project_root / ".env"
    load_dotenv(dotenv_path=env_path)


class ConfigValidationError(Exception):
    """Ошибка валидации конфигурации.

    Выбрасывается при некорректных значениях параметров окружения.
    Содержит сразу все найденные ошибки, а не только первую.
    """


@dataclass(frozen=True)
class BrowserSettings:
    """Настройки Playwright-браузера для headless-скрапинга.

    Attributes:
        headless: Запуск без графического интерфейса.
        navigation_timeout: Таймаут навигации в миллисекундах.
        page_wait_time: Ожидание после загрузки DOM (мс), чтобы
            JavaScript успел отрисовать карточку товара.
    """

    headless: bool = True
    navigation_timeout: int = 45000
    page_wait_time: int = 2500


@dataclass(frozen=True)
class HttpSettings:
    """Настройки лёгкого HTTP-скрапинга (aiohttp).

    Attributes:
        timeout: Общий таймаут запроса в секундах.
        max_retries: Количество попыток при сетевых ошибках и 5xx.
        retry_delay: Начальная задержка между попытками (секунды).
    """

    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0


@dataclass(frozen=True)
class PricingSettings:
    """Параметры ценообразования при импорте товара.

    Курс USD фиксированный: это принятое упрощение, живого
    источника курсов нет.

    Attributes:
        usd_to_local_rate: Курс USD к локальной валюте магазина (NOK).
        markup_factor: Множитель наценки к закупочной цене.
        compare_at_factor: Множитель "старой" цены к рекомендованной.
        default_stock: Остаток для вариантов без данных о наличии.
        max_images: Максимум изображений у товара.
        max_tags: Максимум тегов, извлекаемых из характеристик.
        default_category: Категория, если по названию не определилась.
    """

    usd_to_local_rate: float = 10.5
    markup_factor: float = 1.5
    compare_at_factor: float = 1.15
    default_stock: int = 10
    max_images: int = 10
    max_tags: int = 5
    default_category: str = "Elektronikk"


@dataclass(frozen=True)
class ImportSettings:
    """Настройки конвейера импорта.

    Attributes:
        timeout: Предельное время одного вызова провайдера (секунды).
        max_concurrency: Сколько URL массового импорта обрабатывать
            одновременно.
    """

    timeout: float = 120.0
    max_concurrency: int = 3


@dataclass(frozen=True)
class SupplierApiSettings:
    """Настройки API дропшиппинг-поставщика для отправки заказов.

    Attributes:
        api_url: Базовый URL API (пустая строка - API не настроен).
        api_key: Секретный ключ API.
        timeout: Таймаут запроса в секундах.
    """

    api_url: str = ""
    api_key: str = ""
    timeout: float = 30.0


@dataclass(frozen=True)
class ImageHostSettings:
    """Настройки загрузки изображений в Cloudinary.

    Attributes:
        cloud_name: Имя облака Cloudinary.
        api_key: Публичный ключ API.
        api_secret: Секрет для подписи запросов.
        folder: Папка для загружаемых изображений.
        max_file_size: Максимальный размер одного файла в байтах.
        max_files: Максимум файлов в одной пачке.
    """

    cloud_name: str = ""
    api_key: str = ""
    api_secret: str = ""
    folder: str = "bookbright/products"
    max_file_size: int = 10 * 1024 * 1024
    max_files: int = 10

    @property
    def is_configured(self) -> bool:
        """Заданы ли все три реквизита Cloudinary."""
        return bool(self.cloud_name and self.api_key and self.api_secret)


@dataclass(frozen=True)
class AuthSettings:
    """Настройки доступа к админ-API.

    Attributes:
        admin_emails_file: Путь к файлу со списком email администраторов
            (по одному на строку). Файл перечитывается при изменении.
        tokens: Соответствие bearer-токен -> email сессии.
    """

    admin_emails_file: str = ""
    tokens: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DatabaseSettings:
    """Настройки базы данных SQLite.

    Attributes:
        db_path: Путь к файлу базы данных.
    """

    db_path: str = "data/bookbright.db"


@dataclass(frozen=True)
class LogSettings:
    """Настройки логирования.

    Attributes:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file_path: Путь к файлу логов (пустая строка - только консоль).
    """

    level: str = "INFO"
    file_path: str = ""


@dataclass(frozen=True)
class Settings:
    """Корневой объект конфигурации сервиса."""

    browser: BrowserSettings = field(default_factory=BrowserSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    pricing: PricingSettings = field(default_factory=PricingSettings)
    imports: ImportSettings = field(default_factory=ImportSettings)
    supplier_api: SupplierApiSettings = field(
        default_factory=SupplierApiSettings
    )
    images: ImageHostSettings = field(default_factory=ImageHostSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    log: LogSettings = field(default_factory=LogSettings)


def _parse_bool(value: str) -> bool:
    """Преобразует строку в bool ('true', '1', 'yes' - истина)."""
    return value.strip().lower() in ("true", "1", "yes")


def _parse_int(value: str, param_name: str) -> int:
    """Преобразует строковое значение в int с валидацией.

    Raises:
        ConfigValidationError: Если значение не является целым числом.
    """
    try:
        return int(value)
    except ValueError:
        raise ConfigValidationError(
            f"Параметр '{param_name}' должен быть целым числом, "
            f"получено: '{value}'"
        )


def _parse_float(value: str, param_name: str) -> float:
    """Преобразует строковое значение в float с валидацией.

    Raises:
        ConfigValidationError: Если значение не является числом.
    """
    try:
        return float(value)
    except ValueError:
        raise ConfigValidationError(
            f"Параметр '{param_name}' должен быть числом, "
            f"получено: '{value}'"
        )


def _validate_positive(value: int | float, param_name: str) -> int | float:
    """Проверяет, что число строго положительное.

    Raises:
        ConfigValidationError: Если значение не положительное.
    """
    if value <= 0:
        raise ConfigValidationError(
            f"Параметр '{param_name}' должен быть положительным числом, "
            f"получено: {value}"
        )
    return value


def _validate_log_level(value: str) -> str:
    """Проверяет корректность уровня логирования.

    Raises:
        ConfigValidationError: Если уровень не входит в допустимые.
    """
    valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    normalized = value.strip().upper()
    if normalized not in valid_levels:
        raise ConfigValidationError(
            f"Уровень логирования '{value}' недопустим. "
            f"Допустимые значения: {', '.join(valid_levels)}"
        )
    return normalized


def parse_tokens(raw: str) -> dict[str, str]:
    """Разбирает строку вида 'token1=email1,token2=email2'.

    Пустые элементы пропускаются, email приводится к нижнему регистру.

    Args:
        raw: Значение переменной ADMIN_TOKENS.

    Returns:
        Словарь токен -> email.

    Raises:
        ConfigValidationError: Если элемент не содержит '='.
    """
    tokens: dict[str, str] = {}
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if "=" not in chunk:
            raise ConfigValidationError(
                "Параметр 'ADMIN_TOKENS' должен иметь формат "
                "'token=email,token=email'"
            )
        token, email = chunk.split("=", 1)
        tokens[token.strip()] = email.strip().lower()
    return tokens


class _Collector:
    """Копит ошибки валидации, чтобы выбросить их одним исключением."""

    def __init__(self) -> None:
        self.errors: list[str] = []

    def number(
        self,
        name: str,
        default: int | float,
        positive: bool = True,
    ) -> int | float:
        raw = os.getenv(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            if isinstance(default, int):
                value: int | float = _parse_int(raw, name)
            else:
                value = _parse_float(raw, name)
            if positive:
                _validate_positive(value, name)
            elif value < 0:
                raise ConfigValidationError(
                    f"Параметр '{name}' не может быть отрицательным, "
                    f"получено: {value}"
                )
            return value
        except ConfigValidationError as e:
            self.errors.append(str(e))
            return default


def load_settings() -> Settings:
    """Загружает и валидирует все настройки сервиса.

    Returns:
        Полностью валидированный объект Settings.

    Raises:
        ConfigValidationError: Если значения параметров некорректны
            (все ошибки перечислены в одном сообщении).
    """
    _load_env()

    collect = _Collector()

    browser = BrowserSettings(
        headless=_parse_bool(os.getenv("HEADLESS_MODE", "true")),
        navigation_timeout=int(collect.number("NAVIGATION_TIMEOUT", 45000)),
        page_wait_time=int(collect.number("PAGE_WAIT_TIME", 2500)),
    )

    http = HttpSettings(
        timeout=float(collect.number("HTTP_TIMEOUT", 30.0)),
        max_retries=int(collect.number("HTTP_MAX_RETRIES", 3)),
        retry_delay=float(
            collect.number("HTTP_RETRY_DELAY", 1.0, positive=False)
        ),
    )

    pricing = PricingSettings(
        usd_to_local_rate=float(collect.number("USD_TO_LOCAL_RATE", 10.5)),
        markup_factor=float(collect.number("MARKUP_FACTOR", 1.5)),
        compare_at_factor=float(collect.number("COMPARE_AT_FACTOR", 1.15)),
        default_stock=int(
            collect.number("DEFAULT_STOCK", 10, positive=False)
        ),
        max_images=int(collect.number("MAX_IMAGES", 10)),
        max_tags=int(collect.number("MAX_TAGS", 5, positive=False)),
        default_category=os.getenv("DEFAULT_CATEGORY", "Elektronikk"),
    )

    imports = ImportSettings(
        timeout=float(collect.number("IMPORT_TIMEOUT", 120.0)),
        max_concurrency=int(collect.number("IMPORT_MAX_CONCURRENCY", 3)),
    )

    supplier_api = SupplierApiSettings(
        api_url=os.getenv("SUPPLIER_API_URL", "").strip().rstrip("/"),
        api_key=os.getenv("SUPPLIER_API_KEY", "").strip(),
        timeout=float(collect.number("SUPPLIER_API_TIMEOUT", 30.0)),
    )

    max_upload_mb = collect.number("MAX_UPLOAD_SIZE_MB", 10)
    images = ImageHostSettings(
        cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", "").strip(),
        api_key=os.getenv("CLOUDINARY_API_KEY", "").strip(),
        api_secret=os.getenv("CLOUDINARY_API_SECRET", "").strip(),
        folder=os.getenv("IMAGE_UPLOAD_FOLDER", "bookbright/products"),
        max_file_size=int(max_upload_mb) * 1024 * 1024,
        max_files=int(collect.number("MAX_UPLOAD_FILES", 10)),
    )

    try:
        tokens = parse_tokens(os.getenv("ADMIN_TOKENS", ""))
    except ConfigValidationError as e:
        collect.errors.append(str(e))
        tokens = {}

    auth = AuthSettings(
        admin_emails_file=os.getenv("ADMIN_EMAILS_FILE", "").strip(),
        tokens=tokens,
    )

    try:
        log_level = _validate_log_level(os.getenv("LOG_LEVEL", "INFO"))
    except ConfigValidationError as e:
        collect.errors.append(str(e))
        log_level = "INFO"

    if collect.errors:
        error_message = "Ошибки конфигурации:\n" + "\n".join(
            f"  - {err}" for err in collect.errors
        )
        raise ConfigValidationError(error_message)

    return Settings(
        browser=browser,
        http=http,
        pricing=pricing,
        imports=imports,
        supplier_api=supplier_api,
        images=images,
        auth=auth,
        database=DatabaseSettings(
            db_path=os.getenv("DB_PATH", "data/bookbright.db"),
        ),
        log=LogSettings(
            level=log_level,
            file_path=os.getenv("LOG_FILE_PATH", ""),
        ),
    )
