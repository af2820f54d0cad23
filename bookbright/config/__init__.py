"""Пакет конфигурации сервиса.

Предоставляет централизованный доступ к настройкам и логированию:
    from bookbright.config import load_settings, get_logger, setup_logging
"""

from bookbright.config.logger import (
    get_logger,
    get_trace_id,
    set_trace_id,
    setup_logging,
)
from bookbright.config.settings import (
    AuthSettings,
    BrowserSettings,
    ConfigValidationError,
    DatabaseSettings,
    HttpSettings,
    ImageHostSettings,
    ImportSettings,
    LogSettings,
    PricingSettings,
    Settings,
    SupplierApiSettings,
    load_settings,
)

__all__ = [
    "AuthSettings",
    "BrowserSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "HttpSettings",
    "ImageHostSettings",
    "ImportSettings",
    "LogSettings",
    "PricingSettings",
    "Settings",
    "SupplierApiSettings",
    "get_logger",
    "get_trace_id",
    "load_settings",
    "set_trace_id",
    "setup_logging",
]
