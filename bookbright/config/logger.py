"""Структурированное JSON-логирование сервиса.

Каждая запись - одна JSON-строка с именем события, trace_id текущего
запроса (импорта, отправки заказа, CLI-запуска) и контекстными полями.

Пример использования:
    logger = get_logger("import_service")
    logger.info("import_started", supplier="temu", url=url)
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

SERVICE_NAME = "bookbright"

# trace_id живёт в контексте asyncio-задачи: параллельные запросы
# API не видят идентификаторы друг друга.
_trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: str | None = None) -> str:
    """Устанавливает trace_id для текущего контекста выполнения.

    Args:
        trace_id: Идентификатор трассировки. Если None - генерируется
            из UUID4 (первые 8 символов).

    Returns:
        Установленный trace_id.
    """
    if not trace_id:
        trace_id = uuid.uuid4().hex[:8]
    _trace_id_var.set(trace_id)
    return trace_id


def get_trace_id() -> str:
    """Возвращает trace_id текущего контекста или пустую строку."""
    return _trace_id_var.get()


class JSONFormatter(logging.Formatter):
    """Форматирует LogRecord в JSON.

    Поля записи: timestamp (UTC, ISO 8601), level, service, logger,
    message, trace_id и context - всё, что передано через kwargs
    ContextLogger, плюс тип и текст исключения, если оно есть.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": get_trace_id(),
        }

        context: dict[str, Any] = dict(getattr(record, "context_data", {}))

        if record.exc_info and record.exc_info[1] is not None:
            context["exception_type"] = type(record.exc_info[1]).__name__
            context["exception_message"] = str(record.exc_info[1])

        if context:
            log_entry["context"] = context

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ContextLogger:
    """Логгер, принимающий контекстные поля как именованные аргументы.

    Поля попадают в ключ "context" JSON-записи:
        logger.warning("scrape_failed", supplier="ebay", error=str(e))
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(
        self,
        level: int,
        message: str,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={"context_data": kwargs},
        )

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(
        self, message: str, exc_info: bool = False, **kwargs: Any
    ) -> None:
        self._log(logging.WARNING, message, exc_info=exc_info, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(
        self, message: str, exc_info: bool = False, **kwargs: Any
    ) -> None:
        self._log(logging.CRITICAL, message, exc_info=exc_info, **kwargs)


# Один ContextLogger на имя, чтобы не плодить обёртки.
_loggers: dict[str, ContextLogger] = {}

# Сторонние логгеры, шумящие на INFO при каждом запросе.
QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "aiohttp.access", "uvicorn.access")


def setup_logging(level: str = "INFO", log_file_path: str = "") -> None:
    """Настраивает корневой логгер: JSON в stdout и, опционально, в файл.

    Повторный вызов заменяет хендлеры, а не добавляет новые.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file_path: Путь к файлу логов. Пустая строка - только консоль.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    json_formatter = JSONFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(json_formatter)
    root_logger.addHandler(console_handler)

    if log_file_path:
        log_path = Path(log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> ContextLogger:
    """Возвращает именованный ContextLogger (один экземпляр на имя).

    Args:
        name: Имя компонента, например 'temu_scraper' или 'order_service'.
    """
    if name not in _loggers:
        _loggers[name] = ContextLogger(logging.getLogger(f"{SERVICE_NAME}.{name}"))
    return _loggers[name]
