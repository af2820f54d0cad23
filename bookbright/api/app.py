"""Создание FastAPI-приложения.

Ошибки конвейера (BookBrightError) отдаются как JSON
{"error", "hint"?, "supplier"?} со статусом исключения, без
стек-трейса. Каждый запрос получает trace_id для логов.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bookbright.api.routes import admin_router, public_router
from bookbright.config import Settings, get_logger, set_trace_id
from bookbright.container import Container, build_container
from bookbright.errors import BookBrightError

logger = get_logger("api")

TRACE_HEADER = "X-Trace-Id"


def create_app(settings: Settings, container: Container | None = None) -> FastAPI:
    """Создаёт приложение.

    Args:
        settings: Настройки сервиса.
        container: Готовые компоненты. Если не переданы, собираются
            при старте приложения и закрываются при остановке.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = getattr(app.state, "container", None) is None
        if owned:
            app.state.container = build_container(settings)
        logger.info("api_started")
        try:
            yield
        finally:
            if owned:
                await app.state.container.close()
            logger.info("api_stopped")

    app = FastAPI(title="BookBright Import API", version="1.0.0", lifespan=lifespan)
    if container is not None:
        app.state.container = container

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        trace_id = set_trace_id(request.headers.get(TRACE_HEADER))
        response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response

    @app.exception_handler(BookBrightError)
    async def handle_pipeline_error(request: Request, exc: BookBrightError) -> JSONResponse:
        logger.warning(
            "request_failed",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
            supplier=exc.supplier,
        )
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "request_unexpected_error",
            exc_info=True,
            path=request.url.path,
            error=str(exc),
        )
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    app.include_router(admin_router)
    app.include_router(public_router)
    return app
