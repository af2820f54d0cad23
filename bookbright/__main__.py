"""Точка входа BookBright.

Команды:
    python -m bookbright serve [--host H] [--port P]
        HTTP API админки (uvicorn).
    python -m bookbright import URL [URL ...] [--provider P] [--report PATH]
        Массовый импорт товаров и, по желанию, отчёт в Excel.
"""

import argparse
import asyncio
import sys

import uvicorn

from bookbright.config import (
    ConfigValidationError,
    Settings,
    get_logger,
    load_settings,
    set_trace_id,
    setup_logging,
)
from bookbright.container import build_container
from bookbright.errors import BookBrightError
from bookbright.services.import_service import summarize

logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookbright",
        description="Supplier product import and order dispatch service.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    bulk = commands.add_parser("import", help="Import products by URL")
    bulk.add_argument("urls", nargs="+", metavar="URL")
    bulk.add_argument("--provider", default=None, help="temu, alibaba or ebay")
    bulk.add_argument("--report", default=None, help="Path to an .xlsx report")
    return parser


async def run_import(
    settings: Settings,
    urls: list[str],
    provider: str | None,
    report: str | None,
) -> dict[str, int]:
    """Импортирует URL и сохраняет отчёт.

    Гарантирует закрытие всех ресурсов через try/finally.

    Returns:
        Количество результатов по статусам.
    """
    container = build_container(settings)
    try:
        logger.info("stage_started", stage="bulk_import", urls=len(urls))
        results = await container.import_service.bulk_import(urls, provider)
        summary = summarize(results)
        logger.info("stage_completed", stage="bulk_import", **summary)

        for result in results:
            print(f"[{result.status.upper()}] {result.input_url} - {result.message}")

        if report:
            path = container.export_service.export(results, report)
            if path:
                print(f"\nReport saved: {path}")
        return summary
    finally:
        await container.close()


def main(argv: list[str] | None = None) -> None:
    """Загружает конфигурацию, настраивает логирование и запускает команду."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigValidationError as e:
        print(f"\n[CONFIGURATION ERROR]\n{e}")
        print("\nCheck the .env file (see .env.example).")
        sys.exit(1)

    setup_logging(
        level=settings.log.level,
        log_file_path=settings.log.file_path,
    )

    if args.command == "serve":
        from bookbright.api import create_app

        logger.info("application_started", command="serve", port=args.port)
        uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
        return

    trace_id = set_trace_id()
    logger.info("application_started", command="import", trace_id=trace_id)

    try:
        summary = asyncio.run(
            run_import(settings, args.urls, args.provider, args.report)
        )
    except BookBrightError as e:
        logger.error("import_rejected", error=e.message)
        print(f"\nError: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("application_interrupted_by_user")
        print("\nStopped by user (Ctrl+C).")
        sys.exit(130)
    except Exception as e:
        logger.critical(
            "application_fatal_error",
            exc_info=True,
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nFatal error: {e}")
        sys.exit(1)

    logger.info("application_finished", trace_id=trace_id, **summary)
    if summary.get("error"):
        sys.exit(2)


if __name__ == "__main__":
    main()
