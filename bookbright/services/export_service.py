"""Отчёт массового импорта в Excel.

Один лист: строка на каждый URL импорта со статусом, сообщением,
ID созданного товара и предупреждениями. Таблица удобна для
фильтрации: автофильтры, фиксированная шапка, цвет по статусу.
"""

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from bookbright.config import get_logger
from bookbright.models import BulkImportResult

logger = get_logger("export_service")


# Определение столбцов отчёта: (заголовок, ширина в символах)
REPORT_COLUMNS: list[tuple[str, int]] = [
    ("Input URL", 50),
    ("Normalized URL", 50),
    ("Provider", 12),
    ("Status", 12),
    ("Message", 45),
    ("Product ID", 34),
    ("Warnings", 60),
]

STATUS_COLUMN = 4
LINK_COLUMN = 2

STATUS_COLORS: dict[str, str] = {
    "success": "C6EFCE",
    "warning": "FFEB9C",
    "error": "FFC7CE",
}

_THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ExportService:
    """Экспорт результатов массового импорта в Excel-файл."""

    def export(self, results: list[BulkImportResult], path: str) -> str:
        """Сохраняет отчёт.

        Args:
            results: Результаты импорта в порядке входных URL.
            path: Путь к выходному .xlsx файлу.

        Returns:
            Абсолютный путь к файлу или пустая строка, если
            результатов нет.
        """
        if not results:
            logger.warning("no_results_to_export")
            return ""

        logger.info("export_started", rows=len(results), export_path=path)

        wb = Workbook()
        ws = wb.active
        if ws is None:
            ws = wb.create_sheet()
        ws.title = "Bulk import"

        self._write_header(ws)
        self._write_data(ws, results)
        self._apply_formatting(ws, len(results))

        output_path = self._save_workbook(wb, path)
        logger.info("export_completed", rows=len(results), export_path=output_path)
        return output_path

    def _write_header(self, ws: Worksheet) -> None:
        header_font = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
        header_fill = PatternFill(
            start_color="4472C4",
            end_color="4472C4",
            fill_type="solid",
        )
        header_alignment = Alignment(
            horizontal="center",
            vertical="center",
            wrap_text=True,
        )

        for col_index, (title, _) in enumerate(REPORT_COLUMNS, start=1):
            cell = ws.cell(row=1, column=col_index, value=title)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = _THIN_BORDER

    def _write_data(self, ws: Worksheet, results: list[BulkImportResult]) -> None:
        data_font = Font(name="Calibri", size=10)
        link_font = Font(name="Calibri", size=10, color="0563C1", underline="single")
        data_alignment = Alignment(vertical="top", wrap_text=True)

        for row_index, result in enumerate(results, start=2):
            for col_index, value in enumerate(self._result_to_row(result), start=1):
                cell = ws.cell(row=row_index, column=col_index, value=value)
                cell.font = data_font
                cell.alignment = data_alignment
                cell.border = _THIN_BORDER

            link_cell = ws.cell(row=row_index, column=LINK_COLUMN)
            if result.normalized_url.startswith(("http://", "https://")):
                link_cell.hyperlink = result.normalized_url
                link_cell.font = link_font

            color = STATUS_COLORS.get(result.status)
            if color:
                ws.cell(row=row_index, column=STATUS_COLUMN).fill = PatternFill(
                    start_color=color,
                    end_color=color,
                    fill_type="solid",
                )

    @staticmethod
    def _result_to_row(result: BulkImportResult) -> list[str]:
        """Значения строки в порядке REPORT_COLUMNS."""
        return [
            result.input_url,
            result.normalized_url,
            result.provider_used,
            result.status,
            result.message,
            result.created_product_id or "",
            "\n".join(result.warnings),
        ]

    def _apply_formatting(self, ws: Worksheet, data_rows: int) -> None:
        for col_index, (_, width) in enumerate(REPORT_COLUMNS, start=1):
            ws.column_dimensions[get_column_letter(col_index)].width = width

        last_col_letter = get_column_letter(len(REPORT_COLUMNS))
        ws.auto_filter.ref = f"A1:{last_col_letter}{data_rows + 1}"

        # Шапка остаётся видимой при прокрутке
        ws.freeze_panes = "A2"
        ws.row_dimensions[1].height = 30

    def _save_workbook(self, wb: Workbook, path: str) -> str:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        wb.save(str(output_path))
        absolute_path = str(output_path.resolve())
        logger.info("workbook_saved", path=absolute_path)
        return absolute_path
