"""
Spreadsheet Generator - multi-sheet .xlsx workbooks with openpyxl.

Sheets, each added only when its include flag is set:
- Summary: metric / value pairs, columns sized to their contents
- Transactions: the detail table (header-only when there are no rows)
- Chart Data: raw category / amount pairs for building native charts
"""

import logging
from decimal import Decimal
from io import BytesIO
from typing import Iterable, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from fintrack.config import settings
from fintrack.schemas.reporting import ExportFormat, ReportData
from fintrack.services.report_generator_service.base import (
    DocumentEncoder,
    EncodeState,
    Stage,
)

logger = logging.getLogger(__name__)

MONEY_FORMAT = "#,##0.00"
HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1E40AF", end_color="1E40AF", fill_type="solid")


def _style_header_row(ws, width: int):
    for col in range(1, width + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")


def _append_rows(ws, rows: Iterable[Sequence[object]]):
    """Append rows, keeping Decimals numeric with a money format."""
    for row in rows:
        ws.append(list(row))
        for cell in ws[ws.max_row]:
            if isinstance(cell.value, Decimal):
                cell.number_format = MONEY_FORMAT


def _auto_size_columns(ws, minimum: int = 10, maximum: int = 60):
    for col_cells in ws.columns:
        longest = max((len(str(c.value)) for c in col_cells if c.value is not None), default=0)
        letter = get_column_letter(col_cells[0].column)
        ws.column_dimensions[letter].width = max(minimum, min(maximum, longest + 2))


def _fixed_width_columns(ws, count: int, width: int):
    for col in range(1, count + 1):
        ws.column_dimensions[get_column_letter(col)].width = width


class SpreadsheetReportEncoder(DocumentEncoder):
    format = ExportFormat.SPREADSHEET
    extension = "xlsx"
    media_type = "application/octet-stream"

    def __init__(self):
        super().__init__()
        self.workbook = None

    def _plan(self, config, data, metadata, charts) -> List[Stage]:
        stages: List[Stage] = [
            (EncodeState.LAYING_OUT, lambda: self._lay_out(config, data)),
        ]
        if config.include_charts:
            # The workbook carries the raw series rather than chart images
            stages.append((EncodeState.EMBEDDING_CHARTS, lambda: self._add_chart_data(data)))
        stages.append((EncodeState.FINALIZING, self._finalize))
        return stages

    def _lay_out(self, config, data: ReportData):
        wb = Workbook()
        wb.remove(wb.active)
        self.workbook = wb

        if config.include_summary:
            ws = wb.create_sheet("Summary")
            ws.append(["Metric", "Value"])
            _style_header_row(ws, 2)
            _append_rows(ws, data.summary.items())
            _auto_size_columns(ws)

        if config.include_details:
            ws = wb.create_sheet("Transactions")
            headers = list(data.detail.headers)
            ws.append(headers)
            _style_header_row(ws, len(headers))
            _append_rows(ws, data.detail.rows)
            _fixed_width_columns(ws, len(headers), settings.spreadsheet_column_width)
            if headers:
                ws.freeze_panes = "A2"

    def _add_chart_data(self, data: ReportData):
        ws = self.workbook.create_sheet("Chart Data")
        ws.append(["Category", "Amount"])
        _style_header_row(ws, 2)
        _append_rows(ws, ((p.category, p.amount) for p in data.chart_series))
        _fixed_width_columns(ws, 2, settings.spreadsheet_column_width)

    def _finalize(self) -> bytes:
        wb = self.workbook
        if not wb.sheetnames:
            # A workbook must contain at least one sheet
            ws = wb.create_sheet("Summary")
            ws.append(["Metric", "Value"])
            _style_header_row(ws, 2)
        buffer = BytesIO()
        wb.save(buffer)
        logger.debug(f"Workbook finalized with sheets {wb.sheetnames}")
        return buffer.getvalue()
