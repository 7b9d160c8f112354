"""
CSV Generator - flat delimited-text export.

Writes the detail table when details are requested, otherwise the summary
as Metric,Value rows. Cells are comma-joined without quoting; a cell that
contains a comma is logged because it will shift the columns after it.
"""

import logging
from decimal import Decimal
from typing import List, Sequence

from fintrack.schemas.reporting import ExportFormat, ReportData
from fintrack.services.report_generator_service.base import (
    DocumentEncoder,
    EncodeState,
    Stage,
)

logger = logging.getLogger(__name__)

DELIMITER = ","


def _csv_cell(value) -> str:
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if value is None:
        return ""
    return str(value)


class CSVReportEncoder(DocumentEncoder):
    format = ExportFormat.DELIMITED_TEXT
    extension = "csv"
    media_type = "text/csv"

    def __init__(self):
        super().__init__()
        self.lines: List[str] = []
        self.delimiter_warnings = 0

    def _plan(self, config, data, metadata, charts) -> List[Stage]:
        return [
            (EncodeState.LAYING_OUT, lambda: self._lay_out(config, data)),
            (EncodeState.FINALIZING, self._finalize),
        ]

    def _join(self, cells: Sequence[object]) -> str:
        texts = [_csv_cell(c) for c in cells]
        for text in texts:
            if DELIMITER in text:
                self.delimiter_warnings += 1
                logger.warning(f"CSV cell contains the delimiter and is not escaped: {text!r}")
        return DELIMITER.join(texts)

    def _lay_out(self, config, data: ReportData):
        if config.include_details and data.detail.headers:
            self.lines.append(self._join(data.detail.headers))
            self.lines.extend(self._join(row) for row in data.detail.rows)
        else:
            self.lines.append(self._join(["Metric", "Value"]))
            self.lines.extend(self._join([k, v]) for k, v in data.summary.items())

    def _finalize(self) -> bytes:
        return ("\n".join(self.lines) + "\n").encode("utf-8")
