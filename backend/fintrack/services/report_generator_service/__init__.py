"""
Report Generator Service

Split into focused modules:
- base: encoder state machine shared by every format
- pdf_generator: paginated PDF documents with fpdf2
- spreadsheet_generator: .xlsx workbooks with openpyxl
- csv_generator: flat delimited text
- chart_renderer: Pillow charts behind the built-in capture surfaces
"""

import logging
from typing import Dict, Type

from fintrack.schemas.reporting import ExportFormat
from fintrack.services.report_generator_service.base import (  # noqa: F401
    DocumentEncoder,
    EncodeState,
)
from fintrack.services.report_generator_service.csv_generator import CSVReportEncoder
from fintrack.services.report_generator_service.pdf_generator import PDFReportEncoder
from fintrack.services.report_generator_service.spreadsheet_generator import (
    SpreadsheetReportEncoder,
)

logger = logging.getLogger(__name__)

ENCODERS: Dict[ExportFormat, Type[DocumentEncoder]] = {
    ExportFormat.PDF: PDFReportEncoder,
    ExportFormat.SPREADSHEET: SpreadsheetReportEncoder,
    ExportFormat.DELIMITED_TEXT: CSVReportEncoder,
}


def get_encoder(format_name: str) -> DocumentEncoder:
    """
    Fresh encoder for a format name.

    Unknown formats degrade to the delimited-text encoder, which every
    report type can be reduced to.
    """
    try:
        export_format = ExportFormat(format_name)
    except ValueError:
        logger.warning(f"Unsupported export format '{format_name}', falling back to CSV")
        export_format = ExportFormat.DELIMITED_TEXT
    return ENCODERS[export_format]()
