"""
PDF Generator - paginated report documents with fpdf2.

Part of the report_generator_service package.

Layout, top to bottom:
- Header band on every page (product name, report title, period, date)
- Executive Summary (label / value table)
- Visual Overview (captured chart images)
- Detailed Breakdown (table that repeats its header row on new pages)
- Insights (optional narrative text)

Footers carry "Page i of N", so they are stamped in a second pass once all
content is laid out and the page count is final.

Text is set in a Unicode TTF when one is found (settings.pdf_font_path, then
the system fonts below). Without one, the core Helvetica font is used and
text is folded to Latin-1.
"""

import logging
import re as _re
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from fpdf import FPDF
from PIL import Image

from fintrack.config import settings
from fintrack.schemas.reporting import (
    ExportFormat,
    RasterImage,
    ReportConfiguration,
    ReportData,
    ReportMetadata,
)
from fintrack.services.brand_service import brand_color, get_brand
from fintrack.services.report_generator_service.base import (
    DocumentEncoder,
    EncodeState,
    Stage,
    format_amount,
)

logger = logging.getLogger(__name__)

HEADER_HEIGHT = 32  # mm, coloured band at the top of each page
FOOTER_OFFSET = 12  # mm from the bottom edge to the footer text
ROW_HEIGHT = 7
CHART_GAP = 6

CORE_FAMILY = "Helvetica"
UNICODE_FAMILY = "ReportSans"

# Unicode TTF candidates, tried after settings.pdf_font_path
_UNICODE_FONT_PATHS = [
    "/usr/share/fonts/google-noto-vf/NotoSans[wght].ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
]

# Regex to strip emoji characters (neither font carries emoji glyphs)
_EMOJI_RE = _re.compile(
    "["
    "\U0001F000-\U0001FAFF"  # Mahjong, cards, pictographs, emoticons, symbols
    "\U00002600-\U000027BF"  # Misc Symbols and Dingbats
    "\U0000FE00-\U0000FE0F"  # Variation Selectors
    "\U0000200D"             # Zero Width Joiner
    "]+",
)


def _sanitize_for_pdf(text: str, unicode_font: bool = False) -> str:
    """
    Strip emoji. Without a Unicode font, also replace characters unsupported
    by Helvetica (Latin-1) with ASCII equivalents.
    """
    text = _EMOJI_RE.sub("", text)
    if unicode_font:
        return text
    replacements = {
        "\u2013": "-",    # en-dash
        "\u2014": "--",   # em-dash
        "\u2018": "'",    # left single quote
        "\u2019": "'",    # right single quote
        "\u201c": '"',    # left double quote
        "\u201d": '"',    # right double quote
        "\u2026": "...",  # ellipsis
        "\u2022": "*",    # bullet
        "\u00a0": " ",    # non-breaking space
        "\u2212": "-",    # minus sign
        "\u20ac": "EUR",  # euro sign is outside Latin-1
    }
    for char, replacement in replacements.items():
        text = text.replace(char, replacement)
    # Fallback: replace any remaining non-Latin-1 chars
    return text.encode("latin-1", errors="replace").decode("latin-1")


def _find_unicode_font() -> Optional[str]:
    """First existing TTF among settings.pdf_font_path and the system candidates."""
    candidates = [settings.pdf_font_path] if settings.pdf_font_path else []
    for path in candidates + _UNICODE_FONT_PATHS:
        if Path(path).is_file():
            return path
    return None


def _truncate_to_width(pdf, text: str, max_width: float) -> str:
    """Truncate text with '...' suffix if it exceeds the given cell width (mm)."""
    if pdf.get_string_width(text) <= max_width:
        return text
    ellipsis = "..."
    ew = pdf.get_string_width(ellipsis)
    for i in range(len(text), 0, -1):
        if pdf.get_string_width(text[:i]) + ew <= max_width:
            return text[:i] + ellipsis
    return ellipsis


def _cell_text(pdf, value) -> str:
    """Display text for a summary or detail value."""
    if isinstance(value, Decimal):
        return format_amount(value, settings.currency_symbol)
    if value is None:
        return "-"
    return pdf.safe_text(str(value))


class ReportPDF(FPDF):
    """FPDF with the branded header band drawn on every new page."""

    def __init__(self, brand: Dict, metadata: ReportMetadata):
        super().__init__(
            orientation="L" if settings.pdf_orientation == "landscape" else "P",
            unit="mm",
            format=settings.pdf_page_format,
        )
        self.brand = brand
        self.metadata = metadata
        self.base_font = CORE_FAMILY
        self.unicode_font = False
        if settings.pdf_unicode_font:
            self._load_unicode_font()

        margin = settings.pdf_margin_mm
        self.set_margins(margin, HEADER_HEIGHT + 8, margin)
        self.set_auto_page_break(auto=True, margin=FOOTER_OFFSET + 10)
        self.set_compression(settings.pdf_compress)
        self.set_title(self.safe_text(metadata.title))
        self.set_creator(self.safe_text(brand["name"]))

    def _load_unicode_font(self):
        path = _find_unicode_font()
        if path is None:
            logger.info("No Unicode TTF found, PDF text limited to Latin-1")
            return
        try:
            for style in ("", "B", "I", "BI"):
                self.add_font(UNICODE_FAMILY, style, path)
        except Exception as e:
            logger.warning(f"Could not load PDF font {path}, using {CORE_FAMILY}: {e}")
            return
        self.base_font = UNICODE_FAMILY
        self.unicode_font = True

    def safe_text(self, text: str) -> str:
        return _sanitize_for_pdf(text, self.unicode_font)

    def set_base_font(self, style: str = "", size: float = 10):
        self.set_font(self.base_font, style, size)

    def header(self):
        r, g, b = brand_color("primary")
        self.set_fill_color(r, g, b)
        self.rect(0, 0, self.w, HEADER_HEIGHT, "F")

        self.set_text_color(255, 255, 255)
        self.set_xy(self.l_margin, 7)
        self.set_base_font("B", 18)
        self.cell(0, 8, self.safe_text(self.brand["name"]), new_x="LMARGIN", new_y="NEXT")
        self.set_base_font("", 12)
        self.cell(0, 7, self.safe_text(self.metadata.title), new_x="LMARGIN", new_y="NEXT")

        self.set_base_font("", 9)
        self.set_xy(self.l_margin, 9)
        self.cell(0, 5, f"Period: {self.safe_text(self.metadata.period)}",
                  new_x="LMARGIN", new_y="NEXT", align="R")
        generated = self.metadata.generated_at.strftime("%B %d, %Y")
        self.cell(0, 5, f"Generated: {generated}", new_x="LMARGIN", new_y="NEXT", align="R")

        self.set_y(HEADER_HEIGHT + 8)

    def footer(self):
        # Footers need the final page count; they are stamped after layout
        pass


def _section_title(pdf, title: str):
    if pdf.will_page_break(ROW_HEIGHT * 3):
        pdf.add_page()
    pdf.ln(2)
    r, g, b = brand_color("primary")
    pdf.set_base_font("B", 13)
    pdf.set_text_color(r, g, b)
    pdf.cell(0, 9, title, new_x="LMARGIN", new_y="NEXT")
    pdf.ln(1)


def _build_pdf_summary(pdf, summary: Dict[str, object]):
    """Two-column label/value table."""
    _section_title(pdf, "Executive Summary")
    label_w = pdf.epw * 0.55
    value_w = pdf.epw - label_w
    pr, pg, pb = brand_color("primaryLight")
    br, bg, bb = brand_color("border")
    pdf.set_draw_color(br, bg, bb)

    for label, value in summary.items():
        if pdf.will_page_break(ROW_HEIGHT):
            pdf.add_page()
        pdf.set_fill_color(pr, pg, pb)
        pdf.set_base_font("", 10)
        pdf.set_text_color(*brand_color("text"))
        pdf.cell(label_w, ROW_HEIGHT, " " + pdf.safe_text(label), border=1, fill=True, new_x="RIGHT")
        pdf.set_base_font("B", 10)
        pdf.cell(value_w, ROW_HEIGHT, _cell_text(pdf, value) + " ", border=1,
                 new_x="LMARGIN", new_y="NEXT", align="R")
    pdf.ln(4)


def _decode_chart(chart: RasterImage) -> Optional[Image.Image]:
    try:
        image = Image.open(BytesIO(chart.data))
        image.load()
    except Exception as e:
        logger.warning(f"Skipping chart {chart.surface_id}: unreadable image data ({e})")
        return None
    if not image.width or not image.height:
        logger.warning(f"Skipping chart {chart.surface_id}: empty image")
        return None
    return image


def _build_pdf_charts(pdf, charts: Sequence[RasterImage]) -> Tuple[List[str], List[str]]:
    """
    Place each chart full-width at a fixed height.

    A chart that cannot be decoded or embedded is skipped and the others are
    still placed. Returns (embedded ids, skipped ids).
    """
    embedded = []
    skipped = []
    _section_title(pdf, "Visual Overview")
    for chart in charts:
        image = _decode_chart(chart)
        if image is None:
            skipped.append(chart.surface_id)
            continue

        space_left = pdf.h - pdf.b_margin - pdf.get_y()
        if space_left < settings.chart_min_space_mm:
            pdf.add_page()

        aspect = image.width / image.height
        h = settings.chart_height_mm
        w = h * aspect
        if w > pdf.epw:
            w = pdf.epw
            h = w / aspect
        x = pdf.l_margin + (pdf.epw - w) / 2
        y = pdf.get_y()
        try:
            pdf.image(image, x=x, y=y, w=w, h=h)
        except Exception as e:
            logger.warning(f"Skipping chart {chart.surface_id}: could not embed ({e})")
            skipped.append(chart.surface_id)
            continue
        pdf.set_y(y + h + CHART_GAP)
        embedded.append(chart.surface_id)
    return embedded, skipped


def _column_widths(pdf, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[float]:
    """Natural text widths scaled to fill the printable width."""
    pdf.set_base_font("B", 9)
    natural = [pdf.get_string_width(h) + 6 for h in headers]
    pdf.set_base_font("", 9)
    for row in rows[:200]:
        for i, text in enumerate(row):
            natural[i] = max(natural[i], min(pdf.get_string_width(text) + 6, pdf.epw * 0.45))
    total = sum(natural) or 1
    return [pdf.epw * n / total for n in natural]


def _build_pdf_table(pdf, headers: Sequence[str], rows: Sequence[Sequence[object]]):
    """Detail table; last column right-aligned and bold, header repeated after page breaks."""
    _section_title(pdf, "Detailed Breakdown")
    text_rows = [[_cell_text(pdf, v) for v in row] for row in rows]
    headers = [pdf.safe_text(h) for h in headers]
    widths = _column_widths(pdf, headers, text_rows)
    last = len(headers) - 1

    def draw_header():
        pdf.set_fill_color(*brand_color("primary"))
        pdf.set_text_color(255, 255, 255)
        pdf.set_base_font("B", 9)
        for i, header in enumerate(headers):
            pdf.cell(
                widths[i], ROW_HEIGHT, _truncate_to_width(pdf, header, widths[i] - 2),
                fill=True, align="R" if i == last else "L",
                new_x="LMARGIN" if i == last else "RIGHT",
                new_y="NEXT" if i == last else "TOP",
            )

    draw_header()
    pdf.set_text_color(*brand_color("text"))

    if not text_rows:
        pdf.set_base_font("I", 9)
        pdf.set_text_color(*brand_color("textMuted"))
        pdf.cell(0, ROW_HEIGHT, "No records for this period", align="C", new_x="LMARGIN", new_y="NEXT")
        return

    alt = brand_color("rowAlt")
    for n, row in enumerate(text_rows):
        if pdf.will_page_break(ROW_HEIGHT):
            pdf.add_page()
            draw_header()
        shaded = n % 2 == 1
        if shaded:
            pdf.set_fill_color(*alt)
        pdf.set_text_color(*brand_color("text"))
        for i, text in enumerate(row):
            pdf.set_base_font("B" if i == last else "", 9)
            pdf.cell(
                widths[i], ROW_HEIGHT, _truncate_to_width(pdf, text, widths[i] - 2),
                fill=shaded, align="R" if i == last else "L",
                new_x="LMARGIN" if i == last else "RIGHT",
                new_y="NEXT" if i == last else "TOP",
            )


def _render_pdf_markdown(pdf, text: str, br: int, bg: int, bb: int):
    """Render markdown-formatted text into PDF with styled headers and bullets.

    Parses markdown line by line:
    - ### Header → bold, brand color, larger size
    - **bold** → handled by fpdf2's markdown=True
    - - bullet → rendered as indented bullet item
    - Regular text → multi_cell with markdown=True
    """
    sanitized = pdf.safe_text(text)
    lines = sanitized.split("\n")
    buf = []  # accumulate regular paragraph lines

    def flush_buf():
        if buf:
            paragraph = " ".join(buf)
            pdf.set_base_font("", 10)
            pdf.set_text_color(60, 60, 60)
            pdf.set_x(pdf.l_margin)  # Reset x after bullet indents
            pdf.multi_cell(0, 6, paragraph, markdown=True)
            buf.clear()

    for line in lines:
        stripped = line.strip()
        if not stripped:
            flush_buf()
            continue

        if stripped.startswith("### "):
            flush_buf()
            pdf.ln(3)
            pdf.set_base_font("B", 11)
            pdf.set_text_color(br, bg, bb)
            pdf.cell(0, 7, stripped[4:], new_x="LMARGIN", new_y="NEXT")
            pdf.ln(1)
        elif stripped.startswith("- "):
            flush_buf()
            pdf.set_base_font("", 10)
            pdf.set_text_color(60, 60, 60)
            indent = pdf.l_margin + 5
            pdf.set_x(indent)
            avail_w = pdf.w - pdf.r_margin - indent
            pdf.multi_cell(avail_w, 6, "- " + stripped[2:], markdown=True)
        else:
            buf.append(stripped)

    flush_buf()


def _stamp_footers(pdf, brand: Dict) -> int:
    """Second pass: write 'Page i of N' on every finished page."""
    total = pdf.page_no()
    pdf.set_auto_page_break(False)
    for page in range(1, total + 1):
        pdf.page = page
        y = pdf.h - FOOTER_OFFSET
        pdf.set_draw_color(*brand_color("border"))
        pdf.line(pdf.l_margin, y - 2, pdf.w - pdf.r_margin, y - 2)
        pdf.set_base_font("", 8)
        pdf.set_text_color(*brand_color("textMuted"))
        pdf.set_xy(pdf.l_margin, y)
        pdf.cell(pdf.epw / 2, 5, f"Generated by {pdf.safe_text(brand['name'])}", new_x="RIGHT")
        pdf.cell(pdf.epw / 2, 5, f"Page {page} of {total}", align="R")
    pdf.page = total
    return total


class PDFReportEncoder(DocumentEncoder):
    format = ExportFormat.PDF
    extension = "pdf"
    media_type = "application/pdf"

    def __init__(self):
        super().__init__()
        self.pdf = None
        self.embedded_charts: List[str] = []
        self.page_count = 0

    def _plan(self, config, data, metadata, charts) -> List[Stage]:
        stages: List[Stage] = [
            (EncodeState.LAYING_OUT, lambda: self._start(config, data, metadata)),
        ]
        if config.include_charts and charts:
            stages.append((EncodeState.EMBEDDING_CHARTS, lambda: self._embed(charts)))
        stages.append((EncodeState.LAYING_OUT, lambda: self._lay_out_body(config, data)))
        stages.append((EncodeState.FINALIZING, self._finalize))
        return stages

    def _start(self, config: ReportConfiguration, data: ReportData, metadata: ReportMetadata):
        self.brand = get_brand()
        self.pdf = ReportPDF(self.brand, metadata)
        self.pdf.add_page()
        if config.include_summary and data.summary:
            _build_pdf_summary(self.pdf, data.summary)

    def _embed(self, charts: Sequence[RasterImage]):
        self.embedded_charts, self.skipped_charts = _build_pdf_charts(self.pdf, charts)

    def _lay_out_body(self, config: ReportConfiguration, data: ReportData):
        if config.include_details and data.detail.headers:
            _build_pdf_table(self.pdf, data.detail.headers, data.detail.rows)
        if data.narrative:
            _section_title(self.pdf, "Insights")
            _render_pdf_markdown(self.pdf, data.narrative, *brand_color("primary"))

    def _finalize(self) -> bytes:
        self.page_count = _stamp_footers(self.pdf, self.brand)
        buffer = BytesIO()
        self.pdf.output(buffer)
        logger.debug(
            f"PDF finalized: {self.page_count} pages, charts={self.embedded_charts}, "
            f"skipped={self.skipped_charts}"
        )
        return buffer.getvalue()
