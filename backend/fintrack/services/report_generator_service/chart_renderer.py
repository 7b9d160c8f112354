"""
Chart Renderer - static report charts drawn with Pillow.

Two charts back the built-in capture surfaces:
- Expense by category (horizontal bars, largest first)
- Monthly income vs expense (grouped vertical bars)

Both are drawn on a white background at `scale`x the logical size so they
stay sharp when placed at print size in the PDF.
"""

from decimal import Decimal
from typing import Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from fintrack.config import settings
from fintrack.schemas.reporting import ChartPoint
from fintrack.services.brand_service import brand_color

# Logical chart size in pixels (multiplied by scale when rendering)
CHART_WIDTH = 600
CHART_HEIGHT = 300

# Bars beyond this are folded into "Other"
MAX_CATEGORY_BARS = 8

_GRID_RGB = (229, 231, 235)
_LABEL_RGB = (107, 114, 128)
_TITLE_RGB = (31, 41, 55)


def _load_chart_font(size: int) -> ImageFont.FreeTypeFont:
    """Load a sans-serif font for chart rendering, with fallback."""
    for path in [
        "/usr/share/fonts/google-noto-vf/NotoSans[wght].ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    ]:
        try:
            return ImageFont.truetype(path, size)
        except (OSError, IOError):
            continue
    return ImageFont.load_default()


def _format_chart_value(val: float, symbol: str = "$") -> str:
    """Format a value for chart axis labels."""
    sign = "-" if val < 0 else ""
    val = abs(val)
    if val >= 1_000_000:
        return f"{sign}{symbol}{val / 1_000_000:.1f}M"
    if val >= 10_000:
        return f"{sign}{symbol}{val / 1_000:.0f}K"
    if val >= 1_000:
        return f"{sign}{symbol}{val / 1_000:.1f}K"
    return f"{sign}{symbol}{val:,.0f}"


def _text_size(draw: ImageDraw.ImageDraw, text: str, font) -> Tuple[int, int]:
    bbox = draw.textbbox((0, 0), text, font=font)
    return bbox[2] - bbox[0], bbox[3] - bbox[1]


def _fold_categories(points: Sequence[ChartPoint]) -> list:
    """Keep the largest categories and merge the tail into one 'Other' bar."""
    ordered = sorted(points, key=lambda p: (-p.amount, p.category))
    if len(ordered) <= MAX_CATEGORY_BARS:
        return [(p.category, float(p.amount)) for p in ordered]
    head = ordered[:MAX_CATEGORY_BARS - 1]
    tail_total = sum((p.amount for p in ordered[MAX_CATEGORY_BARS - 1:]), Decimal("0"))
    return [(p.category, float(p.amount)) for p in head] + [("Other", float(tail_total))]


def _draw_title(draw, title: str, width: int, scale: int):
    font = _load_chart_font(13 * scale)
    tw, _ = _text_size(draw, title, font)
    draw.text(((width - tw) // 2, 8 * scale), title, fill=_TITLE_RGB, font=font)


def render_category_chart(
    points: Sequence[ChartPoint],
    scale: int = 2,
    width: int = CHART_WIDTH,
    height: int = CHART_HEIGHT,
) -> Image.Image:
    """
    Horizontal bar chart of expense per category.

    Returns a Pillow image of (width * scale, height * scale). An empty
    series yields a blank chart with a "No expenses" note.
    """
    w, h = width * scale, height * scale
    img = Image.new("RGB", (w, h), (255, 255, 255))
    draw = ImageDraw.Draw(img)
    _draw_title(draw, "Expenses by Category", w, scale)

    bars = _fold_categories(points)
    font = _load_chart_font(10 * scale)
    if not bars:
        msg = "No expenses in this period"
        tw, th = _text_size(draw, msg, font)
        draw.text(((w - tw) // 2, (h - th) // 2), msg, fill=_LABEL_RGB, font=font)
        return img

    ml = 120 * scale
    mr = 70 * scale
    mt = 34 * scale
    mb = 10 * scale
    plot_w = w - ml - mr
    slot = (h - mt - mb) / len(bars)
    bar_h = max(2, int(slot * 0.65))
    top_value = max(v for _, v in bars) or 1.0
    fill = brand_color("expense")
    symbol = settings.currency_symbol

    for i, (label, value) in enumerate(bars):
        y = int(mt + i * slot + (slot - bar_h) / 2)
        bar_w = int(plot_w * value / top_value)
        draw.rectangle([ml, y, ml + max(bar_w, 1), y + bar_h], fill=fill)

        name = label if len(label) <= 18 else label[:17] + "..."
        tw, th = _text_size(draw, name, font)
        draw.text((ml - 6 * scale - tw, y + (bar_h - th) // 2), name, fill=_TITLE_RGB, font=font)

        amount = _format_chart_value(value, symbol)
        _, th = _text_size(draw, amount, font)
        draw.text((ml + bar_w + 4 * scale, y + (bar_h - th) // 2), amount, fill=_LABEL_RGB, font=font)

    return img


def render_trend_chart(
    series: Sequence[Tuple[str, Decimal, Decimal]],
    scale: int = 2,
    width: int = CHART_WIDTH,
    height: int = CHART_HEIGHT,
) -> Image.Image:
    """
    Grouped bar chart of income and expense per month.

    `series` is (month label, income, expense) oldest first, as carried in
    ReportData.monthly_series.
    """
    w, h = width * scale, height * scale
    img = Image.new("RGB", (w, h), (255, 255, 255))
    draw = ImageDraw.Draw(img)
    _draw_title(draw, "Income vs Expenses", w, scale)

    font_label = _load_chart_font(9 * scale)
    if not series:
        msg = "No activity in this period"
        tw, th = _text_size(draw, msg, font_label)
        draw.text(((w - tw) // 2, (h - th) // 2), msg, fill=_LABEL_RGB, font=font_label)
        return img

    ml, mr, mt, mb = 65 * scale, 15 * scale, 34 * scale, 40 * scale
    cw = w - ml - mr
    ch = h - mt - mb
    max_val = max(max(float(inc), float(exp)) for _, inc, exp in series) or 1.0
    max_val *= 1.05

    # Grid lines + Y-axis labels
    n_grids = 4
    symbol = settings.currency_symbol
    for i in range(n_grids + 1):
        gy = int(mt + (i / n_grids) * ch)
        draw.line([(ml, gy), (w - mr, gy)], fill=_GRID_RGB, width=1)
        label = _format_chart_value(max_val - (i / n_grids) * max_val, symbol)
        tw, th = _text_size(draw, label, font_label)
        draw.text((ml - 5 * scale - tw, gy - th // 2), label, fill=_LABEL_RGB, font=font_label)

    income_rgb = brand_color("income")
    expense_rgb = brand_color("expense")
    group_w = cw / len(series)
    bar_w = max(2, int(group_w * 0.3))
    baseline = mt + ch

    for i, (label, income, expense) in enumerate(series):
        gx = ml + i * group_w + (group_w - 2 * bar_w) / 2
        for j, (value, color) in enumerate(((income, income_rgb), (expense, expense_rgb))):
            x0 = int(gx + j * bar_w)
            bar_h = int(ch * float(value) / max_val)
            if bar_h > 0:
                draw.rectangle([x0, baseline - bar_h, x0 + bar_w - 1, baseline], fill=color)

        # Month labels get crowded past a year of data; keep every other one
        if len(series) <= 12 or i % 2 == 0:
            short = label[:3] + " " + label[-2:] if " " in label else label
            tw, _ = _text_size(draw, short, font_label)
            draw.text(
                (int(ml + i * group_w + (group_w - tw) / 2), baseline + 4 * scale),
                short, fill=_LABEL_RGB, font=font_label,
            )

    # Legend
    leg_y = h - 14 * scale
    leg_x = ml
    for text, color in (("Income", income_rgb), ("Expenses", expense_rgb)):
        draw.rectangle([leg_x, leg_y, leg_x + 10 * scale, leg_y + 8 * scale], fill=color)
        draw.text((leg_x + 14 * scale, leg_y - scale), text, fill=_LABEL_RGB, font=font_label)
        leg_x += 80 * scale

    return img
