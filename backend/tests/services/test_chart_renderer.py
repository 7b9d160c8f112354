"""
Tests for the Pillow chart renderers behind the built-in capture surfaces.
"""

from decimal import Decimal

from PIL import Image

from fintrack.schemas.reporting import ChartPoint
from fintrack.services.report_generator_service.chart_renderer import (
    CHART_HEIGHT,
    CHART_WIDTH,
    MAX_CATEGORY_BARS,
    _fold_categories,
    _format_chart_value,
    render_category_chart,
    render_trend_chart,
)


def _points(*pairs):
    return [ChartPoint(category=c, amount=Decimal(str(a))) for c, a in pairs]


# ---- _format_chart_value tests ----


class TestFormatChartValue:
    """Tests for axis value formatting."""

    def test_millions(self):
        assert _format_chart_value(2_500_000) == "$2.5M"

    def test_tens_of_thousands(self):
        assert _format_chart_value(50_000) == "$50K"

    def test_thousands(self):
        assert _format_chart_value(1_500) == "$1.5K"

    def test_small_value(self):
        assert _format_chart_value(500) == "$500"

    def test_zero(self):
        assert _format_chart_value(0) == "$0"

    def test_negative(self):
        assert _format_chart_value(-1_500) == "-$1.5K"

    def test_other_symbol(self):
        assert _format_chart_value(20, "EUR ") == "EUR 20"


# ---- _fold_categories tests ----


class TestFoldCategories:
    """Tests for _fold_categories()"""

    def test_sorted_by_amount(self):
        bars = _fold_categories(_points(("Food", 10), ("Rent", 900), ("Fun", 50)))
        assert [label for label, _ in bars] == ["Rent", "Fun", "Food"]

    def test_tail_merged_into_other(self):
        points = _points(*[(f"Cat{i:02d}", 100 - i) for i in range(12)])
        bars = _fold_categories(points)

        assert len(bars) == MAX_CATEGORY_BARS
        assert bars[-1][0] == "Other"
        # Cat07..Cat11 = 93 + 92 + 91 + 90 + 89
        assert bars[-1][1] == 455.0

    def test_exactly_max_bars_not_folded(self):
        points = _points(*[(f"Cat{i}", i + 1) for i in range(MAX_CATEGORY_BARS)])
        assert all(label != "Other" for label, _ in _fold_categories(points))


# ---- render_category_chart / render_trend_chart tests ----


class TestRenderCategoryChart:
    """Tests for render_category_chart()"""

    def test_returns_image_at_scale(self):
        img = render_category_chart(_points(("Food", 80), ("Rent", 900)), scale=2)
        assert isinstance(img, Image.Image)
        assert img.size == (CHART_WIDTH * 2, CHART_HEIGHT * 2)

    def test_scale_one(self):
        img = render_category_chart(_points(("Food", 80)), scale=1)
        assert img.size == (CHART_WIDTH, CHART_HEIGHT)

    def test_empty_series_still_renders(self):
        img = render_category_chart([], scale=2)
        assert img.size == (CHART_WIDTH * 2, CHART_HEIGHT * 2)

    def test_bars_use_expense_colour(self):
        img = render_category_chart(_points(("Food", 80)), scale=2)
        colours = {c for _, c in img.getcolors(maxcolors=100_000)}
        assert (239, 68, 68) in colours


class TestRenderTrendChart:
    """Tests for render_trend_chart()"""

    def test_returns_image_at_scale(self):
        series = [
            ("January 2025", Decimal("1000"), Decimal("400")),
            ("February 2025", Decimal("1200"), Decimal("700")),
        ]
        img = render_trend_chart(series, scale=2)
        assert img.size == (CHART_WIDTH * 2, CHART_HEIGHT * 2)

    def test_income_and_expense_colours_present(self):
        img = render_trend_chart([("March 2025", Decimal("1000"), Decimal("80"))], scale=2)
        colours = {c for _, c in img.getcolors(maxcolors=100_000)}
        assert (16, 185, 129) in colours
        assert (239, 68, 68) in colours

    def test_empty_series_still_renders(self):
        img = render_trend_chart([], scale=2)
        assert img.size == (CHART_WIDTH * 2, CHART_HEIGHT * 2)

    def test_long_series(self):
        series = [(f"Month {i}", Decimal(i * 100), Decimal(i * 50)) for i in range(1, 25)]
        img = render_trend_chart(series, scale=1)
        assert img.size == (CHART_WIDTH, CHART_HEIGHT)
