"""
Chart Capture Service

Turns mounted chart surfaces into PNG raster images for document export.

A surface is anything that can paint itself into a Pillow image at a given
pixel density. The adapter keeps a registry of mounted surfaces; capturing
an id that is not mounted, or one with no rendered area, fails for that
chart only. capture_all() never raises for capture problems, it reports
one CaptureResult per requested id so the encoder can skip the failures.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from io import BytesIO
from typing import Dict, List, Optional, Sequence

from PIL import Image

from fintrack.config import settings
from fintrack.exceptions import (
    ChartCaptureError,
    EmptySurfaceError,
    SurfaceNotFoundError,
)
from fintrack.schemas.reporting import (
    CaptureResult,
    CaptureStatus,
    RasterImage,
    ReportData,
)
from fintrack.services.report_generator_service.chart_renderer import (
    CHART_HEIGHT,
    CHART_WIDTH,
    render_category_chart,
    render_trend_chart,
)

logger = logging.getLogger(__name__)

MAIN_CHART_ID = "report-chart-main"
SECONDARY_CHART_ID = "report-chart-secondary"


class ChartSurface(ABC):
    """A visual surface with a stable id and logical size in pixels."""

    def __init__(self, surface_id: str, width: int, height: int):
        self.surface_id = surface_id
        self.width = width
        self.height = height

    @property
    def has_area(self) -> bool:
        return self.width > 0 and self.height > 0

    @abstractmethod
    async def paint(self, scale: int) -> Image.Image:
        """Render the surface at `scale`x its logical size."""


class CategoryChartSurface(ChartSurface):
    """Expense-by-category bars; has no area when there are no expenses."""

    def __init__(self, report: ReportData, surface_id: str = MAIN_CHART_ID):
        height = CHART_HEIGHT if report.chart_series else 0
        super().__init__(surface_id, CHART_WIDTH, height)
        self.points = report.chart_series

    async def paint(self, scale: int) -> Image.Image:
        return await asyncio.to_thread(
            render_category_chart, self.points, scale, self.width, self.height,
        )


class TrendChartSurface(ChartSurface):
    """Monthly income/expense bars; has no area when the period is empty."""

    def __init__(self, report: ReportData, surface_id: str = SECONDARY_CHART_ID):
        height = CHART_HEIGHT if report.monthly_series else 0
        super().__init__(surface_id, CHART_WIDTH, height)
        self.series = report.monthly_series

    async def paint(self, scale: int) -> Image.Image:
        return await asyncio.to_thread(
            render_trend_chart, self.series, scale, self.width, self.height,
        )


class ChartCaptureAdapter:
    """Registry of mounted surfaces plus the capture operation."""

    def __init__(self, scale: Optional[int] = None):
        self.scale = scale or settings.chart_capture_scale
        self._surfaces: Dict[str, ChartSurface] = {}

    def mount(self, surface: ChartSurface) -> None:
        self._surfaces[surface.surface_id] = surface

    def unmount(self, surface_id: str) -> None:
        self._surfaces.pop(surface_id, None)

    def is_mounted(self, surface_id: str) -> bool:
        return surface_id in self._surfaces

    async def capture_surface(self, surface_id: str) -> RasterImage:
        """
        Capture one surface as a PNG.

        Raises:
            SurfaceNotFoundError: nothing with this id is mounted
            EmptySurfaceError: the surface (or what it painted) has no area
            ChartCaptureError: painting or PNG encoding failed
        """
        surface = self._surfaces.get(surface_id)
        if surface is None:
            raise SurfaceNotFoundError(surface_id)
        if not surface.has_area:
            raise EmptySurfaceError(surface_id)

        try:
            image = await surface.paint(self.scale)
            if image.width == 0 or image.height == 0:
                raise EmptySurfaceError(surface_id)
            buf = BytesIO()
            image.save(buf, format="PNG", optimize=True)
        except ChartCaptureError:
            raise
        except Exception as e:
            raise ChartCaptureError(surface_id, f"Chart surface '{surface_id}' failed to render: {e}") from e

        return RasterImage(
            surface_id=surface_id,
            data=buf.getvalue(),
            width=image.width,
            height=image.height,
            image_format="PNG",
            scale=self.scale,
        )

    async def capture_all(self, surface_ids: Sequence[str]) -> List[CaptureResult]:
        """Capture each id in order; failures become result variants, not exceptions."""
        results = []
        for surface_id in surface_ids:
            try:
                image = await self.capture_surface(surface_id)
                results.append(CaptureResult(surface_id, CaptureStatus.OK, image=image))
            except SurfaceNotFoundError as e:
                results.append(CaptureResult(surface_id, CaptureStatus.SURFACE_NOT_FOUND, error=e.message))
            except EmptySurfaceError as e:
                results.append(CaptureResult(surface_id, CaptureStatus.EMPTY_SURFACE, error=e.message))
            except ChartCaptureError as e:
                results.append(CaptureResult(surface_id, CaptureStatus.RENDER_FAILED, error=e.message))
        return results


def build_report_capture_adapter(report: ReportData) -> ChartCaptureAdapter:
    """Adapter with the built-in category and trend charts mounted for a report."""
    adapter = ChartCaptureAdapter()
    adapter.mount(CategoryChartSurface(report))
    adapter.mount(TrendChartSurface(report))
    return adapter
