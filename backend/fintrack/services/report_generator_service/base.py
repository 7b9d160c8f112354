"""
Encoder base - shared state machine for the document encoders.

Each encoder plans its work as an ordered list of stages. The base class
runs them, tracks which stage is active, and turns any exception into an
EncodingError naming that stage. Nothing is returned unless every stage
finished, so a caller never sees a half-written document.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, List, Sequence, Tuple

from fintrack.exceptions import EncodingError
from fintrack.schemas.reporting import (
    ExportFormat,
    RasterImage,
    ReportConfiguration,
    ReportData,
    ReportMetadata,
)

logger = logging.getLogger(__name__)


class EncodeState(str, Enum):
    NOT_STARTED = "not_started"
    LAYING_OUT = "laying_out"
    EMBEDDING_CHARTS = "embedding_charts"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


Stage = Tuple[EncodeState, Callable[[], Any]]


def format_amount(value: Decimal, symbol: str = "") -> str:
    """'1,234.50' style money text; the sign goes before the symbol."""
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


class DocumentEncoder(ABC):
    """
    Base for the PDF, spreadsheet and delimited-text encoders.

    An encoder instance handles exactly one encode() call.
    """

    format: ExportFormat
    extension: str
    media_type: str

    def __init__(self):
        self.state = EncodeState.NOT_STARTED
        # Charts handed to encode() that could not be placed in the document
        self.skipped_charts: List[str] = []

    @abstractmethod
    def _plan(
        self,
        config: ReportConfiguration,
        data: ReportData,
        metadata: ReportMetadata,
        charts: Sequence[RasterImage],
    ) -> List[Stage]:
        """Ordered stages; the last one must return the finished bytes."""

    def encode(
        self,
        config: ReportConfiguration,
        data: ReportData,
        metadata: ReportMetadata,
        charts: Sequence[RasterImage] = (),
    ) -> bytes:
        if self.state != EncodeState.NOT_STARTED:
            raise EncodingError(
                f"{type(self).__name__} has already been used ({self.state.value})",
                stage=self.state.value,
            )

        stages = self._plan(config, data, metadata, list(charts))
        content = None
        for stage, step in stages:
            content = self._run_stage(stage, step)

        if not isinstance(content, (bytes, bytearray)):
            self.state = EncodeState.FAILED
            raise EncodingError(
                f"{self.format.value} encoder produced no document",
                stage=EncodeState.FINALIZING.value,
            )
        self.state = EncodeState.DONE
        return bytes(content)

    def _run_stage(self, stage: EncodeState, step: Callable[[], Any]) -> Any:
        self.state = stage
        try:
            return step()
        except Exception as e:
            self.state = EncodeState.FAILED
            logger.error(
                f"{self.format.value} encoding failed while {stage.value}: {e}",
                exc_info=True,
            )
            raise EncodingError(
                f"Failed to generate {self.format.value} document: {e}",
                stage=stage.value,
            ) from e
