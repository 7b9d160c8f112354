"""
Domain exceptions for the report pipeline.

Services raise these instead of fastapi.HTTPException to avoid coupling
the service layer to the web framework. A global exception handler in
main.py translates them into HTTP responses.
"""

from typing import Optional


class AppError(Exception):
    """Base application error with an HTTP-equivalent status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Invalid report configuration (400)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class ChartCaptureError(AppError):
    """A chart surface could not be turned into an image."""

    def __init__(self, surface_id: str, message: str):
        self.surface_id = surface_id
        super().__init__(message, status_code=422)


class SurfaceNotFoundError(ChartCaptureError):
    """No surface with this identifier is mounted."""

    def __init__(self, surface_id: str):
        super().__init__(surface_id, f"Chart surface '{surface_id}' not found")


class EmptySurfaceError(ChartCaptureError):
    """The surface is mounted but has zero width or height."""

    def __init__(self, surface_id: str):
        super().__init__(surface_id, f"Chart surface '{surface_id}' has no rendered area")


class EncodingError(AppError):
    """A document encoder failed; the whole export attempt is void (500)."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        super().__init__(message, status_code=500)
