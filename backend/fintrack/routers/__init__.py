"""
API Routers

This package contains the FastAPI routers mounted by fintrack.main.
"""

from fintrack.routers import reports_router

__all__ = [
    "reports_router",
]
