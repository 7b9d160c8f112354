"""
Shared test fixtures for FinTrack report pipeline tests.

Provides reusable fixtures for:
- A small March 2025 transaction set
- Brand cache reset and test-friendly settings
- FastAPI test client

Record factories live in factories.py.
"""

from datetime import datetime

import pytest

import fintrack.services.brand_service as brand_mod
from fintrack.config import settings

from factories import make_txn

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@pytest.fixture
def march_transactions():
    """Two Food expenses (50, 30) and one 1000 salary, all in March 2025."""
    return [
        make_txn(50, "expense", "Food", "2025-03-05", "Groceries", id="t1"),
        make_txn(30, "expense", "Food", "2025-03-12", "Lunch", id="t2"),
        make_txn(1000, "income", "Salary", "2025-03-01", "March salary", id="t3"),
    ]


@pytest.fixture
def generated_at():
    return datetime(2025, 4, 2, 9, 30)


# ---------------------------------------------------------------------------
# Settings and caches
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_brand_cache():
    """Every test starts from the built-in brand."""
    brand_mod._brand_config = None
    yield
    brand_mod._brand_config = None


@pytest.fixture
def uncompressed_pdf(monkeypatch):
    """Core font, uncompressed content streams, so text can be searched in the bytes."""
    monkeypatch.setattr(settings, "pdf_compress", False)
    monkeypatch.setattr(settings, "pdf_unicode_font", False)


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest.fixture
def client():
    """TestClient for the reports app."""
    from fastapi.testclient import TestClient

    from fintrack.main import app

    with TestClient(app) as c:
        yield c
