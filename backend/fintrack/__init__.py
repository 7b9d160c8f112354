"""FinTrack report generation and export pipeline."""

__version__ = "1.0.0"
