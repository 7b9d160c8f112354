from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Branding (see services/brand_service.py for the full palette)
    product_name: str = "FinTrack"
    brand_file: str = ""  # Optional path to a brand.json override
    currency_symbol: str = "$"

    # PDF layout (millimetres)
    pdf_page_format: str = "A4"  # A4 or Letter
    pdf_orientation: str = "portrait"  # portrait or landscape
    pdf_margin_mm: float = 15.0
    pdf_compress: bool = True
    # Unicode TTF for PDF text (e.g. a Noto Sans SC file for CJK); system fonts are tried next
    pdf_font_path: str = ""
    pdf_unicode_font: bool = True  # False forces core Helvetica with Latin-1 text

    # Charts
    chart_min_space_mm: float = 90.0  # Below this a chart starts a new page
    chart_height_mm: float = 85.0
    chart_capture_scale: int = 2
    chart_surface_ids: List[str] = ["report-chart-main", "report-chart-secondary"]

    # Spreadsheet
    spreadsheet_column_width: int = 20

    # Tax expense report: empty list means every expense category counts
    tax_deductible_categories: List[str] = []

    # Logging
    log_level: str = "INFO"

    # HTTP
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @field_validator("pdf_orientation")
    @classmethod
    def normalize_orientation(cls, v: str) -> str:
        """Accept P/L shorthands as well as full words"""
        v = v.strip().lower()
        if v in ("p", "portrait"):
            return "portrait"
        if v in ("l", "landscape"):
            return "landscape"
        raise ValueError(f"Unsupported PDF orientation: {v}")

    def get_cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_prefix = "FINTRACK_"
        case_sensitive = False


settings = Settings()
