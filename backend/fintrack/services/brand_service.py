"""
Brand Service - Product name, tagline and colour palette for documents.

Defaults are built in; settings.brand_file may point at a brand.json that
overrides any subset of them. The merged result is cached after first use.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

from fintrack.config import settings

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

# Default brand values (used as-is when no brand file is configured)
_DEFAULTS = {
    "name": "FinTrack",
    "tagline": "Personal Finance Tracker",
    "copyright": "FinTrack",
    "colors": {
        "primary": [30, 64, 175],
        "primaryLight": [219, 234, 254],
        "text": [31, 41, 55],
        "textMuted": [107, 114, 128],
        "border": [229, 231, 235],
        "rowAlt": [249, 250, 251],
        "income": [16, 185, 129],
        "expense": [239, 68, 68],
        "white": [255, 255, 255],
    },
}

# Cached brand config (loaded once at first access)
_brand_config: Optional[dict] = None


def _load_brand_json(path: Path) -> Optional[dict]:
    """Try to load and parse a brand.json file."""
    try:
        if path.is_file():
            with open(path, "r") as f:
                data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring %s: top level is not an object", path)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to read %s: %s", path, e)
    return None


def get_brand() -> dict:
    """Get the active brand configuration (cached after first call)."""
    global _brand_config
    if _brand_config is not None:
        return _brand_config

    config = None
    if settings.brand_file:
        config = _load_brand_json(Path(settings.brand_file))
    if config is None:
        config = {"name": settings.product_name, "copyright": settings.product_name}

    # Merge with defaults so missing keys don't break anything
    merged = dict(_DEFAULTS)
    for key, value in config.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value

    _brand_config = merged
    logger.info("Brand loaded: %s", merged.get("name", "unknown"))
    return _brand_config


def brand_color(name: str) -> RGB:
    """Palette entry as an (r, g, b) tuple; unknown or malformed names fall back to text colour."""
    colors = get_brand()["colors"]
    value = colors.get(name, _DEFAULTS["colors"].get(name, _DEFAULTS["colors"]["text"]))
    if isinstance(value, str) and value.startswith("#") and len(value) == 7:
        return tuple(int(value[i:i + 2], 16) for i in (1, 3, 5))
    try:
        r, g, b = value
        return int(r), int(g), int(b)
    except (TypeError, ValueError):
        logger.warning("Malformed brand colour %r for %s", value, name)
        return tuple(_DEFAULTS["colors"]["text"])


def reload_brand() -> dict:
    """Force reload brand config (e.g., after editing brand.json)."""
    global _brand_config
    _brand_config = None
    return get_brand()
