"""
Configuration package.

Settings come from the environment (and .env); the default category
table is plain data that callers may replace.
"""

from moneybook.config.defaults import (
    DEFAULT_CATEGORIES,
    UNCATEGORIZED_COLOR,
    UNCATEGORIZED_ICON,
    UNCATEGORIZED_NAME,
)
from moneybook.config.settings import (
    AppSettings,
    CloudinarySettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    # Settings
    "AppSettings",
    "CloudinarySettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
    # Default data
    "DEFAULT_CATEGORIES",
    "UNCATEGORIZED_COLOR",
    "UNCATEGORIZED_ICON",
    "UNCATEGORIZED_NAME",
]
