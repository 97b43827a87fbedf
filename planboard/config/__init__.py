"""Configuration package."""

from planboard.config.settings import (
    AppSettings,
    BudgetSettings,
    CalendarSettings,
    EntitlementSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BudgetSettings",
    "CalendarSettings",
    "EntitlementSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
