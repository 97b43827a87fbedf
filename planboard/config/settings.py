"""
Configuration Management for Planboard

Uses pydantic-settings for type-safe configuration from environment variables.

All tunable rules of the engine live here: free-tier limits, trial and beta
durations, expiry warning thresholds, the first day of the week and the
budget status thresholds. Nothing in the engine reads the environment
directly.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EntitlementSettings(BaseSettings):
    """Freemium entitlement rules."""

    model_config = SettingsConfigDict(
        env_prefix="PLANBOARD_ENTITLEMENT_",
        extra="ignore"
    )

    free_event_limit: int = Field(
        default=5,
        ge=0,
        description="Maximum number of active calendar events on the free tier"
    )
    free_task_limit: Optional[int] = Field(
        default=None,
        ge=0,
        description="Maximum number of open tasks on the free tier (None = unlimited)"
    )
    trial_days: int = Field(
        default=7,
        ge=1,
        description="Length of the premium trial in days"
    )
    beta_days: int = Field(
        default=37,
        ge=1,
        description="Length of the beta-tester access in days"
    )
    trial_warning_days: int = Field(
        default=2,
        ge=0,
        description="Days remaining at which a trial is reported as ending soon"
    )
    beta_warning_days: int = Field(
        default=3,
        ge=0,
        description="Days remaining at which beta access is reported as ending soon"
    )
    admin_emails: str = Field(
        default="",
        description="Comma-separated list of e-mails allowed to manage beta testers"
    )
    server_side_quota_enforced: bool = Field(
        default=False,
        description="Set when the backend enforces free-tier quotas itself"
    )

    @property
    def admin_emails_list(self) -> list[str]:
        """Get admin e-mails as a normalised list."""
        return [
            email.strip().lower()
            for email in self.admin_emails.split(",")
            if email.strip()
        ]

    def limit_for(self, resource: str) -> Optional[int]:
        """Free-tier limit for a countable resource (None = unlimited)."""
        limits = {
            "events": self.free_event_limit,
            "tasks": self.free_task_limit,
        }
        return limits.get(resource)


class CalendarSettings(BaseSettings):
    """Calendar window configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PLANBOARD_CALENDAR_",
        extra="ignore"
    )

    # 0 = Monday ... 6 = Sunday (datetime.weekday() numbering)
    week_starts_on: int = Field(
        default=0,
        ge=0,
        le=6,
        description="First day of the week"
    )


class BudgetSettings(BaseSettings):
    """Budget tracking configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PLANBOARD_BUDGET_",
        extra="ignore"
    )

    default_monthly_budget: float = Field(
        default=2000.0,
        ge=0,
        description="Monthly budget used when the profile has none"
    )
    currency: str = Field(
        default="EUR",
        description="ISO currency code used for display"
    )
    moderate_threshold: float = Field(
        default=50.0,
        ge=0,
        description="Percentage of a budget at which spending is moderate"
    )
    warning_threshold: float = Field(
        default=80.0,
        ge=0,
        description="Percentage of a budget at which spending triggers a warning"
    )
    exceeded_threshold: float = Field(
        default=100.0,
        ge=0,
        description="Percentage of a budget at which it is exceeded"
    )

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        up = v.strip().upper()
        if len(up) != 3:
            raise ValueError("currency must be a 3-letter ISO code")
        return up

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'BudgetSettings':
        """Thresholds must be increasing."""
        if not (
            self.moderate_threshold
            <= self.warning_threshold
            <= self.exceeded_threshold
        ):
            raise ValueError(
                "Budget thresholds must satisfy moderate <= warning <= exceeded"
            )
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        up = v.strip().upper()
        if up not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return up


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def entitlements(self) -> EntitlementSettings:
        return EntitlementSettings()

    @property
    def calendar(self) -> CalendarSettings:
        return CalendarSettings()

    @property
    def budgets(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<setting_name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    sections = {
        "entitlements": lambda: settings.entitlements,
        "calendar": lambda: settings.calendar,
        "budgets": lambda: settings.budgets,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
