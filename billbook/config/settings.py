"""
Billbook Settings

Every knob the engine reads comes from the environment (or a .env
file), grouped by concern:

- GOOGLE_SHEETS_*  where the remote collection and audit log live
- LEDGER_*         report presentation, week start, change-feed polling
- APP_ENVIRONMENT, DEBUG_MODE, LOG_LEVEL  process-wide options

DESIGN DECISION: Sub-settings are built on access, not at import.
A credential-free run (in-memory source, tests) never needs the
Google variables to be present.
"""

import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


WEEKDAY_NUMBERS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


class GoogleSheetsSettings(BaseSettings):
    """Location of the Transactions and AuditLog worksheets."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account JSON key used to authorize gspread"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Key of the spreadsheet holding the ledger"
    )

    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Worksheet with one row per transaction record"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Worksheet the audit logger appends to"
    )

    @field_validator('credentials_path')
    @classmethod
    def warn_if_credentials_missing(cls, v: str) -> str:
        """The key file may be mounted after startup, so only warn."""
        if not Path(v).exists():
            warnings.warn(
                f"Service account key not found at {v}; "
                "Sheets calls will fail until it is present."
            )
        return v


class LedgerSettings(BaseSettings):
    """Ledger presentation, reporting and sync configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    currency_symbol: str = Field(
        default="₹",
        description="Symbol prefixed to currency values in reports"
    )
    report_title: str = Field(
        default="Financial Report",
        description="Title placed in the report header"
    )
    monthly_breakdown_months: int = Field(
        default=12,
        ge=1,
        le=120,
        description="Trailing months covered by the report's monthly breakdown"
    )
    week_starts_on: str = Field(
        default="sunday",
        description="First day of the week for the 'this week' scope"
    )
    change_poll_interval_seconds: float = Field(
        default=15.0,
        gt=0,
        description="How often the Sheets change feed polls for edits"
    )

    @field_validator('week_starts_on')
    @classmethod
    def validate_week_start(cls, v: str) -> str:
        """Only accept English weekday names."""
        normalized = v.strip().lower()
        if normalized not in WEEKDAY_NUMBERS:
            raise ValueError(
                f"Unknown weekday: {v}. Allowed: {sorted(WEEKDAY_NUMBERS)}"
            )
        return normalized

    @property
    def week_start_weekday(self) -> int:
        """Week start as a `date.weekday()` number (Monday = 0)."""
        return WEEKDAY_NUMBERS[self.week_starts_on]


class AppSettings(BaseSettings):
    """Process-wide settings: environment name and logging."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Deployment name, e.g. development or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Verbose behaviour for local runs"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )


class Settings(BaseSettings):
    """Entry point for all settings groups."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Shared Settings instance; tests call get_settings.cache_clear()."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load every settings group.

    Returns {group: loaded_ok}, plus a "<group>_error" message for each
    group that failed. Meant for a startup health check.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "ledger", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
