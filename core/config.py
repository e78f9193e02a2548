"""
Application configuration using Pydantic Settings.

The settings object is built once at process start (see ``load_settings``) and
passed by reference into the runner, the jobs and their collaborators.
"""

from datetime import date
from typing import List, Optional

from pydantic_settings import BaseSettings

from core.exceptions import ConfigurationError


# Settings each report type cannot run without
REQUIRED_BY_REPORT = {
    "adx": ("ADX_NETWORK_CODE",),
    "anura": ("ANURA_API_TOKEN", "ANURA_INSTANCE_ID"),
    "ga4": ("GA4_PROPERTY_ID",),
}


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Warehouse
    DATABASE_URL: Optional[str] = None

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Run control
    REPORT_DATE: Optional[date] = None
    FORCE_RERUN: bool = False
    ENABLED_REPORTS: str = "adx,anura,ga4"
    CHECKPOINT_DIR: str = "."
    RAW_DATA_DIR: Optional[str] = None
    SCHEDULE_CRON: str = "0 6 * * *"

    # HTTP / polling / pagination
    HTTP_TIMEOUT: float = 30.0
    POLL_INITIAL_DELAY: float = 5.0
    POLL_BACKOFF: float = 1.5
    POLL_MAX_DELAY: float = 60.0
    POLL_MAX_ATTEMPTS: int = 60
    PAGE_SIZE: int = 1000
    MAX_PAGES: int = 100
    PAGE_DELAY: float = 0.1

    # Ad exchange (Ad Manager)
    ADX_NETWORK_CODE: Optional[str] = None
    ADX_CUSTOM_DIMENSION_KEY_IDS: str = ""

    # Traffic quality (Anura)
    ANURA_API_TOKEN: Optional[str] = None
    ANURA_INSTANCE_ID: Optional[int] = None
    ANURA_REPORT_HOURS: int = 24
    ANURA_REPORT_INDEX: str = ""
    ANURA_POLL_INTERVAL: float = 10.0
    ANURA_TIMEZONE: str = "America/Los_Angeles"

    # Web analytics (GA4)
    GA4_PROPERTY_ID: Optional[str] = None
    GA4_PAGE_SIZE: int = 250000

    # Best-effort collaborators
    GCP_BUCKET: Optional[str] = None
    CLEANUP_LOCAL_FILES: bool = False
    SLACK_WEBHOOK_URL: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def enabled_reports(self) -> List[str]:
        return [name.strip().lower() for name in self.ENABLED_REPORTS.split(",") if name.strip()]

    @property
    def adx_custom_dimension_key_ids(self) -> List[int]:
        return [int(v) for v in self.ADX_CUSTOM_DIMENSION_KEY_IDS.split(",") if v.strip()]

    def require(self, *names: str) -> None:
        """Raise ConfigurationError listing every named setting that is unset or blank."""
        missing = [
            name for name in names
            if getattr(self, name, None) is None or getattr(self, name) == ""
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                context={"missing": missing}
            )

    def validate_for_run(self) -> None:
        """Fail fast before any work when the enabled reports are not fully configured."""
        unknown = [name for name in self.enabled_reports if name not in REQUIRED_BY_REPORT]
        if unknown:
            raise ConfigurationError(
                f"Unknown report types in ENABLED_REPORTS: {', '.join(unknown)}",
                context={"unknown": unknown}
            )

        required = ["DATABASE_URL"]
        for name in self.enabled_reports:
            required.extend(REQUIRED_BY_REPORT[name])
        self.require(*required)


def load_settings(**overrides) -> Settings:
    """Build the settings object for this process."""
    return Settings(**overrides)
