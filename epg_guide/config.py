import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    epg_source_url: str | None = None
    epg_update_cron: str = "0 3 * * *"  # Daily at 3 AM
    epg_update_misfire_grace_sec: int = 3600  # Allow 1 hour to run missed jobs
    epg_programs_chunk_size: int = 10000
    epg_chunk_delay_sec: float = 0.0  # Pause between ingestion chunks
    epg_parse_timeout_sec: int = 600  # XML parsing timeout, 0 disables timeout
    epg_stale_after_hours: int = 24
    epg_upcoming_default_limit: int = 5
    epg_download_timeout_sec: float = 120.0
    epg_download_max_retries: int = 3
    epg_download_backoff_factor: float = 2.0
    epg_diagnostic_channel_filter: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("epg_source_url", mode="before")
    @classmethod
    def parse_source_url(cls, value):
        """Treat blank URLs as unset."""
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("epg_source_url", mode="after")
    @classmethod
    def validate_source_url(cls, value):
        """Validate EPG source URL is HTTP/HTTPS."""
        if value and not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"EPG source URL must be HTTP/HTTPS: {value}")
        return value

    @field_validator("epg_diagnostic_channel_filter", mode="before")
    @classmethod
    def parse_diagnostic_filter(cls, value):
        """Treat a blank filter as disabled."""
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("epg_parse_timeout_sec")
    @classmethod
    def validate_parse_timeout(cls, value: int) -> int:
        """Validate XML parsing timeout (seconds)."""
        if value < 0:
            raise ValueError("epg_parse_timeout_sec must be >= 0")
        return value

    @field_validator("epg_update_misfire_grace_sec")
    @classmethod
    def validate_misfire_grace(cls, value: int) -> int:
        """Validate scheduler misfire grace period (seconds)."""
        if value < 0:
            raise ValueError("epg_update_misfire_grace_sec must be >= 0")
        return value

    @field_validator(
        "epg_programs_chunk_size",
        "epg_stale_after_hours",
        "epg_upcoming_default_limit",
        "epg_download_max_retries",
    )
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("epg_chunk_delay_sec")
    @classmethod
    def validate_chunk_delay(cls, value: float) -> float:
        """Ensure the pause between chunks is non-negative."""
        if value < 0:
            raise ValueError("epg_chunk_delay_sec must be >= 0")
        return value

    @field_validator("epg_download_timeout_sec")
    @classmethod
    def validate_download_timeout(cls, value: float) -> float:
        """Ensure the HTTP timeout is positive."""
        if value <= 0:
            raise ValueError("epg_download_timeout_sec must be > 0")
        return value

    @field_validator("epg_download_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("epg_download_backoff_factor must be >= 1")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("epg_update_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @model_validator(mode="after")
    def validate_epg_configuration(self):
        """Validate cross-field configuration."""
        if not self.epg_source_url:
            logger.warning(
                "No EPG source configured - scheduled updates will not retrieve any data"
            )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  EPG Source: %s", "configured" if self.epg_source_url else "not configured")
        logger.info("  Update Schedule: %s", self.epg_update_cron)
        logger.info("  Update Misfire Grace: %ss", self.epg_update_misfire_grace_sec)
        logger.info("  Program Chunk Size: %s", self.epg_programs_chunk_size)
        logger.info("  Chunk Delay: %ss", self.epg_chunk_delay_sec)
        logger.info(
            "  Parse Timeout: %s seconds",
            self.epg_parse_timeout_sec or "disabled",
        )
        logger.info("  Stale After: %s hours", self.epg_stale_after_hours)
        logger.info("  Upcoming Default Limit: %s", self.epg_upcoming_default_limit)
        logger.info(
            "  Download: timeout=%.1fs retries=%s backoff=%.1f",
            self.epg_download_timeout_sec,
            self.epg_download_max_retries,
            self.epg_download_backoff_factor,
        )
        logger.info(
            "  Diagnostic Channel Filter: %s",
            self.epg_diagnostic_channel_filter or "disabled",
        )


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
