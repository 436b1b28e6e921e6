"""Runtime settings for report-spine.

Configuration should be explicit, validated, and environment-driven. Every
knob the pipeline reads (API root, credentials, retry budget, usability
threshold, logging, per-source locators) lives on one pydantic-settings
model; other modules consume the typed object instead of raw env reads.

Examples:
    >>> from reportspine.core.settings import ReportSpineSettings
    >>> settings = ReportSpineSettings(max_attempts=5)
    >>> settings.max_attempts
    5

Environment:
    ``REPORTSPINE_API_KEY``, ``REPORTSPINE_BEARER_TOKEN``,
    ``REPORTSPINE_MAX_ATTEMPTS``, ``REPORTSPINE_LOG_FORMAT`` ...
    Locators are nested: ``REPORTSPINE_LOCATORS__ANALYTICS__SPREADSHEET_ID``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from reportspine.core.errors import ConfigError
from reportspine.sources.locator import SourceLocator


class LocatorConfig(BaseModel):
    """Where one source lives: spreadsheet id plus tab (or A1 range) name."""

    spreadsheet_id: str = ""
    tab: str = ""

    def to_locator(self) -> SourceLocator:
        return SourceLocator(spreadsheet_id=self.spreadsheet_id.strip(), tab=self.tab.strip())


class ReportSpineSettings(BaseSettings):
    """Validated runtime configuration.

    Fields
    ──────
    sheets_base_url       : Root of the remote tabular API
    api_key               : Optional ``key=`` query parameter
    bearer_token          : Optional bearer credential from the identity flow
    http_timeout          : Transport timeout in seconds
    max_attempts          : Total fetch attempts per source (first try included)
    base_delay_ms         : Backoff base; delay after failed attempt n is base * 2**n
    min_usable_successes  : Successful sources needed for a usable refresh
    required_sources      : Sources that must succeed for a usable refresh
                            (None: account directory and performance metrics)
    log_level / log_format: structlog configuration
    locators              : source id -> LocatorConfig
    """

    model_config = SettingsConfigDict(
        env_prefix="REPORTSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ── Transport ────────────────────────────────────────────────
    sheets_base_url: str = "https://sheets.googleapis.com/v4/spreadsheets"
    api_key: str | None = None
    bearer_token: str | None = None
    http_timeout: float = Field(default=30.0, gt=0)

    # ── Retry ────────────────────────────────────────────────────
    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)

    # ── Refresh ──────────────────────────────────────────────────
    min_usable_successes: int = Field(default=2, ge=0)
    required_sources: list[str] | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"

    # ── Sources ──────────────────────────────────────────────────
    locators: dict[str, LocatorConfig] = Field(default_factory=dict)

    def locator_for(self, source_id: str) -> SourceLocator | None:
        """Return the configured locator for a source, or None."""
        config = self.locators.get(source_id)
        if config is None:
            return None
        return config.to_locator()


_settings_cache: dict[str, ReportSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> ReportSpineSettings:
    """Load, validate and cache settings from the environment.

    Raises:
        ConfigError: If an environment value fails validation. The message
            names the offending variable.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    try:
        settings = ReportSpineSettings()
    except ValidationError as error:
        fields = ", ".join(
            "REPORTSPINE_" + "__".join(str(part) for part in issue["loc"]).upper()
            for issue in error.errors()
        )
        raise ConfigError(f"Invalid configuration: {fields}", cause=error) from error

    _settings_cache["default"] = settings
    return settings
