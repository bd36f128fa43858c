"""
Pydantic settings models for VersionVault.

Every tunable of the acquisition and extraction pipeline lives here,
including the heuristic thresholds used by validation and anomaly
detection, so callers can override them per deployment.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class EscalationSettings(BaseModel):
    """Fetch-with-retry and method escalation configuration."""

    max_attempts: int = Field(
        default=4,
        ge=1,
        le=10,
        description="Maximum total fetch attempts per URL",
    )
    base_delay_ms: int = Field(
        default=2000,
        ge=0,
        le=60000,
        description="Base delay for exponential backoff in milliseconds",
    )
    max_delay_ms: int = Field(
        default=16000,
        ge=0,
        le=120000,
        description="Upper bound for a single backoff sleep in milliseconds",
    )
    rotate_user_agent: bool = Field(
        default=True,
        description="Pick a new browser identity after the first attempt",
    )
    escalate_methods: bool = Field(
        default=True,
        description="Move to the next acquisition method on blocks and errors",
    )
    min_content_length: int = Field(
        default=1000,
        ge=0,
        le=100000,
        description="Responses shorter than this are treated as suspicious",
    )
    static_timeout_seconds: float = Field(
        default=15.0,
        ge=1.0,
        le=120.0,
        description="Timeout for plain HTTP fetches",
    )
    politeness_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        le=60.0,
        description="Minimum delay between requests to the same host",
    )
    max_retry_after_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description="Longest Retry-After a host may impose before it is retried",
    )


class BrowserSettings(BaseModel):
    """Playwright browser configuration."""

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode",
    )
    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use",
    )
    viewport_width: int = Field(
        default=1280,
        ge=320,
        le=3840,
        description="Browser viewport width in pixels",
    )
    viewport_height: int = Field(
        default=720,
        ge=240,
        le=2160,
        description="Browser viewport height in pixels",
    )
    timeout_ms: int = Field(
        default=30000,
        ge=5000,
        le=120000,
        description="Default timeout for page operations in milliseconds",
    )
    ignore_https_errors: bool = Field(
        default=False,
        description="Whether to ignore HTTPS certificate errors",
    )


class BrowserlessSettings(BaseModel):
    """Hosted headless browser (Browserless) configuration."""

    enabled: bool = Field(
        default=False,
        description="Route browserless methods through the hosted service",
    )
    base_url: str = Field(
        default="https://chrome.browserless.io",
        description="Browserless API root",
    )
    api_key_env_var: str = Field(
        default="BROWSERLESS_API_KEY",
        description="Environment variable name containing the API token",
    )


class WindowingSettings(BaseModel):
    """Content windowing limits for completion-service input."""

    version_page_max_chars: int = Field(
        default=30000,
        ge=1000,
        le=200000,
        description="Character budget for the version page content",
    )
    main_site_max_chars: int = Field(
        default=20000,
        ge=0,
        le=200000,
        description="Character budget for the main website content",
    )
    window_size: int = Field(
        default=5000,
        ge=200,
        le=50000,
        description="Characters captured around each product mention",
    )
    max_windows: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum number of product mentions to window",
    )
    version_first: bool = Field(
        default=False,
        description="Window around version headings before product mentions",
    )


class ExtractionSettings(BaseModel):
    """Version post-processing configuration."""

    skip_prereleases: bool = Field(
        default=False,
        description="Report the newest stable release as current, skipping -beta/-rc tags",
    )
    pattern_prepass: bool = Field(
        default=True,
        description="Seed an empty version list from known product version patterns and cross-check extracted ones",
    )


class ValidationSettings(BaseModel):
    """Thresholds used when cross-checking an extraction against its page."""

    far_distance: int = Field(
        default=500,
        ge=0,
        description="Product/version distance that caps confidence hard",
    )
    far_confidence_cap: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Confidence cap when the version is far from the product",
    )
    near_distance: int = Field(
        default=200,
        ge=0,
        description="Product/version distance that caps confidence softly",
    )
    near_confidence_cap: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Confidence cap when the version is moderately far",
    )
    min_valid_confidence: int = Field(
        default=70,
        ge=0,
        le=100,
        description="Minimum confidence for an extraction to be valid",
    )
    product_missing_cap: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Confidence cap when the model did not see the product",
    )


class AnomalySettings(BaseModel):
    """Thresholds for suspicious version transitions."""

    major_jump_threshold: int = Field(
        default=5,
        ge=1,
        description="Major version delta that counts as a jump",
    )
    confidence_drop_threshold: int = Field(
        default=30,
        ge=1,
        le=100,
        description="Confidence point drop that counts as an anomaly",
    )
    future_date_days: int = Field(
        default=30,
        ge=0,
        description="Release dates further in the future are suspicious",
    )
    past_date_years: int = Field(
        default=5,
        ge=1,
        description="Release dates further in the past are suspicious",
    )


class SourceSettings(BaseModel):
    """Per-source adapter limits."""

    rss_max_entries: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum feed entries rendered for extraction",
    )
    entry_max_chars: int = Field(
        default=3000,
        ge=100,
        le=50000,
        description="Maximum characters kept per feed entry or forum post",
    )
    sitemap_max_urls: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Number of top-scoring sitemap URLs to return",
    )
    sitemap_max_children: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Child sitemaps expanded per sitemap index",
    )
    forum_max_topics: int = Field(
        default=1,
        ge=1,
        le=20,
        description="Matching forum topics whose first post is fetched",
    )
    min_region_chars: int = Field(
        default=1000,
        ge=0,
        description="Content region size below which the full body is used",
    )


class LLMSettings(BaseModel):
    """Completion service (OpenAI-compatible API) configuration."""

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Root URL of the chat completions API",
    )
    model_name: str = Field(
        default="gpt-4o",
        description="Model identifier for completion calls",
    )
    api_key_env_var: str = Field(
        default="OPENAI_API_KEY",
        description="Environment variable name containing API key",
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for extraction calls",
    )
    max_tokens: int = Field(
        default=4096,
        ge=100,
        le=16384,
        description="Maximum tokens in the completion response",
    )
    timeout_seconds: int = Field(
        default=60,
        ge=5,
        le=300,
        description="Timeout for completion requests in seconds",
    )


class StorageSettings(BaseModel):
    """SQLite storage configuration."""

    database_path: Path = Field(
        default=Path("data/version_vault.db"),
        description="Path to SQLite database file",
    )
    wal_mode: bool = Field(
        default=True,
        description="Enable WAL mode for better concurrent access",
    )
    cache_size_mb: int = Field(
        default=16,
        ge=1,
        le=512,
        description="SQLite cache size in megabytes",
    )

    @field_validator("database_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(v) if isinstance(v, str) else v


class BatchSettings(BaseModel):
    """Bounded batch execution across products."""

    batch_size: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Number of extractions run concurrently per batch",
    )
    delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=300.0,
        description="Pause between consecutive batches",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum logging level",
    )
    format: str = Field(
        default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        description="Log message format string",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Date format for log timestamps",
    )
    file_path: Path | None = Field(
        default=None,
        description="Path to log file. None means console only.",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Number of backup log files to keep",
    )
    log_to_console: bool = Field(
        default=True,
        description="Whether to output logs to console",
    )

    @field_validator("file_path", mode="before")
    @classmethod
    def convert_file_path(cls, v: str | Path | None) -> Path | None:
        """Convert string paths to Path objects."""
        if v is None:
            return None
        return Path(v) if isinstance(v, str) else v


class Settings(BaseModel):
    """
    Root configuration model containing all subsystem settings.

    Settings are loaded from YAML with environment variable overrides
    and threaded explicitly into the pipeline components.
    """

    escalation: EscalationSettings = Field(
        default_factory=EscalationSettings,
        description="Fetch retry and escalation settings",
    )
    browser: BrowserSettings = Field(
        default_factory=BrowserSettings,
        description="Browser/Playwright settings",
    )
    browserless: BrowserlessSettings = Field(
        default_factory=BrowserlessSettings,
        description="Hosted browser settings",
    )
    windowing: WindowingSettings = Field(
        default_factory=WindowingSettings,
        description="Content windowing settings",
    )
    extraction: ExtractionSettings = Field(
        default_factory=ExtractionSettings,
        description="Version post-processing settings",
    )
    validation: ValidationSettings = Field(
        default_factory=ValidationSettings,
        description="Extraction validation thresholds",
    )
    anomaly: AnomalySettings = Field(
        default_factory=AnomalySettings,
        description="Anomaly detection thresholds",
    )
    sources: SourceSettings = Field(
        default_factory=SourceSettings,
        description="Source adapter limits",
    )
    llm: LLMSettings = Field(
        default_factory=LLMSettings,
        description="Completion service settings",
    )
    storage: StorageSettings = Field(
        default_factory=StorageSettings,
        description="Database storage settings",
    )
    batch: BatchSettings = Field(
        default_factory=BatchSettings,
        description="Batch runner settings",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    model_config = {
        "extra": "forbid",
        "validate_default": True,
    }
