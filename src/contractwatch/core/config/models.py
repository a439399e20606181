"""
Pydantic configuration models for ContractWatch.

These models provide type-safe configuration with validation for:
- Browser mode and timing profiles
- The monitored portal and its fixed vocabularies
- Database, notifier, scheduler and logging settings
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class BrowserMode(str, Enum):
    """Browser automation modes."""

    VISIBLE = "visible"
    HEADLESS = "headless"


class ScheduleType(str, Enum):
    """Schedule trigger types."""

    INTERVAL = "interval"
    CRON = "cron"


# =============================================================================
# Portal Defaults
# =============================================================================


BASE_URL = "https://contrataciondelestado.es"

SEARCH_FORM_URL = (
    BASE_URL
    + "/wps/portal/!ut/p/b1/jdDLDoIwEAXQb-EDTKelFFiWZ0tQUAFtN6QLYzA8Nsbvtxq3orO7ybmZySCN1AYTHwcMh0DRGenZ"
    "PIaruQ_LbMZX1qynaRXHmSAQHN0ESJm0LRM25p4FygLPjWlXdDU7yhxAiiwpW-xBTth_ffgyHH71T0ivE_IBaye-wcoNO7FM"
    "F6Qs83vepXsuQxeq6GAXFfW2qXOCwT6vQaqM0KTHLJQ3arjjPAFuDlpI/dl4/d5/L2dBISEvZ0FBIS9nQSEh/pw/Z7_AVEQ"
    "AI930OBRD02JPMTPG21004/ren/p=sort_order=sortbiup/p=sort_id=sortHeaderEstado/p=_rvip=QCPjspQCPbu"
    "squedaQCPFormularioBusqueda.jsp/p=_rap=_rlnn/p=com.ibm.faces.portlet.mode=view/p=javax.servlet."
    "include.path_info=QCPjspQCPbusquedaQCP_rlvid.jsp/-/#"
)

LED_SCREENS_CPV = "32351200"


# =============================================================================
# Browser Configuration
# =============================================================================


class TimingProfile(BaseModel):
    """Settle delays and polling bounds for one browser mode.

    All durations are in seconds except ``per_key_delay_ms``.
    """

    form_load_settle: float = Field(default=8.0, ge=0.0)
    pre_type_delay: float = Field(default=2.0, ge=0.0)
    per_key_delay_ms: int = Field(default=50, ge=0)
    post_type_settle: float = Field(default=2.0, ge=0.0)
    pre_add_click: float = Field(default=2.0, ge=0.0)
    post_add_click: float = Field(default=3.0, ge=0.0)
    pre_search_click: float = Field(default=2.0, ge=0.0)
    results_max_wait: float = Field(
        default=45.0,
        ge=0.0,
        description="Upper bound for polling the results page",
    )
    loading_repoll: float = Field(default=3.0, ge=0.0)
    results_repoll: float = Field(default=2.0, ge=0.0)
    detail_page_settle: float = Field(default=3.0, ge=0.0)

    @classmethod
    def visible(cls) -> "TimingProfile":
        """Slower profile for a headed browser window."""
        return cls(
            form_load_settle=10.0,
            pre_type_delay=3.0,
            per_key_delay_ms=100,
            post_type_settle=3.0,
            pre_add_click=3.0,
            post_add_click=5.0,
            pre_search_click=3.0,
            results_max_wait=60.0,
            loading_repoll=5.0,
        )

    @classmethod
    def headless(cls) -> "TimingProfile":
        return cls()


class BrowserConfig(BaseModel):
    """Browser automation settings shared by both modes."""

    headless: bool = Field(
        default=True,
        description="Run the browser without a window",
    )
    browser: str = Field(
        default="chromium",
        description="Browser to use: chromium, firefox, webkit",
    )
    window_width: int = Field(default=1920, ge=320, le=3840)
    window_height: int = Field(default=1080, ge=240, le=2160)
    user_agent: str | None = Field(
        default=None,
        description="Custom user agent string",
    )
    navigation_timeout_ms: int = Field(
        default=60000,
        ge=5000,
        le=180000,
        description="Timeout for page navigation",
    )
    action_timeout_ms: int = Field(
        default=10000,
        ge=1000,
        le=60000,
        description="Timeout for individual clicks and keystrokes",
    )
    screenshots_path: Path = Field(
        default=Path("snapshots"),
        description="Directory for step and error screenshots",
    )
    screenshots_on_steps: bool = Field(
        default=False,
        description="Capture a screenshot after every navigation step",
    )
    timing: TimingProfile | None = Field(
        default=None,
        description="Explicit timing profile (default: derived from headless flag)",
    )

    @field_validator("browser")
    @classmethod
    def known_browser(cls, v: str) -> str:
        if v not in {"chromium", "firefox", "webkit"}:
            raise ValueError(f"Unsupported browser: {v}")
        return v

    @property
    def mode(self) -> BrowserMode:
        return BrowserMode.HEADLESS if self.headless else BrowserMode.VISIBLE

    @property
    def effective_timing(self) -> TimingProfile:
        """Timing profile in force for this configuration."""
        if self.timing is not None:
            return self.timing
        return TimingProfile.headless() if self.headless else TimingProfile.visible()


# =============================================================================
# Portal Configuration
# =============================================================================


class PortalConfig(BaseModel):
    """The monitored portal, its search target and fixed vocabularies."""

    base_url: str = Field(default=BASE_URL)
    search_form_url: str = Field(default=SEARCH_FORM_URL)
    cpv_code: str = Field(
        default=LED_SCREENS_CPV,
        min_length=1,
        description="CPV classification code entered in the search form",
    )
    results_table_id: str = Field(default="myTablaBusquedaCustom")
    loading_phrases: list[str] = Field(
        default_factory=lambda: ["Obteniendo búsqueda", "recuperando"],
    )
    allowed_statuses: list[str] = Field(
        default_factory=lambda: ["Publicada", "Evaluación Previa"],
        description="Statuses kept by the filtered extraction pass",
    )
    header_keywords: list[str] = Field(
        default_factory=lambda: [
            "expediente",
            "tipo",
            "estado",
            "importe",
            "presentación",
            "órgano",
        ],
    )
    detail_link_marker: str = Field(default="detalle_licitacion")
    document_link_class: str = Field(default="celdaTam2")
    document_endpoint_marker: str = Field(default="GetDocumentByIdServlet")
    document_type_class: str = Field(default="tipoDocumento")
    pliego_markers: list[str] = Field(default_factory=lambda: ["pliego"])
    anuncio_markers: list[str] = Field(
        default_factory=lambda: ["anuncio", "licitación", "rectificación"],
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/contracts.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )


# =============================================================================
# Notifier Configuration
# =============================================================================


def _split_recipients(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class NotifierConfig(BaseModel):
    """SMTP settings for new-contract e-mails.

    Defaults come from the SMTP_* / FROM_EMAIL / TO_EMAIL environment.
    """

    enabled: bool = Field(default=True)
    smtp_host: str = Field(default_factory=lambda: os.environ.get("SMTP_HOST", ""))
    smtp_port: int = Field(
        default_factory=lambda: int(os.environ.get("SMTP_PORT") or 587),
        ge=1,
        le=65535,
    )
    smtp_username: str = Field(default_factory=lambda: os.environ.get("SMTP_USERNAME", ""))
    smtp_password: str = Field(default_factory=lambda: os.environ.get("SMTP_PASSWORD", ""))
    from_email: str = Field(default_factory=lambda: os.environ.get("FROM_EMAIL", ""))
    to_emails: list[str] = Field(
        default_factory=lambda: _split_recipients(os.environ.get("TO_EMAIL")),
    )
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)

    @field_validator("to_emails", mode="before")
    @classmethod
    def split_comma_list(cls, v: object) -> object:
        if isinstance(v, str):
            return _split_recipients(v)
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email and self.to_emails)


# =============================================================================
# Scheduler Configuration
# =============================================================================


class ScheduleConfig(BaseModel):
    """Periodic run settings."""

    schedule_type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    interval_minutes: int = Field(
        default=360,
        ge=5,
        le=10080,
        description="Minutes between runs (interval type)",
    )
    cron_expression: str | None = Field(
        default=None,
        description="Crontab expression (cron type)",
    )
    timezone: str = Field(default="Europe/Madrid")
    mode: BrowserMode = Field(default=BrowserMode.HEADLESS)
    run_immediately: bool = Field(
        default=True,
        description="Run once on start before waiting for the trigger",
    )

    @field_validator("cron_expression")
    @classmethod
    def cron_has_five_fields(cls, v: str | None) -> str | None:
        if v is not None and len(v.split()) != 5:
            raise ValueError("cron_expression must have 5 fields")
        return v


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/contractwatch.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    enhance_documents: bool = Field(
        default=True,
        description="Visit detail pages to recover Pliego/Anuncio links",
    )

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [self.data_dir, self.browser.screenshots_path]:
            dir_path.mkdir(parents=True, exist_ok=True)

        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
