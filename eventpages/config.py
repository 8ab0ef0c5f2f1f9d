"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BANNER_URL = (
    "https://images.unsplash.com/photo-1540575467063-178a50c2df87"
    "?w=1920&h=1080&fit=crop"
)


class Settings(BaseSettings):
    """Event pages settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False

    # Remote page store; unset means offline-only operation
    remote_base_url: str | None = None
    remote_timeout_seconds: float = Field(default=1.0, gt=0)
    save_timeout_seconds: float = Field(default=10.0, gt=0)

    # Local cache
    cache_database_url: str = "sqlite+aiosqlite:///data/db/eventpages.db"

    # Paths
    download_dir: Path = Path("./downloads")
    pages_dir: Path = Path("./data/pages")

    # Page server
    host: str = "127.0.0.1"
    port: int = Field(default=3001, ge=1, le=65535)
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # Shared banner change detection
    banner_poll_interval_seconds: float = Field(default=0.5, gt=0)
    default_banner_url: str = DEFAULT_BANNER_URL

    # Document structure rules
    expected_node_types: list[str] = Field(
        default_factory=lambda: [
            "HeroSection",
            "AboutSection",
            "SpeakersSection",
            "ScheduleSection",
            "PricingPlans",
            "FAQSection",
            "ContactFooter",
        ]
    )
    legacy_node_types: list[str] = Field(default_factory=lambda: ["HeadingBlock"])
    singleton_node_types: list[str] = Field(default_factory=lambda: ["PricingPlans"])

    @property
    def remote_enabled(self) -> bool:
        """Whether a remote page store is configured at all."""
        return bool(self.remote_base_url and self.remote_base_url.strip())

    def validate_runtime(self) -> None:
        """Validate settings that cannot be expressed as field constraints."""
        violations: list[str] = []
        if self.remote_enabled:
            url = (self.remote_base_url or "").strip()
            if not url.startswith(("http://", "https://")):
                violations.append("REMOTE_BASE_URL must start with http:// or https://")
        if self.save_timeout_seconds < self.remote_timeout_seconds:
            violations.append("SAVE_TIMEOUT_SECONDS must not be shorter than REMOTE_TIMEOUT_SECONDS")

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Invalid configuration: {joined}")
