from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent  # project root

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings with validation.

    Values come from keyword arguments, environment variables or the
    project's .env file, in that order of precedence.

    Uses Pydantic v2 API:
    - model_config with SettingsConfigDict
    - @field_validator decorator
    """

    # Server settings
    api_host: str = Field(default="127.0.0.1", min_length=1, description="Server host (e.g., '0.0.0.0')")
    api_port: int = Field(ge=1, le=65535, default=8000, description="Server port")

    # Template settings
    templates_dir: Path | None = Field(
        default=None,
        description="Template source directory; bundled templates are used when unset",
    )
    templates_reload: bool = Field(
        default=False,
        description="Re-read templates from disk on every lookup (development mode)",
    )

    # Request settings
    request_timeout: float = Field(default=10.0, gt=0, description="Per-request deadline in seconds")

    # Logging settings
    log_level: str = Field(default="INFO", description="Root log level")
    log_dir: Path | None = Field(default=None, description="Directory for JSON log files")

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,  # Validate defaults too
    )

    @field_validator("api_host", mode="after")
    @classmethod
    def validate_api_host(cls, v: str) -> str:
        """Ensure api_host is not empty or whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("api_host cannot be empty")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level and reject unknown names."""
        v = v.strip().upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return v

    @field_validator("templates_reload", mode="after")
    @classmethod
    def validate_templates_reload(cls, v: bool, info: ValidationInfo) -> bool:
        """Live reload needs a directory on disk to re-read."""
        if v and info.data.get("templates_dir") is None:
            raise ValueError("templates_reload requires templates_dir to be set")
        return v


# Singleton settings instance (cached for performance)
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance for dependency injection.

    This function creates a singleton to avoid re-reading .env file
    on every request.

    Returns:
        Cached Settings instance
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
