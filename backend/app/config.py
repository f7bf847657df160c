from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".global-gist"
_DATA_DIR_RELATIVE_DEFAULTS: tuple[tuple[str, Path], ...] = (
    ("db_path", Path("blog.db")),
    ("log_dir", Path("logs")),
)
_PATH_FIELDS: tuple[str, ...] = (
    "data_dir",
    *(field_name for field_name, _ in _DATA_DIR_RELATIVE_DEFAULTS),
)
_BOOLEAN_COERCION_FIELDS: tuple[str, ...] = ("telemetry_enabled",)
REQUIRED_SECRET_ENV_VARS: tuple[str, ...] = ("GLOBAL_GIST_GEMINI_API_KEY",)


def _default_in_data_dir(relative_path: Path) -> Path:
    return Path(DEFAULT_DATA_DIR) / relative_path


def _data_dir_default_note(relative_path: Path) -> str:
    return f"Defaults to `${{GLOBAL_GIST_DATA_DIR}}/{relative_path}` when not explicitly set."


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _parse_bool_with_default(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if not isinstance(value, str):
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class AppSettings(BaseSettings):
    """
    Canonical runtime configuration for the blog API.

    Every option is read from a `GLOBAL_GIST_*` environment variable (or `.env`)
    and documented here together with its default.
    """

    model_config = SettingsConfigDict(
        env_prefix="GLOBAL_GIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Core paths.
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for the blog database and logs.",
    )
    db_path: Path = Field(
        default=_default_in_data_dir(Path("blog.db")),
        description=f"SQLite database path. {_data_dir_default_note(Path('blog.db'))}",
    )

    # Generative content service.
    gemini_api_key: str | None = Field(
        default=None,
        description="API key for the Gemini generative content service.",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for article generation, keywords and video lookup.",
    )
    gemini_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="HTTP timeout applied to every Gemini request.",
    )

    # Listing and content generation.
    posts_page_size: int = Field(
        default=9,
        ge=1,
        le=100,
        description="Default page size for `getPosts` when the payload omits `limit`.",
    )
    generated_posts_per_topic: int = Field(
        default=10,
        ge=1,
        le=20,
        description="Default number of posts generated for a topic in one Gemini call.",
    )
    seed_topic_count: int = Field(
        default=3,
        ge=1,
        description="Number of distinct random topics refreshed by `seedNewContent`.",
    )
    seed_posts_per_topic: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Posts generated per topic by `seedNewContent`.",
    )

    # Logging.
    log_dir: Path = Field(
        default=_default_in_data_dir(Path("logs")),
        description=f"Directory for backend log files. {_data_dir_default_note(Path('logs'))}",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level (stdout).",
    )

    # Telemetry.
    telemetry_enabled: bool = Field(
        default=True,
        description="Enable lightweight internal telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description=(
            "Telemetry sink backend. `log` emits structured telemetry locally; "
            "`none` disables sink output."
        ),
    )

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _normalize_telemetry_sink(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("GLOBAL_GIST_TELEMETRY_SINK must be a string.")
        normalized = value.strip().lower()
        if normalized in {"none", "log"}:
            return normalized
        raise ValueError("GLOBAL_GIST_TELEMETRY_SINK must be set to: none, log.")

    @field_validator("gemini_model", mode="before")
    @classmethod
    def _normalize_gemini_model(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("GLOBAL_GIST_GEMINI_MODEL must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("GLOBAL_GIST_GEMINI_MODEL must not be empty.")
        return normalized

    @field_validator(*_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator(*_BOOLEAN_COERCION_FIELDS, mode="before")
    @classmethod
    def _normalize_booleans(cls, value: Any, info: ValidationInfo) -> bool:
        field_name = info.field_name
        assert field_name is not None
        default_value = cls.model_fields[field_name].default
        assert isinstance(default_value, bool)
        return _parse_bool_with_default(value, default=default_value)

    @field_validator("gemini_api_key", mode="before")
    @classmethod
    def _normalize_optional_strings(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)


def missing_required_secrets(settings: AppSettings) -> list[str]:
    missing: list[str] = []
    if settings.gemini_api_key is None:
        missing.append("GLOBAL_GIST_GEMINI_API_KEY")
    return missing


def _validate_secrets(settings: AppSettings) -> None:
    missing = missing_required_secrets(settings)
    if missing:
        bullets = "\n".join(f"- {name} is required." for name in missing)
        raise ValueError(f"Invalid configuration for the blog API:\n{bullets}")


def _apply_path_defaults(settings: AppSettings) -> AppSettings:
    updates: dict[str, Path] = {}
    for field_name, relative_default in _DATA_DIR_RELATIVE_DEFAULTS:
        if field_name in settings.model_fields_set:
            continue
        updates[field_name] = settings.data_dir / relative_default
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _resolve_path_fields(settings: AppSettings) -> AppSettings:
    resolved_updates = {
        field_name: _resolve_path(getattr(settings, field_name))
        for field_name in _PATH_FIELDS
    }
    return settings.model_copy(update=resolved_updates)


def load_settings(*, validate_secrets: bool = True) -> AppSettings:
    settings = AppSettings()
    settings = _apply_path_defaults(settings)
    settings = _resolve_path_fields(settings)

    if validate_secrets:
        _validate_secrets(settings)

    return settings
