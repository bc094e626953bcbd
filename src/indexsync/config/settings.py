"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (INDEXSYNC_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from indexsync.models.schema import ModelOptions


class ServerSettings(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8080, description="Server port")
    workers: int = Field(default=1, description="Number of worker processes")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")


class BackendSettings(BaseModel):
    """Configuration of the search backend the index adapter talks to."""

    adapter: Literal["elasticsearch", "opensearch", "memory"] = Field(
        default="memory",
        description="Index adapter name",
    )
    hosts: list[str] = Field(default_factory=list, description="Backend host URLs")
    username: str | None = Field(default=None, description="Authentication username")
    password: str | None = Field(default=None, description="Authentication password")
    api_key: str | None = Field(default=None, description="API key authentication")
    verify_certs: bool = Field(default=True, description="Verify TLS certificates")
    request_timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")
    refresh_on_write: bool = Field(default=False, description="Refresh the index after every write")
    type_field: str = Field(default="doc_type", min_length=1, description="Type discriminator field name")
    extra: dict[str, Any] = Field(default_factory=dict, description="Adapter-specific options")

    @field_validator("hosts", mode="before")
    @classmethod
    def _parse_hosts(cls, v: Any) -> list[str]:
        """Parse hosts from JSON string (env var) or list."""
        if isinstance(v, str):
            import json

            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(h) for h in parsed]
            except (json.JSONDecodeError, TypeError):
                pass
            # Single host as plain string
            return [v] if v else []
        return list(v)


class SyncSettings(BaseModel):
    """Store → index synchronization policy."""

    remove_max_attempts: int = Field(default=3, ge=1, description="Removal attempts before giving up")
    remove_retry_delay: float = Field(default=0.5, ge=0, description="Seconds between removal attempts")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class ModelConfig(BaseModel):
    """Declarative registration of one searchable model."""

    fields: dict[str, Any] = Field(default_factory=dict, description="Schema description (field → attributes)")
    primary_key: str | None = Field(default=None, description="Primary-key field name")
    options: ModelOptions = Field(default_factory=ModelOptions, description="Index, type and hydrate options")


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the INDEXSYNC_ prefix.
    Nested settings use double underscores: INDEXSYNC_BACKEND__ADAPTER=elasticsearch

    Example:
        INDEXSYNC_SERVER__PORT=9090
        INDEXSYNC_BACKEND__HOSTS='["http://localhost:9200"]'
        INDEXSYNC_SYNC__REMOVE_RETRY_DELAY=1.0
    """

    model_config = {
        "env_prefix": "INDEXSYNC_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    # Application metadata
    app_name: str = Field(default="IndexSync", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    # Component settings
    server: ServerSettings = Field(default_factory=ServerSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    # Models registered at startup by the HTTP service
    models: dict[str, ModelConfig] = Field(default_factory=dict)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment variables win over constructor (and YAML) values.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are used as defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
