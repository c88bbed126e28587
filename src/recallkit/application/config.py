from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)


STORE_FILE_NAME = "store.json"


def config_file_candidates() -> list[Path]:
    return [
        Path.home() / ".config/recallkit/config.toml",
        Path.home() / ".recallkit.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for recallkit.
    Supports loading from:
    1. Manual overrides (CLI)
    2. Environment variables (RECALLKIT_*)
    3. Config file (~/.config/recallkit/config.toml or ~/.recallkit.toml)
    """

    model_config = SettingsConfigDict(
        env_prefix="RECALLKIT_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/recallkit")
    store_file: Path | None = None

    # Storage
    max_store_bytes: int | None = None

    # Output
    verbose: int = 0

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Find the first existing file
        toml_file = next((f for f in config_file_candidates() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("store_file", mode="before")
    @classmethod
    def resolve_store_file(cls, v: Any) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/recallkit/config.toml (if exists)
    3. Environment variables (RECALLKIT_*)
    4. cli_overrides (passed from Typer; None values are dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.store_file is None:
        config.store_file = config.data_dir / STORE_FILE_NAME

    return config
