import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILENAME = ".docgraph.toml"


def _deep_merge(destination: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Merge source into destination, with source values overwriting."""
    for key, value in source.items():
        if isinstance(value, Mapping) and key in destination and isinstance(destination[key], Mapping):
            destination[key] = _deep_merge(dict(destination[key]), dict(value))
        else:
            destination[key] = value
    return destination


class StoreSettings(BaseModel):
    """Document store configuration.

    `db_path` is relative to `site_root` unless absolute.
    """

    backend: Literal["memory", "duckdb"] = Field(default="memory", description="Document store backend")
    site_root: Path = Field(default_factory=Path.cwd, description="Directory relative paths resolve against")
    db_path: Path = Field(default=Path(".docgraph/documents.duckdb"), description="DuckDB file path")

    @property
    def abs_db_path(self) -> Path:
        if self.db_path.is_absolute():
            return self.db_path
        return self.site_root / self.db_path


class StandardizeSettings(BaseModel):
    """Document standardization defaults."""

    aggressive: bool = Field(default=True, description="Promote numeric/boolean/date-like strings")
    default_mime_type: str = Field(default="application/json")
    default_charset: str = Field(default="UTF-8")
    untitled_prefix: str = Field(default="Untitled")


class ExportSettings(BaseModel):
    """File format export defaults."""

    pretty: bool = Field(default=True, description="Indent JSON exports")
    class_attribute: str = Field(default="class", description="Attribute carrying an item's class")


class DocGraphConfig(BaseSettings):
    """Root configuration for docgraph.

    Supports environment variable overrides with the pattern:
    DOCGRAPH_SECTION__KEY (e.g., DOCGRAPH_STORE__BACKEND)
    """

    store: StoreSettings = Field(default_factory=StoreSettings)
    standardize: StandardizeSettings = Field(default_factory=StandardizeSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix="DOCGRAPH_",
        env_nested_delimiter="__",
    )

    @classmethod
    def load(cls, root: Path | None = None) -> "DocGraphConfig":
        """Loads configuration from .docgraph.toml and environment variables.

        Priority (highest to lowest):
        1. Environment variables (DOCGRAPH_SECTION__KEY)
        2. Config file (.docgraph.toml)
        3. Defaults
        """
        root_path = root if root is not None else Path.cwd()
        config_file = root_path / CONFIG_FILENAME

        file_settings: dict[str, Any] = {}
        if config_file.is_file():
            with config_file.open("rb") as f:
                file_settings = tomllib.load(f)

        env_settings = cls().model_dump(exclude_unset=True)
        merged_config = _deep_merge(file_settings, env_settings)
        merged_config.setdefault("store", {}).setdefault("site_root", root_path)

        return cls.model_validate(merged_config)
