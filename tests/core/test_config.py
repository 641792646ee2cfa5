import os
from pathlib import Path

import pytest

from docgraph.core.config import DocGraphConfig, StandardizeSettings, StoreSettings


@pytest.fixture(autouse=True)
def chdir_to_tmp_path(tmp_path: Path):
    """Ensure tests run in a clean directory."""
    original_dir = Path.cwd()
    os.chdir(tmp_path)
    yield
    os.chdir(original_dir)


def test_config_defaults(tmp_path: Path):
    """It should load default settings when no config file or env vars are present."""
    # Act
    config = DocGraphConfig.load(tmp_path)

    # Assert
    assert isinstance(config.store, StoreSettings)
    assert isinstance(config.standardize, StandardizeSettings)
    assert config.store.backend == "memory"
    assert config.store.site_root == tmp_path
    assert config.store.abs_db_path == tmp_path / ".docgraph" / "documents.duckdb"
    assert config.standardize.aggressive is True
    assert config.standardize.default_mime_type == "application/json"
    assert config.export.pretty is True


def test_config_load_from_toml_file(tmp_path: Path):
    """It should load settings from a .docgraph.toml file."""
    # Arrange
    (tmp_path / ".docgraph.toml").write_text(
        """
[store]
backend = "duckdb"
db_path = "data/graph.duckdb"

[standardize]
untitled_prefix = "Sketch"
"""
    )

    # Act
    config = DocGraphConfig.load(tmp_path)

    # Assert
    assert config.store.backend == "duckdb"
    assert config.store.abs_db_path == tmp_path / "data" / "graph.duckdb"
    assert config.standardize.untitled_prefix == "Sketch"
    assert config.standardize.aggressive is True  # Default is kept


def test_config_env_overrides_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Environment variables take precedence over the config file."""
    # Arrange
    (tmp_path / ".docgraph.toml").write_text('[standardize]\ndefault_charset = "latin-1"\n')
    monkeypatch.setenv("DOCGRAPH_STANDARDIZE__DEFAULT_CHARSET", "UTF-16")
    monkeypatch.setenv("DOCGRAPH_STANDARDIZE__AGGRESSIVE", "false")

    # Act
    config = DocGraphConfig.load(tmp_path)

    # Assert
    assert config.standardize.default_charset == "UTF-16"
    assert config.standardize.aggressive is False


def test_absolute_db_path_is_kept(tmp_path: Path):
    """An absolute db_path does not resolve against site_root."""
    settings = StoreSettings(site_root=tmp_path, db_path=Path("/var/data/graph.duckdb"))
    assert settings.abs_db_path == Path("/var/data/graph.duckdb")
