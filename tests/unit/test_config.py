"""
Unit tests for configuration loading
Tests YAML loading, merging and environment-based source settings
"""

import pytest
import yaml
from pydantic import ValidationError

from pgcdc.config.loader import load_config, load_yaml_config, merge_configs
from pgcdc.config.settings import SourceSettings


@pytest.fixture
def clean_env(monkeypatch):
    """Remove source settings from the environment"""
    for name in ("CDC_SOURCE_SERVER_NAME", "CDC_SOURCE_DATABASE_NAME", "CDC_LOG_LEVEL", "CDC_LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "source.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "source": {"server_name": "pg1", "database_name": "inventory"},
                "observability": {"log_level": "DEBUG", "log_format": "console"},
            }
        ),
        encoding="utf-8",
    )
    return path


class TestYamlLoading:
    """Test raw YAML loading"""

    def test_load_yaml_config(self, config_file):
        config = load_yaml_config(str(config_file))

        assert config["source"]["server_name"] == "pg1"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_yaml_config(str(path)) == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("source: [unclosed", encoding="utf-8")

        with pytest.raises(yaml.YAMLError):
            load_yaml_config(str(path))

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_yaml_config(str(path))


class TestMergeConfigs:
    """Test deep merging of configuration dictionaries"""

    def test_later_configs_override(self):
        merged = merge_configs(
            {"source": {"server_name": "pg1", "database_name": "inventory"}},
            {"source": {"server_name": "pg2"}},
        )

        assert merged == {"source": {"server_name": "pg2", "database_name": "inventory"}}

    def test_empty_configs_skipped(self):
        assert merge_configs({}, None, {"a": 1}) == {"a": 1}


class TestLoadConfig:
    """Test validated configuration loading"""

    def test_load_from_file(self, clean_env, config_file):
        config = load_config(str(config_file))

        assert config.source.server_name == "pg1"
        assert config.source.database_name == "inventory"
        assert config.observability.log_level == "DEBUG"
        assert config.observability.log_format == "console"

    def test_overrides_applied_on_top_of_file(self, clean_env, config_file):
        config = load_config(str(config_file), {"source": {"server_name": "pg2"}})

        assert config.source.server_name == "pg2"
        assert config.source.database_name == "inventory"

    def test_load_from_environment(self, clean_env):
        clean_env.setenv("CDC_SOURCE_SERVER_NAME", "pg-env")
        clean_env.setenv("CDC_SOURCE_DATABASE_NAME", "orders")

        config = load_config()

        assert config.source.server_name == "pg-env"
        assert config.source.database_name == "orders"
        assert config.observability.log_format == "json"

    def test_missing_source_identity(self, clean_env):
        with pytest.raises(ValidationError):
            load_config()

    def test_invalid_log_level(self, clean_env, config_file):
        with pytest.raises(ValidationError):
            load_config(str(config_file), {"observability": {"log_level": "LOUD"}})


class TestSourceSettings:
    """Test source identity validation"""

    def test_empty_server_name_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            SourceSettings(server_name="", database_name="inventory")

    def test_blank_database_name_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            SourceSettings(server_name="pg1", database_name="   ")
