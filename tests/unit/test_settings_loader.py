"""
Unit tests for settings loading.

Tests ConfigManager and the settings models including:
- YAML loading and validation
- Environment variable substitution
- Defaults when no file exists
- Error reporting
"""

import pytest

from membership_filter.config.settings_loader import (
    CONFIG_PATH_ENV,
    ConfigManager,
    Settings,
    get_settings,
)
from membership_filter.utils.error_handling import ConfigurationError


@pytest.mark.unit
class TestSettings:
    """Tests for the settings models."""

    def test_defaults(self):
        """Test built-in defaults."""
        settings = Settings()

        assert settings.filter.default_clusterer == "em"
        assert settings.filter.ignored_attribute_indices == ""
        assert settings.clustering.em.n_clusters == -1
        assert settings.logging.level == "INFO"

    def test_params_for(self):
        """Test algorithm parameters are exported by name."""
        settings = Settings()

        assert settings.clustering.params_for("KMEANS")["n_clusters"] == 2
        assert settings.clustering.params_for("custom.Clusterer") == {}

    def test_zero_em_clusters_rejected(self):
        """Test EM needs -1 or a positive cluster count."""
        with pytest.raises(ValueError):
            Settings(clustering={"em": {"n_clusters": 0}})

    def test_log_level_normalised(self):
        """Test log levels are upper-cased and validated."""
        assert Settings(logging={"level": "debug"}).logging.level == "DEBUG"
        with pytest.raises(ValueError):
            Settings(logging={"level": "chatty"})


@pytest.mark.unit
class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_yaml(self, tmp_path):
        """Test settings are read from YAML."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            "filter:\n"
            "  default_clusterer: kmeans\n"
            "  ignored_attribute_indices: 1-2\n"
            "logging:\n"
            "  format: json\n"
        )

        settings = ConfigManager.load_config(str(config_file))
        assert settings.filter.default_clusterer == "kmeans"
        assert settings.filter.ignored_attribute_indices == "1-2"
        assert settings.logging.format == "json"
        assert get_settings() is settings

    def test_env_substitution(self, tmp_path, monkeypatch):
        """Test ${VAR} and ${VAR:default} are substituted."""
        monkeypatch.setenv("TEST_CLUSTERER", "hdbscan")
        monkeypatch.delenv("TEST_FORMAT", raising=False)
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            "filter:\n"
            "  default_clusterer: ${TEST_CLUSTERER}\n"
            "logging:\n"
            "  format: ${TEST_FORMAT:json}\n"
        )

        settings = ConfigManager.load_config(str(config_file))
        assert settings.filter.default_clusterer == "hdbscan"
        assert settings.logging.format == "json"

    def test_env_path(self, tmp_path, monkeypatch):
        """Test the config path can come from the environment."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("service:\n  name: from-env\n")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(config_file))

        assert ConfigManager.get_settings().service.name == "from-env"

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        """Test defaults are used when no file exists."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)

        settings = ConfigManager.get_settings()
        assert settings == Settings()

    def test_missing_explicit_file(self, tmp_path):
        """Test an explicit path must exist."""
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigManager.load_config(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML is a configuration error."""
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("filter: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigManager.load_config(str(config_file))

    def test_invalid_values(self, tmp_path):
        """Test validation failures are configuration errors."""
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("clustering:\n  kmeans:\n    n_clusters: 0\n")

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            ConfigManager.load_config(str(config_file))

    def test_reload(self, tmp_path):
        """Test reload drops the cached settings."""
        first = tmp_path / "first.yaml"
        first.write_text("service:\n  name: first\n")
        second = tmp_path / "second.yaml"
        second.write_text("service:\n  name: second\n")

        ConfigManager.load_config(str(first))
        assert ConfigManager.reload_config(str(second)).service.name == "second"
