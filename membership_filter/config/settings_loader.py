"""
settings_loader.py

Configuration management for the cluster membership filter.
Loads and validates settings from YAML configuration with environment variable substitution.

Features:
- YAML configuration loading with validation
- Environment variable substitution (${VAR_NAME} syntax)
- Singleton pattern for global settings access
- Type-safe configuration with Pydantic models
- Built-in defaults when no configuration file exists
"""

import os
import re
import yaml
import logging
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from pathlib import Path

from membership_filter.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "MEMBERSHIP_CONFIG_PATH"


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class ServiceSettings(BaseModel):
    """General service settings."""
    name: str = Field(default="cluster-membership", description="Service name")
    version: str = Field(default="1.0.0", description="Service version")


class FilterSettings(BaseModel):
    """Cluster membership filter defaults."""
    default_clusterer: str = Field(default="em", description="Clusterer used when none is given")
    ignored_attribute_indices: str = Field(default="", description="Attribute range ignored while clustering")


class EMSettings(BaseModel):
    """EM (Gaussian mixture) settings."""
    n_clusters: int = Field(default=-1, ge=-1, description="Number of clusters (-1 = select by BIC)")
    max_clusters: int = Field(default=10, ge=1, description="Upper bound for BIC selection")
    max_iter: int = Field(default=100, ge=1, description="Maximum EM iterations")
    random_state: int = Field(default=100, description="Random seed")
    reg_covar: float = Field(default=1e-6, gt=0.0, description="Minimum variance")

    @field_validator("n_clusters")
    @classmethod
    def _no_zero_clusters(cls, value: int) -> int:
        if value == 0:
            raise ValueError("n_clusters must be -1 or >= 1")
        return value


class KMeansSettings(BaseModel):
    """K-Means clustering algorithm settings."""
    n_clusters: int = Field(default=2, ge=1, description="Number of clusters")
    n_init: int = Field(default=10, ge=1, description="Number of initializations")
    max_iter: int = Field(default=300, ge=1, description="Maximum iterations")
    random_state: int = Field(default=10, description="Random seed")
    use_minibatch: bool = Field(default=False, description="Use MiniBatchKMeans for large datasets")


class HDBSCANSettings(BaseModel):
    """HDBSCAN clustering algorithm settings."""
    min_cluster_size: int = Field(default=5, ge=2, description="Minimum cluster size")
    min_samples: Optional[int] = Field(default=None, ge=1, description="Minimum samples")
    cluster_selection_epsilon: float = Field(default=0.0, ge=0.0, description="Cluster selection epsilon")
    metric: str = Field(default="euclidean", description="Distance metric")
    cluster_selection_method: str = Field(default="eom", description="Cluster selection method (eom or leaf)")
    allow_single_cluster: bool = Field(default=False, description="Allow single cluster")


class ClusteringSettings(BaseModel):
    """Algorithm-specific settings."""
    em: EMSettings = Field(default_factory=EMSettings)
    kmeans: KMeansSettings = Field(default_factory=KMeansSettings)
    hdbscan: HDBSCANSettings = Field(default_factory=HDBSCANSettings)

    def params_for(self, algorithm: str) -> Dict[str, Any]:
        """Parameters for a registered algorithm; empty for anything else."""
        section = getattr(self, algorithm.lower(), None)
        if isinstance(section, BaseModel):
            return section.model_dump()
        return {}


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Log format (json or console)")
    file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError(f"Unknown log format: {value}")
        return value


class Settings(BaseModel):
    """Root configuration model."""
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    filter: FilterSettings = Field(default_factory=FilterSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Configuration Manager (Singleton)
# =============================================================================

class ConfigManager:
    """
    Singleton configuration manager that loads and caches settings.

    Features:
    - Loads YAML configuration from file
    - Substitutes environment variables using ${VAR_NAME} syntax
    - Validates configuration using Pydantic models
    - Provides global access to settings
    """

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to configuration file. If None, the default
                locations are searched and built-in defaults are used when
                none exists.

        Returns:
            Settings object with validated configuration

        Raises:
            ConfigurationError: If an explicit file is missing or any file is invalid
        """
        if cls._settings is not None:
            return cls._settings

        if config_path is None:
            possible_paths = [
                Path(os.getenv(CONFIG_PATH_ENV, "config/settings.yaml")),
                Path("config/settings.yaml"),
            ]

            config_path_obj = None
            for path in possible_paths:
                if path.exists():
                    config_path_obj = path
                    break

            if config_path_obj is None:
                logger.info("No configuration file found. Using defaults.")
                cls._settings = Settings()
                return cls._settings
        else:
            config_path_obj = Path(config_path)
            if not config_path_obj.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    details={"path": str(config_path)},
                )

        logger.info(f"Loading configuration from: {config_path_obj}")

        try:
            with open(config_path_obj, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load YAML configuration: {e}")
            raise ConfigurationError(f"Invalid YAML configuration: {e}") from e

        config_dict = cls._substitute_env_vars(raw_config)

        try:
            cls._settings = Settings(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        logger.info("Configuration loaded and validated successfully")
        return cls._settings

    @classmethod
    def get_settings(cls) -> Settings:
        """
        Get cached settings. Loads from default path if not already loaded.

        Returns:
            Settings object
        """
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            config: Configuration dictionary or value

        Returns:
            Configuration with substituted values
        """
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            # Match ${VAR_NAME} or ${VAR_NAME:default}
            pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default_value = match.group(2) if match.group(2) is not None else ""
                return os.getenv(var_name, default_value)

            return re.sub(pattern, replace_var, config)
        else:
            return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Reload configuration from file.

        Args:
            config_path: Path to configuration file

        Returns:
            Reloaded Settings object
        """
        cls._settings = None
        return cls.load_config(config_path)

    @classmethod
    def reset(cls) -> None:
        """Drop cached settings."""
        cls._settings = None


# =============================================================================
# Convenience Functions
# =============================================================================

def get_settings() -> Settings:
    """
    Get application settings (convenience function).

    Returns:
        Settings object
    """
    return ConfigManager.get_settings()
