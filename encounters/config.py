"""
Configuration for Chance Encounter Matching.

Provides the configuration dataclass and loaders (YAML file, environment
variables) for the matching pipeline and its command line front end.
The metric weights are fixed constants of the index, not settings.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class EncountersConfig:
    """
    Complete configuration for encounter matching.

    Attributes:
        max_encounters: Maximum number of ranked pairs to report
        node_capacity: Maximum fan-out of R-tree nodes
        log_level: Log level for the command line front end
    """

    max_encounters: int = 10
    node_capacity: int = 16
    log_level: str = "INFO"

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ValueError: If a setting is out of range
        """
        if self.max_encounters < 1:
            raise ValueError(f"max_encounters must be >= 1, got {self.max_encounters}")
        if self.node_capacity < 2:
            raise ValueError(f"node_capacity must be >= 2, got {self.node_capacity}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "EncountersConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Configuration dictionary; unknown keys are ignored

        Returns:
            EncountersConfig instance
        """
        defaults = cls()
        config = cls(
            max_encounters=int(config_dict.get("max_encounters", defaults.max_encounters)),
            node_capacity=int(config_dict.get("node_capacity", defaults.node_capacity)),
            log_level=str(config_dict.get("log_level", defaults.log_level)).upper(),
        )
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "EncountersConfig":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            EncountersConfig instance
        """
        path = Path(yaml_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, "r") as f:
            config_dict = yaml.safe_load(f) or {}

        # Extract encounters section if present
        if "encounters" in config_dict:
            config_dict = config_dict["encounters"] or {}

        return cls.from_dict(config_dict)

    @classmethod
    def from_environment(cls) -> "EncountersConfig":
        """
        Create configuration from environment variables.

        Environment variables override default values:
        - ENCOUNTERS_MAX_RESULTS
        - ENCOUNTERS_NODE_CAPACITY
        - ENCOUNTERS_LOG_LEVEL

        Returns:
            EncountersConfig instance
        """
        config = cls()
        config.apply_environment()
        return config

    def apply_environment(self) -> None:
        """Override settings in place from environment variables."""
        if os.environ.get("ENCOUNTERS_MAX_RESULTS"):
            try:
                self.max_encounters = int(os.environ["ENCOUNTERS_MAX_RESULTS"])
            except ValueError:
                logger.warning(f"Ignoring invalid ENCOUNTERS_MAX_RESULTS={os.environ['ENCOUNTERS_MAX_RESULTS']!r}")

        if os.environ.get("ENCOUNTERS_NODE_CAPACITY"):
            try:
                self.node_capacity = int(os.environ["ENCOUNTERS_NODE_CAPACITY"])
            except ValueError:
                logger.warning(f"Ignoring invalid ENCOUNTERS_NODE_CAPACITY={os.environ['ENCOUNTERS_NODE_CAPACITY']!r}")

        if os.environ.get("ENCOUNTERS_LOG_LEVEL"):
            self.log_level = os.environ["ENCOUNTERS_LOG_LEVEL"].upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "max_encounters": self.max_encounters,
            "node_capacity": self.node_capacity,
            "log_level": self.log_level,
        }


DEFAULT_CONFIG_PATHS = (
    Path("encounters.yaml"),
    Path("~/.encounters/config.yaml"),
)


def load_config(
    yaml_path: Optional[str] = None,
    use_environment: bool = True,
) -> EncountersConfig:
    """
    Load configuration with fallbacks.

    Attempts to load configuration in order:
    1. From specified YAML path (if provided)
    2. From default config paths
    3. Fall back to defaults
    Environment variables are applied on top when use_environment is set.

    Args:
        yaml_path: Optional explicit path to YAML config
        use_environment: Whether to apply environment variable overrides

    Returns:
        EncountersConfig instance
    """
    config = None

    if yaml_path:
        config = EncountersConfig.from_yaml(yaml_path)

    if config is None:
        for path in DEFAULT_CONFIG_PATHS:
            path = path.expanduser()
            if path.exists():
                try:
                    config = EncountersConfig.from_yaml(str(path))
                    logger.debug(f"Loaded config from {path}")
                    break
                except (ValueError, yaml.YAMLError) as e:
                    logger.warning(f"Failed to load config from {path}: {e}")

    if config is None:
        config = EncountersConfig()

    if use_environment:
        config.apply_environment()
        config.validate()

    return config
