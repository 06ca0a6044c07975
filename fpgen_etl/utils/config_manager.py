"""
Configuration management for the network builds
Loads settings from environment files and provides a unified interface
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from fpgen_etl.utils.robot_list import DEFAULT_ROBOTS_LIST_URL

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manage configuration from environment files"""

    ENV_FILES = (".env.base", ".env.shared", ".env.local")

    def __init__(self, config_dir: Path = Path("config")):
        self.config_dir = config_dir
        self.config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load .env files in order, later files overriding earlier ones"""
        for index, name in enumerate(self.ENV_FILES):
            env_file = self.config_dir / name
            if env_file.exists():
                load_dotenv(env_file, override=index > 0)
                logger.info(f"Loaded config from {env_file}")

        self._parse_env_vars()

    def _parse_env_vars(self):
        """Parse environment variables into config dict"""
        # Directory settings (with version placeholder)
        self.config["ARTIFACTS_DIR"] = os.getenv("ARTIFACTS_DIR", "artifacts")
        self.config["INPUT_DATASET"] = os.getenv("INPUT_DATASET", "data/dataset.json")
        self.config["NETWORK_STRUCTURES_DIR"] = os.getenv(
            "NETWORK_STRUCTURES_DIR", "network_structures"
        )
        self.config["RESULTS_DIR"] = os.getenv(
            "RESULTS_DIR", "./artifacts/{version_id}/networks"
        )

        # Robot list
        self.config["ROBOTS_LIST_URL"] = os.getenv("ROBOTS_LIST_URL", DEFAULT_ROBOTS_LIST_URL)
        self.config["ROBOTS_LIST_FILE"] = os.getenv(
            "ROBOTS_LIST_FILE", "data/COUNTER_Robots_list.json"
        )
        self.config["ROBOTS_REQUEST_TIMEOUT"] = float(
            os.getenv("ROBOTS_REQUEST_TIMEOUT", "60")
        )

        # Processing parameters
        self.config["PROGRESS_LOG_INTERVAL"] = int(os.getenv("PROGRESS_LOG_INTERVAL", "1000"))

        # Logging
        self.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        return self.config.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values"""
        return self.config.copy()

    def save_run_config(self, version_id: str, output_dir: Path,
                        config: Optional[Dict[str, Any]] = None):
        """Save configuration used for this run"""
        run_config = {
            "version_id": version_id,
            "timestamp": datetime.now().isoformat(),
            "config": config if config is not None else self.get_all(),
        }

        output_dir.mkdir(parents=True, exist_ok=True)
        config_file = output_dir / "run_config.json"
        with open(config_file, "w") as f:
            json.dump(run_config, f, indent=2)

        logger.info(f"Saved run configuration to {config_file}")


# Singleton instance
_config_manager: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get or create config manager instance"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_dir(config: Dict[str, Any], key: str, version_id: str) -> Path:
    """Get directory path with version substitution"""
    template = config.get(key, "")
    if not template:
        raise ValueError(f"Directory config '{key}' not found")

    return Path(template.format(version_id=version_id))
