"""Simple YAML configuration loader for voice2art."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..models.transcription import RecognitionOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "voice2art.yaml"


def find_config_file(start_dir: Optional[Path] = None) -> Path:
    """Look for voice2art.yaml in start_dir and its parents."""
    directory = (start_dir or Path.cwd()).resolve()
    for candidate_dir in [directory, *directory.parents]:
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    raise FileNotFoundError(f"Configuration file {CONFIG_FILENAME} not found in {directory} or its parents")


class Voice2ArtConfig:
    """voice2art configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for voice2art.yaml
                        in current directory and parent directories.
        """
        self.config_file = Path(config_path) if config_path else find_config_file()

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (('google_cloud', 'credentials_path'), ('logging', 'file_path')):
            if section in config and config[section] and key in config[section]:
                path = config[section][key]
                if path and not os.path.isabs(path):
                    config[section][key] = str(config_dir / path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'google_cloud.language').

        Args:
            key_path: Dot-separated key path (e.g., 'google_cloud.credentials_path')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_google_credentials_path(self) -> str:
        """Absolute path of the Google service account file; raises if unset or missing."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise ValueError(f"Google credentials path not configured in {CONFIG_FILENAME}")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_recognition_options(self) -> RecognitionOptions:
        """Build recognition options from the 'recognition' and 'google_cloud' sections."""
        return RecognitionOptions(
            continuous=self.get('recognition.continuous', True),
            interim_results=self.get('recognition.interim_results', True),
            language=self.get('google_cloud.language', 'en-US'),
            max_alternatives=self.get('recognition.max_alternatives', 1),
        )
