"""
Configuration management for Sift.

Settings are layered: built-in defaults, then an optional YAML or JSON file
(``SIFT_CONFIG_PATH``), then ``SIFT_<SECTION>_<KEY>`` environment variables.
"""
import os
import copy
import json
import logging
import yaml
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configure logging
logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    "inbox": {
        "domain": "inbox.siftly.space"
    },
    "extraction": {
        "fallback_chars": 1000,
        "link_text_max": 200,
        "title_max": 100,
        "words_per_minute": 200
    },
    "brand": {
        "primary": "#6C7BFF",
        "accent": "#1E1E1E"
    },
    "detection": {
        "timeout_seconds": 10,
        "max_tries": 3
    },
    "storage": {
        "database": "sift.db"
    },
    "logging": {
        "level": "INFO"
    }
}

# Readers and writers per file suffix
_YAML = (lambda f: yaml.safe_load(f) or {},
         lambda data, f: yaml.dump(data, f, default_flow_style=False))
_JSON = (json.load,
         lambda data, f: json.dump(data, f, indent=2))
FORMATS: Dict[str, Tuple[Callable, Callable]] = {
    '.yaml': _YAML,
    '.yml': _YAML,
    '.json': _JSON,
}


def _format_for(path: Path) -> Tuple[Callable, Callable]:
    handlers = FORMATS.get(path.suffix.lower())
    if handlers is None:
        raise ValueError(f"Unsupported config file format: {path.suffix}")
    return handlers


def merge_settings(base: Dict, overrides: Dict) -> Dict:
    """Merge ``overrides`` into ``base`` in place, section by section."""
    for name, value in overrides.items():
        current = base.get(name)
        if isinstance(current, dict) and isinstance(value, dict):
            merge_settings(current, value)
        else:
            base[name] = value
    return base


def _env_value(raw: str) -> Any:
    # Numbers, booleans and lists come through as JSON; anything else stays a string
    try:
        return json.loads(raw)
    except ValueError:
        return raw


class Config:
    """
    Configuration manager for Sift.
    """
    def __init__(self, config_path: Optional[str] = None, env_prefix: str = 'SIFT_'):
        """
        Build the settings tree.

        Args:
            config_path: YAML or JSON file layered over the defaults
            env_prefix: Environment variables starting with this override settings
        """
        self.config_path = config_path
        self.env_prefix = env_prefix
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        settings = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path and Path(self.config_path).exists():
            path = Path(self.config_path)
            try:
                read, _ = _format_for(path)
                with path.open('r') as f:
                    merge_settings(settings, read(f))
            except Exception as e:
                logger.warning(f"Ignoring config file {path}, defaults kept: {e}")

        self._apply_env(settings)
        return settings

    def _apply_env(self, settings: Dict) -> None:
        """
        ``SIFT_EXTRACTION_FALLBACK_CHARS=500`` sets ``extraction.fallback_chars``.
        The first underscore after the prefix separates the section from the key,
        and only existing sections can be overridden.
        """
        for name, raw in os.environ.items():
            if not name.startswith(self.env_prefix):
                continue

            section, _, key = name[len(self.env_prefix):].lower().partition('_')
            if key and isinstance(settings.get(section), dict):
                settings[section][key] = _env_value(raw)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a setting by dotted path.

        Args:
            key: Path such as 'inbox.domain'
            default: Returned when any segment of the path is missing

        Returns:
            The setting, or ``default``
        """
        node: Any = self.config
        for segment in key.split('.'):
            if not isinstance(node, dict) or segment not in node:
                return default
            node = node[segment]
        return node

    def save(self, path: Optional[str] = None) -> bool:
        """
        Write the settings to ``path`` (or the file they were loaded from).

        Returns:
            Whether the file was written
        """
        target = path or self.config_path
        if not target:
            logger.warning("No path specified for saving configuration")
            return False

        try:
            _, write = _format_for(Path(target))
            with Path(target).open('w') as f:
                write(self.config, f)
        except Exception as e:
            logger.error(f"Error saving config to {target}: {e}")
            return False
        return True


# Global configuration instance
config = Config(os.getenv('SIFT_CONFIG_PATH'))


def get_config(key: str, default: Any = None) -> Any:
    """Shortcut for ``config.get`` on the global settings."""
    return config.get(key, default)
