"""
Configuration loader — reads agenttrace.yml into a TraceConfig.

The file is optional: without one, defaults apply.  Environment
variables override the file:

    AGENTTRACE_DIR     — storage directory
    AGENTTRACE_FORMAT  — default format (json, jsonl, html)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from agenttrace.core.models.config import TraceConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "agenttrace.yml"

ENV_STORAGE_DIR = "AGENTTRACE_DIR"
ENV_FORMAT = "AGENTTRACE_FORMAT"


class ConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for agenttrace.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to agenttrace.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None, *, search: bool = True) -> TraceConfig:
    """Load and validate configuration, then apply env overrides.

    Args:
        path: Explicit path to agenttrace.yml.  Must exist if given.
        search: If no ``path``, search upward from cwd.

    Returns:
        Validated TraceConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None and search:
        path = find_config_file()

    data: dict = {}
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")

        logger.debug("Loading config from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")

        # The YAML may wrap everything under an "agenttrace" key or be flat
        data = loaded.get("agenttrace", loaded) if "agenttrace" in loaded else loaded
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping under 'agenttrace' in {path}")
        data = dict(data)

        # Relative storage_dir is relative to the config file, not cwd
        if data.get("storage_dir"):
            storage_dir = Path(str(data["storage_dir"])).expanduser()
            if not storage_dir.is_absolute():
                data["storage_dir"] = path.parent.resolve() / storage_dir

    if os.environ.get(ENV_STORAGE_DIR):
        data["storage_dir"] = os.environ[ENV_STORAGE_DIR]
    if os.environ.get(ENV_FORMAT):
        data["default_format"] = os.environ[ENV_FORMAT]

    try:
        config = TraceConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    config.storage_dir = config.storage_dir.expanduser()
    logger.info("Trace storage: %s (format=%s)", config.storage_dir, config.default_format)
    return config
