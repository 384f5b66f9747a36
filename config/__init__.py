# PATH: config/__init__.py
"""
Configuration loading utilities for SPREADWATCH.

- YAML files in this directory hold static defaults (venues.yaml).
- Deployment values come from the environment; a local .env file is
  loaded with python-dotenv and never overrides the real environment.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from core.exceptions import ConfigError, ValidationError
from core.math import to_decimal


CONFIG_DIR = Path(__file__).parent


def load_yaml(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory, or an absolute path

    Returns:
        Parsed YAML as dict
    """
    filepath = Path(filename)
    if not filepath.is_absolute():
        filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_venues(filename: str = "venues.yaml") -> Dict[str, Any]:
    """Load venue definitions (cost model defaults, pool env keys, event layout)."""
    return load_yaml(filename)


def load_env(env_file: Optional[str] = None) -> bool:
    """
    Load a .env file into os.environ.

    Returns True if a file was found and loaded.
    """
    return load_dotenv(dotenv_path=env_file, override=False)


# =============================================================================
# ENV PARSING
# =============================================================================

def _environ(env: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if env is None else env


def require_env(key: str, description: str, env: Optional[Mapping[str, str]] = None) -> str:
    """
    Get a required environment variable.

    Raises ConfigError if missing or empty.
    """
    value = _environ(env).get(key, "").strip()
    if not value:
        raise ConfigError(
            f"Missing required environment variable: {key} ({description})",
            details={"key": key},
        )
    return value


def optional_env(key: str, default: Optional[str], env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Get an optional environment variable; empty counts as unset."""
    value = _environ(env).get(key, "").strip()
    return value or default


def parse_int_env(key: str, value: str) -> int:
    """Parse an integer variable, naming it on failure."""
    try:
        return int(value, 10)
    except (TypeError, ValueError):
        raise ConfigError(
            f"Invalid integer value for {key}: {value}",
            details={"key": key, "value": value},
        )


def parse_decimal_env(key: str, value: str) -> Decimal:
    """Parse a decimal variable, naming it on failure."""
    try:
        return to_decimal(value)
    except ValidationError:
        raise ConfigError(
            f"Invalid decimal value for {key}: {value}",
            details={"key": key, "value": value},
        )
