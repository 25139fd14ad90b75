"""
Configuration — loads settings from .apply_changes.yaml, environment
variables, and built-in defaults (in that priority order: CLI args > env >
YAML > defaults).
"""

import os

import yaml

from .editing.patcher import FUZZY_THRESHOLD
from .editing.syntax import SYNTAX_MODES


_DEFAULTS = {
    "project_root": ".",
    "fuzzy": False,
    "fuzzy_threshold": FUZZY_THRESHOLD,
    "verify_writes": True,
    "syntax_check": "off",
    "log_dir": ".apply_changes/logs",
    "history": True,
    "history_dir": ".apply_changes",
}

# Config file search locations
_CONFIG_FILENAMES = [".apply_changes.yaml", ".apply_changes.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables (``APPLY_CHANGES_*``)
    3. .apply_changes.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default; bad values fall back to default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            for raw in (os.getenv(env_key), yd.get(yaml_key)):
                if raw is None:
                    continue
                try:
                    return cast(raw)
                except (TypeError, ValueError):
                    return default
            return default

        self.PROJECT_ROOT = _get("APPLY_CHANGES_ROOT", "project_root",
                                 _DEFAULTS["project_root"])
        self.FUZZY = _get("APPLY_CHANGES_FUZZY", "fuzzy",
                          _DEFAULTS["fuzzy"], cast=_to_bool)
        self.FUZZY_THRESHOLD = _get("APPLY_CHANGES_FUZZY_THRESHOLD",
                                    "fuzzy_threshold",
                                    _DEFAULTS["fuzzy_threshold"], cast=float)
        if not 0.0 < self.FUZZY_THRESHOLD <= 1.0:
            self.FUZZY_THRESHOLD = _DEFAULTS["fuzzy_threshold"]

        self.VERIFY_WRITES = _get("APPLY_CHANGES_VERIFY_WRITES", "verify_writes",
                                  _DEFAULTS["verify_writes"], cast=_to_bool)

        self.SYNTAX_CHECK = _get("APPLY_CHANGES_SYNTAX_CHECK", "syntax_check",
                                 _DEFAULTS["syntax_check"],
                                 cast=lambda v: str(v).strip().lower())
        if self.SYNTAX_CHECK not in SYNTAX_MODES:
            self.SYNTAX_CHECK = _DEFAULTS["syntax_check"]

        self.LOG_DIR = _get("APPLY_CHANGES_LOG_DIR", "log_dir",
                            _DEFAULTS["log_dir"])

        # Decision history (JSONL)
        self.HISTORY = _get("APPLY_CHANGES_HISTORY", "history",
                            _DEFAULTS["history"], cast=_to_bool)
        self.HISTORY_DIR = _get("APPLY_CHANGES_HISTORY_DIR", "history_dir",
                                _DEFAULTS["history_dir"])

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
