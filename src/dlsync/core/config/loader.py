"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dlsync.core.exceptions import ConfigError

from .models import DlsyncConfig, default_datasets

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per run
_config_cache: DlsyncConfig | None = None

# Plain string overrides: env var -> (section, key).
# Names without a DLSYNC_ prefix are the ones the scheduled worker has always used.
STRING_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "GITHUB_APP_ID": ("github", "app_id"),
    "GITHUB_PRIVATE_KEY": ("github", "private_key"),
    "GITHUB_PRIVATE_KEY_PATH": ("github", "private_key_path"),
    "GITHUB_APIKEY": ("github", "token"),
    "GITHUB_OWNER": ("github", "owner"),
    "GITHUB_REPO": ("github", "repo"),
    "GITHUB_BRANCH": ("github", "branch"),
    "GITHUB_API_URL": ("github", "api_url"),
    "MONGODB_URI": ("store", "uri"),
    "REALM_APPID": ("store", "app_id"),
    "REALM_APIKEY": ("store", "api_key"),
    "DB": ("store", "database"),
    "DLSYNC_STORE_BACKEND": ("store", "backend"),
    "DLSYNC_STORE_BASE_URL": ("store", "base_url"),
    "SENTRY_DSN": ("sentry", "dsn"),
    "SENTRY_ENVIRONMENT": ("sentry", "environment"),
}

# Store collection per dataset kind
COLLECTION_ENV_OVERRIDES: dict[str, str] = {
    "APP_COLLECTION": "apps",
    "THEME_COLLECTION": "themes",
}


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Path to ~/.config/dlsync/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "dlsync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Path to .dlsync.json in the given directory (defaults to cwd)."""
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".dlsync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested dicts
    are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 30}})
        {'a': 1, 'b': {'x': 10, 'y': 30}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to parse config at {path}: {e}")
        return None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ("false", "0", "no", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.
    Besides the plain string settings in STRING_ENV_OVERRIDES, supports:
        APP_COLLECTION / THEME_COLLECTION - store collection per dataset kind
        GITHUB_INSTALLATION_ID - overrides github.installation_id
        DLSYNC_HTTP_TIMEOUT - overrides github.timeout and store.timeout
        DLSYNC_FAILURE_POLICY - overrides failure_policy
        DLSYNC_DRY_RUN - overrides dry_run
        DLSYNC_COMMIT_MESSAGE - overrides commit_message

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = copy.deepcopy(config_dict)

    for env_name, (section, key) in STRING_ENV_OVERRIDES.items():
        if value := os.environ.get(env_name):
            result.setdefault(section, {})[key] = value

    for env_name, kind in COLLECTION_ENV_OVERRIDES.items():
        if value := os.environ.get(env_name):
            datasets = result.setdefault("datasets", {})
            datasets.setdefault(kind, {})["store_collection"] = value

    if installation_str := os.environ.get("GITHUB_INSTALLATION_ID"):
        try:
            result.setdefault("github", {})["installation_id"] = int(installation_str)
        except ValueError:
            logger.warning(f"Invalid GITHUB_INSTALLATION_ID value '{installation_str}', ignoring")

    if timeout_str := os.environ.get("DLSYNC_HTTP_TIMEOUT"):
        try:
            timeout = float(timeout_str)
            result.setdefault("github", {})["timeout"] = timeout
            result.setdefault("store", {})["timeout"] = timeout
        except ValueError:
            logger.warning(f"Invalid DLSYNC_HTTP_TIMEOUT value '{timeout_str}', ignoring")

    if policy := os.environ.get("DLSYNC_FAILURE_POLICY"):
        result["failure_policy"] = policy.strip().lower()

    if dry_run_str := os.environ.get("DLSYNC_DRY_RUN"):
        result["dry_run"] = _parse_bool(dry_run_str)

    if message := os.environ.get("DLSYNC_COMMIT_MESSAGE"):
        result["commit_message"] = message

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Dataset specs are included so that partial overrides (for example just a
    store collection name) merge onto complete entries.
    """
    return {
        "datasets": {
            kind.value: spec.model_dump() for kind, spec in default_datasets().items()
        },
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> DlsyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables
        2. Project config (.dlsync.json)
        3. User config (~/.config/dlsync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .dlsync.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated DlsyncConfig instance

    Raises:
        ConfigError: If the merged config fails validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    try:
        config = DlsyncConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
