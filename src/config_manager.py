# --- START OF FILE config_manager.py ---

import json
import os
import sys
import tempfile # For atomic writes
from pathlib import Path

import constants


def get_config_file_path() -> Path:
    """Returns the config file path, honouring the environment override."""
    override = os.environ.get(constants.CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / ".config" / constants.CONFIG_DIR_NAME / constants.CONFIG_FILE_NAME


def load_config() -> dict:
    """Loads the configuration from the JSON file."""
    config_path = get_config_file_path()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config = json.load(f)
                if isinstance(config, dict):
                    return config
                else:
                    print(f"{constants.LOG_PREFIX_CONFIG}: Warning: Config file '{config_path}' does not contain a valid JSON object. Using defaults.", file=sys.stderr)
                    return {}
        except (json.JSONDecodeError, IOError) as e:
            print(f"{constants.LOG_PREFIX_CONFIG}: Error loading config file '{config_path}': {e}. Using defaults.", file=sys.stderr)
            return {}
    return {} # Return empty dict if file doesn't exist

def save_config(config: dict):
    """Saves the configuration dictionary to the JSON file atomically."""
    config_path = get_config_file_path()
    temp_path = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(dir=str(config_path.parent))
        with os.fdopen(temp_fd, 'w') as f:
            json.dump(config, f, indent=4)
        os.replace(temp_path, config_path)
    except (IOError, OSError) as e:
        print(f"{constants.LOG_PREFIX_CONFIG}: Error saving config file '{config_path}': {e}", file=sys.stderr)
        if temp_path and os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                pass
        raise

# --- Setting accessors with defaults ---
_config_cache = None

def _get_cached_config() -> dict:
    """Internal helper to load config only once."""
    global _config_cache
    if _config_cache is None:
        _config_cache = load_config()
    return _config_cache

def get_setting(key: str, default=None):
    """Gets a specific setting from the config, returning a default if not found."""
    return _get_cached_config().get(key, default)

def set_setting(key: str, value):
    """Sets a specific setting and saves the entire config."""
    global _config_cache
    config = dict(_get_cached_config())
    config[key] = value
    save_config(config)
    _config_cache = config

def reset_config_cache():
    """Forgets the cached config so the next access re-reads the file."""
    global _config_cache
    _config_cache = None

# --- END OF FILE config_manager.py ---
