import pytest

import config_manager
import constants
import debug_logging


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Points the config loader at a per-test file and resets global state."""
    config_path = tmp_path / "config.json"
    monkeypatch.setenv(constants.CONFIG_ENV_VAR, str(config_path))
    config_manager.reset_config_cache()
    debug_logging.set_debug_mode(None)
    yield config_path
    config_manager.reset_config_cache()
    debug_logging.set_debug_mode(None)
