# --- START OF FILE constants.py ---

"""
Central location for constants used across the zpool import parser modules.
"""

# --- Health Vocabulary ---
# States printed by `zpool import` for pools, vdevs and leaf devices.
HEALTH_STATES = [
    'ONLINE', 'DEGRADED', 'FAULTED', 'OFFLINE', 'UNAVAIL', 'REMOVED',
]

# Availability column printed for hot spares instead of a health state
SPARE_STATUSES = ['AVAIL', 'INUSE']

# --- Advisory Classification ---
# Phrases the tool uses in the `action:` section. Checked bad-first, so a body
# such as "must be exported ... before it can be safely imported" stays bad.
NOT_IMPORTABLE_PHRASES = [
    "cannot be imported",
    "can not be imported",
    "must be exported from",
    "Set a unique system hostid",
]

IMPORTABLE_PHRASES = [
    "can be imported",
    "can only be accessed in read-only mode",
]

# --- Layout ---
# Header keywords. A wrapped continuation line never starts with "<word>:".
SECTION_KEYWORDS = ['pool', 'id', 'state', 'status', 'action', 'see', 'config']

# Auxiliary device sections inside `config:`
AUX_SECTIONS = ['logs', 'cache', 'spares']

# Pool GUIDs are unsigned 64-bit integers
POOL_ID_MAX = 2 ** 64 - 1

# --- Default Settings ---
# Fallback values used when the config file doesn't have the setting or value is invalid
DEFAULT_DEBUG_LOGGING = False      # DEBUG-level parser logging (disabled by default)
DEFAULT_ERROR_SNIPPET_LENGTH = 100 # Max characters of the offending line shown in errors

CONFIG_ENV_VAR = "ZPOOL_IMPORT_PARSER_CONFIG"
CONFIG_DIR_NAME = "zpool-import-parser"
CONFIG_FILE_NAME = "config.json"

# --- Log Prefixes ---
LOG_PREFIX_GRAMMAR = "ZPOOL_GRAMMAR"
LOG_PREFIX_BUILDER = "ZPOOL_BUILDER"
LOG_PREFIX_CONFIG = "CONFIG"

# --- END OF FILE constants.py ---
