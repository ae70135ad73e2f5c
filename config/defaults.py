"""
Default configuration values for benten.

Centralized defaults that can be overridden by environment variables or config files.
"""

from typing import Any, Dict

# Default settings; ${config_dir} is the directory holding the config file
DEFAULT_SETTINGS = {
    # Storage
    "database_path": "${config_dir}/benten.sqlite3",
    "blob_root": "${config_dir}/blobs",
    "piece_bucket": "pieces",
    "album_art_bucket": "album-arts",

    # Upload notifications
    "spool_dir": None,
    "upload_concurrency": 4,
    "poll_interval_s": 1.0,

    # Logging
    "log_file": None,
    "log_level": "INFO",

    # Timing
    "settle_window_s": 5.0,
    "operation_timeout_s": 10.0,

    # HTTP endpoint
    "host": "127.0.0.1",
    "port": 8080,
    "default_limit": 10,
}

# Environment variable overrides, applied after the config file is read
ENV_VAR_MAPPING = {
    'BENTEN_TARGET': 'target',
    'BENTEN_DATABASE_PATH': 'database_path',
    'BENTEN_BLOB_ROOT': 'blob_root',
    'BENTEN_SPOOL_DIR': 'spool_dir',
    'BENTEN_LOG_FILE': 'log_file',
    'BENTEN_LOG_LEVEL': 'log_level',
    'BENTEN_SETTLE_WINDOW': 'settle_window_s',
    'BENTEN_OPERATION_TIMEOUT': 'operation_timeout_s',
    'BENTEN_HOST': 'host',
    'BENTEN_PORT': 'port',
}

# Keys accepted in the spelling used by older config files
LEGACY_KEYS = {
    'Target': 'target',
    'LogFileName': 'log_file',
    'BucketName': 'piece_bucket',
}


def get_default_config() -> Dict[str, Any]:
    """Get a fresh copy of the default configuration"""
    return dict(DEFAULT_SETTINGS)
