"""Core module - Shared configuration and enums."""

from offlinesync.core.config import (
    RemoteConfig,
    SyncSettings,
    get_config_dir,
    get_config_file,
    get_state_db_path,
    load_config,
    remote_config_from,
    save_config,
)
from offlinesync.core.types import OperationType, SyncState

__all__ = [
    # Config
    "RemoteConfig",
    "SyncSettings",
    "get_config_dir",
    "get_config_file",
    "get_state_db_path",
    "load_config",
    "remote_config_from",
    "save_config",
    # Types
    "OperationType",
    "SyncState",
]
