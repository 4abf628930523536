"""
Configuration for the branchdb connection layer.

Modules
-------
loader      ``.env`` cascade and the merged environment mapping
databases   ``load_database_config()`` → ``LoadedDatabaseConfig``
catalog     ``DB<n>_*`` branch database catalog
"""

from .catalog import (
    DatabaseInfo,
    get_all_databases_info,
    get_default_database_key,
    list_database_keys,
    load_database_info,
    loaded_config_for_key,
)
from .databases import LoadedDatabaseConfig, load_database_config
from .loader import discover_env_files, find_project_root, get_effective_env, load_env_files

__all__ = [
    "LoadedDatabaseConfig",
    "load_database_config",
    "DatabaseInfo",
    "get_all_databases_info",
    "get_default_database_key",
    "list_database_keys",
    "load_database_info",
    "loaded_config_for_key",
    "discover_env_files",
    "find_project_root",
    "get_effective_env",
    "load_env_files",
]
