"""
branchdb - ClickHouse / PostgreSQL connection layer for multi-branch reporting.

- branchdb.core: adapters, configuration, connection manager
- branchdb.api: FastAPI diagnostics service
- branchdb.cli: ``branchdb`` command line
"""

__version__ = "0.1.0"

from branchdb.core import *  # noqa
