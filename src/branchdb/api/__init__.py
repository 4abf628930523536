"""
branchdb HTTP API.

Exposes the connection layer's diagnostics over FastAPI: health probes,
the branch database catalog, the connected stores and the schema cache.

Run with::

    uvicorn branchdb.api:app --factory
"""

from branchdb.api.app import create_app

app = create_app

__all__ = ["create_app", "app"]
