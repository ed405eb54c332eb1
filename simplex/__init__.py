"""
Simplex - A static file server that serves everything from memory

Simplex loads all files under a directory into memory at startup, and
serves them over HTTP via an ASGI server of choice.
"""

from ._table import Asset, AssetTable, lookup
from ._loader import load, content_type_for
from ._app import to_asgi, asset_response
from ._run import run


__all__ = [
    "Asset",
    "AssetTable",
    "lookup",
    "load",
    "content_type_for",
    "to_asgi",
    "asset_response",
    "run",
]


__version__ = "0.1.0"
