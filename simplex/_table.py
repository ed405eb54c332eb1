"""
This module implements the AssetTable, the read-only mapping of url paths to
in-memory assets that is shared by all request handlers.
"""

from types import MappingProxyType
from collections import namedtuple
from collections.abc import Mapping


INDEX_PATH = "/index.html"

Asset = namedtuple("Asset", ["content_type", "body"])
Asset.__doc__ = """ An in-memory file: its content-type (str) and body (bytes).
"""


class AssetTable(Mapping):
    """ A read-only mapping of url paths (e.g. "/css/style.css") to Asset
    objects. Tables are created by ``load()`` and are never modified
    afterwards, so they can be shared between any number of concurrent
    request handlers without locking.
    """

    __slots__ = ("_assets", "_root")

    def __init__(self, assets, root=None):
        for key, asset in assets.items():
            if not (isinstance(key, str) and key.startswith("/")):
                raise ValueError(f"Asset paths must be str starting with '/': {key!r}")
            if not isinstance(asset, Asset):
                raise TypeError(f"Asset table values must be Asset, not {type(asset)}")
        # Take a private copy so that the caller cannot mutate us
        self._assets = MappingProxyType(dict(assets))
        self._root = root

    def __repr__(self):
        return f"<AssetTable with {len(self)} assets from {self._root!r}>"

    def __getitem__(self, path):
        return self._assets[path]

    def __iter__(self):
        return iter(self._assets)

    def __len__(self):
        return len(self._assets)

    def __contains__(self, path):
        return path in self._assets

    @property
    def root(self):
        """ The directory that this table was loaded from (or None).
        """
        return self._root

    @property
    def nbytes(self):
        """ The total size of all asset bodies.
        """
        return sum(len(asset.body) for asset in self._assets.values())


def lookup(table, path):
    """ Get the Asset stored at the given url path, or None if there is
    no such asset. The path "/" is an alias for "/index.html". Matching
    is exact and case sensitive. This function never raises for str paths.
    """
    if path == "/":
        path = INDEX_PATH
    return table.get(path, None)
