"""
This module implements ``load()``, which reads a directory tree into an
AssetTable in one pass.
"""

import os

from ._logging import logger
from ._table import Asset, AssetTable


DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Case sensitive, keys are extensions without the dot
CONTENT_TYPES = {
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "json": "application/json",
    "pdf": "application/pdf",
    "ico": "image/x-icon",
}


def content_type_for(filename):
    """ Get the content-type for the given filename, based on its extension.
    Unknown extensions, and files without one, give "application/octet-stream".
    """
    _, ext = os.path.splitext(os.path.basename(filename))
    return CONTENT_TYPES.get(ext[1:], DEFAULT_CONTENT_TYPE)


def _path_to_key(relpath):
    return "/" + relpath.replace(os.sep, "/").replace("\\", "/")


def _skip_entry(err):
    logger.debug(f"Skipping {err.filename!r}: {err.strerror or err}")


def _read_file(filename):
    with open(filename, "rb") as f:
        return f.read()


def load(root):
    """ Load all files under the given directory into an AssetTable.

    The keys of the table are the paths relative to ``root``, with forward
    slashes and a leading slash, e.g. "/css/style.css". Raises ``OSError``
    if ``root`` cannot be opened, or if any of the files cannot be read.
    Entries that disappear or become inaccessible while walking the tree
    are skipped.
    """
    root = os.fspath(root)

    # os.walk() ignores errors by default, but a bad root must be fatal
    os.listdir(root)

    assets = {}
    for dirpath, _, filenames in os.walk(root, onerror=_skip_entry):
        for fname in filenames:
            filename = os.path.join(dirpath, fname)
            if not os.path.isfile(filename):
                continue  # broken symlink, fifo, etc.
            key = _path_to_key(os.path.relpath(filename, root))
            body = _read_file(filename)
            assets[key] = Asset(content_type_for(fname), body)

    table = AssetTable(assets, root)
    logger.info(f"Loaded {len(table)} files ({table.nbytes} bytes)")
    return table
