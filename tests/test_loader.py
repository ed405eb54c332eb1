"""
Test loading a directory tree into an AssetTable.
"""

import os
import sys

import pytest

import simplex
import simplex._loader
from simplex._loader import CONTENT_TYPES, DEFAULT_CONTENT_TYPE

from common import write_tree


def test_content_type_for():

    expected = {
        "index.html": "text/html",
        "style.css": "text/css",
        "app.js": "application/javascript",
        "logo.png": "image/png",
        "photo.jpg": "image/jpeg",
        "photo.jpeg": "image/jpeg",
        "anim.gif": "image/gif",
        "icon.svg": "image/svg+xml",
        "font.woff": "font/woff",
        "font.woff2": "font/woff2",
        "font.ttf": "font/ttf",
        "font.otf": "font/otf",
        "song.mp3": "audio/mpeg",
        "sound.wav": "audio/wav",
        "sound.ogg": "audio/ogg",
        "movie.mp4": "video/mp4",
        "movie.webm": "video/webm",
        "data.json": "application/json",
        "paper.pdf": "application/pdf",
        "favicon.ico": "image/x-icon",
    }
    for fname, ctype in expected.items():
        assert simplex.content_type_for(fname) == ctype, fname

    # All known extensions are covered above
    assert len(set(CONTENT_TYPES)) == len(expected)


def test_content_type_for_unknown():

    for fname in [
        "logo.xyz",
        "README",
        "Makefile",
        ".env",  # a dotfile has no extension
        "archive.tar.gz",
        "trailingdot.",
        "INDEX.HTML",  # case sensitive
        "style.Css",
        "html",
        "dir.html/file",
    ]:
        assert simplex.content_type_for(fname) == DEFAULT_CONTENT_TYPE, fname

    # Only the last extension counts
    assert simplex.content_type_for("app.min.js") == "application/javascript"
    assert simplex.content_type_for("sub/dir/page.html") == "text/html"


def test_load_keys_and_bodies(tmp_path):

    files = {
        "index.html": b"<h1>Hi</h1>",
        "css/style.css": b"body{}",
        "js/vendor/lib.min.js": b"var x = 1;",
        "img/logo.png": bytes(range(256)),
        "empty.txt": b"",
        "with space.json": b"{}",
    }
    write_tree(tmp_path, files)

    table = simplex.load(tmp_path)

    assert isinstance(table, simplex.AssetTable)
    assert set(table) == {"/" + relpath for relpath in files}
    for relpath, data in files.items():
        asset = table["/" + relpath]
        assert asset.body == data
        assert isinstance(asset.body, bytes)
        assert asset.content_type == simplex.content_type_for(relpath)

    for key in table:
        assert key.startswith("/")
        assert "\\" not in key

    assert table.root == os.fspath(tmp_path)
    assert table.nbytes == sum(len(data) for data in files.values())
    assert "/" not in table


def test_load_scenario_a(tmp_path):
    write_tree(tmp_path, {"index.html": b"<h1>Hi</h1>", "css/style.css": b"body{}"})

    table = simplex.load(tmp_path)

    assert simplex.lookup(table, "/") == ("text/html", b"<h1>Hi</h1>")
    assert simplex.lookup(table, "/css/style.css") == ("text/css", b"body{}")
    assert simplex.lookup(table, "/missing.txt") is None


def test_load_scenario_b(tmp_path):

    table = simplex.load(tmp_path)

    assert len(table) == 0
    for path in ["/", "/index.html", "/foo", ""]:
        assert simplex.lookup(table, path) is None


def test_load_scenario_c(tmp_path):
    data = b"\x00\x01binary\xff"
    write_tree(tmp_path, {"logo.xyz": data})

    table = simplex.load(tmp_path)

    assert simplex.lookup(table, "/logo.xyz") == ("application/octet-stream", data)


def test_load_accepts_str_root(tmp_path):
    write_tree(tmp_path, {"a.html": b"a"})
    table = simplex.load(str(tmp_path))
    assert list(table) == ["/a.html"]


def test_load_bad_root_fails(tmp_path):

    with pytest.raises(OSError):
        simplex.load(tmp_path / "does_not_exist")

    write_tree(tmp_path, {"file.html": b"x"})
    with pytest.raises(OSError):
        simplex.load(tmp_path / "file.html")


def test_load_read_error_is_fatal(tmp_path, monkeypatch):
    write_tree(tmp_path, {"a.html": b"a", "sub/b.css": b"b", "sub/c.js": b"c"})

    ori_read_file = simplex._loader._read_file

    def failing_read_file(filename):
        if filename.endswith("b.css"):
            raise PermissionError(13, "Permission denied", filename)
        return ori_read_file(filename)

    monkeypatch.setattr(simplex._loader, "_read_file", failing_read_file)

    with pytest.raises(PermissionError):
        simplex.load(tmp_path)


def test_load_skips_enumeration_errors(tmp_path, monkeypatch):
    write_tree(
        tmp_path,
        {"a.html": b"a", "private/secret.txt": b"s", "public/b.css": b"b"},
    )
    private_dir = os.path.join(os.fspath(tmp_path), "private")

    ori_scandir = os.scandir

    def failing_scandir(path="."):
        if os.fspath(path) == private_dir:
            raise PermissionError(13, "Permission denied", path)
        return ori_scandir(path)

    monkeypatch.setattr(os, "scandir", failing_scandir)

    table = simplex.load(tmp_path)

    assert set(table) == {"/a.html", "/public/b.css"}


@pytest.mark.skipif(sys.platform.startswith("win"), reason="needs symlinks")
def test_load_symlinks(tmp_path):
    root = tmp_path / "root"
    write_tree(root, {"real.css": b"x{}"})
    write_tree(tmp_path, {"outside/elsewhere.js": b"1"})

    os.symlink(root / "real.css", root / "alias.css")
    os.symlink(root / "nothing.html", root / "broken.html")
    os.symlink(tmp_path / "outside", root / "linkdir")

    table = simplex.load(root)

    # Linked files are read, broken links and linked dirs are not
    assert set(table) == {"/real.css", "/alias.css"}
    assert table["/alias.css"] == ("text/css", b"x{}")


def test_load_does_not_touch_tree(tmp_path):
    files = {"index.html": b"<p>x</p>", "a/b/c.txt": b"abc"}
    write_tree(tmp_path, files)

    def snapshot():
        result = []
        for dirpath, _, filenames in os.walk(tmp_path):
            for fname in filenames:
                filename = os.path.join(dirpath, fname)
                with open(filename, "rb") as f:
                    result.append((filename, os.stat(filename).st_mtime_ns, f.read()))
        return sorted(result)

    before = snapshot()
    simplex.load(tmp_path)
    assert snapshot() == before


def test_loaded_table_is_read_only(tmp_path):
    write_tree(tmp_path, {"index.html": b"x"})
    table = simplex.load(tmp_path)

    with pytest.raises(TypeError):
        table["/index.html"] = simplex.Asset("text/plain", b"y")
    with pytest.raises((TypeError, AttributeError)):
        del table["/index.html"]
    with pytest.raises(AttributeError):
        table.body = None

    assert table["/index.html"].body == b"x"
