"""
Common utilities used in our test scripts.
"""

import os
import sys

from simplex.testutils import ProcessTestServer, MockTestServer


def get_backend():
    return os.environ.get("ASGI_SERVER", "mock").lower()


def set_backend_from_argv():
    for arg in sys.argv:
        if arg.upper().startswith("--ASGI_SERVER="):
            os.environ["ASGI_SERVER"] = arg.split("=")[1].strip().lower()


def run_tests(scope):
    for func in list(scope.values()):
        if callable(func) and func.__name__.startswith("test_"):
            print(f"Running {func.__name__} ...")
            func()
    print("Done")


def filter_lines(lines):
    # Overloadable line filter
    skip = (
        "INFO:",  # uvicorn
        "Running on http",  # older hypercorn
        "Running on 127.",  # older hypercorn
        "Aborted!",
    )
    return [line for line in lines if line and not line.startswith(skip)]


def make_server(table, **kwargs):
    servername = get_backend()
    if servername == "mock":
        server = MockTestServer(table, **kwargs)
    else:
        server = ProcessTestServer(table, servername, **kwargs)
    server.filter_lines = filter_lines
    return server


def write_tree(root, files):
    """ Write a dict of relative paths (with forward slashes) to bytes
    into the given directory.
    """
    for relpath, data in files.items():
        filename = os.path.join(root, *relpath.split("/"))
        os.makedirs(os.path.dirname(filename), exist_ok=True)
        with open(filename, "wb") as f:
            f.write(data)
