"""
The Simplex command line interface. Loads a directory into memory and
serves it::

    python -m simplex [root] [--host HOST] [--port PORT] [--server NAME] [--log]
"""

import os
import sys
import argparse

from ._logging import logger
from ._loader import load
from ._app import to_asgi
from ._run import run, parse_bind, SERVERS


def make_parser():
    parser = argparse.ArgumentParser(
        prog="simplex",
        description="Serve all files in a directory, from memory.",
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=os.curdir,
        help="Directory to serve (default: the current directory)",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind host address")
    parser.add_argument(
        "-p", "--port", type=int, default=3000, help="Bind port number (default: 3000)"
    )
    parser.add_argument(
        "--server",
        default="uvicorn",
        choices=sorted(SERVERS),
        help="The ASGI server to use (default: uvicorn)",
    )
    parser.add_argument(
        "--log", action="store_true", help="Log the path of each request"
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        help="Log level of the ASGI server (default: warning)",
    )
    return parser


def main(argv=None):
    """ CLI entry point. Returns the exit code.
    """
    args = make_parser().parse_args(argv)
    root = os.path.abspath(args.root)
    bind = f"{args.host}:{args.port}"
    try:
        parse_bind(bind)
    except ValueError as err:
        logger.error(str(err))
        return 1

    # All files must be loaded before we start listening
    logger.info(f"Loading files from: {root}")
    try:
        table = load(root)
    except OSError as err:
        logger.error(f"Could not load files: {err}")
        return 1

    app = to_asgi(table, log_requests=args.log)
    logger.info(f"Server started on {bind}")
    run(app, args.server, bind, log_level=args.log_level)
    return 0


if __name__ == "__main__":
    sys.exit(main())
