"""
This module implements a ``run()`` function to start an ASGI server of choice.
"""


def run(app, server="uvicorn", bind="127.0.0.1:3000", *, log_level="warning", **kwargs):
    """ Run the given ASGI application object with the given ASGI server.
    This blocks until the server stops.

    Arguments:

    * ``app`` (required): The ASGI application object, e.g. from ``simplex.to_asgi()``.
    * ``server``: The name of the server to use: uvicorn (default), hypercorn or daphne.
    * ``bind``: The address to listen on, as 'host:port'. Default '127.0.0.1:3000'.
    * ``log_level``: The log level of the server, e.g. warning/info/debug.
    * ``kwargs``: additional arguments to pass to the underlying server.
    """

    # Check app, server and bind
    if not callable(app):
        raise TypeError("simplex.run() app arg must be an ASGI application.")
    if not isinstance(server, str):
        raise TypeError("simplex.run() server arg must be a string.")
    host, port = parse_bind(bind)

    # Select server function
    try:
        func = SERVERS[server.lower()]
    except KeyError:
        raise ValueError(f"Invalid server specified: {server!r}")

    # Delegate
    return func(app, host, port, log_level, **kwargs)


def parse_bind(bind):
    """ Parse a 'host:port' string into a (host, port) tuple. The
    name 'localhost' is replaced with '127.0.0.1'.
    """
    if not isinstance(bind, str):
        raise TypeError("The bind arg must be a string.")
    host, sep, port = bind.rpartition(":")
    if not (sep and host and port.isdigit()):
        raise ValueError(f"The bind arg must be 'host:port', not {bind!r}")
    port = int(port)
    if not 0 <= port <= 65535:
        raise ValueError(f"Invalid port number: {port}")
    return host.replace("localhost", "127.0.0.1"), port


def _run_uvicorn(app, host, port, log_level, **kwargs):
    import uvicorn

    kwargs["log_level"] = log_level.lower()

    return uvicorn.run(app, host=host, port=port, **kwargs)


def _run_hypercorn(app, host, port, log_level, **kwargs):
    import asyncio
    from hypercorn.config import Config
    from hypercorn.asyncio import serve

    config = Config()
    config.bind = [f"{host}:{port}"]
    config.loglevel = log_level.upper()
    for key, val in kwargs.items():
        setattr(config, key, val)

    return asyncio.run(serve(app, config))


def _run_daphne(app, host, port, log_level, **kwargs):
    from daphne.server import Server
    from daphne.endpoints import build_endpoint_description_strings

    levelmap = {"error": 0, "warn": 0, "warning": 0, "info": 1, "debug": 2}
    kwargs.setdefault("verbosity", levelmap.get(log_level.lower(), 0))

    endpoints = build_endpoint_description_strings(host=host, port=port)
    return Server(application=app, endpoints=endpoints, **kwargs).run()


SERVERS = {"uvicorn": _run_uvicorn, "hypercorn": _run_hypercorn, "daphne": _run_daphne}
