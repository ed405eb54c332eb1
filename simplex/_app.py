"""
This module implements the ASGI application that forms the adapter
between an AssetTable and the ASGI server.
"""

from ._logging import logger
from ._request import HttpRequest
from ._table import AssetTable, lookup


NOT_FOUND_BODY = b"File Not Found"


def asset_response(table, path):
    """ Get the response for the given url path as a 3-element tuple
    (status, headers, body). Existing assets produce a 200 with the
    asset's content-type, anything else a 404 with a plain text body.
    """
    asset = lookup(table, path)
    if asset is None:
        status, ctype, body = 404, "text/plain", NOT_FOUND_BODY
    else:
        status, ctype, body = 200, asset.content_type, asset.body
    headers = {"content-type": ctype, "content-length": str(len(body))}
    return status, headers, body


def to_asgi(table, *, log_requests=False):
    """ Create an ASGI application that serves the assets in the given
    AssetTable. The table must be fully loaded; it is shared (read-only)
    by all requests. If ``log_requests`` is True, each requested path is
    logged. The result can be served with any ASGI server, such as
    Uvicorn, Hypercorn, Daphne, etc.
    """

    if not isinstance(table, AssetTable):
        raise TypeError("simplex.to_asgi() expects an AssetTable, use simplex.load().")

    async def application(scope, receive, send):
        return await simplex_application(table, log_requests, scope, receive, send)

    application.asset_table = table
    return application


async def simplex_application(table, log_requests, scope, receive, send):

    if scope["type"] == "http":
        request = HttpRequest(scope, send)
        await _handle_http(table, log_requests, request)
    elif scope["type"] == "lifespan":
        await _handle_lifespan(table, receive, send)
    else:
        logger.warning(f"Unknown ASGI type {scope['type']}")


async def _handle_lifespan(table, receive, send):
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            logger.info(f"Server is starting up, serving {len(table)} assets")
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            logger.info("Server is shutting down")
            await send({"type": "lifespan.shutdown.complete"})
            return
        else:
            logger.warning(f"Unknown lifespan message {message['type']}")


async def _handle_http(table, log_requests, request):

    try:

        where = "asset lookup"
        path = request.path
        if log_requests:
            logger.info(f"Request for: {path}")
        status, headers, body = asset_response(table, path)

        # The response to a head request should not include a body
        if request.method == "HEAD":
            body = b""

        where = "sending response"
        try:
            await request.accept(status, headers)
            await request.send(body, more=False)
        except OSError as err:
            # Servers raise OSError from send() once the client has gone
            logger.debug(f"Client disconnected: {err}")

    except Exception as err:
        # We log errors, and if possible send a 500
        error_text = f"{type(err).__name__} in {where}: {str(err)}"
        logger.error(error_text, exc_info=err)
        if not request.started:
            await request.accept(500, {"content-type": "text/plain"})
            await request.send(error_text, more=False)
