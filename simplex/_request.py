"""
This module implements the HttpRequest class, a thin wrapper around the
ASGI scope and the send channel of a single http request.
"""


CONNECTING = 0
CONNECTED = 1
DONE = 2


class HttpRequest:
    """ Object representing an HTTP request, i.e. the ASGI scope plus
    the function to send the response to the ASGI server. Since assets
    are served regardless of the request body, the body is never read.
    """

    __slots__ = ("_scope", "_send", "_app_state")

    def __init__(self, scope, send):
        assert scope["type"] == "http", f"Unexpected http scope type {scope['type']}"
        self._scope = scope
        self._send = send
        self._app_state = CONNECTING  # CONNECTING -> CONNECTED -> DONE

    @property
    def method(self):
        """ The HTTP method (string). E.g. 'HEAD', 'GET', 'PUT', 'POST', 'DELETE'.
        """
        return self._scope["method"]

    @property
    def path(self):
        """ The path part of the URL exactly as sent by the client (a string,
        percent escapes are not decoded). Taken from the ASGI ``raw_path``,
        which is decoded the same way as file names, so that it compares
        equal to the keys of a loaded AssetTable. Servers that do not
        provide ``raw_path`` give the (decoded) ``path`` instead.
        """
        raw_path = self._scope.get("raw_path")
        if raw_path is None:
            return self._scope["path"]
        return raw_path.decode("utf-8", "surrogateescape")

    @property
    def started(self):
        """ Whether the response has been started (i.e. ``accept()`` was called).
        """
        return self._app_state != CONNECTING

    async def accept(self, status=200, headers=None):
        """ Send the status code and headers of the response.
        """
        if self._app_state != CONNECTING:
            raise IOError("Cannot accept an already accepted connection.")
        status = int(status)
        try:
            rawheaders = [(k.encode(), v.encode()) for k, v in (headers or {}).items()]
        except Exception:
            raise TypeError("Header keys and values must all be strings.")
        self._app_state = CONNECTED
        msg = {"type": "http.response.start", "status": status, "headers": rawheaders}
        await self._send(msg)

    async def send(self, data, more=True):
        """ Send (a chunk of) the response body. Note that ``accept()``
        must be called first.
        """
        more = bool(more)
        if isinstance(data, str):
            data = data.encode()
        elif not isinstance(data, bytes):
            raise TypeError(f"Can only send bytes/str over http, not {type(data)}.")
        message = {"type": "http.response.body", "body": data, "more_body": more}
        if self._app_state == CONNECTED:
            if not more:
                self._app_state = DONE
            await self._send(message)
        elif self._app_state == CONNECTING:
            raise IOError("Cannot send before calling accept.")
        else:
            raise IOError("Cannot send to a closed connection.")
