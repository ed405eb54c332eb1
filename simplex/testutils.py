"""
Simplex test utilities.
"""

import os
import sys
import time
import asyncio
import logging
import subprocess
from collections import namedtuple
from wsgiref.handlers import format_date_time
from urllib.parse import unquote, urlparse

import requests

from ._logging import logger
from ._app import to_asgi


Response = namedtuple("Response", ["status", "headers", "body"])

PORT = 49152 + os.getpid() % 16383  # hash pid to ephimeral port number
URL = f"http://127.0.0.1:{PORT}"


class BaseTestServer:
    """ Base class for test servers. Objects of this class represent a
    server instance that serves the given AssetTable, and can be used to
    test how assets are served.

    The server can be started/stopped by using it as a context manager.
    The ``url`` attribute represents the url that can be used to make
    requests to the server. When the server has stopped, The ``out``
    attribute contains the server output.

    Only one instance of this class (per process) should be used (as a
    context manager) at any given time.
    """

    def __init__(self, table, server_description, *, log_requests=False, loop=None):
        self._table = table
        self._server = server_description
        self._log_requests = log_requests
        self._loop = asyncio.new_event_loop() if loop is None else loop
        self._out = ""

    @property
    def table(self):
        """ The AssetTable that was given at instantiation.
        """
        return self._table

    @property
    def url(self):
        """ The url at which the server is listening.
        """
        return URL

    @property
    def out(self):
        """ The output of the server. This gets set when the
        with-statement using this object exits.
        """
        return self._out

    def __enter__(self):
        self.log(f"  Create {self._server} server .. ", end="")
        self._out = ""
        t0 = time.time()

        self._start_server()

        self.log(f" {time.time()-t0:0.1f}s ", end="")
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.log("- Closing .. " if exc_value is None else "Error .. ", end="")
        t0 = time.time()

        out = self._stop_server()
        self._out = "\n".join(self.filter_lines(out.splitlines()))

        if exc_value is None:
            self.log(f" {time.time()-t0:0.1f}s ")
        else:
            self.log("Server output:")
            self.log(self.out)

    def get(self, path, headers=None, **kwargs):
        """ Send a GET request to the server. See request() for detais.
        """
        return self.request("GET", path, headers=headers, **kwargs)

    def head(self, path, headers=None, **kwargs):
        """ Send a HEAD request to the server. See request() for detais.
        """
        return self.request("HEAD", path, headers=headers, **kwargs)

    def request(self, method, path, data=None, headers=None, **kwargs):
        """ Send a request to the server. Returns a named tuple ``(status, headers, body)``.

        Arguments:
            method (str): the HTTP method (e.g. "GET")
            path (str): path or url (also see the ``url`` property).
            data: the bytes to send (optional).
            headers: headers to send (optional).
            kwargs: additional arguments to pass to ``requests.request()``.

        """
        assert isinstance(method, str)
        assert isinstance(path, str)
        if path.startswith("http"):
            url = path
        else:
            url = self.url + "/" + path.lstrip("/")

        co = self._co_request(method, url, data=data, headers=headers, **kwargs)
        status, headers, body = self._loop.run_until_complete(co)
        return Response(status, headers, body)

    def log(self, *messages, sep=" ", end="\n"):
        """ Log a message. Overloadable. Default write to stdout.
        """
        msg = sep.join(str(m) for m in messages)
        sys.stdout.write(msg + end)
        sys.stdout.flush()

    def filter_lines(self, lines):
        """ Overloadable line filter.
        """
        return lines


class ProcessTestServer(BaseTestServer):
    """ Subclass of BaseTestServer that runs the simplex CLI in a
    subprocess, serving the root directory of the given table with the
    given ASGI server (e.g. "uvicorn", "hypercorn" or "daphne").

    This provides a very realistic approach to test serving assets, though
    the overhead of starting and stopping the server costs about a second.
    Therefore this approach is most suited for integration tests.

    Requests can be done via the methods of this object, or using any other
    request library.
    """

    def __init__(self, table, server, **kwargs):
        super().__init__(table, server, **kwargs)
        if table.root is None:
            raise ValueError("ProcessTestServer needs a table loaded from a directory.")

    def _start_server(self):
        cmd = [sys.executable, "-m", "simplex", self._table.root]
        cmd += ["--port", str(PORT), "--server", self._server]
        if self._log_requests:
            cmd.append("--log")
        # Don't use stdin; it breaks multiprocessing somehow!
        self._p = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        # Wait for process to start, and make sure it is not dead
        while self._p.poll() is None:
            time.sleep(0.02)
            try:
                requests.get(URL + "/", timeout=0.1)
                break
            except (requests.ConnectionError, requests.ReadTimeout):
                pass
        if self._p.poll() is not None:
            raise RuntimeError(
                "Process failed to start!\n" + self._p.stdout.read().decode()
            )

    def _stop_server(self):
        for i in range(5):
            self._p.terminate()
            etime = time.time() + 5
            while self._p.poll() is None and time.time() < etime:
                time.sleep(0.01)
            if self._p.poll() is not None:
                break
        else:
            self._p.kill()
            raise RuntimeError("Runaway server process failed to terminate!")
        return self._p.stdout.read().decode(errors="ignore")

    async def _co_request(self, method, url, **kwargs):
        r = requests.request(method, url, **kwargs)
        return r.status_code, r.headers, r.content


class _ListHandler(logging.Handler):
    def __init__(self, lines):
        super().__init__()
        self.lines = lines
        self.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))

    def emit(self, record):
        self.lines.append(self.format(record))


class MockTestServer(BaseTestServer):
    """ Subclass of BaseTestServer that mocks an ASGI server and
    operates in-process. This is a less realistic approach, but faster
    and allows tracking test coverage, so it's more suited for unit
    tests. The server output is the log output of the simplex logger.

    Requests *must* be done via the methods of this object. The used url
    can be anything.
    """

    def __init__(self, table, **kwargs):
        super().__init__(table, "mock", **kwargs)
        self._asgi_app = to_asgi(table, log_requests=self._log_requests)
        self._out_lines = []
        self._log_handler = _ListHandler(self._out_lines)

    def _start_server(self):
        self._out_lines.clear()
        logger.addHandler(self._log_handler)
        try:
            self._lifespan_messages = []
            self._lifespan_completes = []
            self._lifespan_task = self._make_lifespan_task()
            self._wait_for_lifespan_complete("startup")
        except Exception as err:
            logger.removeHandler(self._log_handler)
            raise err

    def _stop_server(self):
        try:
            self._wait_for_lifespan_complete("shutdown")
        finally:
            logger.removeHandler(self._log_handler)
        return "\n".join(self._out_lines)

    def _make_lifespan_task(self):
        scope = {"type": "lifespan"}

        async def receive():
            while True:
                if self._lifespan_messages:
                    return self._lifespan_messages.pop(0)
                await asyncio.sleep(0.02)

        async def send(m):
            self._lifespan_completes.append(m["type"])

        return self._loop.create_task(self._asgi_app(scope, receive, send))

    def _wait_for_lifespan_complete(self, what, timeout=5):
        what_complete = f"lifespan.{what}.complete"

        async def waiter():
            etime = time.time() + timeout
            while what_complete not in self._lifespan_completes:
                if self._lifespan_task.done():
                    raise RuntimeError(
                        f"Lifespan task finished without producing {what}"
                    )
                if time.time() > etime:
                    raise RuntimeError(
                        f"Timeout for {what}, has {self._lifespan_completes}"
                    )
                await asyncio.sleep(0.02)

        self._lifespan_messages.append({"type": f"lifespan.{what}"})
        self._loop.run_until_complete(waiter())

    def _make_scope(self, request):
        scheme, netloc, path, params, query, fragement = urlparse(request.url)
        if ":" in netloc:
            host, port = netloc.split(":", 1)
            port = int(port)
        else:
            host = netloc
            port = {"http": 80, "https": 443}[scheme]

        headers = [
            [key.lower().encode(), value.encode()]
            for key, value in request.headers.items()
        ]
        if "host" not in request.headers:
            headers.insert(0, [b"host", f"{host}:{port}".encode()])

        return {
            "type": "http",
            "http_version": "1.1",
            "method": request.method,
            "scheme": scheme,
            "path": unquote(path),
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": query.encode(),
            "headers": headers,
            "client": ["testclient", 50000],
            "server": [host, port],
        }

    async def _co_request(self, method, url, **kwargs):
        req = requests.Request(method, url, **kwargs)
        p = req.prepare()  # Get the "resolved" request
        p.headers.setdefault("user-agent", "asgi_mock_server")
        scope = self._make_scope(p)

        # ---

        client_to_server = [p.body or b""]
        server_to_client = []
        response = []

        async def receive():
            if client_to_server:
                return {"type": "http.request", "body": client_to_server.pop(0)}
            return {"type": "http.disconnect"}

        async def send(m):
            if m["type"] == "http.response.start":
                headers = dict((h[0].decode(), h[1].decode()) for h in m["headers"])
                headers.setdefault("date", format_date_time(time.time()))
                headers.setdefault("server", "simplex_mock_server")
                response.extend([m["status"], headers])
            elif m["type"] == "http.response.body":
                server_to_client.append(m["body"])

        await self._asgi_app(scope, receive, send)
        if not response:
            response.extend([9999, {}])
        response.append(b"".join(server_to_client))

        return tuple(response)
