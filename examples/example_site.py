"""
Serve the "site" directory next to this file, from memory.

All files are read at startup. Changes to the files while the server
is running are not picked up; restart the server instead.
"""

import os

import simplex


THIS_DIR = os.path.dirname(os.path.abspath(__file__))

# Load before serving; a missing or unreadable file aborts here
table = simplex.load(os.path.join(THIS_DIR, "site"))

app = simplex.to_asgi(table, log_requests=True)


if __name__ == "__main__":
    simplex.run(app, "uvicorn", "localhost:8080")
