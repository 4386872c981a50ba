from __future__ import annotations

import threading

import pytest

from api.http_server import TodoHTTPServer, TodoRequestHandler
from services.action_log import ActionLogger
from services.storage import TodoRepository


@pytest.fixture
def server():
    repo = TodoRepository()
    srv = TodoHTTPServer(("127.0.0.1", 0), TodoRequestHandler, repo)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        yield srv
    finally:
        srv.shutdown()
        srv.server_close()
        thread.join(timeout=5)


@pytest.fixture
def base(server: TodoHTTPServer) -> str:
    host, port = server.server_address[:2]
    return f"http://{host}:{port}"


@pytest.fixture
def base_with_log(tmp_path):
    logger = ActionLogger(str(tmp_path / "actions.log"))
    srv = TodoHTTPServer(("127.0.0.1", 0), TodoRequestHandler, TodoRepository(logger=logger))
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        host, port = srv.server_address[:2]
        yield f"http://{host}:{port}", logger
    finally:
        srv.shutdown()
        srv.server_close()
        thread.join(timeout=5)
