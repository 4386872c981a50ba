from __future__ import annotations

import os
import re
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from jinja2 import Environment, FileSystemLoader, select_autoescape

from services.action_log import STATUS_PARSE_ERROR
from services.errors import TodoNotFoundError
from services.storage import TodoRepository


TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
DEFAULT_TITLE = "unknown"

_TOGGLE_RE = re.compile(r"^/todos/([^/]+)/toggle$")
_TODO_ID_RE = re.compile(r"^/todos/([^/]+)$")
_ID_RE = re.compile(r"[+-]?[0-9]+")


def _has_items(items: List[Any]) -> bool:
    return len(items) > 0


def build_environment(templates_dir: str = TEMPLATES_DIR, auto_reload: bool = False) -> Environment:
    env = Environment(
        loader=FileSystemLoader(templates_dir),
        autoescape=select_autoescape(["html"]),
        auto_reload=auto_reload,
    )
    env.filters["has_items"] = _has_items
    return env


def _parse_id(raw: str) -> Optional[int]:
    # int() alone would also take "1_0", " 7" and non-ASCII digits
    if not _ID_RE.fullmatch(raw):
        return None
    return int(raw)


class TodoHTTPServer(ThreadingHTTPServer):
    def __init__(self, server_address, RequestHandlerClass, repo: TodoRepository, env: Optional[Environment] = None):
        super().__init__(server_address, RequestHandlerClass)
        self.repo = repo
        self.env = env or build_environment()


class TodoRequestHandler(BaseHTTPRequestHandler):
    server: TodoHTTPServer

    def _origin(self) -> Optional[str]:
        try:
            return self.client_address[0]
        except (AttributeError, IndexError, TypeError):
            return None

    def _lists(self) -> Dict[str, Any]:
        repo = self.server.repo
        return {
            "todos_open": repo.list_by_status(False),
            "todos_done": repo.list_by_status(True),
        }

    def _reject_id(self, action: str, raw: str) -> None:
        logger = self.server.repo.logger
        if logger:
            logger.log_failure(action, None, STATUS_PARSE_ERROR, origin=self._origin(), details={"todo_id": raw})
        self._send_empty(404)

    def _send_html(self, status: int, template: str) -> None:
        html = self.server.env.get_template(template).render(**self._lists())
        data = html.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_list(self) -> None:
        self._send_html(200, "partials/todo-list.html")

    def _send_empty(self, status: int) -> None:
        self.send_response(status)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _read_form(self) -> Dict[str, List[str]]:
        length_str = self.headers.get("Content-Length")
        if not length_str:
            return {}
        try:
            length = int(length_str)
        except ValueError:
            return {}
        if length <= 0:
            return {}

        raw = self.rfile.read(length)
        try:
            return parse_qs(raw.decode("utf-8"))
        except UnicodeDecodeError:
            return {}

    def do_GET(self) -> None:
        path = urlparse(self.path).path

        if path == "/":
            self._send_html(200, "index.html")
            return

        if path == "/todos":
            self._send_list()
            return

        self._send_empty(404)

    def do_POST(self) -> None:
        path = urlparse(self.path).path

        if path == "/todos":
            form = self._read_form()
            title = form.get("todo", [DEFAULT_TITLE])[0] or DEFAULT_TITLE
            self.server.repo.add(title, False, origin=self._origin())
            self._send_list()
            return

        self._send_empty(404)

    def do_PUT(self) -> None:
        path = urlparse(self.path).path
        m = _TOGGLE_RE.match(path)
        if not m:
            self._send_empty(404)
            return

        todo_id = _parse_id(m.group(1))
        if todo_id is None:
            self._reject_id("toggle", m.group(1))
            return

        try:
            self.server.repo.toggle(todo_id, origin=self._origin())
        except TodoNotFoundError:
            self._send_empty(404)
            return

        self._send_list()

    def do_DELETE(self) -> None:
        path = urlparse(self.path).path
        m = _TODO_ID_RE.match(path)
        if not m:
            self._send_empty(404)
            return

        todo_id = _parse_id(m.group(1))
        if todo_id is None:
            self._reject_id("delete", m.group(1))
            return

        try:
            self.server.repo.delete(todo_id, origin=self._origin())
        except TodoNotFoundError:
            self._send_empty(404)
            return

        self._send_list()

    def log_message(self, format: str, *args) -> None:
        return
