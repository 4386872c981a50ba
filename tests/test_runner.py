from __future__ import annotations

import argparse
import json
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib import error, request
from urllib.parse import urlencode


_TODO_ID_RE = re.compile(r'data-todo-id="(\d+)"')
_SECTION_RE = re.compile(r'<ul class="(open|done)">(.*?)</ul>', re.S)


def _http_form(base: str, method: str, path: str, form: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
    url = base.rstrip("/") + path
    data_bytes = None
    headers = {}
    if form is not None:
        data_bytes = urlencode(form).encode("utf-8")
        headers["Content-Type"] = "application/x-www-form-urlencoded"

    req = request.Request(url, data=data_bytes, method=method, headers=headers)
    try:
        with request.urlopen(req) as resp:
            return resp.status, resp.read().decode("utf-8")
    except error.HTTPError as e:
        return e.code, e.read().decode("utf-8", errors="replace")
    except (error.URLError, OSError) as e:
        return -1, str(e)


def todo_ids(html: str) -> List[int]:
    return [int(m) for m in _TODO_ID_RE.findall(html)]


def ids_by_section(html: str) -> Dict[str, List[int]]:
    sections: Dict[str, List[int]] = {"open": [], "done": []}
    for name, body in _SECTION_RE.findall(html):
        sections[name] = todo_ids(body)
    return sections


@dataclass
class SuiteResult:
    name: str
    expected: Any
    actual: Any
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z",
            "name": self.name,
            "expected": self.expected,
            "actual": self.actual,
            "status": self.status,
        }


def _log(logfile: Optional[str], result: SuiteResult) -> None:
    if not logfile:
        return
    os.makedirs(os.path.dirname(logfile) or ".", exist_ok=True)
    with open(logfile, "a", encoding="utf-8") as f:
        f.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")


def run_suite(base: str, logfile: Optional[str] = None) -> Dict[str, Any]:
    """
    Walks a running server through create / toggle / delete and the 404 paths.
    Works against a board that already has todos on it.
    """
    results: List[SuiteResult] = []

    def record(name: str, expected: Any, actual: Any, ok: bool) -> None:
        res = SuiteResult(name=name, expected=expected, actual=actual, status="pass" if ok else "fail")
        results.append(res)
        _log(logfile, res)

    # 1) index page
    status, body = _http_form(base, "GET", "/")
    ok = status == 200 and "<html" in body and 'id="todo-list"' in body
    record("index", {"status": 200, "page": True}, {"status": status}, ok)

    status, body = _http_form(base, "GET", "/todos")
    before = set(todo_ids(body))

    # 2) create
    status, body = _http_form(base, "POST", "/todos", {"todo": "SuiteCase"})
    created = [i for i in todo_ids(body) if i not in before]
    ok = status == 200 and len(created) == 1 and "SuiteCase" in body
    record("create", {"status": 200, "new_ids": 1}, {"status": status, "new_ids": created}, ok)
    todo_id = created[0] if created else 0

    # 3) new todo is open
    sections = ids_by_section(body)
    ok = todo_id in sections["open"] and todo_id not in sections["done"]
    record("created_is_open", {"open": True}, sections, ok)

    # 4) toggle to done
    status, body = _http_form(base, "PUT", f"/todos/{todo_id}/toggle")
    sections = ids_by_section(body)
    ok = status == 200 and todo_id in sections["done"] and todo_id not in sections["open"]
    record("toggle_done", {"status": 200, "done": True}, {"status": status, "sections": sections}, ok)

    # 5) toggle back to open
    status, body = _http_form(base, "PUT", f"/todos/{todo_id}/toggle")
    sections = ids_by_section(body)
    ok = status == 200 and todo_id in sections["open"]
    record("toggle_open", {"status": 200, "open": True}, {"status": status, "sections": sections}, ok)

    # 6) delete
    status, body = _http_form(base, "DELETE", f"/todos/{todo_id}")
    ok = status == 200 and todo_id not in todo_ids(body)
    record("delete", {"status": 200, "deleted_absent": True}, {"status": status}, ok)

    # 7) delete again
    status, _body = _http_form(base, "DELETE", f"/todos/{todo_id}")
    record("delete_missing", {"status": 404}, {"status": status}, status == 404)

    # 8) toggle missing
    status, _body = _http_form(base, "PUT", "/todos/999999/toggle")
    record("toggle_missing", {"status": 404}, {"status": status}, status == 404)

    # 9) unparsable id
    status, _body = _http_form(base, "PUT", "/todos/abc/toggle")
    record("toggle_bad_id", {"status": 404}, {"status": status}, status == 404)

    # 10) default title
    status, body = _http_form(base, "POST", "/todos", {})
    extra = [i for i in todo_ids(body) if i not in before]
    ok = status == 200 and "unknown" in body and len(extra) == 1
    record("create_default_title", {"status": 200, "title": "unknown"}, {"status": status}, ok)
    for leftover in extra:
        _http_form(base, "DELETE", f"/todos/{leftover}")

    passed = sum(1 for r in results if r.status == "pass")
    summary = {"total": len(results), "passed": passed, "failed": len(results) - passed, "logfile": logfile}
    _log(logfile, SuiteResult(name="summary", expected=None, actual=summary, status="summary"))
    return summary


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="HTTP test suite for a running todo board.")
    parser.add_argument("--base", default="http://127.0.0.1:3000", help="Base URL of the todo server")
    parser.add_argument("--logfile", default="test_results.log", help="Where to store test results (JSONL)")
    args = parser.parse_args(argv)
    summary = run_suite(args.base, args.logfile)
    print(json.dumps(summary, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
