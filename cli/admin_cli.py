from __future__ import annotations

import argparse
import html
import json
import random
import re
import sys
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

# Project root on sys.path so tests/* import when run as a script from a checkout.
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from services.action_log import ActionLogger  # noqa: E402


_SECTION_RE = re.compile(r'<ul class="(open|done)">(.*?)</ul>', re.S)
_ITEM_RE = re.compile(r'data-todo-id="(\d+)".*?<span class="title">(.*?)</span>', re.S)


def _request(base: str, method: str, path: str, form: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    url = base.rstrip("/") + path
    data_bytes = None
    headers = {}
    if form is not None:
        data_bytes = urlencode(form).encode("utf-8")
        headers["Content-Type"] = "application/x-www-form-urlencoded"

    req = urllib.request.Request(url, data=data_bytes, method=method, headers=headers)
    try:
        with urllib.request.urlopen(req) as resp:
            return {"status": resp.status, "body": resp.read().decode("utf-8")}
    except urllib.error.HTTPError as e:
        return {"status": e.code, "body": e.read().decode("utf-8", errors="replace")}
    except (urllib.error.URLError, OSError) as e:
        return {"status": -1, "body": None, "error": str(e)}


def _summarize(page: str) -> Dict[str, List[Dict[str, Any]]]:
    sections: Dict[str, List[Dict[str, Any]]] = {"open": [], "done": []}
    for name, body in _SECTION_RE.findall(page):
        sections[name] = [
            {"id": int(todo_id), "title": html.unescape(title)}
            for todo_id, title in _ITEM_RE.findall(body)
        ]
    return sections


def cmd_list(args: argparse.Namespace) -> None:
    res = _request(args.base, "GET", "/todos")
    _print_response(res)


def cmd_add(args: argparse.Namespace) -> None:
    res = _request(args.base, "POST", "/todos", {"todo": args.title})
    _print_response(res)


def cmd_toggle(args: argparse.Namespace) -> None:
    res = _request(args.base, "PUT", f"/todos/{args.id}/toggle")
    _print_response(res)


def cmd_delete(args: argparse.Namespace) -> None:
    res = _request(args.base, "DELETE", f"/todos/{args.id}")
    _print_response(res)


def cmd_logs(args: argparse.Namespace) -> None:
    records = ActionLogger(args.file).tail(args.limit, action=args.action, todo_id=args.todo_id)
    print(json.dumps(records, ensure_ascii=False, indent=2))


def cmd_tests(args: argparse.Namespace) -> None:
    from tests.test_runner import run_suite

    summary = run_suite(args.base, args.logfile)
    print("Test suite finished:")
    print(json.dumps(summary, ensure_ascii=False, indent=2))


def cmd_fuzz_run(args: argparse.Namespace) -> None:
    from tests.fuzz_tester import run_scenario

    rng = random.Random(args.seed)
    stats = run_scenario(args.base, args.steps, rng, logfile=args.logfile)
    print(json.dumps({"summary": stats, "logfile": args.logfile}, ensure_ascii=False, indent=2))


PRESET_TITLES = [
    "Buy milk",
    "Call mom",
    "Finish report",
    "Read book",
    "Clean desk",
    "Plan trip",
    "Water plants",
    "Pay bills",
    "Workout",
    "Learn Python",
]


def cmd_random(args: argparse.Namespace) -> None:
    rng = random.Random(args.seed)
    created = 0
    res: Dict[str, Any] = {}
    for _ in range(args.count):
        res = _request(args.base, "POST", "/todos", {"todo": rng.choice(PRESET_TITLES)})
        if 200 <= res.get("status", 0) < 300:
            created += 1
    if res:
        _print_response(res)
    print(f"Created {created} of {args.count} requested.")


def cmd_menu(args: argparse.Namespace) -> None:
    """
    Small interactive loop over the common commands.
    """
    base = args.base
    actions = {
        "1": ("List todos", lambda: cmd_list(args)),
        "2": ("Add todo", lambda: _print_response(_request(base, "POST", "/todos", {"todo": input("Title: ").strip()}))),
        "3": ("Toggle todo", lambda: _print_response(_request(base, "PUT", f"/todos/{input('Todo id: ').strip()}/toggle"))),
        "4": ("Delete todo", lambda: _print_response(_request(base, "DELETE", f"/todos/{input('Todo id: ').strip()}"))),
        "5": ("Run API tests", lambda: cmd_tests(_wrap(args, logfile="test_results.log"))),
        "6": ("Run fuzz test", lambda: cmd_fuzz_run(_wrap(args, steps=30, seed=None, logfile="fuzz_results.log"))),
        "0": ("Quit", None),
    }

    while True:
        print("\n=== Todo Admin ===")
        for key, (title, _) in actions.items():
            print(f"{key}. {title}")
        choice = input("Choose: ").strip()
        if choice == "0":
            break
        action = actions.get(choice)
        if not action:
            print("Unknown choice, try again.")
            continue
        try:
            action[1]()  # type: ignore
        except KeyboardInterrupt:
            print("\nInterrupted.")


def _wrap(args: argparse.Namespace, **updates: Any) -> argparse.Namespace:
    merged = vars(args).copy()
    merged.update(updates)
    return argparse.Namespace(**merged)


def _print_response(res: Dict[str, Any]) -> None:
    print(f"Status: {res.get('status')}")
    if res.get("error"):
        print(f"Error: {res['error']}")
    body = res.get("body")
    if body:
        print(json.dumps(_summarize(body), ensure_ascii=False, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Admin CLI for the todo board. Use subcommands or 'menu' for an interactive mode.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--base", default="http://127.0.0.1:3000", help="Base URL of the todo server")

    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List open and done todos")
    p_list.set_defaults(func=cmd_list)

    p_add = sub.add_parser("add", help="Add an open todo")
    p_add.add_argument("title")
    p_add.set_defaults(func=cmd_add)

    p_toggle = sub.add_parser("toggle", help="Toggle a todo between open and done")
    p_toggle.add_argument("id", type=int)
    p_toggle.set_defaults(func=cmd_toggle)

    p_delete = sub.add_parser("delete", help="Delete a todo")
    p_delete.add_argument("id", type=int)
    p_delete.set_defaults(func=cmd_delete)

    p_logs = sub.add_parser("logs", help="Show recent entries of a server action log")
    p_logs.add_argument("--file", default="actions.log", help="Action log written via main.py --action-log")
    p_logs.add_argument("--limit", type=int, default=20, help="How many log entries to show")
    p_logs.add_argument("--action", choices=["add", "toggle", "delete"], help="Only entries for this action")
    p_logs.add_argument("--todo-id", type=int, help="Only entries for this todo")
    p_logs.set_defaults(func=cmd_logs)

    p_rand = sub.add_parser("random", help="Add random todos from presets")
    p_rand.add_argument("--count", type=int, default=3, help="How many todos to add")
    p_rand.add_argument("--seed", type=int, default=None, help="Random seed (optional)")
    p_rand.set_defaults(func=cmd_random)

    p_tests = sub.add_parser("tests", help="Run the HTTP test suite and log results")
    p_tests.add_argument("--logfile", default="test_results.log", help="Where to store test results (JSONL)")
    p_tests.set_defaults(func=cmd_tests)

    p_fuzz = sub.add_parser("fuzz", help="Run the random action tester")
    p_fuzz.add_argument("--steps", type=int, default=30, help="How many random actions to run")
    p_fuzz.add_argument("--seed", type=int, default=None, help="Random seed (optional)")
    p_fuzz.add_argument("--logfile", default="fuzz_results.log", help="Where to store fuzz results (JSONL)")
    p_fuzz.set_defaults(func=cmd_fuzz_run)

    p_menu = sub.add_parser("menu", help="Interactive menu")
    p_menu.set_defaults(func=cmd_menu)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
