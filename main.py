import argparse
import os
import sys
from typing import List, Optional

from api.http_server import TEMPLATES_DIR, TodoHTTPServer, TodoRequestHandler, build_environment
from services.action_log import ActionLogger
from services.storage import TodoRepository, seed_demo_todos


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="In-memory todo board served over HTTP")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--templates", default=TEMPLATES_DIR, help="Directory with the Jinja2 templates")
    parser.add_argument("--action-log", default=None, help="Write repository actions to this JSONL file")
    parser.add_argument("--no-seed", action="store_true", help="Start with an empty board")
    parser.add_argument("--reload", action="store_true", help="Reload templates when they change on disk")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    logger = ActionLogger(args.action_log) if args.action_log else None
    repo = TodoRepository(logger=logger)
    if not args.no_seed:
        seed_demo_todos(repo)

    if not os.path.isdir(args.templates):
        print(f"Templates directory not found: {args.templates}", file=sys.stderr)
        sys.exit(1)
    env = build_environment(args.templates, auto_reload=args.reload)

    try:
        server = TodoHTTPServer((args.host, args.port), TodoRequestHandler, repo, env)
    except OSError as e:
        print(f"Unable to listen on {args.host}:{args.port}: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Server started: http://{args.host}:{args.port}")
    print("Endpoints:")
    print("  GET    /")
    print("  GET    /todos")
    print("  POST   /todos                 form: todo=...")
    print("  PUT    /todos/<id>/toggle")
    print("  DELETE /todos/<id>")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
