from __future__ import annotations

import argparse
import json
import os
import sys
import time
from typing import Optional, Sequence

from ..catalog.db import CatalogDatabase
from ..config import build_settings
from ..errors import NotFoundError, ValidationError
from ..logging import get_logger
from ..paths import expand_abs
from ..service import CatalogService

LOG = get_logger("cli-main")


def _service(ns: argparse.Namespace) -> CatalogService:
    root = ns.root or os.getcwd()
    settings = build_settings(root)
    return CatalogService(db=CatalogDatabase(root_dir=root), settings=settings)


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _cmd_init(ns: argparse.Namespace) -> int:
    db = CatalogDatabase(root_dir=ns.root or os.getcwd())
    LOG.info(f"Catalog DB ready at: {db.db_path}")
    print(db.db_path)
    return 0


def _cmd_scan(ns: argparse.Namespace) -> int:
    svc = _service(ns)
    deadline = time.monotonic() + ns.deadline if ns.deadline else None
    try:
        product = svc.resolve(ns.barcode, ns.user, deadline=deadline)
    except (NotFoundError, ValidationError) as exc:
        LOG.error(exc.message)
        _print_json(exc.to_dict())
        return 1
    finally:
        svc.close()
    _print_json(product.to_dict())
    return 0


def _cmd_submit(ns: argparse.Namespace) -> int:
    path = expand_abs(ns.file)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        LOG.error(f"Could not read submission {path}: {exc}")
        return 2
    svc = _service(ns)
    try:
        product = svc.submit_product(data, ns.user)
    except ValidationError as exc:
        for field, message in exc.errors.items():
            LOG.error(f"{field}: {message}")
        _print_json(exc.to_dict())
        return 1
    finally:
        svc.close()
    _print_json(product.to_dict())
    return 0


def _cmd_history(ns: argparse.Namespace) -> int:
    svc = _service(ns)
    try:
        items = svc.get_history(ns.user, limit=ns.limit)
    finally:
        svc.close()
    _print_json(items)
    return 0


def _cmd_search(ns: argparse.Namespace) -> int:
    svc = _service(ns)
    try:
        products = svc.search(ns.q, ns.category, ns.animal)
    finally:
        svc.close()
    _print_json([p.to_dict() for p in products])
    return 0


def _cmd_serve(ns: argparse.Namespace) -> int:
    from ..api import create_app
    import uvicorn

    app = create_app(root_dir=ns.root or os.getcwd(), allow_origins=ns.allow_origins)
    uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patoune-catalog",
        description="Pet product catalog: barcode scans, scoring and contributions.",
    )
    parser.add_argument("--root", help="Project root holding var/catalog (default: cwd)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Create/ensure the catalog DB schema exists")
    p_init.set_defaults(handler=_cmd_init)

    p_scan = sub.add_parser("scan", help="Resolve a barcode (local catalog, then providers)")
    p_scan.add_argument("barcode")
    p_scan.add_argument("--user", help="Record the scan in this user's history")
    p_scan.add_argument("--deadline", type=float, help="Give up on providers after N seconds overall")
    p_scan.set_defaults(handler=_cmd_scan)

    p_submit = sub.add_parser("submit", help="Add a community product from a JSON file")
    p_submit.add_argument("--file", required=True)
    p_submit.add_argument("--user", required=True)
    p_submit.set_defaults(handler=_cmd_submit)

    p_hist = sub.add_parser("history", help="Show a user's scan history, newest first")
    p_hist.add_argument("--user", required=True)
    p_hist.add_argument("--limit", type=int)
    p_hist.set_defaults(handler=_cmd_history)

    p_search = sub.add_parser("search", help="Search the catalog, best score first")
    p_search.add_argument("--q")
    p_search.add_argument("--category")
    p_search.add_argument("--animal")
    p_search.set_defaults(handler=_cmd_search)

    p_serve = sub.add_parser("serve", help="Run the catalog HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8002)
    p_serve.add_argument("--log-level", default="info")
    p_serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    p_serve.set_defaults(handler=_cmd_serve)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    code = args.handler(args)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
