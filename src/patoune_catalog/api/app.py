from __future__ import annotations

from typing import List, Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..errors import CatalogError, NotFoundError, ValidationError
from ..logging import get_logger
from ..service import CatalogService


LOG = get_logger("catalog-api")

USER_HEADER = "x-user-id"


def _parse_int(value: Optional[str], *, default: int, minimum: int, maximum: int) -> int:
    try:
        parsed = int(value) if value is not None else default
    except (TypeError, ValueError):
        parsed = default
    return max(minimum, min(maximum, parsed))


def _requester(request: Request) -> Optional[str]:
    """User id placed on the request by the upstream auth layer, if any."""
    value = request.headers.get(USER_HEADER, "").strip()
    return value or None


def _error(exc: CatalogError, status_code: int) -> JSONResponse:
    payload = {"success": False}
    payload.update(exc.to_dict())
    return JSONResponse(payload, status_code=status_code)


def create_app(
    service: Optional[CatalogService] = None,
    *,
    root_dir: Optional[str] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app exposing the product catalog API."""

    if service is None:
        from ..catalog.db import CatalogDatabase
        from ..config import build_settings

        settings = build_settings(root_dir)
        service = CatalogService(db=CatalogDatabase(root_dir=root_dir), settings=settings)
    svc = service

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "db_path": svc.db.db_path, "products": svc.db.count_products()})

    async def scan(request: Request) -> JSONResponse:
        barcode = request.path_params["barcode"]
        try:
            product = await run_in_threadpool(svc.resolve, barcode, _requester(request))
        except NotFoundError as exc:
            return _error(exc, 404)
        except ValidationError as exc:
            return _error(exc, 400)
        return JSONResponse({"success": True, "product": product.to_dict()})

    async def add_product(request: Request) -> JSONResponse:
        user = _requester(request)
        if user is None:
            return JSONResponse({"success": False, "kind": "unauthorized", "error": "Authentication required"}, status_code=401)
        try:
            body = await request.json()
        except ValueError:
            return _error(ValidationError({"_": "body must be valid JSON"}), 400)
        try:
            product = svc.submit_product(body, user)
        except ValidationError as exc:
            return _error(exc, 400)
        return JSONResponse({"success": True, "product": product.to_dict()}, status_code=201)

    async def history(request: Request) -> JSONResponse:
        user = _requester(request)
        if user is None:
            return JSONResponse({"success": False, "kind": "unauthorized", "error": "Authentication required"}, status_code=401)
        limit = _parse_int(
            request.query_params.get("limit"),
            default=svc.settings.history_limit,
            minimum=1,
            maximum=svc.settings.history_limit,
        )
        items = svc.get_history(user, limit=limit)
        return JSONResponse({"success": True, "count": len(items), "history": items})

    async def search(request: Request) -> JSONResponse:
        qp = request.query_params
        products = svc.search(
            qp.get("q") or None,
            qp.get("category") or None,
            qp.get("animal") or None,
        )
        return JSONResponse({"success": True, "count": len(products), "products": [p.to_dict() for p in products]})

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/products/scan/{barcode:str}", scan, methods=["GET"]),
        Route("/api/products", add_product, methods=["POST"]),
        Route("/api/products/history", history, methods=["GET"]),
        Route("/api/products/search", search, methods=["GET"]),
    ]

    app = Starlette(debug=False, routes=routes)

    origins = allow_origins or ["http://localhost:8081", "http://127.0.0.1:8081"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    LOG.info("Catalog API ready (db: %s)", svc.db.db_path)
    return app


__all__ = ["create_app"]
