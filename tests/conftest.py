from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pytest
import requests

# Ensure the repository's src/ is importable
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from patoune_catalog.catalog.db import CatalogDatabase
from patoune_catalog.config import CatalogSettings
from patoune_catalog.providers.chain import build_provider_chain
from patoune_catalog.service import CatalogService

PET_URL = "https://pet.example.test"
FOOD_URL = "https://food.example.test"


def make_response(status_code: int, body: Union[Dict[str, Any], str, None]) -> requests.Response:
    r = requests.Response()
    r.status_code = status_code
    if isinstance(body, str):
        r._content = body.encode("utf-8")
    else:
        r._content = json.dumps(body if body is not None else {}).encode("utf-8")
    r.headers["Content-Type"] = "application/json"
    return r


class FakeSession(requests.Session):
    """requests.Session that answers from a URL-prefix routing table.

    A route value is either a Response or an exception instance to raise.
    Unrouted URLs answer 404.
    """

    def __init__(self) -> None:
        super().__init__()
        self.routes: Dict[str, Any] = {}
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        self.calls.append({"url": url, "timeout": kwargs.get("timeout")})
        for prefix, answer in self.routes.items():
            if url.startswith(prefix):
                if isinstance(answer, Exception):
                    raise answer
                return answer
        return make_response(404, {"status": 0, "status_verbose": "product not found"})

    def calls_to(self, base_url: str) -> int:
        return sum(1 for c in self.calls if c["url"].startswith(base_url))


def product_url(base: str, barcode: str) -> str:
    return f"{base}/api/v2/product/{barcode}.json"


def off_body(**product: Any) -> Dict[str, Any]:
    return {"status": 1, "status_verbose": "product found", "product": product}


@pytest.fixture
def settings() -> CatalogSettings:
    return CatalogSettings(pet_provider_url=PET_URL, food_provider_url=FOOD_URL, provider_timeout=5.0)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def db(tmp_path: Path) -> CatalogDatabase:
    (tmp_path / "README.md").write_text("test marker", encoding="utf-8")
    return CatalogDatabase(root_dir=str(tmp_path))


@pytest.fixture
def service(db: CatalogDatabase, settings: CatalogSettings, session: FakeSession) -> CatalogService:
    chain = build_provider_chain(settings, session=session)
    return CatalogService(db=db, providers=chain, settings=settings)


def dog_food_payload(**overrides: Any) -> Dict[str, Any]:
    product: Dict[str, Any] = {
        "product_name": "Croquettes chien adulte poulet",
        "brands": "Patounette",
        "categories": "Pet food, Dog food",
        "ingredients": [
            {"id": "en:fresh-chicken", "text": "Viande fraîche de poulet"},
            {"id": "en:rice", "text": "riz"},
        ],
        "additives_tags": ["en:e330"],
        "nutriments": {"proteins_100g": 28, "fat_100g": 12, "fiber_100g": 2.5},
        "image_url": "https://img.example.test/croquettes.jpg",
    }
    product.update(overrides)
    return product


def route_product(session: FakeSession, base: str, barcode: str, product: Optional[Dict[str, Any]]) -> None:
    if product is None:
        session.routes[product_url(base, barcode)] = make_response(200, {"status": 0})
    else:
        session.routes[product_url(base, barcode)] = make_response(200, off_body(**product))
