from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping

from ..catalog.constants import (
    CATEGORY_DEFAULT,
    CATEGORY_KEYWORDS,
    MAX_PROVIDER_INGREDIENTS,
    RISK_MODERATE,
    RISK_SAFE,
    SPECIES_ALL,
    SPECIES_KEYWORDS,
)
from ..catalog.models import Additive, Ingredient, NutrientStats, Product
from ..catalog.scoring import calculate_score


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    # nan and inf cannot be rendered as JSON
    return number if math.isfinite(number) else 0.0


def _ingredients(payload: Mapping[str, Any]) -> List[Ingredient]:
    raw = payload.get("ingredients")
    if not isinstance(raw, list):
        return []
    out: List[Ingredient] = []
    for ing in raw[:MAX_PROVIDER_INGREDIENTS]:
        if not isinstance(ing, dict):
            continue
        name = _text(ing.get("text")) or _text(ing.get("id")) or "Inconnu"
        # Provider data carries no risk signal
        out.append(Ingredient(name=name, is_controversial=False, risk=RISK_SAFE))
    return out


def _additives(payload: Mapping[str, Any]) -> List[Additive]:
    raw = payload.get("additives_tags")
    if not isinstance(raw, list):
        return []
    out: List[Additive] = []
    for tag in raw:
        if not isinstance(tag, str) or not tag.strip():
            continue
        code = tag.strip().split(":", 1)[-1].upper()
        out.append(Additive(code=code, name=code, risk=RISK_MODERATE))
    return out


def _category(categories: str) -> str:
    category = CATEGORY_DEFAULT
    for value, keywords in CATEGORY_KEYWORDS:
        if any(k in categories for k in keywords):
            category = value
    return category


def _species(text: str) -> List[str]:
    found = [tag for tag, keywords in SPECIES_KEYWORDS if any(k in text for k in keywords)]
    return found or [SPECIES_ALL]


def format_product(payload: Mapping[str, Any], barcode: str, source: str) -> Product:
    """Turn a provider product payload into a scored catalog Product."""
    categories = _text(payload.get("categories")).lower()
    product_name = _text(payload.get("product_name"))
    nutriments: Dict[str, Any] = payload.get("nutriments") if isinstance(payload.get("nutriments"), dict) else {}

    ingredients = _ingredients(payload)
    additives = _additives(payload)
    nutrients = NutrientStats(
        protein=_number(nutriments.get("proteins_100g")),
        fat=_number(nutriments.get("fat_100g")),
        fiber=_number(nutriments.get("fiber_100g")),
    )
    result = calculate_score(ingredients, additives, nutrients)

    return Product(
        barcode=barcode,
        name=product_name or _text(payload.get("generic_name")) or "Produit inconnu",
        brand=_text(payload.get("brands")),
        category=_category(categories),
        target_animal=_species(f"{product_name.lower()} {categories}"),
        ingredients=ingredients,
        additives=additives,
        nutrition_score=result.score,
        score_details=result.details,
        nutrients=nutrients,
        image=_text(payload.get("image_url")) or _text(payload.get("image_front_url")),
        source=source,
    )
