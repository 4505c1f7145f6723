from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from ..logging import get_logger
from ..errors import ValidationError
from .constants import (
    CATEGORY_CHOICES,
    CATEGORY_DEFAULT,
    RISK_CHOICES,
    RISK_SAFE,
    SPECIES_ALL,
    SPECIES_CHOICES,
)
from .models import Additive, Ingredient, NutrientStats


LOG = get_logger("catalog-parser")


def _norm_s(s: Any) -> Optional[str]:
    return s.strip() if isinstance(s, str) and s.strip() else None


def parse_submission(payload: Any) -> Dict[str, Any]:
    """Validate a community product submission and normalise it.

    Expected input shape (mobile app field names, snake_case also accepted):
    - barcode, name: non-empty strings (required)
    - brand, image: strings (optional)
    - category: one of CATEGORY_CHOICES (default alimentation)
    - targetAnimal: list of SPECIES_CHOICES (default ["tous"])
    - ingredients: [{name, isControversial?, risk?}] (optional)
    - additives: [{code?, name, risk?}] (optional)
    - nutrients: {protein?, fat?, fiber?} per 100g (optional). Older app
      builds send the same stats under scoreDetails, which is read when
      nutrients is absent.

    Every problem is collected before raising a single ValidationError so
    the caller sees all field-level messages at once.
    """
    if not isinstance(payload, dict):
        raise ValidationError({"_": "submission must be a JSON object"})

    errors: Dict[str, str] = {}

    barcode = _norm_s(payload.get("barcode"))
    if not barcode:
        errors["barcode"] = "Le code-barres est requis"
    name = _norm_s(payload.get("name"))
    if not name:
        errors["name"] = "Le nom du produit est requis"

    brand = _norm_s(payload.get("brand")) or ""
    image = _norm_s(payload.get("image")) or ""

    category = _norm_s(payload.get("category")) or CATEGORY_DEFAULT
    if category not in CATEGORY_CHOICES:
        errors["category"] = f"category must be one of {', '.join(CATEGORY_CHOICES)}"

    raw_species = payload.get("targetAnimal", payload.get("target_animal"))
    if isinstance(raw_species, str):
        raw_species = [raw_species]
    target_animal: List[str] = []
    if raw_species is not None and not isinstance(raw_species, list):
        errors["targetAnimal"] = "targetAnimal must be a list"
    else:
        for idx, sp in enumerate(raw_species or []):
            tag = _norm_s(sp)
            if tag not in SPECIES_CHOICES:
                errors[f"targetAnimal[{idx}]"] = f"unknown species: {sp!r}"
            elif tag not in target_animal:
                target_animal.append(tag)
    if not target_animal:
        target_animal = [SPECIES_ALL]

    ingredients = _parse_ingredients(payload.get("ingredients"), errors)
    additives = _parse_additives(payload.get("additives"), errors)
    if payload.get("nutrients") is not None:
        nutrients = _parse_nutrients(payload["nutrients"], "nutrients", errors)
    else:
        legacy = "scoreDetails" if "scoreDetails" in payload else "score_details"
        nutrients = _parse_nutrients(payload.get(legacy), legacy, errors)

    if errors:
        LOG.info("Rejected submission for barcode=%s: %s", barcode, errors)
        raise ValidationError(errors)

    return {
        "barcode": barcode,
        "name": name,
        "brand": brand,
        "image": image,
        "category": category,
        "target_animal": target_animal,
        "ingredients": ingredients,
        "additives": additives,
        "nutrients": nutrients,
    }


def _check_risk(value: Any, field: str, errors: Dict[str, str]) -> str:
    if value is None:
        return RISK_SAFE
    if value not in RISK_CHOICES:
        errors[field] = f"risk must be one of {', '.join(RISK_CHOICES)}"
        return RISK_SAFE
    return value


def _parse_ingredients(raw: Any, errors: Dict[str, str]) -> Optional[List[Ingredient]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        errors["ingredients"] = "ingredients must be a list"
        return None
    out: List[Ingredient] = []
    for idx, it in enumerate(raw):
        if isinstance(it, str):
            it = {"name": it}
        if not isinstance(it, dict):
            errors[f"ingredients[{idx}]"] = "ingredient must be an object"
            continue
        name = _norm_s(it.get("name"))
        if not name:
            errors[f"ingredients[{idx}].name"] = "ingredient name required"
            continue
        flag = it.get("isControversial", it.get("is_controversial", False))
        if flag is None:
            flag = False
        elif not isinstance(flag, bool):
            errors[f"ingredients[{idx}].isControversial"] = "must be true or false"
            flag = False
        out.append(
            Ingredient(
                name=name,
                is_controversial=flag,
                risk=_check_risk(it.get("risk"), f"ingredients[{idx}].risk", errors),
            )
        )
    return out


def _parse_additives(raw: Any, errors: Dict[str, str]) -> Optional[List[Additive]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        errors["additives"] = "additives must be a list"
        return None
    out: List[Additive] = []
    for idx, ad in enumerate(raw):
        if not isinstance(ad, dict):
            errors[f"additives[{idx}]"] = "additive must be an object"
            continue
        name = _norm_s(ad.get("name"))
        if not name:
            errors[f"additives[{idx}].name"] = "additive name required"
            continue
        code = _norm_s(ad.get("code"))
        out.append(
            Additive(
                name=name,
                code=code.upper() if code else None,
                risk=_check_risk(ad.get("risk"), f"additives[{idx}].risk", errors),
            )
        )
    return out


def _parse_nutrients(raw: Any, field: str, errors: Dict[str, str]) -> Optional[NutrientStats]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        errors[field] = f"{field} must be an object"
        return None
    values: Dict[str, float] = {}
    for key in ("protein", "fat", "fiber"):
        v = raw.get(key)
        if v is None:
            values[key] = 0.0
            continue
        number = None
        if not isinstance(v, bool):
            try:
                number = float(v)
            except (TypeError, ValueError):
                pass
        if number is None or not math.isfinite(number):
            errors[f"{field}.{key}"] = "must be a number"
            continue
        values[key] = number
    if len(values) != 3:
        return None
    return NutrientStats(**values)
