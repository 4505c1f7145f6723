"""Patoune quality score for pet products (0-100).

The score weighs ingredient quality, the absence of risky additives and,
when available, the per-100g protein/fat/fiber figures. Everything here is a
pure function over the static tables in `constants`; identical input always
yields an identical result.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping, Optional, Union

from .constants import (
    ADDITIVES_PENALTY_CAP,
    BASE_SCORE,
    CONTROVERSIAL_INGREDIENTS,
    CONTROVERSIAL_PENALTY,
    DANGEROUS_ADDITIVE_PENALTY,
    DANGEROUS_ADDITIVES,
    FRESH_INGREDIENT_BONUS,
    FRESH_INGREDIENT_TERMS,
    INGREDIENT_BUDGET,
    MODERATE_ADDITIVE_PENALTY,
    MODERATE_ADDITIVES,
    PLANT_INGREDIENT_BONUS,
    PLANT_INGREDIENT_TERMS,
    PRIMARY_MEAT_BONUS,
    PRIMARY_MEAT_TERMS,
    QUALITY_BONUS_CAP,
    RISK_DANGEROUS,
    RISK_MODERATE,
    SCORE_LABELS,
)
from .models import Additive, Ingredient, NutrientStats, ScoreDetails, ScoreLabel, ScoreResult

IngredientLike = Union[Ingredient, Mapping[str, Any]]
AdditiveLike = Union[Additive, Mapping[str, Any]]
NutrientsLike = Union[NutrientStats, Mapping[str, Any]]

_CONTROVERSIAL_LOWER = tuple(term.lower() for term in CONTROVERSIAL_INGREDIENTS)


def _as_ingredients(items: Optional[Iterable[IngredientLike]]) -> List[Ingredient]:
    return [i if isinstance(i, Ingredient) else Ingredient.from_mapping(i) for i in (items or [])]


def _as_additives(items: Optional[Iterable[AdditiveLike]]) -> List[Additive]:
    return [a if isinstance(a, Additive) else Additive.from_mapping(a) for a in (items or [])]


def _contains_any(text: str, terms: Iterable[str]) -> bool:
    return any(term in text for term in terms)


def is_controversial(ingredient: Ingredient) -> bool:
    """Explicit flag, or a case-insensitive match against the term list."""
    if ingredient.is_controversial:
        return True
    return _contains_any(ingredient.name.lower(), _CONTROVERSIAL_LOWER)


def _protein_points(protein: float) -> int:
    if protein > 25:
        return 5
    if protein > 15:
        return 3
    return 0


def _fat_points(fat: float) -> int:
    if fat < 15:
        return 3
    if fat > 25:
        return -3
    return 0


def _fiber_points(fiber: float) -> int:
    if fiber > 3:
        return 3
    if fiber > 1:
        return 1
    return 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_score(
    ingredients: Optional[Iterable[IngredientLike]],
    additives: Optional[Iterable[AdditiveLike]],
    nutrients: Optional[NutrientsLike] = None,
) -> ScoreResult:
    """Compute the 0-100 score and its diagnostic breakdown.

    `details.additives_penalty` and `details.quality_bonus` are reported as
    accumulated, while their contribution to the score is capped; the
    breakdown therefore does not always add up to `score - 70`.
    """
    ingredient_list = _as_ingredients(ingredients)
    additive_list = _as_additives(additives)
    details = ScoreDetails()
    score: float = BASE_SCORE

    if ingredient_list:
        ingredient_score = INGREDIENT_BUDGET
        for ingredient in ingredient_list:
            name = ingredient.name.lower()
            if is_controversial(ingredient):
                ingredient_score -= CONTROVERSIAL_PENALTY
            if _contains_any(name, FRESH_INGREDIENT_TERMS):
                details.quality_bonus += FRESH_INGREDIENT_BONUS
            if _contains_any(name, PLANT_INGREDIENT_TERMS):
                details.quality_bonus += PLANT_INGREDIENT_BONUS

        # The first ingredient is the primary one
        if _contains_any(ingredient_list[0].name.lower(), PRIMARY_MEAT_TERMS):
            details.quality_bonus += PRIMARY_MEAT_BONUS

        score -= INGREDIENT_BUDGET - max(ingredient_score, 0)

    if additive_list:
        for additive in additive_list:
            code = (additive.code or "").upper()
            if code in DANGEROUS_ADDITIVES or additive.risk == RISK_DANGEROUS:
                details.additives_penalty += DANGEROUS_ADDITIVE_PENALTY
            elif code in MODERATE_ADDITIVES or additive.risk == RISK_MODERATE:
                details.additives_penalty += MODERATE_ADDITIVE_PENALTY
        score -= min(details.additives_penalty, ADDITIVES_PENALTY_CAP)

    score += min(details.quality_bonus, QUALITY_BONUS_CAP)

    if nutrients is not None:
        stats = nutrients if isinstance(nutrients, NutrientStats) else NutrientStats.from_mapping(nutrients)
        details.protein = _protein_points(stats.protein)
        details.fat = _fat_points(stats.fat)
        details.fiber = _fiber_points(stats.fiber)
        score += details.protein + details.fat + details.fiber

    final = max(0, min(100, _round_half_up(score)))
    return ScoreResult(score=final, details=details)


def score_label(score: int) -> ScoreLabel:
    """Return the display label and colour for a score."""
    for minimum, label, color in SCORE_LABELS:
        if score >= minimum:
            return ScoreLabel(label=label, color=color)
    _, label, color = SCORE_LABELS[-1]
    return ScoreLabel(label=label, color=color)
