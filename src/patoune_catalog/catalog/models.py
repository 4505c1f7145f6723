from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .constants import CATEGORY_DEFAULT, RISK_SAFE, SPECIES_ALL


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class Ingredient:
    name: str
    is_controversial: bool = False
    risk: str = RISK_SAFE

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Ingredient":
        return cls(
            name=str(_pick(data, "name", default="")),
            is_controversial=_pick(data, "is_controversial", "isControversial", default=False) is True,
            risk=str(_pick(data, "risk", default=RISK_SAFE)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "isControversial": self.is_controversial, "risk": self.risk}


@dataclass
class Additive:
    name: str
    code: Optional[str] = None
    risk: str = RISK_SAFE

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Additive":
        code = _pick(data, "code")
        return cls(
            name=str(_pick(data, "name", default="")),
            code=str(code) if code is not None else None,
            risk=str(_pick(data, "risk", default=RISK_SAFE)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "name": self.name, "risk": self.risk}


@dataclass
class NutrientStats:
    """Per-100g percentages used by the nutrition part of the score."""

    protein: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "NutrientStats":
        return cls(
            protein=float(_pick(data, "protein", default=0.0)),
            fat=float(_pick(data, "fat", default=0.0)),
            fiber=float(_pick(data, "fiber", default=0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"protein": self.protein, "fat": self.fat, "fiber": self.fiber}


@dataclass
class ScoreDetails:
    protein: int = 0
    fat: int = 0
    fiber: int = 0
    additives_penalty: int = 0  # uncapped
    quality_bonus: int = 0      # uncapped

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ScoreDetails":
        return cls(
            protein=int(_pick(data, "protein", default=0)),
            fat=int(_pick(data, "fat", default=0)),
            fiber=int(_pick(data, "fiber", default=0)),
            additives_penalty=int(_pick(data, "additives_penalty", "additivesPenalty", default=0)),
            quality_bonus=int(_pick(data, "quality_bonus", "qualityBonus", default=0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protein": self.protein,
            "fat": self.fat,
            "fiber": self.fiber,
            "additivesPenalty": self.additives_penalty,
            "qualityBonus": self.quality_bonus,
        }


@dataclass
class ScoreResult:
    score: int
    details: ScoreDetails


@dataclass
class ScoreLabel:
    label: str
    color: str


@dataclass
class Product:
    barcode: str
    name: str
    brand: str = ""
    category: str = CATEGORY_DEFAULT
    target_animal: List[str] = field(default_factory=lambda: [SPECIES_ALL])
    ingredients: List[Ingredient] = field(default_factory=list)
    additives: List[Additive] = field(default_factory=list)
    nutrition_score: int = 0
    score_details: ScoreDetails = field(default_factory=ScoreDetails)
    nutrients: Optional[NutrientStats] = None
    image: str = ""
    source: Optional[str] = None
    added_by: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render with the field names the mobile app consumes."""
        from .scoring import score_label

        label = score_label(self.nutrition_score)
        return {
            "barcode": self.barcode,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "targetAnimal": list(self.target_animal),
            "ingredients": [i.to_dict() for i in self.ingredients],
            "additives": [a.to_dict() for a in self.additives],
            "nutritionScore": self.nutrition_score,
            "scoreDetails": self.score_details.to_dict(),
            "scoreLabel": {"label": label.label, "color": label.color},
            "nutrients": self.nutrients.to_dict() if self.nutrients else None,
            "image": self.image,
            "source": self.source,
            "addedBy": self.added_by,
            "createdAt": self.created_at,
        }


@dataclass
class ScanRecord:
    scan_id: Optional[int]
    user: str
    barcode: str
    scanned_at: str  # ISO-8601 UTC
