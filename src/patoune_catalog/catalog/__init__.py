"""Product catalog: scoring engine, submission parser and SQLite store.

Modules:
- constants: versioned score tables and enums
- models: dataclasses for products, ingredients, additives and scans
- scoring: the pure 0-100 quality score
- parser: validation of community submissions
- db: barcode-keyed product store and append-only scan ledger
"""

from .db import CatalogDatabase
from .models import Additive, Ingredient, NutrientStats, Product, ScanRecord, ScoreDetails
from .parser import parse_submission
from .scoring import calculate_score, score_label

__all__ = [
    "Additive",
    "CatalogDatabase",
    "Ingredient",
    "NutrientStats",
    "Product",
    "ScanRecord",
    "ScoreDetails",
    "calculate_score",
    "parse_submission",
    "score_label",
]
