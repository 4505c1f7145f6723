from __future__ import annotations

from typing import Set, Tuple

# Score tables, version 1. Changing any of these changes every stored score.
SCORE_TABLES_VERSION = 1

BASE_SCORE = 70
INGREDIENT_BUDGET = 40
CONTROVERSIAL_PENALTY = 5
ADDITIVES_PENALTY_CAP = 30
QUALITY_BONUS_CAP = 15
DANGEROUS_ADDITIVE_PENALTY = 10
MODERATE_ADDITIVE_PENALTY = 4
FRESH_INGREDIENT_BONUS = 5
PLANT_INGREDIENT_BONUS = 2
PRIMARY_MEAT_BONUS = 10

CONTROVERSIAL_INGREDIENTS: Tuple[str, ...] = (
    "sous-produits animaux",
    "farine animale",
    "BHA",
    "BHT",
    "ethoxyquin",
    "propylene glycol",
    "colorant",
    "sucre",
    "sel ajouté",
    "maïs",
    "blé",
    "soja",
    "gluten",
    "carraghénane",
)

FRESH_INGREDIENT_TERMS: Tuple[str, ...] = ("viande fraîche", "poisson frais")
PLANT_INGREDIENT_TERMS: Tuple[str, ...] = ("légume", "fruit")
PRIMARY_MEAT_TERMS: Tuple[str, ...] = ("viande", "poisson", "poulet")

DANGEROUS_ADDITIVES: Set[str] = {
    # antioxidants
    "E320", "E321", "E324", "E310", "E311", "E312",
    # colourings
    "E102", "E110", "E124", "E129", "E131", "E133",
    # nitrites / nitrates
    "E250", "E251", "E252",
}

MODERATE_ADDITIVES: Set[str] = {
    # preservatives
    "E200", "E202", "E211", "E212",
    # acidifiers
    "E330", "E331", "E332",
    # thickeners
    "E414", "E415", "E440",
}

RISK_SAFE = "safe"
RISK_MODERATE = "moderate"
RISK_DANGEROUS = "dangerous"
RISK_CHOICES: Tuple[str, ...] = (RISK_SAFE, RISK_MODERATE, RISK_DANGEROUS)

CATEGORY_DEFAULT = "alimentation"
CATEGORY_CHOICES: Tuple[str, ...] = (
    "alimentation",
    "soin",
    "hygiene",
    "jouet",
    "accessoire",
    "autre",
)

SPECIES_ALL = "tous"
SPECIES_CHOICES: Tuple[str, ...] = (
    "chien",
    "chat",
    "rongeur",
    "oiseau",
    "reptile",
    "poisson",
    SPECIES_ALL,
)

# Free-text keywords checked in order against provider category text.
# A later match overrides an earlier one.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("soin", ("soin", "care")),
    ("hygiene", ("hygien", "shampoo")),
    ("jouet", ("jouet", "toy")),
)

SPECIES_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("chien", ("chien", "dog")),
    ("chat", ("chat", "cat")),
    ("rongeur", ("rongeur", "hamster")),
    ("oiseau", ("oiseau", "bird")),
)

SOURCE_PET_PROVIDER = "openpetfoodfacts"
SOURCE_FOOD_PROVIDER = "openfoodfacts"
SOURCE_COMMUNITY = "community"

MAX_PROVIDER_INGREDIENTS = 15
DEFAULT_SUBMISSION_SCORE = 50

# (minimum score, label, colour), highest threshold first.
SCORE_LABELS: Tuple[Tuple[int, str, str], ...] = (
    (80, "Excellent", "#2ECC71"),
    (60, "Bon", "#82C91E"),
    (40, "Médiocre", "#F4A62A"),
    (20, "Mauvais", "#E67E22"),
    (0, "Très mauvais", "#E74C3C"),
)
