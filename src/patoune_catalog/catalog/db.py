from __future__ import annotations

import json
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..errors import DuplicateBarcodeError
from ..logging import get_logger
from ..paths import find_project_root, var_dir
from .constants import CATEGORY_CHOICES, CATEGORY_DEFAULT
from .models import Additive, Ingredient, NutrientStats, Product, ScanRecord, ScoreDetails


LOG = get_logger("catalog-db")

DEFAULT_DB_FOLDER = "catalog"
DEFAULT_DB_FILENAME = "catalog.sqlite3"

CATEGORY_ENUM_SQL = ", ".join(f"'{value}'" for value in CATEGORY_CHOICES)
UTC_NOW_SQL = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"

SCHEMA_SQL = f"""
PRAGMA foreign_keys = ON;

-- 1) Product catalog (barcode is the external identity)
CREATE TABLE IF NOT EXISTS products (
  product_id       INTEGER PRIMARY KEY,
  barcode          TEXT NOT NULL UNIQUE,
  name             TEXT NOT NULL,
  brand            TEXT NOT NULL DEFAULT '',
  category         TEXT NOT NULL DEFAULT '{CATEGORY_DEFAULT}'
                   CHECK(category IN ({CATEGORY_ENUM_SQL})),
  target_animal    TEXT NOT NULL,                -- JSON list of species tags
  ingredients      TEXT NOT NULL DEFAULT '[]',   -- JSON, ordered
  additives        TEXT NOT NULL DEFAULT '[]',   -- JSON
  nutrition_score  INTEGER NOT NULL CHECK(nutrition_score BETWEEN 0 AND 100),
  score_details    TEXT NOT NULL,                -- JSON breakdown
  nutrients        TEXT,                         -- JSON per-100g stats, NULL if unknown
  image            TEXT NOT NULL DEFAULT '',
  source           TEXT,
  added_by         TEXT,
  created_at       TEXT NOT NULL DEFAULT {UTC_NOW_SQL}
);

-- 2) Scan ledger (append-only)
CREATE TABLE IF NOT EXISTS scan_history (
  scan_id     INTEGER PRIMARY KEY,
  user_id     TEXT NOT NULL,
  barcode     TEXT NOT NULL REFERENCES products(barcode) ON UPDATE CASCADE,
  scanned_at  TEXT NOT NULL DEFAULT {UTC_NOW_SQL}
);

CREATE INDEX IF NOT EXISTS idx_products_score   ON products(nutrition_score DESC);
CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);
CREATE INDEX IF NOT EXISTS idx_scans_user_time  ON scan_history(user_id, scanned_at DESC);
"""


def _py_lower(value: Any) -> Optional[str]:
    return value.lower() if isinstance(value, str) else None


class CatalogDatabase:
    """SQLite-backed product catalog and scan ledger.

    - Places DB under `<project-root>/var/catalog/catalog.sqlite3`.
    - Ensures schema on first use.
    - Opens one short-lived connection per operation.
    """

    def __init__(self, root_dir: Optional[str] = None, *, db_path: Optional[str] = None) -> None:
        if db_path is None:
            root = find_project_root(root_dir)
            db_folder = os.path.join(var_dir(root), DEFAULT_DB_FOLDER)
            os.makedirs(db_folder, exist_ok=True)
            db_path = os.path.join(db_folder, DEFAULT_DB_FILENAME)
        self.db_path = db_path
        LOG.info(f"Catalog DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        # Unicode-aware lower() for accented product names
        conn.create_function("py_lower", 1, _py_lower, deterministic=True)
        conn.execute("PRAGMA foreign_keys = ON;")
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.OperationalError:
                LOG.debug("WAL mode unavailable; keeping default journal mode")
            cur.executescript(SCHEMA_SQL)
            conn.commit()
            LOG.debug("Catalog DB schema ensured.")

    # --------------- Products ---------------
    def get_product(self, barcode: str) -> Optional[Product]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM products WHERE barcode = ?;", (barcode,)).fetchone()
        return self._row_to_product(row) if row else None

    def insert_product(self, product: Product) -> Product:
        """Insert a new product; raise DuplicateBarcodeError if the barcode exists."""
        with self.connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO products (
                        barcode, name, brand, category, target_animal,
                        ingredients, additives, nutrition_score, score_details,
                        nutrients, image, source, added_by
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    self._product_params(product),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                if "products.barcode" in str(exc):
                    raise DuplicateBarcodeError(product.barcode) from exc
                raise
        stored = self.get_product(product.barcode)
        if stored is None:
            raise RuntimeError(f"Product {product.barcode} vanished right after insert")
        LOG.debug("Inserted product barcode=%s score=%s", stored.barcode, stored.nutrition_score)
        return stored

    def insert_or_get(self, product: Product) -> Tuple[Product, bool]:
        """Insert the product, or return the existing row on a barcode conflict.

        Returns (stored_product, created). Concurrent first lookups of the
        same barcode both end here; the losing writer re-reads the winner's row.
        """
        try:
            return self.insert_product(product), True
        except DuplicateBarcodeError:
            existing = self.get_product(product.barcode)
            if existing is None:
                raise
            LOG.info("Barcode %s was inserted concurrently; using the stored record", product.barcode)
            return existing, False

    def search_products(
        self,
        *,
        query: Optional[str] = None,
        category: Optional[str] = None,
        species: Optional[str] = None,
        limit: int = 20,
    ) -> List[Product]:
        clauses: List[str] = []
        params: List[Any] = []
        if query:
            needle = query.strip().lower()
            clauses.append("(instr(py_lower(name), ?) > 0 OR instr(py_lower(brand), ?) > 0)")
            params.extend([needle, needle])
        if category:
            clauses.append("category = ?")
            params.append(category)
        if species:
            clauses.append("EXISTS (SELECT 1 FROM json_each(products.target_animal) WHERE value = ?)")
            params.append(species)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"SELECT * FROM products {where} ORDER BY nutrition_score DESC, barcode ASC LIMIT ?;"
        params.append(int(limit))
        with self.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_product(r) for r in rows]

    def count_products(self) -> int:
        with self.connect() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM products;").fetchone()[0])

    # --------------- Scan ledger ---------------
    def record_scan(self, user_id: str, barcode: str) -> ScanRecord:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO scan_history (user_id, barcode)
                VALUES (?, ?)
                RETURNING scan_id, user_id, barcode, scanned_at;
                """,
                (user_id, barcode),
            )
            row = cur.fetchone()
            conn.commit()
        return ScanRecord(scan_id=int(row["scan_id"]), user=row["user_id"], barcode=row["barcode"], scanned_at=row["scanned_at"])

    def fetch_history(self, user_id: str, *, limit: int = 50) -> List[Dict[str, Any]]:
        """Return the user's scans, newest first, with a product summary."""
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT s.scan_id, s.scanned_at,
                       p.barcode, p.name, p.brand, p.nutrition_score, p.image, p.category
                FROM scan_history s
                JOIN products p ON p.barcode = s.barcode
                WHERE s.user_id = ?
                ORDER BY s.scanned_at DESC, s.scan_id DESC
                LIMIT ?;
                """,
                (user_id, int(limit)),
            ).fetchall()
        return [
            {
                "scanId": r["scan_id"],
                "scannedAt": r["scanned_at"],
                "product": {
                    "barcode": r["barcode"],
                    "name": r["name"],
                    "brand": r["brand"],
                    "nutritionScore": r["nutrition_score"],
                    "image": r["image"],
                    "category": r["category"],
                },
            }
            for r in rows
        ]

    def count_scans(self, user_id: Optional[str] = None) -> int:
        with self.connect() as conn:
            if user_id is None:
                row = conn.execute("SELECT COUNT(*) FROM scan_history;").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM scan_history WHERE user_id = ?;", (user_id,)).fetchone()
        return int(row[0])

    # --------------- Row mapping helpers ---------------
    @staticmethod
    def _product_params(p: Product) -> Tuple[Any, ...]:
        return (
            p.barcode,
            p.name,
            p.brand or "",
            p.category,
            json.dumps(list(p.target_animal), ensure_ascii=False),
            json.dumps([i.to_dict() for i in p.ingredients], ensure_ascii=False),
            json.dumps([a.to_dict() for a in p.additives], ensure_ascii=False),
            int(p.nutrition_score),
            json.dumps(p.score_details.to_dict()),
            json.dumps(p.nutrients.to_dict()) if p.nutrients is not None else None,
            p.image or "",
            p.source,
            p.added_by,
        )

    @staticmethod
    def _row_to_product(row: sqlite3.Row) -> Product:
        nutrients_raw = row["nutrients"]
        return Product(
            barcode=row["barcode"],
            name=row["name"],
            brand=row["brand"],
            category=row["category"],
            target_animal=list(json.loads(row["target_animal"])),
            ingredients=[Ingredient.from_mapping(i) for i in json.loads(row["ingredients"])],
            additives=[Additive.from_mapping(a) for a in json.loads(row["additives"])],
            nutrition_score=int(row["nutrition_score"]),
            score_details=ScoreDetails.from_mapping(json.loads(row["score_details"])),
            nutrients=NutrientStats.from_mapping(json.loads(nutrients_raw)) if nutrients_raw else None,
            image=row["image"],
            source=row["source"],
            added_by=row["added_by"],
            created_at=row["created_at"],
        )
