from __future__ import annotations

from typing import Any, Dict, List, Optional

from .catalog.constants import DEFAULT_SUBMISSION_SCORE, SOURCE_COMMUNITY
from .catalog.db import CatalogDatabase
from .catalog.models import Product, ScoreDetails
from .catalog.parser import parse_submission
from .catalog.scoring import calculate_score
from .config import CatalogSettings
from .errors import DuplicateBarcodeError, NotFoundError, ValidationError
from .logging import get_logger
from .providers.chain import ProviderChain, build_provider_chain
from .providers.formatter import format_product


LOG = get_logger("catalog-service")


class CatalogService:
    """Barcode resolution, community submissions, scan history and search.

    The store doubles as a permanent write-through cache: once a barcode has
    been resolved through a provider it is always served locally and never
    rescored.
    """

    def __init__(
        self,
        db: Optional[CatalogDatabase] = None,
        providers: Optional[ProviderChain] = None,
        settings: Optional[CatalogSettings] = None,
    ) -> None:
        self.settings = settings or CatalogSettings()
        self.db = db or CatalogDatabase()
        self.providers = providers if providers is not None else build_provider_chain(self.settings)

    def resolve(self, barcode: str, requester: Optional[str] = None, *, deadline: Optional[float] = None) -> Product:
        """Return the scored product for `barcode`, raising NotFoundError if unknown."""
        barcode = (barcode or "").strip()
        if not barcode:
            raise ValidationError({"barcode": "Le code-barres est requis"})

        product = self.db.get_product(barcode)
        if product is None:
            LOG.info(f"Product {barcode} not in catalog; querying providers {self.providers.names}")
            found = self.providers.lookup(barcode, deadline=deadline)
            if found is None:
                LOG.info(f"Product {barcode} not found in any provider")
                raise NotFoundError(barcode)
            source, payload = found
            fresh = format_product(payload, barcode, source)
            fresh.added_by = requester
            product, created = self.db.insert_or_get(fresh)
            if created:
                LOG.info(f"Saved {product.name!r} from {source} (score: {product.nutrition_score})")

        if requester:
            self._record_scan(requester, product)
        return product

    def _record_scan(self, requester: str, product: Product) -> None:
        try:
            self.db.record_scan(requester, product.barcode)
        except Exception:
            # The scan is still answered when the ledger write fails
            LOG.exception(f"Could not record scan of {product.barcode} for user {requester}")

    def submit_product(self, data: Dict[str, Any], submitter: str) -> Product:
        """Validate, score and store a community contribution."""
        fields = parse_submission(data)
        barcode = fields["barcode"]
        if self.db.get_product(barcode) is not None:
            raise ValidationError({"barcode": "Ce produit existe déjà dans la base"})

        ingredients = fields["ingredients"]
        additives = fields["additives"]
        product = Product(
            barcode=barcode,
            name=fields["name"],
            brand=fields["brand"],
            category=fields["category"],
            target_animal=fields["target_animal"],
            ingredients=ingredients or [],
            additives=additives or [],
            nutrition_score=DEFAULT_SUBMISSION_SCORE,
            score_details=ScoreDetails(),
            nutrients=fields["nutrients"],
            image=fields["image"],
            source=SOURCE_COMMUNITY,
            added_by=submitter,
        )
        if ingredients or additives:
            result = calculate_score(ingredients, additives, fields["nutrients"])
            product.nutrition_score = result.score
            product.score_details = result.details

        try:
            stored = self.db.insert_product(product)
        except DuplicateBarcodeError as exc:
            raise ValidationError({"barcode": "Ce produit existe déjà dans la base"}) from exc
        LOG.info(f"Community product {barcode} added by {submitter} (score: {stored.nutrition_score})")
        return stored

    def get_history(self, user: str, *, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.db.fetch_history(user, limit=limit or self.settings.history_limit)

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        species: Optional[str] = None,
        *,
        limit: Optional[int] = None,
    ) -> List[Product]:
        return self.db.search_products(
            query=query,
            category=category,
            species=species,
            limit=limit or self.settings.search_limit,
        )

    def close(self) -> None:
        self.providers.close()
