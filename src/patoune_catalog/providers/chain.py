from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from ..catalog.constants import SOURCE_FOOD_PROVIDER, SOURCE_PET_PROVIDER
from ..config import CatalogSettings
from ..errors import ProviderError, ProviderTimeout
from ..logging import get_logger
from .client import OpenFoodFactsClient


LOG = get_logger("catalog-providers")


class ProviderChain:
    """Ordered list of product lookups; the first present payload wins.

    Providers are queried one after the other, never in parallel, and each
    call is bounded by its client's timeout. Absent products, timeouts and
    transport errors are logged and skipped; they never escape `lookup`.
    """

    def __init__(self, clients: Sequence[OpenFoodFactsClient]) -> None:
        self.clients: List[OpenFoodFactsClient] = list(clients)

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.clients]

    def lookup(self, barcode: str, *, deadline: Optional[float] = None) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Return (provider_name, payload) from the first provider that has it.

        `deadline` is an absolute time.monotonic() value; once it has passed
        the remaining providers are skipped.
        """
        for client in self.clients:
            timeout: Optional[float] = None
            if deadline is not None:
                timeout = deadline - time.monotonic()
                if timeout <= 0:
                    LOG.warning(f"Deadline reached before querying {client.name} for {barcode}")
                    return None
            try:
                payload = client.get_product(barcode, timeout=timeout)
            except ProviderTimeout as e:
                LOG.warning(f"Provider timeout: {e.message}")
                continue
            except ProviderError as e:
                LOG.warning(f"Provider error: {e.message}")
                continue
            if payload is None:
                LOG.info(f"{client.name}: no product for {barcode}")
                continue
            LOG.info(f"{client.name}: found product for {barcode}")
            return client.name, payload
        return None

    def close(self) -> None:
        for client in self.clients:
            client.close()


def build_provider_chain(settings: CatalogSettings, *, session: Optional[requests.Session] = None) -> ProviderChain:
    """Pet-specific provider first, then the general food provider."""
    common = {"timeout": settings.provider_timeout, "user_agent": settings.user_agent, "session": session}
    return ProviderChain(
        [
            OpenFoodFactsClient(SOURCE_PET_PROVIDER, settings.pet_provider_url, **common),
            OpenFoodFactsClient(SOURCE_FOOD_PROVIDER, settings.food_provider_url, **common),
        ]
    )
