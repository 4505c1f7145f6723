from typing import Any, Dict, Optional

import requests

from ..errors import ProviderError, ProviderTimeout
from ..logging import get_logger


class OpenFoodFactsClient:
    """Thin client for the Open (Pet) Food Facts product API.

    Both services expose the same v2 endpoint; only the base URL differs.
    `get_product` returns the nested product payload, or None when the
    provider reports the barcode as absent. Transport problems are raised
    as ProviderTimeout / ProviderError.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout: float = 5.0,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.name = name
        self.base = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.log = get_logger("catalog-provider")
        self.s = session or requests.Session()
        self.s.headers.update({"Accept": "application/json"})
        if user_agent:
            self.s.headers.update({"User-Agent": user_agent})

    def _url(self, barcode: str) -> str:
        return f"{self.base}/api/v2/product/{requests.utils.quote(barcode, safe='')}.json"

    def get_product(self, barcode: str, *, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        url = self._url(barcode)
        effective = self.timeout if timeout is None else min(self.timeout, float(timeout))
        try:
            r = self.s.get(url, timeout=effective)
        except requests.Timeout as e:
            raise ProviderTimeout(self.name, f"timed out after {effective:.1f}s") from e
        except requests.RequestException as e:
            raise ProviderError(self.name, f"request failed: {e}") from e

        if r.status_code == 404:
            self.log.debug(f"{self.name}: {barcode} not found (HTTP 404)")
            return None
        try:
            r.raise_for_status()
        except requests.HTTPError as e:
            raise ProviderError(self.name, f"HTTP {r.status_code}") from e
        try:
            body = r.json()
        except ValueError as e:
            raise ProviderError(self.name, "response is not JSON") from e

        if not isinstance(body, dict) or body.get("status") != 1:
            self.log.debug(f"{self.name}: {barcode} reported absent")
            return None
        product = body.get("product")
        if not isinstance(product, dict) or not product:
            return None
        return product

    def close(self) -> None:
        self.s.close()
