from __future__ import annotations

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base class for structured catalog failures (kind + message)."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "error": self.message}


class ValidationError(CatalogError):
    kind = "validation"

    def __init__(self, errors: Dict[str, str], message: str = "Invalid product submission") -> None:
        super().__init__(message)
        self.errors = dict(errors)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = dict(self.errors)
        return payload


class NotFoundError(CatalogError):
    kind = "not_found"

    def __init__(self, barcode: str, message: Optional[str] = None) -> None:
        super().__init__(message or "Produit non trouvé. Vous pouvez contribuer en ajoutant ce produit !")
        self.barcode = barcode

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"barcode": self.barcode, "contribute": True})
        return payload


class ProviderError(CatalogError):
    kind = "provider"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderTimeout(ProviderError):
    kind = "provider_timeout"


class DuplicateBarcodeError(CatalogError):
    kind = "duplicate"

    def __init__(self, barcode: str) -> None:
        super().__init__(f"Barcode {barcode} already exists in the catalog")
        self.barcode = barcode
