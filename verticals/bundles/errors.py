"""Error taxonomy for the bundle engine.

Every failure the engine surfaces is a BundleError subclass with a stable
machine-readable code and the HTTP status the router maps it to. Empty
rule resolution is not an error: it is reported as a slot status.
"""

from enum import Enum
from typing import Any

from verticals.bundles.models.schemas import Violation


class ErrorCode(str, Enum):
    CATALOG_UNAVAILABLE = "catalog_unavailable"
    CART_UNAVAILABLE = "cart_unavailable"
    VALIDATION_VIOLATION = "validation_violation"
    CONFIGURATION_INVALID = "configuration_invalid"
    CONFIGURATION_NOT_FOUND = "configuration_not_found"


class BundleError(Exception):
    code: ErrorCode
    status_code: int = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message, **self.details}


class CatalogUnavailable(BundleError):
    """The catalog could not be reached; retry later, never assume empty."""

    code = ErrorCode.CATALOG_UNAVAILABLE
    status_code = 503


class CartUnavailable(BundleError):
    """The cart backend rejected or failed the composed line item."""

    code = ErrorCode.CART_UNAVAILABLE
    status_code = 502


class ConfigurationNotFound(BundleError):
    code = ErrorCode.CONFIGURATION_NOT_FOUND
    status_code = 404


class ConfigurationInvalid(BundleError):
    """A stored configuration is internally inconsistent and must not go live."""

    code = ErrorCode.CONFIGURATION_INVALID
    status_code = 409

    def __init__(self, message: str, problems: list[str] | None = None, **details: Any):
        super().__init__(message, **details)
        self.problems = problems or [message]

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "problems": self.problems}


class SelectionInvalid(BundleError):
    """One or more slot selections break their slot's constraints."""

    code = ErrorCode.VALIDATION_VIOLATION
    status_code = 422

    def __init__(self, violations: list[Violation]):
        super().__init__(f"{len(violations)} selection violation(s)")
        self.violations = violations

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "violations": [v.model_dump(mode="json") for v in self.violations],
        }
