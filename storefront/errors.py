"""Catalog and inventory error taxonomy.

Every error carries a machine-readable `code` and the HTTP status the API
layer renders it with as `{"message", "code"}`.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for errors raised by stores and services."""

    code = "CATALOG_ERROR"
    status_code = 400

    def __init__(self, message: str, *, code: str | None = None, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail


class ValidationError(CatalogError):
    """Malformed input: negative price, missing field, invalid status."""

    code = "VALIDATION_ERROR"
    status_code = 422


class NotFoundError(CatalogError):
    """No matching active row for an id, slug or SKU."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(CatalogError):
    """Duplicate slug, SKU or variant attribute combination."""

    code = "CONFLICT"
    status_code = 409


class StockError(CatalogError):
    """A reservation precondition failed; the caller may re-check and retry the flow."""

    status_code = 409

    def __init__(self, message: str, *, variant_id: int, requested: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.variant_id = variant_id
        self.requested = requested


class InsufficientStockError(StockError):
    code = "INSUFFICIENT_STOCK"


class InsufficientReservedStockError(StockError):
    code = "INSUFFICIENT_RESERVED_STOCK"


class PersistenceError(CatalogError):
    """Underlying store failure, wrapped with operation and entity context."""

    code = "PERSISTENCE_ERROR"
    status_code = 500

    def __init__(self, operation: str, *, entity_id: object = None, cause: BaseException | None = None) -> None:
        target = f" (id={entity_id})" if entity_id is not None else ""
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{target}{reason}")
        self.operation = operation
        self.entity_id = entity_id
        self.__cause__ = cause
