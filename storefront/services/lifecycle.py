"""Product status state machine.

    draft    -> active | inactive | archived
    active   -> inactive | draft | archived
    inactive -> active | draft | archived
    archived -> (terminal)

Staying in the same status is always allowed. Variants have no separate
state machine: `is_active` toggles freely and soft delete sets it False.
"""

from storefront.errors import ValidationError
from storefront.models.product import ProductStatus

_TRANSITIONS: dict[ProductStatus, frozenset[ProductStatus]] = {
    ProductStatus.DRAFT: frozenset({ProductStatus.ACTIVE, ProductStatus.INACTIVE, ProductStatus.ARCHIVED}),
    ProductStatus.ACTIVE: frozenset({ProductStatus.INACTIVE, ProductStatus.DRAFT, ProductStatus.ARCHIVED}),
    ProductStatus.INACTIVE: frozenset({ProductStatus.ACTIVE, ProductStatus.DRAFT, ProductStatus.ARCHIVED}),
    ProductStatus.ARCHIVED: frozenset(),
}


def can_transition(current: ProductStatus, target: ProductStatus) -> bool:
    return current == target or target in _TRANSITIONS[current]


def ensure_transition(current: ProductStatus, target: ProductStatus) -> None:
    """Raise ValidationError unless `current -> target` is allowed."""
    if not can_transition(current, target):
        raise ValidationError(
            f"Cannot change product status from {current.value} to {target.value}",
            code="INVALID_STATUS_TRANSITION",
            detail={"status": f"{current.value} -> {target.value} not allowed"},
        )
