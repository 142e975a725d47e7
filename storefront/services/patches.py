"""Partial-update support.

A `Patch` holds only the fields a client actually sent (pydantic
`exclude_unset`), so `None` can still mean "clear this column". `update_values`
turns it into the `.values(...)` mapping of an UPDATE statement, refusing
field names that aren't writable columns of the target model.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel
from sqlalchemy import func

from storefront.errors import ValidationError


@dataclass(frozen=True)
class Patch:
    """Field name -> new value, for present fields only."""

    values: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_model(cls, data: BaseModel, *, exclude: Iterable[str] = ()) -> "Patch":
        return cls(data.model_dump(exclude_unset=True, exclude=set(exclude)))

    @classmethod
    def of(cls, **values: Any) -> "Patch":
        return cls(dict(values))

    def __contains__(self, name: str) -> bool:
        return name in self.values

    def __bool__(self) -> bool:
        return bool(self.values)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def without(self, *names: str) -> "Patch":
        return Patch({k: v for k, v in self.values.items() if k not in names})


def update_values(model: type, patch: Patch, *, writable: Iterable[str]) -> Mapping[str, Any]:
    """Build the SET mapping for an UPDATE of `model`.

    Only fields in `writable` (and present on the table) are accepted;
    `updated_at` is refreshed when the table has one.

    Raises:
        ValidationError: empty patch or a field outside `writable`.
    """
    if not patch:
        raise ValidationError("No fields to update", code="EMPTY_UPDATE")

    columns = set(model.__table__.columns.keys())
    allowed = set(writable) & columns
    rejected = sorted(set(patch.values) - allowed)
    if rejected:
        raise ValidationError(
            f"Fields cannot be updated: {', '.join(rejected)}",
            detail={name: "not writable" for name in rejected},
        )

    not_null = sorted(
        name for name, value in patch.values.items()
        if value is None and not model.__table__.columns[name].nullable
    )
    if not_null:
        raise ValidationError(
            f"Fields cannot be null: {', '.join(not_null)}",
            detail={name: "required" for name in not_null},
        )

    values: dict[str, Any] = dict(patch.values)
    if "updated_at" in columns:
        values["updated_at"] = func.now()
    return values
