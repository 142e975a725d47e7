"""Stock reservation protocol.

Four operations on a single variant row, each one conditional UPDATE in its
own transaction. The affected-row count decides success, so two concurrent
reservations for the last units can't both pass (the database serializes
writers on the row and re-checks the WHERE clause):

    reserve(qty)  reserved += qty            WHERE active AND stock - reserved >= qty
    release(qty)  reserved -= qty            WHERE reserved >= qty   (else clamp to 0)
    fulfill(qty)  stock -= qty, reserved -= qty WHERE reserved >= qty
    adjust(delta) stock += delta             WHERE stock + delta >= reserved

No application-level locks: the service runs as several stateless instances.
A failed reservation is not retried here; the order workflow decides.
"""

import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.errors import (
    InsufficientReservedStockError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from storefront.models import ProductVariant
from storefront.schemas.product import VariantOut
from storefront.schemas.stock import StockOperation
from storefront.services.variants import to_variant_out
from storefront.stores.postgres import Database, persistence_errors

logger = logging.getLogger("uvicorn.error")


def _require_positive(quantity: int) -> None:
    if quantity <= 0:
        raise ValidationError(
            "Quantity must be a positive integer",
            code="INVALID_QUANTITY",
            detail={"quantity": str(quantity)},
        )


async def _conditional_update(session: AsyncSession, variant_id: int, conditions: list, **values) -> bool:
    result = await session.execute(
        update(ProductVariant)
        .where(ProductVariant.id == variant_id, *conditions)
        .values(**values, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def _load(session: AsyncSession, variant_id: int) -> ProductVariant | None:
    return await session.scalar(
        select(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .execution_options(populate_existing=True)
    )


async def _load_or_raise(session: AsyncSession, variant_id: int) -> ProductVariant:
    row = await _load(session, variant_id)
    if row is None:
        raise NotFoundError(f"Variant {variant_id} not found", code="VARIANT_NOT_FOUND")
    return row


class StockReservations:
    """Atomic stock mutations for variants."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def reserve(self, variant_id: int, quantity: int) -> VariantOut:
        """Hold `quantity` units for an in-flight order.

        Raises:
            InsufficientStockError: fewer than `quantity` units available.
            NotFoundError: unknown or inactive variant.
        """
        _require_positive(quantity)
        with persistence_errors("reserve stock", variant_id):
            async with self._db.session() as session:
                ok = await _conditional_update(
                    session,
                    variant_id,
                    [
                        ProductVariant.is_active.is_(True),
                        ProductVariant.stock - ProductVariant.reserved_stock >= quantity,
                    ],
                    reserved_stock=ProductVariant.reserved_stock + quantity,
                )
                row = await _load(session, variant_id)
                if row is None or (not ok and not row.is_active):
                    raise NotFoundError(f"Variant {variant_id} not found", code="VARIANT_NOT_FOUND")
                if not ok:
                    raise InsufficientStockError(
                        f"Insufficient stock to reserve {quantity} of variant {variant_id} "
                        f"({row.stock - row.reserved_stock} available)",
                        variant_id=variant_id,
                        requested=quantity,
                        detail={"available": row.stock - row.reserved_stock, "requested": quantity},
                    )
                logger.info(f"[stock] reserved variant_id={variant_id} qty={quantity} reserved={row.reserved_stock}")
                return to_variant_out(row)

    async def release(self, variant_id: int, quantity: int) -> VariantOut:
        """Return reserved units to availability.

        Releasing more than is reserved clamps reserved_stock at 0 and logs a
        warning instead of failing, so repeated releases are harmless.
        """
        _require_positive(quantity)
        with persistence_errors("release stock", variant_id):
            async with self._db.session() as session:
                ok = await _conditional_update(
                    session,
                    variant_id,
                    [ProductVariant.reserved_stock >= quantity],
                    reserved_stock=ProductVariant.reserved_stock - quantity,
                )
                if not ok:
                    clamped = await _conditional_update(
                        session,
                        variant_id,
                        [],
                        reserved_stock=case(
                            (ProductVariant.reserved_stock >= quantity, ProductVariant.reserved_stock - quantity),
                            else_=0,
                        ),
                    )
                    if not clamped:
                        raise NotFoundError(f"Variant {variant_id} not found", code="VARIANT_NOT_FOUND")
                    logger.warning(
                        f"[stock] release clamped at 0 variant_id={variant_id} qty={quantity} exceeded reserved stock"
                    )
                row = await _load_or_raise(session, variant_id)
                logger.info(f"[stock] released variant_id={variant_id} qty={quantity} reserved={row.reserved_stock}")
                return to_variant_out(row)

    async def fulfill(self, variant_id: int, quantity: int) -> VariantOut:
        """Turn a reservation into a permanent stock deduction.

        Raises:
            InsufficientReservedStockError: fewer than `quantity` units reserved.
            NotFoundError: unknown variant.
        """
        _require_positive(quantity)
        with persistence_errors("fulfill stock", variant_id):
            async with self._db.session() as session:
                ok = await _conditional_update(
                    session,
                    variant_id,
                    [
                        ProductVariant.reserved_stock >= quantity,
                        ProductVariant.stock >= quantity,
                    ],
                    stock=ProductVariant.stock - quantity,
                    reserved_stock=ProductVariant.reserved_stock - quantity,
                )
                row = await _load_or_raise(session, variant_id)
                if not ok:
                    raise InsufficientReservedStockError(
                        f"Insufficient reserved stock to fulfill {quantity} of variant {variant_id} "
                        f"({row.reserved_stock} reserved)",
                        variant_id=variant_id,
                        requested=quantity,
                        detail={"reserved": row.reserved_stock, "requested": quantity},
                    )
                logger.info(f"[stock] fulfilled variant_id={variant_id} qty={quantity} stock={row.stock}")
                return to_variant_out(row)

    async def adjust(self, variant_id: int, delta: int) -> VariantOut:
        """Administrative stock correction (delta may be negative).

        Raises:
            ValidationError: the result would be negative or below reserved_stock.
            NotFoundError: unknown variant.
        """
        with persistence_errors("adjust stock", variant_id):
            async with self._db.session() as session:
                ok = await _conditional_update(
                    session,
                    variant_id,
                    [ProductVariant.stock + delta >= ProductVariant.reserved_stock],
                    stock=ProductVariant.stock + delta,
                )
                row = await _load_or_raise(session, variant_id)
                if not ok:
                    resulting = row.stock + delta
                    reason = "negative" if resulting < 0 else f"below reserved stock ({row.reserved_stock})"
                    raise ValidationError(
                        f"Stock adjustment of {delta} would leave variant {variant_id} {reason}",
                        code="INVALID_STOCK_ADJUSTMENT",
                        detail={"stock": row.stock, "reserved_stock": row.reserved_stock, "delta": delta},
                    )
                logger.info(f"[stock] adjusted variant_id={variant_id} delta={delta} stock={row.stock}")
                return to_variant_out(row)

    async def apply(self, operation: StockOperation) -> VariantOut:
        """Dispatch a StockOperation (quantity is the signed delta for adjust)."""
        if operation.reason:
            logger.info(
                f"[stock] {operation.operation} variant_id={operation.variant_id} reason={operation.reason!r}"
            )
        if operation.operation == "reserve":
            return await self.reserve(operation.variant_id, operation.quantity)
        if operation.operation == "release":
            return await self.release(operation.variant_id, operation.quantity)
        if operation.operation == "fulfill":
            return await self.fulfill(operation.variant_id, operation.quantity)
        if operation.operation == "adjust":
            return await self.adjust(operation.variant_id, operation.quantity)
        raise ValidationError(f"Invalid stock operation: {operation.operation}", code="INVALID_OPERATION")
