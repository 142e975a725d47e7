"""Variant store: SKU-level records of a product.

Lookups only return active variants unless asked otherwise. Stock counters
are read here but only written by services.stock (or an explicit admin
correction through `update`).
"""

import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.models import Product, ProductStatus, ProductVariant
from storefront.schemas.catalog import AttributeAvailability, LowStockAlert
from storefront.schemas.product import VariantCreate, VariantOut
from storefront.services.patches import Patch, update_values
from storefront.services.slugs import compute_variant_sku
from storefront.settings import get_settings
from storefront.stores.postgres import Database, persistence_errors

logger = logging.getLogger("uvicorn.error")

# Columns a variant PATCH may touch (id/product_id/timestamps never)
VARIANT_WRITABLE = frozenset(
    {
        "sku",
        "color",
        "size",
        "material",
        "price",
        "cost_price",
        "stock",
        "reserved_stock",
        "min_stock_alert",
        "weight",
        "barcode",
        "supplier_sku",
        "is_active",
        "is_default",
        "sort_order",
    }
)

_AVAILABLE = ProductVariant.stock - ProductVariant.reserved_stock


def to_variant_out(row: ProductVariant) -> VariantOut:
    return VariantOut.model_validate(row)


def _attribute_filters(color: str | None, size: str | None, material: str | None) -> list:
    conditions = []
    if color:
        conditions.append(ProductVariant.color == color)
    if size:
        conditions.append(ProductVariant.size == size)
    if material:
        conditions.append(ProductVariant.material == material)
    return conditions


async def _ensure_unique_combination(
    session: AsyncSession,
    product_id: int,
    color: str | None,
    size: str | None,
    material: str | None,
    *,
    exclude_id: int | None = None,
) -> None:
    query = select(ProductVariant.id).where(
        ProductVariant.product_id == product_id,
        ProductVariant.is_active.is_(True),
        ProductVariant.color.is_not_distinct_from(color),
        ProductVariant.size.is_not_distinct_from(size),
        ProductVariant.material.is_not_distinct_from(material),
    )
    if exclude_id is not None:
        query = query.where(ProductVariant.id != exclude_id)
    if await session.scalar(query.limit(1)) is not None:
        raise ConflictError(
            "Variant with these attributes already exists",
            code="DUPLICATE_VARIANT",
            detail={"color": color, "size": size, "material": material},
        )


async def insert_variant(
    session: AsyncSession,
    product: Product,
    data: VariantCreate,
    *,
    is_default: bool,
    sort_order: int,
) -> ProductVariant:
    """Insert one variant inside the caller's transaction.

    Raises:
        ConflictError: SKU already taken, or an active variant of the same
            product has the same (color, size, material) combination.
    """
    sku = data.sku or compute_variant_sku(product.sku_prefix, data.color, data.size, data.material)
    if not sku:
        raise ValidationError("Variant SKU could not be derived", detail={"sku": "required"})

    taken = await session.scalar(select(ProductVariant.id).where(ProductVariant.sku == sku))
    if taken is not None:
        raise ConflictError(f"Variant SKU already exists: {sku}", code="DUPLICATE_SKU")

    await _ensure_unique_combination(session, product.id, data.color, data.size, data.material)

    min_stock_alert = data.min_stock_alert
    if min_stock_alert is None:
        min_stock_alert = get_settings().low_stock_default_threshold

    variant = ProductVariant(
        product_id=product.id,
        sku=sku,
        color=data.color,
        size=data.size,
        material=data.material,
        price=data.price,
        cost_price=data.cost_price,
        stock=data.stock,
        reserved_stock=0,
        min_stock_alert=min_stock_alert,
        weight=data.weight,
        barcode=data.barcode,
        supplier_sku=data.supplier_sku,
        is_active=True,
        is_default=is_default,
        sort_order=sort_order,
    )
    session.add(variant)
    await session.flush()
    await session.refresh(variant)
    return variant


async def _clear_other_defaults(session: AsyncSession, product_id: int, keep_id: int) -> None:
    await session.execute(
        update(ProductVariant)
        .where(
            ProductVariant.product_id == product_id,
            ProductVariant.id != keep_id,
            ProductVariant.is_default.is_(True),
        )
        .values(is_default=False, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )


class VariantStore:
    """Data access for product variants."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def find_by_id(self, variant_id: int) -> VariantOut | None:
        with persistence_errors("find variant by id", variant_id):
            async with self._db.session() as session:
                row = await session.scalar(
                    select(ProductVariant).where(
                        ProductVariant.id == variant_id,
                        ProductVariant.is_active.is_(True),
                    )
                )
                return to_variant_out(row) if row else None

    async def find_by_sku(self, sku: str) -> VariantOut | None:
        with persistence_errors("find variant by sku", sku):
            async with self._db.session() as session:
                row = await session.scalar(
                    select(ProductVariant).where(
                        ProductVariant.sku == sku,
                        ProductVariant.is_active.is_(True),
                    )
                )
                return to_variant_out(row) if row else None

    async def find_by_product_id(self, product_id: int, active_only: bool = True) -> list[VariantOut]:
        """Variants of a product ordered by sort_order, then creation order."""
        query = select(ProductVariant).where(ProductVariant.product_id == product_id)
        if active_only:
            query = query.where(ProductVariant.is_active.is_(True))
        query = query.order_by(
            ProductVariant.sort_order.asc(),
            ProductVariant.created_at.asc(),
            ProductVariant.id.asc(),
        )

        with persistence_errors("find variants by product", product_id):
            async with self._db.session() as session:
                rows = (await session.scalars(query)).all()
                return [to_variant_out(row) for row in rows]

    async def check_stock(
        self,
        product_id: int,
        color: str | None = None,
        size: str | None = None,
        material: str | None = None,
    ) -> int:
        """Summed available stock over active variants matching a (partial) attribute filter.

        Returns 0 when nothing matches; never negative.
        """
        per_row = case((_AVAILABLE > 0, _AVAILABLE), else_=0)
        query = select(func.coalesce(func.sum(per_row), 0)).where(
            ProductVariant.product_id == product_id,
            ProductVariant.is_active.is_(True),
            *_attribute_filters(color, size, material),
        )

        with persistence_errors("check stock", product_id):
            async with self._db.session() as session:
                total = await session.scalar(query)
                return max(0, int(total or 0))

    async def find_by_attributes(
        self,
        product_id: int,
        color: str | None = None,
        size: str | None = None,
        material: str | None = None,
    ) -> VariantOut | None:
        """First active variant (by creation order) matching the given attributes."""
        query = (
            select(ProductVariant)
            .where(
                ProductVariant.product_id == product_id,
                ProductVariant.is_active.is_(True),
                *_attribute_filters(color, size, material),
            )
            .order_by(ProductVariant.created_at.asc(), ProductVariant.id.asc())
            .limit(1)
        )

        with persistence_errors("find variant by attributes", product_id):
            async with self._db.session() as session:
                row = await session.scalar(query)
                return to_variant_out(row) if row else None

    async def available_sizes_for_color(self, product_id: int, color: str) -> list[AttributeAvailability]:
        """Sizes still purchasable in `color`, with stock and effective price."""
        return await self._available_values(product_id, ProductVariant.color == color, ProductVariant.size)

    async def available_colors_for_size(self, product_id: int, size: str) -> list[AttributeAvailability]:
        """Colors still purchasable in `size`, with stock and effective price."""
        return await self._available_values(product_id, ProductVariant.size == size, ProductVariant.color)

    async def _available_values(self, product_id: int, condition, column) -> list[AttributeAvailability]:
        query = (
            select(column, _AVAILABLE, func.coalesce(ProductVariant.price, Product.base_price))
            .join(Product, Product.id == ProductVariant.product_id)
            .where(
                ProductVariant.product_id == product_id,
                ProductVariant.is_active.is_(True),
                condition,
                column.is_not(None),
                _AVAILABLE > 0,
            )
            .order_by(ProductVariant.sort_order.asc(), ProductVariant.id.asc())
        )

        with persistence_errors("list available attribute values", product_id):
            async with self._db.session() as session:
                rows = (await session.execute(query)).all()
                return [
                    AttributeAvailability(value=value, stock=int(stock), price=float(price))
                    for value, stock, price in rows
                ]

    async def create(self, product_id: int, data: VariantCreate) -> VariantOut:
        """Add a variant to an existing (non-archived) product."""
        with persistence_errors("create variant", product_id):
            async with self._db.session() as session:
                product = await session.get(Product, product_id)
                if product is None or product.status == ProductStatus.ARCHIVED:
                    raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")

                sort_order = data.sort_order
                if sort_order is None:
                    current_max = await session.scalar(
                        select(func.max(ProductVariant.sort_order)).where(
                            ProductVariant.product_id == product_id
                        )
                    )
                    sort_order = (current_max or 0) + 1

                variant = await insert_variant(
                    session,
                    product,
                    data,
                    is_default=bool(data.is_default),
                    sort_order=sort_order,
                )
                if variant.is_default:
                    await _clear_other_defaults(session, product_id, variant.id)

                logger.info(f"[variants] created id={variant.id} sku={variant.sku} product_id={product_id}")
                return to_variant_out(variant)

    async def update(self, variant_id: int, patch: Patch) -> VariantOut | None:
        """Partially update a variant.

        Inactive variants only accept a patch that reactivates them
        (`is_active=True`). The write is conditional on the resulting
        `reserved_stock <= stock` so a concurrent reservation can't be
        overtaken by a stale read.

        Raises:
            ValidationError: the result would leave reserved_stock > stock, or
                the patch unsets is_default on the product's default variant.
            ConflictError: the new SKU is already taken, or the resulting
                attributes match another active variant of the product.
        """
        values = update_values(ProductVariant, patch, writable=VARIANT_WRITABLE)
        stock = patch.get("stock")
        reserved = patch.get("reserved_stock")
        if stock is not None and reserved is not None and reserved > stock:
            raise ValidationError(
                "reserved_stock cannot exceed stock",
                code="RESERVED_EXCEEDS_STOCK",
                detail={"reserved_stock": f"{reserved} > {stock}"},
            )

        reactivating = patch.get("is_active") is True
        target = [ProductVariant.id == variant_id]
        if not reactivating:
            target.append(ProductVariant.is_active.is_(True))
        conditions = list(target)
        if stock is not None and reserved is None:
            conditions.append(ProductVariant.reserved_stock <= stock)
        elif reserved is not None and stock is None:
            conditions.append(ProductVariant.stock >= reserved)

        with persistence_errors("update variant", variant_id):
            async with self._db.session() as session:
                current = await session.scalar(select(ProductVariant).where(*target))
                if current is None:
                    return None

                if "is_default" in patch and not patch.get("is_default") and current.is_default:
                    raise ValidationError(
                        "A product keeps one default variant; set is_default on another variant instead",
                        code="DEFAULT_VARIANT_REQUIRED",
                        detail={"is_default": "cannot unset on the default variant"},
                    )

                if "sku" in patch:
                    taken = await session.scalar(
                        select(ProductVariant.id).where(
                            ProductVariant.sku == patch.get("sku"),
                            ProductVariant.id != variant_id,
                        )
                    )
                    if taken is not None:
                        raise ConflictError(f"Variant SKU already exists: {patch.get('sku')}", code="DUPLICATE_SKU")

                attributes_changed = any(name in patch for name in ("color", "size", "material"))
                if patch.get("is_active", current.is_active) and (attributes_changed or not current.is_active):
                    await _ensure_unique_combination(
                        session,
                        current.product_id,
                        patch.get("color", current.color),
                        patch.get("size", current.size),
                        patch.get("material", current.material),
                        exclude_id=variant_id,
                    )

                result = await session.execute(
                    update(ProductVariant)
                    .where(*conditions)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise ValidationError(
                        "reserved_stock cannot exceed stock",
                        code="RESERVED_EXCEEDS_STOCK",
                        detail={"reserved_stock": "would exceed stock"},
                    )

                row = await session.scalar(
                    select(ProductVariant)
                    .where(ProductVariant.id == variant_id)
                    .execution_options(populate_existing=True)
                )
                if patch.get("is_default"):
                    await _clear_other_defaults(session, row.product_id, row.id)

                logger.info(f"[variants] updated id={variant_id} fields={sorted(patch.values)}")
                return to_variant_out(row)

    async def delete(self, variant_id: int) -> bool:
        """Soft delete (is_active=False). Idempotent; False only for unknown ids."""
        with persistence_errors("delete variant", variant_id):
            async with self._db.session() as session:
                result = await session.execute(
                    update(ProductVariant)
                    .where(ProductVariant.id == variant_id)
                    .values(is_active=False, updated_at=func.now())
                    .execution_options(synchronize_session=False)
                )
                deleted = result.rowcount > 0
                if deleted:
                    logger.info(f"[variants] deactivated id={variant_id}")
                return deleted

    async def low_stock(self, product_id: int | None = None) -> list[LowStockAlert]:
        """Active variants of active products at or below their alert threshold."""
        query = (
            select(ProductVariant, Product.name)
            .join(Product, Product.id == ProductVariant.product_id)
            .where(
                ProductVariant.stock <= ProductVariant.min_stock_alert,
                ProductVariant.is_active.is_(True),
                Product.status == ProductStatus.ACTIVE,
            )
            .order_by(ProductVariant.stock.asc(), ProductVariant.id.asc())
        )
        if product_id is not None:
            query = query.where(ProductVariant.product_id == product_id)

        with persistence_errors("list low stock variants", product_id):
            async with self._db.session() as session:
                rows = (await session.execute(query)).all()
                return [
                    LowStockAlert(
                        product_id=variant.product_id,
                        product_name=product_name,
                        variant_id=variant.id,
                        variant_sku=variant.sku,
                        color=variant.color,
                        size=variant.size,
                        current_stock=variant.stock,
                        min_stock_alert=variant.min_stock_alert,
                    )
                    for variant, product_name in rows
                ]
