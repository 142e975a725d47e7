"""Product aggregate: product rows composed with their variants and images.

Assembly is a two-step application-level join (products, then variants and
images by product id) so it works the same on every storage engine; the
derived inventory view comes from services.views.
"""

from collections.abc import Sequence
import logging
import re

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.models import Category, Product, ProductImage, ProductStatus, ProductVariant
from storefront.schemas.product import (
    CategorySummary,
    ImageCreate,
    ImageOut,
    ProductCreate,
    ProductOut,
    ProductWithVariants,
    VariantOut,
)
from storefront.services.lifecycle import ensure_transition
from storefront.services.patches import Patch, update_values
from storefront.services.slugs import generate_slug
from storefront.services.variants import insert_variant, to_variant_out
from storefront.services.views import assemble
from storefront.stores.postgres import Database, persistence_errors

logger = logging.getLogger("uvicorn.error")

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

# Columns a product PATCH may touch. slug is checked separately (immutable).
PRODUCT_WRITABLE = frozenset(
    {
        "name",
        "description",
        "short_description",
        "base_price",
        "category_id",
        "brand",
        "sku_prefix",
        "weight",
        "dimensions",
        "meta_title",
        "meta_description",
        "status",
        "is_featured",
        "tags",
    }
)


async def _categories(session: AsyncSession, ids: set[int]) -> dict[int, CategorySummary]:
    if not ids:
        return {}
    rows = (await session.scalars(select(Category).where(Category.id.in_(ids)))).all()
    return {row.id: CategorySummary.model_validate(row) for row in rows}


def _to_product_out(row: Product, categories: dict[int, CategorySummary]) -> ProductOut:
    out = ProductOut.model_validate(row)
    if row.category_id is not None:
        out.category = categories.get(row.category_id)
    return out


async def load_views(
    session: AsyncSession,
    rows: Sequence[Product],
    *,
    active_variants_only: bool = True,
) -> list[ProductWithVariants]:
    """Assemble full views for product rows, preserving their order."""
    if not rows:
        return []
    ids = [row.id for row in rows]

    variant_query = select(ProductVariant).where(ProductVariant.product_id.in_(ids))
    if active_variants_only:
        variant_query = variant_query.where(ProductVariant.is_active.is_(True))
    variant_query = variant_query.order_by(
        ProductVariant.sort_order.asc(),
        ProductVariant.created_at.asc(),
        ProductVariant.id.asc(),
    )
    image_query = (
        select(ProductImage)
        .where(ProductImage.product_id.in_(ids))
        .order_by(ProductImage.sort_order.asc(), ProductImage.id.asc())
    )

    variants: dict[int, list[VariantOut]] = {pid: [] for pid in ids}
    for variant in (await session.scalars(variant_query)).all():
        variants[variant.product_id].append(to_variant_out(variant))

    images: dict[int, list[ImageOut]] = {pid: [] for pid in ids}
    for image in (await session.scalars(image_query)).all():
        images[image.product_id].append(ImageOut.model_validate(image))

    categories = await _categories(session, {row.category_id for row in rows if row.category_id is not None})
    return [
        assemble(_to_product_out(row, categories), variants[row.id], images[row.id])
        for row in rows
    ]


async def _insert_images(session: AsyncSession, product_id: int, images: Sequence[ImageCreate]) -> None:
    if not images:
        return
    variant_ids = {image.variant_id for image in images if image.variant_id is not None}
    if variant_ids:
        owned = set(
            (
                await session.scalars(
                    select(ProductVariant.id).where(
                        ProductVariant.product_id == product_id,
                        ProductVariant.id.in_(variant_ids),
                    )
                )
            ).all()
        )
        foreign = sorted(variant_ids - owned)
        if foreign:
            raise ValidationError(
                f"Images reference variants of another product: {foreign}",
                detail={"variant_id": "must belong to the product"},
            )

    for image in images:
        session.add(ProductImage(product_id=product_id, **image.model_dump()))
    await session.flush()


class ProductStore:
    """Data access for products and their assembled views."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def find_by_id(self, product_id: int) -> ProductOut | None:
        """Product row in any status."""
        with persistence_errors("find product by id", product_id):
            async with self._db.session() as session:
                row = await session.get(Product, product_id)
                if row is None:
                    return None
                categories = await _categories(session, {row.category_id} if row.category_id else set())
                return _to_product_out(row, categories)

    async def find_by_slug(self, slug: str) -> ProductOut | None:
        """Active product by slug (public lookup)."""
        with persistence_errors("find product by slug", slug):
            async with self._db.session() as session:
                row = await session.scalar(
                    select(Product).where(Product.slug == slug, Product.status == ProductStatus.ACTIVE)
                )
                if row is None:
                    return None
                categories = await _categories(session, {row.category_id} if row.category_id else set())
                return _to_product_out(row, categories)

    async def find_with_variants(self, product_id: int, *, public: bool = True) -> ProductWithVariants | None:
        """Product + active variants + images + derived view.

        `public` restricts the lookup to active products.
        """
        query = select(Product).where(Product.id == product_id)
        if public:
            query = query.where(Product.status == ProductStatus.ACTIVE)

        with persistence_errors("find product with variants", product_id):
            async with self._db.session() as session:
                row = await session.scalar(query)
                if row is None:
                    return None
                views = await load_views(session, [row])
                return views[0]

    async def find_with_variants_by_slug(self, slug: str) -> ProductWithVariants | None:
        with persistence_errors("find product with variants by slug", slug):
            async with self._db.session() as session:
                row = await session.scalar(
                    select(Product).where(Product.slug == slug, Product.status == ProductStatus.ACTIVE)
                )
                if row is None:
                    return None
                views = await load_views(session, [row])
                return views[0]

    async def create(self, data: ProductCreate) -> ProductWithVariants:
        """Insert a product with all of its variants (and images) atomically.

        Raises:
            ValidationError: bad slug, unknown category, several default variants.
            ConflictError: slug or a variant SKU/attribute combination collides.
        """
        slug = data.slug or generate_slug(data.name)
        if not slug or not _SLUG_RE.match(slug):
            raise ValidationError(
                f"Invalid product slug: {slug!r}",
                code="INVALID_SLUG",
                detail={"slug": "lowercase letters, digits and single hyphens"},
            )

        explicit_defaults = [i for i, v in enumerate(data.variants) if v.is_default]
        if len(explicit_defaults) > 1:
            raise ValidationError(
                "Only one variant can be the default",
                detail={"variants": f"is_default set on indexes {explicit_defaults}"},
            )
        default_index = explicit_defaults[0] if explicit_defaults else 0

        with persistence_errors("create product", slug):
            async with self._db.session() as session:
                taken = await session.scalar(select(Product.id).where(Product.slug == slug))
                if taken is not None:
                    raise ConflictError(f"Product slug already exists: {slug}", code="DUPLICATE_SLUG")

                if data.category_id is not None and await session.get(Category, data.category_id) is None:
                    raise ValidationError(
                        f"Unknown category: {data.category_id}",
                        detail={"category_id": "not found"},
                    )

                product = Product(
                    slug=slug,
                    **data.model_dump(exclude={"slug", "variants", "images"}),
                )
                session.add(product)
                await session.flush()

                for index, variant in enumerate(data.variants):
                    await insert_variant(
                        session,
                        product,
                        variant,
                        is_default=index == default_index,
                        sort_order=variant.sort_order if variant.sort_order is not None else index + 1,
                    )

                await _insert_images(session, product.id, data.images)
                await session.refresh(product)

                logger.info(
                    f"[products] created id={product.id} slug={slug} variants={len(data.variants)} images={len(data.images)}"
                )
                views = await load_views(session, [product])
                return views[0]

    async def update(self, product_id: int, patch: Patch) -> ProductOut | None:
        """Partially update product columns (variants/images go elsewhere).

        Raises:
            ValidationError: slug change, forbidden status transition, null in a
                required column.
        """
        patch = patch.without("variants", "images")

        with persistence_errors("update product", product_id):
            async with self._db.session() as session:
                row = await session.get(Product, product_id)
                if row is None:
                    return None

                if "slug" in patch:
                    if patch.get("slug") != row.slug:
                        raise ValidationError(
                            "Product slug cannot be changed",
                            code="SLUG_IMMUTABLE",
                            detail={"slug": "immutable"},
                        )
                    patch = patch.without("slug")

                if patch.get("status") is not None:
                    ensure_transition(row.status, ProductStatus(patch.get("status")))

                category_id = patch.get("category_id")
                if category_id is not None and await session.get(Category, category_id) is None:
                    raise ValidationError(f"Unknown category: {category_id}", detail={"category_id": "not found"})

                values = update_values(Product, patch, writable=PRODUCT_WRITABLE)
                await session.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if patch.get("status") == ProductStatus.ARCHIVED:
                    await self._deactivate_variants(session, product_id)

                row = await session.scalar(
                    select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
                )
                categories = await _categories(session, {row.category_id} if row.category_id else set())
                logger.info(f"[products] updated id={product_id} fields={sorted(patch.values)}")
                return _to_product_out(row, categories)

    async def delete(self, product_id: int) -> bool:
        """Soft delete: archive the product and deactivate its variants.

        Returns whether a product row was affected.
        """
        with persistence_errors("delete product", product_id):
            async with self._db.session() as session:
                result = await session.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(status=ProductStatus.ARCHIVED, updated_at=func.now())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    return False
                await self._deactivate_variants(session, product_id)
                logger.info(f"[products] archived id={product_id}")
                return True

    async def add_images(self, product_id: int, images: Sequence[ImageCreate]) -> list[ImageOut]:
        """Attach image references to a product and return all of its images."""
        with persistence_errors("add product images", product_id):
            async with self._db.session() as session:
                product = await session.get(Product, product_id)
                if product is None or product.status == ProductStatus.ARCHIVED:
                    raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
                await _insert_images(session, product_id, images)
                rows = (
                    await session.scalars(
                        select(ProductImage)
                        .where(ProductImage.product_id == product_id)
                        .order_by(ProductImage.sort_order.asc(), ProductImage.id.asc())
                    )
                ).all()
                return [ImageOut.model_validate(row) for row in rows]

    @staticmethod
    async def _deactivate_variants(session: AsyncSession, product_id: int) -> None:
        await session.execute(
            update(ProductVariant)
            .where(ProductVariant.product_id == product_id, ProductVariant.is_active.is_(True))
            .values(is_active=False, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
