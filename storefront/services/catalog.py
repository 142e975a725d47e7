"""Catalog query engine.

Builds filtered, paginated product listings and the attribute lookups used
by product pages. Filter predicates are plain SQLAlchemy conditions on
`products`; variant-level filters (colors, sizes, in-stock) are correlated
EXISTS subqueries so a product is counted once no matter how many of its
variants match.

The listing total and the page are separate statements, not one snapshot;
under concurrent writes they can briefly disagree.
"""

import logging
import math

import redis
from sqlalchemy import ColumnElement, func, or_, select

from storefront.models import Category, Product, ProductStatus, ProductVariant
from storefront.schemas.catalog import (
    Availability,
    AvailabilityVariant,
    FeaturedProducts,
    FilterOptions,
    LowStockAlerts,
    Pagination,
    ProductFilters,
    ProductListing,
    ProductOptions,
    SearchListing,
)
from storefront.schemas.product import CategorySummary, PriceRange, ProductWithVariants
from storefront.services.products import load_views
from storefront.services.variants import VariantStore
from storefront.services.views import product_options
from storefront.settings import get_settings
from storefront.stores.postgres import Database, persistence_errors
from storefront.stores.redis import get_filter_options_cache, set_filter_options_cache

logger = logging.getLogger("uvicorn.error")

_AVAILABLE = ProductVariant.stock - ProductVariant.reserved_stock


def _contains(column: ColumnElement, text: str) -> ColumnElement:
    """Case-insensitive substring match; `%` and `_` in `text` match literally."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def _variant_exists(*conditions: ColumnElement) -> ColumnElement:
    return (
        select(ProductVariant.id)
        .where(
            ProductVariant.product_id == Product.id,
            ProductVariant.is_active.is_(True),
            *conditions,
        )
        .exists()
    )


def build_conditions(filters: ProductFilters) -> list[ColumnElement]:
    """Translate listing filters into WHERE conditions on `products`."""
    conditions: list[ColumnElement] = [Product.status == filters.status]

    if filters.category_id is not None:
        conditions.append(Product.category_id == filters.category_id)
    if filters.brand:
        conditions.append(_contains(Product.brand, filters.brand))
    if filters.is_featured is not None:
        conditions.append(Product.is_featured.is_(filters.is_featured))
    if filters.search:
        conditions.append(or_(_contains(Product.name, filters.search), _contains(Product.description, filters.search)))
    if filters.min_price is not None:
        conditions.append(Product.base_price >= filters.min_price)
    if filters.max_price is not None:
        conditions.append(Product.base_price <= filters.max_price)

    # Combined with in_stock_only, the stock requirement applies to the same
    # variant that carries the color/size.
    stock_condition = [_AVAILABLE > 0] if filters.in_stock_only else []
    if filters.colors:
        conditions.append(_variant_exists(ProductVariant.color.in_(filters.colors), *stock_condition))
    if filters.sizes:
        conditions.append(_variant_exists(ProductVariant.size.in_(filters.sizes), *stock_condition))
    if filters.in_stock_only:
        conditions.append(_variant_exists(_AVAILABLE > 0))

    return conditions


class CatalogService:
    """Read side of the catalog: listings, search, options and availability."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._variants = VariantStore(db)

    async def find_many(self, filters: ProductFilters) -> tuple[list[ProductWithVariants], int]:
        """Page of assembled products plus the total number of matching products."""
        conditions = build_conditions(filters)
        limit = min(filters.limit, get_settings().max_page_size)
        offset = (filters.page - 1) * limit

        page_query = (
            select(Product)
            .where(*conditions)
            .order_by(Product.is_featured.desc(), Product.created_at.desc(), Product.id.desc())
            .limit(limit)
            .offset(offset)
        )
        count_query = select(func.count(func.distinct(Product.id))).where(*conditions)

        with persistence_errors("find products"):
            async with self._db.session() as session:
                rows = (await session.scalars(page_query)).all()
                products = await load_views(session, rows)
                total = await session.scalar(count_query)
                return products, int(total or 0)

    async def list_products(self, filters: ProductFilters) -> ProductListing:
        """Listing endpoint payload: products, pagination and facet summary."""
        products, total = await self.find_many(filters)
        return ProductListing(
            products=products,
            pagination=self._pagination(filters, total),
            filters=await self.filter_options(filters.status),
        )

    async def search_products(self, query: str, filters: ProductFilters | None = None) -> SearchListing:
        """Free-text search over in-stock products."""
        filters = (filters or ProductFilters()).model_copy(update={"search": query, "in_stock_only": True})
        products, total = await self.find_many(filters)
        return SearchListing(
            products=products,
            pagination=self._pagination(filters, total),
            filters=await self.filter_options(filters.status),
            query=query,
        )

    async def featured_products(self, limit: int = 10) -> FeaturedProducts:
        products, _ = await self.find_many(ProductFilters(is_featured=True, limit=limit))
        return FeaturedProducts(products=products, count=len(products))

    async def get_product_options(self, product_id: int) -> ProductOptions:
        """Colors/sizes/materials still purchasable for a product."""
        variants = await self._variants.find_by_product_id(product_id)
        return product_options(variants)

    async def check_variant_stock(
        self,
        product_id: int,
        color: str | None = None,
        size: str | None = None,
        material: str | None = None,
    ) -> Availability:
        """Available stock for an attribute combination and the variant that backs it."""
        stock = await self._variants.check_stock(product_id, color, size, material)
        variant = await self._variants.find_by_attributes(product_id, color, size, material)
        if variant is None:
            return Availability(available=stock > 0, stock=stock)

        price = variant.price
        if price is None:
            with persistence_errors("load product base price", product_id):
                async with self._db.session() as session:
                    price = await session.scalar(select(Product.base_price).where(Product.id == product_id))
        return Availability(
            available=stock > 0,
            stock=stock,
            variant=AvailabilityVariant(id=variant.id, sku=variant.sku, price=float(price or 0)),
        )

    async def low_stock_alerts(self, product_id: int | None = None) -> LowStockAlerts:
        alerts = await self._variants.low_stock(product_id)
        return LowStockAlerts(alerts=alerts, count=len(alerts))

    async def filter_options(self, status: ProductStatus = ProductStatus.ACTIVE) -> FilterOptions:
        """Facet summary over products in `status`, cached in Redis when available.

        A TTL of 0 disables the cache.
        """
        status_value = ProductStatus(status).value
        ttl = get_settings().filter_options_ttl
        if ttl <= 0:
            return await self._compute_filter_options(status)

        try:
            cached = await get_filter_options_cache(status_value)
        except (RuntimeError, redis.RedisError) as e:
            logger.warning(f"[catalog] filter options cache read failed: {e}")
            cached = None
        if cached is not None:
            return FilterOptions.model_validate(cached)

        options = await self._compute_filter_options(status)

        try:
            await set_filter_options_cache(status_value, options.model_dump(), ttl)
        except (RuntimeError, redis.RedisError) as e:
            logger.warning(f"[catalog] filter options cache write failed: {e}")
        return options

    async def _compute_filter_options(self, status: ProductStatus) -> FilterOptions:
        in_status = Product.status == status
        variant_join = (
            select(ProductVariant)
            .join(Product, Product.id == ProductVariant.product_id)
            .where(in_status, ProductVariant.is_active.is_(True))
            .subquery()
        )
        effective = func.coalesce(ProductVariant.price, Product.base_price)

        with persistence_errors("compute filter options"):
            async with self._db.session() as session:
                categories = (
                    await session.scalars(
                        select(Category)
                        .where(Category.id.in_(select(Product.category_id).where(in_status)))
                        .order_by(Category.sort_order.asc(), Category.name.asc())
                    )
                ).all()
                brands = (
                    await session.scalars(
                        select(Product.brand)
                        .where(in_status, Product.brand.is_not(None))
                        .distinct()
                        .order_by(Product.brand.asc())
                    )
                ).all()

                low, high = (
                    await session.execute(
                        select(func.min(effective), func.max(effective))
                        .select_from(Product)
                        .outerjoin(
                            ProductVariant,
                            (ProductVariant.product_id == Product.id) & ProductVariant.is_active.is_(True),
                        )
                        .where(in_status)
                    )
                ).one()

                async def distinct_values(column) -> list[str]:
                    rows = await session.scalars(
                        select(column)
                        .where(column.is_not(None), variant_join.c.stock - variant_join.c.reserved_stock > 0)
                        .distinct()
                        .order_by(column.asc())
                    )
                    return [value for value in rows.all() if value]

                return FilterOptions(
                    categories=[CategorySummary.model_validate(c) for c in categories],
                    brands=[b for b in brands if b],
                    price_range=PriceRange(min=float(low or 0), max=float(high or 0)),
                    colors=await distinct_values(variant_join.c.color),
                    sizes=await distinct_values(variant_join.c.size),
                    materials=await distinct_values(variant_join.c.material),
                )

    @staticmethod
    def _pagination(filters: ProductFilters, total: int) -> Pagination:
        limit = min(filters.limit, get_settings().max_page_size)
        return Pagination(
            page=filters.page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        )
