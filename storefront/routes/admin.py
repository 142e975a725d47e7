"""Admin endpoints for catalog and inventory management.

Every route requires an admin principal (see routes.deps.require_admin).
Writes that change what the public facet summary shows drop the cached
summary afterwards.
"""

import logging

from fastapi import APIRouter, Depends, Query
import redis

from storefront.errors import NotFoundError
from storefront.routes.deps import (
    Principal,
    get_catalog,
    get_product_store,
    get_stock,
    get_variant_store,
    require_admin,
)
from storefront.schemas.catalog import LowStockAlerts
from storefront.schemas.common import MessageResponse
from storefront.schemas.product import (
    ImageCreate,
    ImageOut,
    ProductCreate,
    ProductResponse,
    ProductRowResponse,
    ProductUpdate,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
)
from storefront.schemas.stock import StockOperation, StockOperationRequest, StockOperationResponse
from storefront.services import CatalogService, ProductStore, StockReservations, VariantStore
from storefront.services.patches import Patch
from storefront.stores.redis import invalidate_filter_options_cache

router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger("uvicorn.error")


async def _invalidate_facets() -> None:
    try:
        await invalidate_filter_options_cache()
    except (RuntimeError, redis.RedisError) as e:
        logger.warning(f"[admin] filter options cache invalidation failed: {e}")


# ============================================================
# Products
# ============================================================


@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    body: ProductCreate,
    principal: Principal = Depends(require_admin),
    products: ProductStore = Depends(get_product_store),
) -> ProductResponse:
    """Create a product with its variants (and images) in one transaction."""
    product = await products.create(body)
    logger.info(f"[admin] product created id={product.id} by user={principal.user_id}")
    await _invalidate_facets()
    return ProductResponse(product=product)


@router.patch("/products/{product_id}", response_model=ProductRowResponse)
async def update_product(
    product_id: int,
    body: ProductUpdate,
    principal: Principal = Depends(require_admin),
    products: ProductStore = Depends(get_product_store),
) -> ProductRowResponse:
    product = await products.update(product_id, Patch.from_model(body))
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
    logger.info(f"[admin] product updated id={product_id} by user={principal.user_id}")
    await _invalidate_facets()
    return ProductRowResponse(product=product)


@router.delete("/products/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    principal: Principal = Depends(require_admin),
    products: ProductStore = Depends(get_product_store),
) -> MessageResponse:
    """Archive a product (soft delete)."""
    if not await products.delete(product_id):
        raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
    logger.info(f"[admin] product archived id={product_id} by user={principal.user_id}")
    await _invalidate_facets()
    return MessageResponse(message="Product deleted")


@router.post("/products/{product_id}/images", response_model=list[ImageOut], status_code=201)
async def add_product_images(
    product_id: int,
    body: list[ImageCreate],
    products: ProductStore = Depends(get_product_store),
) -> list[ImageOut]:
    return await products.add_images(product_id, body)


@router.post("/products/{product_id}/variants", response_model=VariantResponse, status_code=201)
async def create_variant(
    product_id: int,
    body: VariantCreate,
    principal: Principal = Depends(require_admin),
    variants: VariantStore = Depends(get_variant_store),
) -> VariantResponse:
    variant = await variants.create(product_id, body)
    logger.info(f"[admin] variant created id={variant.id} product_id={product_id} by user={principal.user_id}")
    await _invalidate_facets()
    return VariantResponse(variant=variant)


# ============================================================
# Variants and stock
# ============================================================


@router.patch("/variants/{variant_id}", response_model=VariantResponse)
async def update_variant(
    variant_id: int,
    body: VariantUpdate,
    principal: Principal = Depends(require_admin),
    variants: VariantStore = Depends(get_variant_store),
) -> VariantResponse:
    variant = await variants.update(variant_id, Patch.from_model(body))
    if variant is None:
        raise NotFoundError(f"Variant {variant_id} not found", code="VARIANT_NOT_FOUND")
    logger.info(f"[admin] variant updated id={variant_id} by user={principal.user_id}")
    await _invalidate_facets()
    return VariantResponse(variant=variant)


@router.delete("/variants/{variant_id}", response_model=MessageResponse)
async def delete_variant(
    variant_id: int,
    principal: Principal = Depends(require_admin),
    variants: VariantStore = Depends(get_variant_store),
) -> MessageResponse:
    """Deactivate a variant (soft delete)."""
    if not await variants.delete(variant_id):
        raise NotFoundError(f"Variant {variant_id} not found", code="VARIANT_NOT_FOUND")
    logger.info(f"[admin] variant deactivated id={variant_id} by user={principal.user_id}")
    await _invalidate_facets()
    return MessageResponse(message="Variant deleted")


@router.post("/variants/{variant_id}/stock", response_model=StockOperationResponse)
async def stock_operation(
    variant_id: int,
    body: StockOperationRequest,
    principal: Principal = Depends(require_admin),
    stock: StockReservations = Depends(get_stock),
) -> StockOperationResponse:
    """Reserve, release, fulfill or adjust stock of one variant."""
    operation = StockOperation(variant_id=variant_id, **body.model_dump())
    variant = await stock.apply(operation)
    logger.info(
        f"[admin] stock {operation.operation} variant_id={variant_id} qty={operation.quantity} "
        f"by user={principal.user_id}"
    )
    await _invalidate_facets()
    return StockOperationResponse(success=True, operation=operation.operation, variant=variant)


@router.get("/low-stock", response_model=LowStockAlerts)
async def low_stock_alerts(
    product_id: int | None = Query(default=None, alias="productId"),
    catalog: CatalogService = Depends(get_catalog),
) -> LowStockAlerts:
    """Active variants at or below their alert threshold, lowest stock first."""
    return await catalog.low_stock_alerts(product_id)
