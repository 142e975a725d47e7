"""Public catalog endpoints.

GET /v1/products                   - Filtered, paginated listing
GET /v1/products/search?q=         - Free-text search over in-stock products
GET /v1/products/featured          - Featured products
GET /v1/products/filters           - Facet summary for listing dropdowns
GET /v1/products/slug/{slug}       - Product detail by slug
GET /v1/products/{id}              - Product detail by id
GET /v1/products/{id}/availability - Stock for an attribute combination
GET /v1/products/{id}/options      - Purchasable colors/sizes/materials

Routers are thin: call services for business logic.
"""

from fastapi import APIRouter, Depends, Query

from storefront.errors import NotFoundError
from storefront.models import ProductStatus
from storefront.schemas.catalog import (
    AttributeAvailability,
    Availability,
    FeaturedProducts,
    FilterOptions,
    ProductFilters,
    ProductListing,
    ProductOptionsResponse,
    SearchListing,
)
from storefront.schemas.product import ProductResponse
from storefront.routes.deps import get_catalog, get_product_store, get_variant_store
from storefront.services import CatalogService, ProductStore, VariantStore
from storefront.settings import get_settings

router = APIRouter()


def listing_filters(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, description="Page size (capped by max_page_size)"),
    category_id: int | None = Query(default=None, alias="categoryId"),
    brand: str | None = Query(default=None),
    is_featured: bool | None = Query(default=None, alias="isFeatured"),
    search: str | None = Query(default=None),
    min_price: float | None = Query(default=None, ge=0, alias="minPrice"),
    max_price: float | None = Query(default=None, ge=0, alias="maxPrice"),
    colors: list[str] | None = Query(default=None, alias="color"),
    sizes: list[str] | None = Query(default=None, alias="size"),
    in_stock_only: bool = Query(default=False, alias="inStock"),
) -> ProductFilters:
    """Listing filters from the query string. Public listings only show active products."""
    settings = get_settings()
    return ProductFilters(
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        category_id=category_id,
        brand=brand,
        status=ProductStatus.ACTIVE,
        is_featured=is_featured,
        search=search,
        min_price=min_price,
        max_price=max_price,
        colors=colors,
        sizes=sizes,
        in_stock_only=in_stock_only,
    )


@router.get("", response_model=ProductListing)
async def list_products(
    filters: ProductFilters = Depends(listing_filters),
    catalog: CatalogService = Depends(get_catalog),
) -> ProductListing:
    """List products (featured first, newest first)."""
    return await catalog.list_products(filters)


@router.get("/search", response_model=SearchListing)
async def search_products(
    q: str = Query(min_length=1, max_length=200, description="Search text (name or description)"),
    filters: ProductFilters = Depends(listing_filters),
    catalog: CatalogService = Depends(get_catalog),
) -> SearchListing:
    return await catalog.search_products(q, filters)


@router.get("/featured", response_model=FeaturedProducts)
async def featured_products(
    limit: int = Query(default=10, ge=1, le=50),
    catalog: CatalogService = Depends(get_catalog),
) -> FeaturedProducts:
    return await catalog.featured_products(limit)


@router.get("/filters", response_model=FilterOptions)
async def filter_options(catalog: CatalogService = Depends(get_catalog)) -> FilterOptions:
    return await catalog.filter_options()


@router.get("/slug/{slug}", response_model=ProductResponse)
async def get_product_by_slug(
    slug: str,
    products: ProductStore = Depends(get_product_store),
) -> ProductResponse:
    product = await products.find_with_variants_by_slug(slug)
    if product is None:
        raise NotFoundError(f"Product '{slug}' not found", code="PRODUCT_NOT_FOUND")
    return ProductResponse(product=product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    products: ProductStore = Depends(get_product_store),
) -> ProductResponse:
    product = await products.find_with_variants(product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
    return ProductResponse(product=product)


@router.get("/{product_id}/availability", response_model=Availability)
async def check_availability(
    product_id: int,
    color: str | None = Query(default=None),
    size: str | None = Query(default=None),
    material: str | None = Query(default=None),
    catalog: CatalogService = Depends(get_catalog),
) -> Availability:
    """Available stock for a (partial) color/size/material combination."""
    return await catalog.check_variant_stock(product_id, color, size, material)


@router.get("/{product_id}/options", response_model=ProductOptionsResponse)
async def get_product_options(
    product_id: int,
    catalog: CatalogService = Depends(get_catalog),
) -> ProductOptionsResponse:
    return ProductOptionsResponse(options=await catalog.get_product_options(product_id))


@router.get("/{product_id}/colors/{color}/sizes", response_model=list[AttributeAvailability])
async def sizes_for_color(
    product_id: int,
    color: str,
    variants: VariantStore = Depends(get_variant_store),
) -> list[AttributeAvailability]:
    return await variants.available_sizes_for_color(product_id, color)


@router.get("/{product_id}/sizes/{size}/colors", response_model=list[AttributeAvailability])
async def colors_for_size(
    product_id: int,
    size: str,
    variants: VariantStore = Depends(get_variant_store),
) -> list[AttributeAvailability]:
    return await variants.available_colors_for_size(product_id, size)
