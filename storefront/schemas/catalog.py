"""Schemas for catalog listings, options and availability."""

from pydantic import BaseModel, Field

from storefront.models.product import ProductStatus
from storefront.schemas.product import CategorySummary, PriceRange, ProductWithVariants


class ProductFilters(BaseModel):
    """Listing filters. All optional and AND-combined."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    category_id: int | None = None
    brand: str | None = None  # case-insensitive substring
    status: ProductStatus = ProductStatus.ACTIVE
    is_featured: bool | None = None
    search: str | None = None  # name OR description, case-insensitive substring
    min_price: float | None = Field(default=None, ge=0)  # against base_price
    max_price: float | None = Field(default=None, ge=0)
    colors: list[str] | None = None
    sizes: list[str] | None = None
    in_stock_only: bool = False


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class FilterOptions(BaseModel):
    """Facet summary shown next to a listing."""

    categories: list[CategorySummary] = Field(default_factory=list)
    brands: list[str] = Field(default_factory=list)
    price_range: PriceRange = Field(default_factory=lambda: PriceRange(min=0, max=0))
    colors: list[str] = Field(default_factory=list)
    sizes: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)


class ProductListing(BaseModel):
    """Response payload for listing endpoints."""

    products: list[ProductWithVariants]
    pagination: Pagination
    filters: FilterOptions


class SearchListing(ProductListing):
    query: str


class FeaturedProducts(BaseModel):
    products: list[ProductWithVariants]
    count: int


class ColorOption(BaseModel):
    color: str
    available_sizes: list[str]
    stock: int


class SizeOption(BaseModel):
    size: str
    available_colors: list[str]
    stock: int


class ProductOptions(BaseModel):
    """Selectable attribute values (only combinations with stock)."""

    colors: list[ColorOption] = Field(default_factory=list)
    sizes: list[SizeOption] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)


class ProductOptionsResponse(BaseModel):
    options: ProductOptions


class AttributeAvailability(BaseModel):
    """One size-for-color or color-for-size row."""

    value: str
    stock: int
    price: float


class AvailabilityVariant(BaseModel):
    id: int
    sku: str
    price: float


class Availability(BaseModel):
    """Result of an attribute-combination stock check."""

    available: bool
    stock: int
    variant: AvailabilityVariant | None = None


class LowStockAlert(BaseModel):
    product_id: int
    product_name: str
    variant_id: int
    variant_sku: str
    color: str | None = None
    size: str | None = None
    current_stock: int
    min_stock_alert: int


class LowStockAlerts(BaseModel):
    alerts: list[LowStockAlert]
    count: int
