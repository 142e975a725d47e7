"""Schemas for products, variants and images.

Write schemas (`*Create`, `*Update`) validate admin input; read schemas
(`*Out`, `ProductWithVariants`) are built from ORM rows with
`from_attributes=True` while the session is still open.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.models.product import ProductStatus

ImageType = Literal["product", "gallery", "thumbnail", "zoom"]


class Dimensions(BaseModel):
    """Package dimensions (L x W x H)."""

    length: float = Field(ge=0)
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    unit: str = "cm"


# ============================================================
# Write schemas
# ============================================================


class VariantCreate(BaseModel):
    """A variant supplied on product creation or added later."""

    sku: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, max_length=50)
    size: str | None = Field(default=None, max_length=20)
    material: str | None = Field(default=None, max_length=100)
    price: float | None = Field(default=None, ge=0)
    cost_price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    min_stock_alert: int | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    barcode: str | None = Field(default=None, max_length=100)
    supplier_sku: str | None = Field(default=None, max_length=100)
    is_default: bool | None = None
    sort_order: int | None = None


class VariantUpdate(BaseModel):
    """Partial variant update. Only fields present in the body are written.

    `stock` / `reserved_stock` here are administrative corrections; checkout
    flows go through the stock endpoint instead.
    """

    sku: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, max_length=50)
    size: str | None = Field(default=None, max_length=20)
    material: str | None = Field(default=None, max_length=100)
    price: float | None = Field(default=None, ge=0)
    cost_price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    reserved_stock: int | None = Field(default=None, ge=0)
    min_stock_alert: int | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    barcode: str | None = Field(default=None, max_length=100)
    supplier_sku: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None
    is_default: bool | None = None
    sort_order: int | None = None


class ImageCreate(BaseModel):
    """Image reference produced by the upload collaborator."""

    variant_id: int | None = None
    image_url: str = Field(min_length=1)
    alt_text: str | None = Field(default=None, max_length=255)
    image_type: ImageType = "product"
    sort_order: int = 0
    is_primary: bool = False
    file_size: int | None = Field(default=None, ge=0)
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)


class ProductCreate(BaseModel):
    """Product with its nested variants (and optional images)."""

    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)
    base_price: float = Field(ge=0)
    category_id: int | None = None
    brand: str | None = Field(default=None, max_length=100)
    sku_prefix: str = Field(min_length=1, max_length=50)
    weight: float | None = Field(default=None, ge=0)
    dimensions: Dimensions | None = None
    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = Field(default=None, max_length=500)
    status: ProductStatus = ProductStatus.ACTIVE
    is_featured: bool = False
    tags: list[str] = Field(default_factory=list)
    variants: list[VariantCreate] = Field(default_factory=list)
    images: list[ImageCreate] = Field(default_factory=list)

    @field_validator("status")
    @classmethod
    def _not_archived(cls, v: ProductStatus) -> ProductStatus:
        if v == ProductStatus.ARCHIVED:
            raise ValueError("products cannot be created archived")
        return v

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class ProductUpdate(BaseModel):
    """Partial product update. Variant/image sub-objects are ignored."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)
    base_price: float | None = Field(default=None, ge=0)
    category_id: int | None = None
    brand: str | None = Field(default=None, max_length=100)
    sku_prefix: str | None = Field(default=None, min_length=1, max_length=50)
    weight: float | None = Field(default=None, ge=0)
    dimensions: Dimensions | None = None
    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = Field(default=None, max_length=500)
    status: ProductStatus | None = None
    is_featured: bool | None = None
    tags: list[str] | None = None


# ============================================================
# Read schemas
# ============================================================


class CategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class VariantOut(BaseModel):
    """Variant as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    sku: str
    color: str | None = None
    size: str | None = None
    material: str | None = None
    price: float | None = None
    cost_price: float | None = None
    stock: int
    reserved_stock: int
    available_stock: int
    min_stock_alert: int
    weight: float | None = None
    barcode: str | None = None
    supplier_sku: str | None = None
    is_active: bool
    is_default: bool
    sort_order: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Filled when the parent product is known (price or base_price)
    effective_price: float | None = None


class ImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    variant_id: int | None = None
    image_url: str
    alt_text: str | None = None
    image_type: str
    sort_order: int
    is_primary: bool
    file_size: int | None = None
    width: int | None = None
    height: int | None = None
    created_at: datetime | None = None


class ProductOut(BaseModel):
    """Product row without variants."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: str | None = None
    short_description: str | None = None
    base_price: float
    category_id: int | None = None
    brand: str | None = None
    sku_prefix: str
    weight: float | None = None
    dimensions: dict[str, Any] | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    status: ProductStatus
    is_featured: bool
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    category: CategorySummary | None = None


class PriceRange(BaseModel):
    min: float
    max: float


class ProductWithVariants(ProductOut):
    """Product + active variants + images + derived inventory view."""

    variants: list[VariantOut] = Field(default_factory=list)
    images: list[ImageOut] = Field(default_factory=list)
    available_colors: list[str] = Field(default_factory=list)
    available_sizes: list[str] = Field(default_factory=list)
    available_materials: list[str] = Field(default_factory=list)
    price_range: PriceRange
    total_stock: int = 0
    available_stock: int = 0
    is_in_stock: bool = False
    low_stock_variants: list[VariantOut] = Field(default_factory=list)


class ProductResponse(BaseModel):
    """Single-product envelope: {"product": {...}}."""

    product: ProductWithVariants


class ProductRowResponse(BaseModel):
    """Envelope for admin writes that return the bare product row."""

    product: ProductOut


class VariantResponse(BaseModel):
    variant: VariantOut
