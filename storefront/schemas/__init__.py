"""Pydantic schemas for API request/response validation."""

from storefront.schemas.catalog import (
    Availability,
    FilterOptions,
    LowStockAlert,
    Pagination,
    ProductFilters,
    ProductListing,
    ProductOptions,
)
from storefront.schemas.common import ErrorResponse, MessageResponse
from storefront.schemas.product import (
    ImageCreate,
    ImageOut,
    PriceRange,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    ProductWithVariants,
    VariantCreate,
    VariantOut,
    VariantUpdate,
)
from storefront.schemas.stock import StockOperation, StockOperationRequest

__all__ = [
    "Availability",
    "ErrorResponse",
    "FilterOptions",
    "ImageCreate",
    "ImageOut",
    "LowStockAlert",
    "MessageResponse",
    "Pagination",
    "PriceRange",
    "ProductCreate",
    "ProductFilters",
    "ProductListing",
    "ProductOptions",
    "ProductOut",
    "ProductUpdate",
    "ProductWithVariants",
    "StockOperation",
    "StockOperationRequest",
    "VariantCreate",
    "VariantOut",
    "VariantUpdate",
]
