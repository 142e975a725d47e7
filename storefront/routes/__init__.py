"""API routes."""

from fastapi import APIRouter

from storefront.routes import admin, products
from storefront.schemas.common import ErrorResponse

# Error bodies share the {message, code, detail} shape
PUBLIC_ERRORS = {
    404: {"model": ErrorResponse, "description": "Product not found"},
    422: {"model": ErrorResponse, "description": "Invalid query parameters"},
}
ADMIN_ERRORS = {
    401: {"model": ErrorResponse, "description": "No upstream principal"},
    403: {"model": ErrorResponse, "description": "Principal is not an admin"},
    404: {"model": ErrorResponse, "description": "Product or variant not found"},
    409: {"model": ErrorResponse, "description": "Slug, SKU or stock conflict"},
    422: {"model": ErrorResponse, "description": "Invalid request body"},
}

api_router = APIRouter()

# Public catalog endpoints
api_router.include_router(products.router, prefix="/v1/products", tags=["products"], responses=PUBLIC_ERRORS)

# Admin endpoints (catalog management, stock operations)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"], responses=ADMIN_ERRORS)
