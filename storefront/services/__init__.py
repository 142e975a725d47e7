"""Business logic services.

Services contain all business logic and are called by routes.
Every store takes a `Database` handle explicitly; none of them reach for
module-level state except the optional Redis facet cache.
"""

from storefront.services.catalog import CatalogService
from storefront.services.products import ProductStore
from storefront.services.stock import StockReservations
from storefront.services.variants import VariantStore

__all__ = [
    "CatalogService",
    "ProductStore",
    "StockReservations",
    "VariantStore",
]
