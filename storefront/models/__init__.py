"""SQLAlchemy ORM models.

Models represent database tables:
- categories: Product categories
- products: Catalog products (name, slug, base price, status)
- product_variants: Purchasable SKUs with stock / reserved_stock counters
- product_images: Image URLs and display metadata
"""

from storefront.models.category import Category
from storefront.models.image import IMAGE_TYPES, ProductImage
from storefront.models.product import Product, ProductStatus
from storefront.models.variant import ProductVariant

__all__ = ["Category", "IMAGE_TYPES", "Product", "ProductImage", "ProductStatus", "ProductVariant"]
