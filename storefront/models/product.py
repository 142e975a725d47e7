"""Product model.

A Product carries the catalog identity (name, slug, base price, status) and
owns zero or more variants. Variants and images live in their own tables and
are assembled in code (see services.products).

Example slug: "red-t-shirt"
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from storefront.stores.postgres import Base


class ProductStatus(str, Enum):
    """Product lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"
    ARCHIVED = "archived"  # soft-deleted, terminal


class Product(Base):
    """Catalog product (the aggregate root for its variants)."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("base_price >= 0", name="ck_products_base_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Identity
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)

    # Copy
    description: Mapped[str | None] = mapped_column(Text)
    short_description: Mapped[str | None] = mapped_column(String(500))

    # Pricing (variant.price overrides base_price)
    base_price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False))

    # Classification
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), index=True)
    brand: Mapped[str | None] = mapped_column(String(100), index=True)
    sku_prefix: Mapped[str] = mapped_column(String(50))
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Physical
    weight: Mapped[float | None] = mapped_column(Numeric(8, 3, asdecimal=False))
    dimensions: Mapped[dict[str, Any] | None] = mapped_column(JSON)  # {length, width, height, unit}

    # SEO
    meta_title: Mapped[str | None] = mapped_column(String(255))
    meta_description: Mapped[str | None] = mapped_column(String(500))

    status: Mapped[ProductStatus] = mapped_column(
        SAEnum(
            ProductStatus,
            name="product_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=ProductStatus.ACTIVE,
        index=True,
    )
    is_featured: Mapped[bool] = mapped_column(default=False, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product {self.slug} ({self.status.value})>"
