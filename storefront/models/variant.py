"""Product variant model.

A variant is one purchasable SKU of a product (e.g. red / M / cotton) with
its own stock counters:

    available_stock = stock - reserved_stock

Stock counters change only through services.stock (reserve/release/fulfill/
adjust) or an explicit administrative correction.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.stores.postgres import Base


class ProductVariant(Base):
    """Purchasable SKU of a product."""

    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_variants_stock_non_negative"),
        CheckConstraint("reserved_stock >= 0", name="ck_product_variants_reserved_non_negative"),
        CheckConstraint("reserved_stock <= stock", name="ck_product_variants_reserved_within_stock"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True)

    # Globally unique SKU (e.g., "TSHIRT-RED-M")
    sku: Mapped[str] = mapped_column(String(100), unique=True, index=True)

    # Attributes (each optional)
    color: Mapped[str | None] = mapped_column(String(50), index=True)
    size: Mapped[str | None] = mapped_column(String(20), index=True)
    material: Mapped[str | None] = mapped_column(String(100))

    # Pricing (None -> product.base_price)
    price: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False))
    cost_price: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False))

    # Inventory
    stock: Mapped[int] = mapped_column(default=0)
    reserved_stock: Mapped[int] = mapped_column(default=0)
    min_stock_alert: Mapped[int] = mapped_column(default=5)

    # Logistics
    weight: Mapped[float | None] = mapped_column(Numeric(8, 3, asdecimal=False))
    barcode: Mapped[str | None] = mapped_column(String(100))
    supplier_sku: Mapped[str | None] = mapped_column(String(100))

    is_active: Mapped[bool] = mapped_column(default=True, index=True)
    is_default: Mapped[bool] = mapped_column(default=False)
    sort_order: Mapped[int] = mapped_column(default=0)

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

    @property
    def available_stock(self) -> int:
        return max(0, self.stock - self.reserved_stock)

    def __repr__(self) -> str:
        return f"<ProductVariant {self.sku} {self.stock - self.reserved_stock}/{self.stock}>"
