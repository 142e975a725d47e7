"""Product image model.

Only URLs and display metadata are stored here; the bytes (and any resized
renditions) belong to the external object storage.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.stores.postgres import Base

IMAGE_TYPES = ("product", "gallery", "thumbnail", "zoom")


class ProductImage(Base):
    """Image reference attached to a product (optionally to one variant)."""

    __tablename__ = "product_images"

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True)
    variant_id: Mapped[int | None] = mapped_column(ForeignKey("product_variants.id"))

    image_url: Mapped[str] = mapped_column(Text)
    alt_text: Mapped[str | None] = mapped_column(String(255))
    image_type: Mapped[str] = mapped_column(String(20), default="product")  # product/gallery/thumbnail/zoom
    sort_order: Mapped[int] = mapped_column(default=0)
    is_primary: Mapped[bool] = mapped_column(default=False)

    # Reported by the storage collaborator, never computed here
    file_size: Mapped[int | None] = mapped_column()
    width: Mapped[int | None] = mapped_column()
    height: Mapped[int | None] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductImage {self.product_id}:{self.sort_order}>"
