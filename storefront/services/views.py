"""Derived inventory views over a product and its variants.

Nothing here is persisted; every value is recomputed from variant rows:
- available_colors/sizes/materials: distinct non-empty values over active
  variants that still have available stock
- price_range: min/max effective price (variant.price or base_price)
- total_stock / available_stock: sums of stock and max(0, stock - reserved)
- low_stock_variants: active variants with stock <= min_stock_alert
"""

from collections.abc import Iterable, Sequence

from storefront.schemas.catalog import ColorOption, ProductOptions, SizeOption
from storefront.schemas.product import (
    ImageOut,
    PriceRange,
    ProductOut,
    ProductWithVariants,
    VariantOut,
)


def effective_price(variant: VariantOut, base_price: float) -> float:
    return variant.price if variant.price is not None else base_price


def available_stock(variant: VariantOut) -> int:
    return max(0, variant.stock - variant.reserved_stock)


def _distinct(values: Iterable[str | None]) -> list[str]:
    # Keeps first-seen order (variants arrive sorted by sort_order).
    return list(dict.fromkeys(v for v in values if v))


def assemble(
    product: ProductOut,
    variants: Sequence[VariantOut],
    images: Sequence[ImageOut] = (),
) -> ProductWithVariants:
    """Compose a product row, its variants and images into the full view."""
    priced = [
        v.model_copy(update={"effective_price": effective_price(v, product.base_price)})
        for v in variants
    ]
    active = [v for v in priced if v.is_active]
    in_stock = [v for v in active if available_stock(v) > 0]

    prices = [v.effective_price for v in active]
    if prices:
        price_range = PriceRange(min=min(prices), max=max(prices))
    else:
        price_range = PriceRange(min=product.base_price, max=product.base_price)

    total = sum(v.stock for v in active)
    available = sum(available_stock(v) for v in active)

    return ProductWithVariants(
        **product.model_dump(),
        variants=priced,
        images=list(images),
        available_colors=_distinct(v.color for v in in_stock),
        available_sizes=_distinct(v.size for v in in_stock),
        available_materials=_distinct(v.material for v in in_stock),
        price_range=price_range,
        total_stock=total,
        available_stock=available,
        is_in_stock=available > 0,
        low_stock_variants=[v for v in active if v.stock <= v.min_stock_alert],
    )


def product_options(variants: Sequence[VariantOut]) -> ProductOptions:
    """Group in-stock active variants by color and by size.

    Each color lists the sizes it can be bought in (and the summed available
    stock), each size the colors; materials are listed flat.
    """
    colors: dict[str, tuple[list[str], int]] = {}
    sizes: dict[str, tuple[list[str], int]] = {}
    materials: list[str] = []

    for variant in variants:
        stock = available_stock(variant)
        if not variant.is_active or stock <= 0:
            continue

        if variant.color:
            color_sizes, color_stock = colors.get(variant.color, ([], 0))
            if variant.size and variant.size not in color_sizes:
                color_sizes.append(variant.size)
            colors[variant.color] = (color_sizes, color_stock + stock)

        if variant.size:
            size_colors, size_stock = sizes.get(variant.size, ([], 0))
            if variant.color and variant.color not in size_colors:
                size_colors.append(variant.color)
            sizes[variant.size] = (size_colors, size_stock + stock)

        if variant.material and variant.material not in materials:
            materials.append(variant.material)

    return ProductOptions(
        colors=[
            ColorOption(color=color, available_sizes=s, stock=n) for color, (s, n) in colors.items()
        ],
        sizes=[
            SizeOption(size=size, available_colors=c, stock=n) for size, (c, n) in sizes.items()
        ],
        materials=materials,
    )
