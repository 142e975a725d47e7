"""Tests for the variant store (SQLite-backed)."""

import pytest

from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.schemas.product import VariantCreate
from storefront.services import ProductStore, StockReservations, VariantStore
from storefront.services.patches import Patch

TEE_VARIANTS = [
    {"color": "red", "size": "S", "stock": 5},
    {"color": "red", "size": "M", "stock": 0},
    {"color": "blue", "size": "S", "stock": 3, "price": 120.0},
]


@pytest.mark.asyncio
async def test_lookups_by_id_sku_and_product(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS, sku_prefix="TEE")
    first = product.variants[0]

    assert (await variants.find_by_id(first.id)).sku == "TEE-RED-S"
    assert (await variants.find_by_sku("TEE-BLUE-S")).price == 120.0
    assert await variants.find_by_sku("NOPE") is None

    listed = await variants.find_by_product_id(product.id)
    assert [v.sku for v in listed] == ["TEE-RED-S", "TEE-RED-M", "TEE-BLUE-S"]
    assert [v.sort_order for v in listed] == [1, 2, 3]


@pytest.mark.asyncio
async def test_first_variant_is_default(make_product):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    assert [v.is_default for v in product.variants] == [True, False, False]


@pytest.mark.asyncio
async def test_check_stock_partial_filters(make_product, variants: VariantStore, stock: StockReservations):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    await stock.reserve(product.variants[2].id, 1)

    assert await variants.check_stock(product.id) == 5 + 0 + 2
    assert await variants.check_stock(product.id, color="red") == 5
    assert await variants.check_stock(product.id, color="red", size="M") == 0
    assert await variants.check_stock(product.id, size="S") == 7
    assert await variants.check_stock(product.id, color="green") == 0


@pytest.mark.asyncio
async def test_find_by_attributes(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS, sku_prefix="TEE")
    assert (await variants.find_by_attributes(product.id, color="red")).sku == "TEE-RED-S"
    assert (await variants.find_by_attributes(product.id, color="red", size="M")).sku == "TEE-RED-M"
    assert await variants.find_by_attributes(product.id, color="red", size="XL") is None


@pytest.mark.asyncio
async def test_available_sizes_and_colors(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS)

    sizes = await variants.available_sizes_for_color(product.id, "red")
    assert [(s.value, s.stock, s.price) for s in sizes] == [("S", 5, 100.0)]

    colors = await variants.available_colors_for_size(product.id, "S")
    assert [(c.value, c.stock, c.price) for c in colors] == [("red", 5, 100.0), ("blue", 3, 120.0)]


@pytest.mark.asyncio
async def test_create_variant_on_existing_product(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS, sku_prefix="TEE")

    created = await variants.create(product.id, VariantCreate(color="green", size="L", stock=4, is_default=True))
    assert created.sku == "TEE-GREEN-L"
    assert created.sort_order == 4
    assert created.min_stock_alert == 5
    assert created.reserved_stock == 0

    defaults = [v.id for v in await variants.find_by_product_id(product.id) if v.is_default]
    assert defaults == [created.id]


@pytest.mark.asyncio
async def test_create_variant_conflicts(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS, sku_prefix="TEE")

    with pytest.raises(ConflictError) as exc:
        await variants.create(product.id, VariantCreate(color="red", size="S"))
    assert exc.value.code == "DUPLICATE_SKU"

    with pytest.raises(ConflictError) as exc:
        await variants.create(product.id, VariantCreate(sku="OTHER-SKU", color="red", size="S"))
    assert exc.value.code == "DUPLICATE_VARIANT"


@pytest.mark.asyncio
async def test_create_variant_for_unknown_or_archived_product(make_product, products: ProductStore, variants: VariantStore):
    with pytest.raises(NotFoundError):
        await variants.create(999, VariantCreate(color="red"))

    product = await make_product("Tee")
    await products.delete(product.id)
    with pytest.raises(NotFoundError):
        await variants.create(product.id, VariantCreate(color="blue"))


@pytest.mark.asyncio
async def test_update_variant(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    variant = product.variants[0]

    updated = await variants.update(variant.id, Patch.of(price=89.5, barcode="400123"))
    assert updated.price == 89.5
    assert updated.barcode == "400123"
    assert updated.stock == 5

    # Clearing the override restores the base price
    cleared = await variants.update(variant.id, Patch.of(price=None))
    assert cleared.price is None


@pytest.mark.asyncio
async def test_update_variant_keeps_reserved_within_stock(make_product, variants: VariantStore, stock: StockReservations):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    variant = product.variants[0]
    await stock.reserve(variant.id, 4)

    with pytest.raises(ValidationError) as exc:
        await variants.update(variant.id, Patch.of(stock=3))
    assert exc.value.code == "RESERVED_EXCEEDS_STOCK"

    with pytest.raises(ValidationError):
        await variants.update(variant.id, Patch.of(stock=2, reserved_stock=3))

    corrected = await variants.update(variant.id, Patch.of(stock=10))
    assert corrected.stock == 10
    assert corrected.reserved_stock == 4


@pytest.mark.asyncio
async def test_deactivated_variant_can_be_reactivated(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    variant = product.variants[2]
    assert await variants.delete(variant.id) is True

    # Inactive variants only accept a reactivating patch
    assert await variants.update(variant.id, Patch.of(price=99.0)) is None

    restored = await variants.update(variant.id, Patch.of(is_active=True))
    assert restored is not None
    assert restored.is_active is True
    assert (await variants.find_by_id(variant.id)).stock == 3


@pytest.mark.asyncio
async def test_reactivation_rejects_duplicate_attributes(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    retired = product.variants[2]
    await variants.delete(retired.id)
    await variants.create(product.id, VariantCreate(sku="TEE-BLUE-S-2", color="blue", size="S", stock=1))

    with pytest.raises(ConflictError) as exc:
        await variants.update(retired.id, Patch.of(is_active=True))
    assert exc.value.code == "DUPLICATE_VARIANT"


@pytest.mark.asyncio
async def test_update_rejects_duplicate_attributes(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    red_m = product.variants[1]

    with pytest.raises(ConflictError) as exc:
        await variants.update(red_m.id, Patch.of(size="S"))
    assert exc.value.code == "DUPLICATE_VARIANT"

    moved = await variants.update(red_m.id, Patch.of(size="L"))
    assert moved.size == "L"


@pytest.mark.asyncio
async def test_default_variant_cannot_be_unset(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    default, other = product.variants[0], product.variants[1]

    with pytest.raises(ValidationError) as exc:
        await variants.update(default.id, Patch.of(is_default=False))
    assert exc.value.code == "DEFAULT_VARIANT_REQUIRED"

    # Moving the flag to a sibling clears it on the old default
    await variants.update(other.id, Patch.of(is_default=True))
    defaults = [v.id for v in await variants.find_by_product_id(product.id) if v.is_default]
    assert defaults == [other.id]


@pytest.mark.asyncio
async def test_update_variant_rejects_taken_sku(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS, sku_prefix="TEE")
    with pytest.raises(ConflictError):
        await variants.update(product.variants[0].id, Patch.of(sku="TEE-BLUE-S"))


@pytest.mark.asyncio
async def test_update_unknown_variant_returns_none(variants: VariantStore):
    assert await variants.update(12345, Patch.of(price=1.0)) is None


@pytest.mark.asyncio
async def test_soft_delete(make_product, variants: VariantStore):
    product = await make_product("Tee", variants=TEE_VARIANTS)
    variant = product.variants[0]

    assert await variants.delete(variant.id) is True
    assert await variants.find_by_id(variant.id) is None
    assert len(await variants.find_by_product_id(product.id)) == 2
    assert len(await variants.find_by_product_id(product.id, active_only=False)) == 3

    # Repeating is harmless; unknown ids report False
    assert await variants.delete(variant.id) is True
    assert await variants.delete(999) is False


@pytest.mark.asyncio
async def test_low_stock(make_product, variants: VariantStore):
    product = await make_product(
        "Tee",
        variants=[
            {"color": "red", "stock": 2},
            {"color": "blue", "stock": 50},
            {"color": "green", "stock": 8, "min_stock_alert": 10},
        ],
        sku_prefix="TEE",
    )

    alerts = await variants.low_stock(product.id)
    assert [(a.variant_sku, a.current_stock) for a in alerts] == [("TEE-RED", 2), ("TEE-GREEN", 8)]
    assert alerts[0].product_name == "Tee"
