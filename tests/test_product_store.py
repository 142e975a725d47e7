"""Tests for the product aggregate (SQLite-backed)."""

import pytest

from storefront.errors import ConflictError, ValidationError
from storefront.models import Category, ProductStatus
from storefront.schemas.product import ImageCreate, ProductCreate, VariantCreate
from storefront.services import ProductStore, StockReservations
from storefront.services.patches import Patch
from storefront.stores.postgres import Database


@pytest.fixture
async def category_id(db: Database) -> int:
    async with db.session() as session:
        category = Category(name="T-Shirts", slug="t-shirts")
        session.add(category)
        await session.flush()
        return category.id


@pytest.mark.asyncio
async def test_create_and_fetch_round_trip(make_product, products: ProductStore, category_id: int):
    created = await make_product(
        "Classic Tee",
        category_id=category_id,
        brand="Northwind",
        tags=["cotton", " cotton ", "basics"],
        variants=[
            {"color": "red", "size": "S", "stock": 5},
            {"color": "red", "size": "M", "stock": 2, "price": 110.0},
            {"color": "blue", "size": "L", "stock": 0, "material": "linen"},
        ],
    )
    assert created.slug == "classic-tee"
    assert created.tags == ["cotton", "basics"]

    fetched = await products.find_with_variants(created.id)
    assert fetched is not None
    assert len(fetched.variants) == 3
    assert [(v.color, v.size) for v in fetched.variants] == [("red", "S"), ("red", "M"), ("blue", "L")]
    assert [v.effective_price for v in fetched.variants] == [100.0, 110.0, 100.0]
    assert fetched.category.slug == "t-shirts"
    assert fetched.price_range.min == 100.0
    assert fetched.price_range.max == 110.0
    assert fetched.available_colors == ["red"]
    assert fetched.available_sizes == ["S", "M"]
    assert fetched.available_materials == []
    assert fetched.total_stock == 7
    assert fetched.available_stock == 7
    assert fetched.is_in_stock is True
    assert [v.size for v in fetched.low_stock_variants] == ["S", "M", "L"]


@pytest.mark.asyncio
async def test_available_stock_tracks_reservations(make_product, products: ProductStore, stock: StockReservations):
    created = await make_product("Tee", variants=[{"color": "red", "stock": 5}, {"color": "blue", "stock": 3}])
    await stock.reserve(created.variants[0].id, 4)
    await stock.reserve(created.variants[1].id, 3)

    fetched = await products.find_with_variants(created.id)
    assert fetched.available_stock == sum(max(0, v.stock - v.reserved_stock) for v in fetched.variants) == 1
    assert fetched.available_colors == ["red"]


@pytest.mark.asyncio
async def test_slug_from_name_and_collision(make_product):
    first = await make_product("Red T-Shirt!!", sku_prefix="RTS")
    assert first.slug == "red-t-shirt"

    with pytest.raises(ConflictError) as exc:
        await make_product("Red T-Shirt!!", sku_prefix="RTS2")
    assert exc.value.code == "DUPLICATE_SLUG"

    second = await make_product("Red T-Shirt!! v2", sku_prefix="RTS2")
    assert second.slug == "red-t-shirt-v2"


@pytest.mark.asyncio
@pytest.mark.parametrize("name,slug", [("!!!", None), ("Tee", "Not A Slug"), ("Tee", "double--hyphen")])
async def test_invalid_slugs_rejected(make_product, name: str, slug: str | None):
    with pytest.raises(ValidationError) as exc:
        await make_product(name, slug=slug, sku_prefix="X")
    assert exc.value.code == "INVALID_SLUG"


@pytest.mark.asyncio
async def test_duplicate_sku_rolls_back_whole_product(make_product, products: ProductStore):
    with pytest.raises(ConflictError):
        await make_product(
            "Broken Tee",
            variants=[{"sku": "DUP-1", "color": "red"}, {"sku": "DUP-1", "color": "blue"}],
        )

    assert await products.find_by_slug("broken-tee") is None
    # Nothing was left behind, so the same payload minus the clash succeeds
    created = await make_product(
        "Broken Tee",
        variants=[{"sku": "DUP-1", "color": "red"}, {"sku": "DUP-2", "color": "blue"}],
    )
    assert len(created.variants) == 2


@pytest.mark.asyncio
async def test_duplicate_attribute_combination_rejected(make_product, products: ProductStore):
    with pytest.raises(ConflictError) as exc:
        await make_product("Twin Tee", variants=[{"sku": "A", "color": "red"}, {"sku": "B", "color": "red"}])
    assert exc.value.code == "DUPLICATE_VARIANT"
    assert await products.find_by_slug("twin-tee") is None


@pytest.mark.asyncio
async def test_explicit_default_variant(make_product):
    created = await make_product(
        "Tee", variants=[{"color": "red"}, {"color": "blue", "is_default": True}, {"color": "green"}]
    )
    assert [v.is_default for v in created.variants] == [False, True, False]

    with pytest.raises(ValidationError):
        await make_product("Tee 2", variants=[{"color": "red", "is_default": True}, {"color": "blue", "is_default": True}])


@pytest.mark.asyncio
async def test_unknown_category_rejected(make_product):
    with pytest.raises(ValidationError):
        await make_product("Tee", category_id=404)


@pytest.mark.asyncio
async def test_product_without_variants(products: ProductStore):
    created = await products.create(ProductCreate(name="Gift Card", base_price=25.0, sku_prefix="GIFT"))
    assert created.variants == []

    fetched = await products.find_with_variants(created.id)
    assert fetched is not None
    assert fetched.variants == []
    assert fetched.price_range.min == 25.0
    assert fetched.price_range.max == 25.0
    assert fetched.total_stock == 0
    assert fetched.available_stock == 0
    assert fetched.is_in_stock is False


def test_product_cannot_be_created_archived():
    with pytest.raises(ValueError):
        ProductCreate(
            name="Tee", base_price=10, sku_prefix="TEE", status="archived", variants=[VariantCreate(color="red")]
        )


@pytest.mark.asyncio
async def test_images_are_stored_and_returned(make_product, products: ProductStore):
    created = await make_product("Tee", images=[ImageCreate(image_url="https://cdn.test/a.jpg", is_primary=True)])
    assert [i.image_url for i in created.images] == ["https://cdn.test/a.jpg"]

    images = await products.add_images(
        created.id,
        [ImageCreate(image_url="https://cdn.test/b.jpg", variant_id=created.variants[0].id, sort_order=1)],
    )
    assert [i.image_url for i in images] == ["https://cdn.test/a.jpg", "https://cdn.test/b.jpg"]
    assert images[1].variant_id == created.variants[0].id


@pytest.mark.asyncio
async def test_image_for_foreign_variant_rejected(make_product, products: ProductStore):
    first = await make_product("Tee")
    second = await make_product("Hoodie")
    with pytest.raises(ValidationError):
        await products.add_images(
            first.id, [ImageCreate(image_url="https://cdn.test/x.jpg", variant_id=second.variants[0].id)]
        )


@pytest.mark.asyncio
async def test_find_by_slug_only_returns_active(make_product, products: ProductStore):
    await make_product("Draft Tee", status=ProductStatus.DRAFT)
    assert await products.find_by_slug("draft-tee") is None
    assert await products.find_with_variants_by_slug("draft-tee") is None

    await make_product("Live Tee")
    assert (await products.find_with_variants_by_slug("live-tee")).name == "Live Tee"


@pytest.mark.asyncio
async def test_update_fields(make_product, products: ProductStore):
    created = await make_product("Tee")
    updated = await products.update(
        created.id, Patch.of(name="Better Tee", base_price=80.0, description=None, is_featured=True)
    )
    assert updated.name == "Better Tee"
    assert updated.base_price == 80.0
    assert updated.is_featured is True
    # Slug stays tied to the original name
    assert updated.slug == "tee"

    fetched = await products.find_with_variants(created.id)
    assert fetched.variants[0].effective_price == 80.0


@pytest.mark.asyncio
async def test_update_ignores_nested_collections_and_same_slug(make_product, products: ProductStore):
    created = await make_product("Tee")
    updated = await products.update(created.id, Patch.of(slug="tee", variants=[], brand="Acme"))
    assert updated.brand == "Acme"


@pytest.mark.asyncio
async def test_slug_is_immutable(make_product, products: ProductStore):
    created = await make_product("Tee")
    with pytest.raises(ValidationError) as exc:
        await products.update(created.id, Patch.of(slug="new-slug"))
    assert exc.value.code == "SLUG_IMMUTABLE"


@pytest.mark.asyncio
async def test_update_unknown_product(products: ProductStore):
    assert await products.update(999, Patch.of(name="x")) is None


@pytest.mark.asyncio
async def test_status_transitions(make_product, products: ProductStore):
    created = await make_product("Tee", status=ProductStatus.DRAFT)
    assert (await products.update(created.id, Patch.of(status=ProductStatus.ACTIVE))).status == ProductStatus.ACTIVE

    await products.update(created.id, Patch.of(status=ProductStatus.ARCHIVED))
    with pytest.raises(ValidationError) as exc:
        await products.update(created.id, Patch.of(status=ProductStatus.ACTIVE))
    assert exc.value.code == "INVALID_STATUS_TRANSITION"


@pytest.mark.asyncio
async def test_delete_archives_product_and_variants(make_product, products: ProductStore, variants):
    created = await make_product("Tee", variants=[{"color": "red", "stock": 1}, {"color": "blue", "stock": 1}])

    assert await products.delete(created.id) is True

    assert await products.find_with_variants(created.id) is None
    archived = await products.find_with_variants(created.id, public=False)
    assert archived.status == ProductStatus.ARCHIVED
    assert archived.variants == []
    assert (await products.find_by_id(created.id)).status == ProductStatus.ARCHIVED
    assert await variants.find_by_product_id(created.id) == []

    assert await products.delete(999) is False
