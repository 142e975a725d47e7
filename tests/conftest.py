"""Shared fixtures: a throwaway SQLite database per test plus store factories."""

from pathlib import Path

import pytest

from storefront.schemas.product import ProductCreate, VariantCreate
from storefront.services import CatalogService, ProductStore, StockReservations, VariantStore
from storefront.services.slugs import generate_slug
from storefront.stores.postgres import Database


@pytest.fixture
async def db(tmp_path: Path):
    """File-backed SQLite so concurrent sessions use separate connections."""
    database = Database.from_url(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await database.create_tables()
    yield database
    await database.dispose()


@pytest.fixture
def products(db: Database) -> ProductStore:
    return ProductStore(db)


@pytest.fixture
def variants(db: Database) -> VariantStore:
    return VariantStore(db)


@pytest.fixture
def stock(db: Database) -> StockReservations:
    return StockReservations(db)


@pytest.fixture
def catalog(db: Database) -> CatalogService:
    return CatalogService(db)


@pytest.fixture
def make_product(products: ProductStore):
    """Create a product; variants are given as dicts of VariantCreate fields."""

    async def _make(name: str = "Classic Tee", *, variants: list[dict] | None = None, **fields):
        fields.setdefault("base_price", 100.0)
        fields.setdefault("sku_prefix", generate_slug(name).upper())
        variant_defs = variants if variants is not None else [{"color": "red", "size": "M", "stock": 5}]
        return await products.create(
            ProductCreate(name=name, variants=[VariantCreate(**v) for v in variant_defs], **fields)
        )

    return _make
