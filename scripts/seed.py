#!/usr/bin/env python3
"""Seed database with a demo catalog.

Creates:
- A handful of categories
- Apparel products with color/size variants and stock
- One featured product so the featured listing isn't empty

Seed script is idempotent: categories and products are matched by slug and
skipped when they already exist.

Usage:
    python -m scripts.seed
    python -m scripts.seed --create-tables   # dev databases without migrations
"""

import argparse
import asyncio
import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from sqlalchemy import select

from storefront.errors import ConflictError
from storefront.models import Category
from storefront.schemas.product import ImageCreate, ProductCreate, VariantCreate
from storefront.services import ProductStore
from storefront.services.slugs import generate_slug
from storefront.stores.postgres import Database

load_dotenv()

# ============================================================
# Catalog definitions
# ============================================================

CATEGORIES = [
    {"name": "T-Shirts", "sort_order": 1},
    {"name": "Hoodies", "sort_order": 2},
    {"name": "Accessories", "sort_order": 3},
]

SIZES = ["S", "M", "L", "XL"]

PRODUCTS = [
    {
        "name": "Classic Crew Tee",
        "category": "T-Shirts",
        "brand": "Northwind",
        "sku_prefix": "TEE-CREW",
        "base_price": 24.0,
        "is_featured": True,
        "tags": ["cotton", "basics"],
        "colors": {"black": 25, "white": 18, "red": 6},
        "material": "cotton",
    },
    {
        "name": "Heavyweight Hoodie",
        "category": "Hoodies",
        "brand": "Northwind",
        "sku_prefix": "HOOD-HW",
        "base_price": 69.0,
        "tags": ["fleece"],
        "colors": {"grey": 10, "navy": 4},
        "material": "fleece",
        "xl_surcharge": 5.0,
    },
    {
        "name": "Canvas Tote",
        "category": "Accessories",
        "brand": "Harbor",
        "sku_prefix": "TOTE",
        "base_price": 18.0,
        "tags": ["canvas"],
        "colors": {"natural": 40},
        "material": "canvas",
        "one_size": True,
    },
]


def _variants(definition: dict) -> list[VariantCreate]:
    variants: list[VariantCreate] = []
    sizes = [None] if definition.get("one_size") else SIZES
    for color, stock in definition["colors"].items():
        for size in sizes:
            price = None
            if size == "XL" and definition.get("xl_surcharge"):
                price = definition["base_price"] + definition["xl_surcharge"]
            variants.append(
                VariantCreate(
                    color=color,
                    size=size,
                    material=definition.get("material"),
                    price=price,
                    stock=stock,
                )
            )
    return variants


async def seed_categories(db: Database) -> dict[str, int]:
    """Create categories; return name -> id."""
    category_map: dict[str, int] = {}
    async with db.session() as session:
        for c in CATEGORIES:
            slug = generate_slug(c["name"])
            existing = await session.scalar(select(Category).where(Category.slug == slug))
            if existing:
                category_map[c["name"]] = existing.id
                print(f"  ⏭️  {c['name']} (exists)")
                continue
            category = Category(name=c["name"], slug=slug, sort_order=c["sort_order"])
            session.add(category)
            await session.flush()
            category_map[c["name"]] = category.id
            print(f"  ✅ {c['name']}")
    return category_map


async def seed_products(db: Database, category_map: dict[str, int]) -> None:
    products = ProductStore(db)
    for p in PRODUCTS:
        slug = generate_slug(p["name"])
        data = ProductCreate(
            name=p["name"],
            base_price=p["base_price"],
            category_id=category_map.get(p["category"]),
            brand=p["brand"],
            sku_prefix=p["sku_prefix"],
            is_featured=p.get("is_featured", False),
            tags=p["tags"],
            variants=_variants(p),
            images=[
                ImageCreate(
                    image_url=f"https://cdn.example.com/products/{slug}/main.jpg",
                    alt_text=p["name"],
                    is_primary=True,
                )
            ],
        )
        try:
            product = await products.create(data)
        except ConflictError:
            print(f"  ⏭️  {p['name']} (exists)")
            continue
        print(f"  ✅ {product.name} ({len(product.variants)} variants, {product.available_stock} in stock)")


async def seed_database(create_tables: bool = False) -> None:
    """Seed the database with the demo catalog."""
    db = Database.from_settings()
    try:
        if create_tables:
            await db.create_tables()

        print("🌱 Seeding database...")

        print("\n🗂️  Creating categories...")
        category_map = await seed_categories(db)

        print("\n👕 Creating products...")
        await seed_products(db, category_map)

        print("\n✅ Database seeded successfully!")
    finally:
        await db.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the storefront database with a demo catalog")
    parser.add_argument("--create-tables", action="store_true", help="Create tables before seeding")
    args = parser.parse_args()
    asyncio.run(seed_database(create_tables=args.create_tables))
