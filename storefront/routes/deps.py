"""FastAPI dependencies shared by the routers.

The `Database` lives on `app.state` (set up in the lifespan); stores are
cheap wrappers around it and are built per request.

Authentication happens upstream: a gateway forwards the authenticated
principal as `X-User-Id` / `X-User-Role` headers and this service only
checks the role.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request

from storefront.services import CatalogService, ProductStore, StockReservations, VariantStore
from storefront.stores.postgres import Database

ADMIN_ROLE = "admin"


def get_database(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=503, detail="Database is not initialized")
    return db


def get_product_store(db: Database = Depends(get_database)) -> ProductStore:
    return ProductStore(db)


def get_variant_store(db: Database = Depends(get_database)) -> VariantStore:
    return VariantStore(db)


def get_stock(db: Database = Depends(get_database)) -> StockReservations:
    return StockReservations(db)


def get_catalog(db: Database = Depends(get_database)) -> CatalogService:
    return CatalogService(db)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def get_principal(
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    role: str | None = Header(default=None, alias="X-User-Role"),
) -> Principal:
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return Principal(user_id=user_id, role=(role or "").lower())


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return principal
