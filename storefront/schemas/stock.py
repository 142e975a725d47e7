"""Schemas for stock reservation operations."""

from typing import Literal

from pydantic import BaseModel, Field

from storefront.schemas.product import VariantOut

StockOperationType = Literal["reserve", "release", "fulfill", "adjust"]


class StockOperationRequest(BaseModel):
    """Body of POST /v1/admin/variants/{id}/stock.

    `quantity` is a positive unit count for reserve/release/fulfill and a
    signed delta for adjust.
    """

    operation: StockOperationType
    quantity: int
    reason: str | None = Field(default=None, max_length=200)


class StockOperation(StockOperationRequest):
    """A stock operation bound to a variant."""

    variant_id: int


class StockOperationResponse(BaseModel):
    success: bool
    operation: StockOperationType
    variant: VariantOut
