"""Pydantic request/response schemas for the Inventory API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class InitializeStockRequest(BaseModel):
    product_id: int
    initial_quantity: int = Field(ge=0, default=0)
    low_stock_threshold: int | None = Field(ge=0, default=None)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


class StockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    stock_quantity: int
    reserved_quantity: int
    available_quantity: int
    low_stock_threshold: int
    is_low_stock: bool
    last_restocked_date: datetime | None = None
