"""Pydantic models for products and request/response payloads."""
from __future__ import annotations

from pydantic import BaseModel, Field


class Product(BaseModel):
    name: str
    price: int
    # Filled by enrichment; the provider never sends these.
    rating: float | None = None
    marketplace: str | None = None


class SearchParams(BaseModel):
    term: str = Field(..., description="Raw search term, also used as the cache key")
    user: str | None = Field(None, description="Login to record in search history")
    low_price: int | None = None
    high_price: int | None = None
    price_order: bool | None = Field(None, description="False = ascending, True = descending")
    name_order: bool | None = Field(None, description="False = ascending, True = descending")
    page: int = 0
    page_size: int = 10
    rating: float | None = None
    marketplace: str | None = None


class ProductsAnswer(BaseModel):
    count: int
    products: list[Product]
