from __future__ import annotations

from typing import List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductRecord(BaseModel):
    """Persisted mapping from a product name to its accumulated image locations"""
    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(alias="productName")
    images: List[str] = []

    @field_validator("product_name")
    @classmethod
    def validate_product_name(cls, v: str) -> str:
        if not v:
            raise ValueError("productName must not be empty")
        return v


class UploadResponse(BaseModel):
    message: str
    product: ProductRecord


class ErrorResponse(BaseModel):
    error: str
