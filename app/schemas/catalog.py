from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


PRODUCT_REQUIRED_MESSAGE = "Name and base price are required"
AVAILABLE_REQUIRED_MESSAGE = "Available status is required"
CATEGORY_NAME_REQUIRED_MESSAGE = "Category name is required"


# Requests

class VariantOptionInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)
    price_adjustment: Decimal = Decimal("0")


class VariantGroupInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)
    required: bool = True
    options: list[VariantOptionInput] = Field(default_factory=list)


class ModifierInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)
    removable: bool = True
    addable: bool = False
    extra_price: Decimal = Field(Decimal("0"), ge=0)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    name_ar: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category_id: Optional[int] = None
    base_price: Decimal = Field(..., ge=0)
    image_url: Optional[str] = None
    variant_groups: list[VariantGroupInput] = Field(default_factory=list)
    modifiers: list[ModifierInput] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _require_name_and_price(cls, data: Any) -> Any:
        if isinstance(data, dict) and (not data.get("name") or data.get("base_price") is None):
            raise ValueError(PRODUCT_REQUIRED_MESSAGE)
        return data


class ProductUpdate(BaseModel):
    """Partial update: only the fields sent by the client are applied.

    `variant_groups` / `modifiers`, when sent (even as `[]`), replace the whole
    collection; when omitted the stored rows are left untouched.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_ar: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category_id: Optional[int] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = None
    variant_groups: Optional[list[VariantGroupInput]] = None
    modifiers: Optional[list[ModifierInput]] = None


class AvailabilityUpdate(BaseModel):
    available: bool

    @model_validator(mode="before")
    @classmethod
    def _require_available(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("available") is None:
            raise ValueError(AVAILABLE_REQUIRED_MESSAGE)
        return data


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="before")
    @classmethod
    def _require_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name"):
            raise ValueError(CATEGORY_NAME_REQUIRED_MESSAGE)
        return data


# Responses

class VariantOptionResponse(BaseModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    price_adjustment: float
    sort_order: int


class VariantGroupResponse(BaseModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    required: bool
    sort_order: int
    options: list[VariantOptionResponse] = Field(default_factory=list)


class ModifierResponse(BaseModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    removable: bool
    addable: bool
    extra_price: float
    sort_order: int


class ProductResponse(BaseModel):
    id: int
    business_id: int
    name: str
    name_ar: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    base_price: float
    image_url: Optional[str] = None
    available: bool
    status: str
    variant_groups: list[VariantGroupResponse] = Field(default_factory=list)
    modifiers: list[ModifierResponse] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    business_id: int
    name: str
    name_ar: Optional[str] = None
    sort_order: int
    created_at: Optional[str] = None


class ProductEnvelope(BaseModel):
    success: bool = True
    data: ProductResponse


class ProductListEnvelope(BaseModel):
    success: bool = True
    data: list[ProductResponse]


class CategoryEnvelope(BaseModel):
    success: bool = True
    data: CategoryResponse


class CategoryListEnvelope(BaseModel):
    success: bool = True
    data: list[CategoryResponse]


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str
