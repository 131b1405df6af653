from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from app.deps import BusinessScope, get_business_scope, get_catalog_service
from app.schemas.catalog import (
    AvailabilityUpdate,
    CategoryCreate,
    CategoryEnvelope,
    CategoryListEnvelope,
    MessageEnvelope,
    ProductCreate,
    ProductEnvelope,
    ProductListEnvelope,
    ProductUpdate,
)
from app.services.catalog import CatalogService

router = APIRouter(prefix="/api/products", tags=["products"])

PRODUCT_NOT_FOUND = "Product not found"
# pos_products.id is a 32-bit INTEGER column
MAX_PRODUCT_ID = 2**31 - 1

ProductId = Annotated[int, Path(ge=1, le=MAX_PRODUCT_ID)]


def _product_or_404(product: dict | None) -> dict:
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PRODUCT_NOT_FOUND)
    return product


@router.get("", response_model=ProductListEnvelope)
def list_products(
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"success": True, "data": service.get_products(scope.business_id)}


# Declared before "/{product_id}" so "categories" is not parsed as an id.
@router.get("/categories", response_model=CategoryListEnvelope)
def list_categories(
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"success": True, "data": service.get_categories(scope.business_id)}


@router.post("/categories", response_model=CategoryEnvelope, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    category = service.create_category(scope.business_id, payload.name, payload.name_ar)
    return {"success": True, "data": category}


@router.get("/{product_id}", response_model=ProductEnvelope)
def get_product(
    product_id: ProductId,
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    product = _product_or_404(service.get_product(product_id, scope.business_id))
    return {"success": True, "data": product}


@router.post("", response_model=ProductEnvelope, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    product = service.create_product(scope.business_id, payload)
    return {"success": True, "data": product}


@router.put("/{product_id}", response_model=ProductEnvelope)
def update_product(
    product_id: ProductId,
    payload: ProductUpdate,
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    product = _product_or_404(service.update_product(product_id, scope.business_id, payload))
    return {"success": True, "data": product}


@router.delete("/{product_id}", response_model=MessageEnvelope)
def delete_product(
    product_id: ProductId,
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    if not service.delete_product(product_id, scope.business_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PRODUCT_NOT_FOUND)
    return {"success": True, "message": "Product deleted"}


@router.patch("/{product_id}/availability", response_model=ProductEnvelope)
def toggle_availability(
    product_id: ProductId,
    payload: AvailabilityUpdate,
    scope: BusinessScope = Depends(get_business_scope),
    service: CatalogService = Depends(get_catalog_service),
):
    product = _product_or_404(service.toggle_availability(product_id, scope.business_id, payload.available))
    return {"success": True, "data": product}
