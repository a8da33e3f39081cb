# poufmaker/api/products.py
# Роуты каталога изделий.
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from poufmaker.api.deps import get_db, get_principal
from poufmaker.core.security import Principal
from poufmaker.models.product import ProductStatus
from poufmaker.schemas import MessageOut, ProductCreate, ProductOut, ProductUpdate
from poufmaker.services import products

router = APIRouter()


@router.get("", response_model=List[ProductOut])
def list_products(
    status_: ProductStatus | None = Query(None, alias="status"),
    creator_id: str | None = Query(None, alias="creatorId"),
    db: Session = Depends(get_db),
):
    return [ProductOut.model_validate(p) for p in products.list_products(db, status_, creator_id)]


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return ProductOut.model_validate(products.create_product(db, principal, payload))


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return ProductOut.model_validate(products.get_product(db, product_id))


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return ProductOut.model_validate(products.update_product(db, principal, product_id, payload))


@router.delete("/{product_id}", response_model=MessageOut)
def delete_product(
    product_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    products.delete_product(db, principal, product_id)
    return MessageOut(message="Product deleted successfully")
