# poufmaker/services/products.py
# Каталог изделий: чтение открыто всем, изменение и удаление — только создателю.
import logging

from sqlalchemy.orm import Session, selectinload

from poufmaker.core.errors import InvalidRequest, NotFound, Unauthorized
from poufmaker.core.security import Principal
from poufmaker.models.bid import Bid
from poufmaker.models.product import Product, ProductStatus
from poufmaker.schemas import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def _with_relations(query):
    return query.options(
        selectinload(Product.creator),
        selectinload(Product.manufacturer),
        selectinload(Product.bids).selectinload(Bid.upholsterer),
    )


def list_products(db: Session, status: ProductStatus | None = None, creator_id: str | None = None) -> list[Product]:
    qs = _with_relations(db.query(Product))
    if status is not None:
        qs = qs.filter(Product.status == status)
    if creator_id:
        qs = qs.filter(Product.creator_id == creator_id)
    return qs.order_by(Product.created_at.desc()).all()


def get_product(db: Session, product_id: str) -> Product:
    product = _with_relations(db.query(Product)).filter(Product.id == product_id).first()
    if product is None:
        raise NotFound("Product not found")
    return product


def _owned_product(db: Session, principal: Principal, product_id: str, action: str) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise NotFound("Product not found")
    if product.creator_id != principal.user_id:
        raise Unauthorized(f"Not authorized to {action} this product")
    return product


def create_product(db: Session, principal: Principal, data: ProductCreate) -> Product:
    product = Product(
        title=data.title,
        description=data.description,
        price=data.price,
        image_url=data.image_url,
        status=data.status,
        creator_id=principal.user_id,
    )
    db.add(product)
    db.commit()
    logger.info(f"Product {product.id} created by {principal.user_id}")
    return get_product(db, product.id)


def update_product(db: Session, principal: Principal, product_id: str, data: ProductUpdate) -> Product:
    product = _owned_product(db, principal, product_id, "update")
    changes = data.model_dump(exclude_unset=True)
    # price можно сбросить явным null, остальные поля null не принимают
    changes = {k: v for k, v in changes.items() if v is not None or k == "price"}
    if not changes:
        raise InvalidRequest("No valid fields to update")
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    return get_product(db, product.id)


def delete_product(db: Session, principal: Principal, product_id: str) -> None:
    product = _owned_product(db, principal, product_id, "delete")
    db.delete(product)
    db.commit()
    logger.info(f"Product {product_id} deleted by {principal.user_id}")
