# poufmaker/services/bids.py
# Журнал ставок: создание, field-scoped обновление и переход "принять ставку".
#
# Принятие ставки — одна транзакция: выбранная ставка -> accepted, все остальные
# ставки по изделию -> rejected, изделию назначается исполнитель. Строка изделия
# блокируется (SELECT ... FOR UPDATE) до чтения статусов, поэтому параллельные
# принятия по одному изделию сериализуются в хранилище.
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from poufmaker.core.errors import Conflict, InvalidRequest, InvalidState, NotFound, Unauthorized
from poufmaker.core.security import Principal
from poufmaker.models.bid import Bid, BidStatus
from poufmaker.models.product import Product, ProductStatus
from poufmaker.schemas import BidUpdate

logger = logging.getLogger(__name__)

UPHOLSTERER_FIELDS = frozenset({"amount", "notes"})
CREATOR_FIELDS = frozenset({"status"})


def _with_relations(query):
    return query.options(
        selectinload(Bid.product).selectinload(Product.creator),
        selectinload(Bid.upholsterer),
    )


def list_bids(
    db: Session,
    product_id: str | None = None,
    upholsterer_id: str | None = None,
    status: BidStatus | None = None,
) -> list[Bid]:
    qs = _with_relations(db.query(Bid))
    if product_id:
        qs = qs.filter(Bid.product_id == product_id)
    if upholsterer_id:
        qs = qs.filter(Bid.upholsterer_id == upholsterer_id)
    if status is not None:
        qs = qs.filter(Bid.status == status)
    return qs.order_by(Bid.created_at.desc()).all()


def get_bid(db: Session, bid_id: str) -> Bid:
    bid = _with_relations(db.query(Bid)).filter(Bid.id == bid_id).first()
    if bid is None:
        raise NotFound("Bid not found")
    return bid


def create_bid(db: Session, principal: Principal, product_id: str, amount: float, notes: str | None = None) -> Bid:
    if not principal.is_upholsterer:
        raise Unauthorized("Only upholsterers can create bids")

    # Та же блокировка строки изделия, что и при принятии ставки:
    # проверка статуса и вставка не пересекаются с параллельным accept.
    product = _locked_product(db, product_id).first()
    if product is None:
        raise NotFound("Product not found")
    if product.status != ProductStatus.ai_generated:
        raise InvalidState("Product is not available for bidding")

    existing = (
        db.query(Bid.id)
        .filter(Bid.product_id == product_id, Bid.upholsterer_id == principal.user_id)
        .first()
    )
    if existing:
        raise Conflict("You have already bid on this product")

    bid = Bid(
        product_id=product_id,
        upholsterer_id=principal.user_id,
        amount=float(amount),
        notes=notes,
        status=BidStatus.pending,
    )
    db.add(bid)
    try:
        db.commit()
    except IntegrityError:
        # уникальный индекс (product_id, upholsterer_id) поймал гонку
        db.rollback()
        raise Conflict("You have already bid on this product")
    logger.info(f"Bid {bid.id} placed on product {product_id} by {principal.user_id}")
    return get_bid(db, bid.id)


def _locked_product(db: Session, product_id: str):
    """SELECT ... FOR UPDATE по изделию (на SQLite сериализует BEGIN IMMEDIATE)."""
    return (
        db.query(Product)
        .filter(Product.id == product_id)
        .populate_existing()
        .with_for_update()
    )


def _lock_bid(db: Session, bid_id: str) -> tuple[Bid, Product]:
    """Блокирует строку изделия, затем перечитывает ставку в этой же транзакции."""
    product_id = db.query(Bid.product_id).filter(Bid.id == bid_id).scalar()
    if product_id is None:
        raise NotFound("Bid not found")
    product = _locked_product(db, product_id).first()
    bid = db.query(Bid).filter(Bid.id == bid_id).populate_existing().first()
    if product is None or bid is None:
        raise NotFound("Bid not found")
    return bid, product


def update_bid(db: Session, principal: Principal, bid_id: str, data: BidUpdate) -> Bid:
    """
    Права на поля:
      - обивщик, сделавший ставку: amount, notes
      - создатель изделия: status
    Поле вне своей области или чужой пользователь -> Unauthorized.
    Пустой набор изменений -> InvalidRequest.
    """
    bid, product = _lock_bid(db, bid_id)

    allowed = set()
    if bid.upholsterer_id == principal.user_id:
        allowed |= UPHOLSTERER_FIELDS
    if product.creator_id == principal.user_id:
        allowed |= CREATOR_FIELDS
    if not allowed:
        raise Unauthorized("Not authorized to update this bid")

    # notes: null очищает заметку; amount/status со значением null игнорируются
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field == "notes"
    }
    forbidden = sorted(set(changes) - allowed)
    if forbidden:
        raise Unauthorized(f"Not authorized to change: {', '.join(forbidden)}")
    if not changes:
        raise InvalidRequest("No valid fields to update")

    new_status = changes.pop("status", None)
    for field, value in changes.items():
        setattr(bid, field, value)

    if new_status is not None:
        _transition(db, bid, product, BidStatus(new_status))

    db.commit()
    return get_bid(db, bid.id)


def _transition(db: Session, bid: Bid, product: Product, new_status: BidStatus) -> None:
    # Только вперёд: pending -> accepted | rejected
    if bid.status != BidStatus.pending or new_status == BidStatus.pending:
        raise InvalidState(
            f"Bid status cannot change from '{bid.status.value}' to '{new_status.value}'"
        )
    if new_status == BidStatus.accepted and product.status != ProductStatus.ai_generated:
        raise InvalidState(
            f"Cannot accept a bid on a product with status '{product.status.value}'"
        )
    bid.status = new_status
    if new_status != BidStatus.accepted:
        return

    rejected = (
        db.query(Bid)
        .filter(Bid.product_id == bid.product_id, Bid.id != bid.id)
        .update({Bid.status: BidStatus.rejected}, synchronize_session="fetch")
    )
    product.manufacturer_id = bid.upholsterer_id
    product.status = ProductStatus.in_progress
    logger.info(
        f"✅ Bid {bid.id} accepted for product {product.id}; {rejected} sibling bid(s) rejected"
    )


def delete_bid(db: Session, principal: Principal, bid_id: str) -> None:
    """
    Удалить может обивщик-автор или создатель изделия, независимо от статуса.
    Если удаляется принятая ставка, у изделия снимается назначенный исполнитель.
    """
    bid, product = _lock_bid(db, bid_id)
    if principal.user_id not in (bid.upholsterer_id, product.creator_id):
        raise Unauthorized("Not authorized to delete this bid")

    if bid.status == BidStatus.accepted and product.manufacturer_id == bid.upholsterer_id:
        product.manufacturer_id = None
    db.delete(bid)
    db.commit()
    logger.info(f"Bid {bid_id} deleted by {principal.user_id}")
