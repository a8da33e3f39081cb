# poufmaker/api/bids.py
# Роуты ставок. Создание — только обивщик; изменение — по полям (см. services.bids).
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from poufmaker.api.deps import get_db, get_principal
from poufmaker.core.security import Principal
from poufmaker.models.bid import BidStatus
from poufmaker.schemas import BidCreate, BidOut, BidUpdate, MessageOut
from poufmaker.services import bids

router = APIRouter()


@router.get("", response_model=List[BidOut])
def list_bids(
    product_id: str | None = Query(None, alias="productId"),
    upholsterer_id: str | None = Query(None, alias="upholstererId"),
    status_: BidStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    return [BidOut.model_validate(b) for b in bids.list_bids(db, product_id, upholsterer_id, status_)]


@router.post("", response_model=BidOut, status_code=status.HTTP_201_CREATED)
def create_bid(
    payload: BidCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    bid = bids.create_bid(db, principal, payload.product_id, payload.amount, payload.notes)
    return BidOut.model_validate(bid)


@router.get("/{bid_id}", response_model=BidOut)
def get_bid(bid_id: str, db: Session = Depends(get_db)):
    return BidOut.model_validate(bids.get_bid(db, bid_id))


@router.put("/{bid_id}", response_model=BidOut)
def update_bid(
    bid_id: str,
    payload: BidUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return BidOut.model_validate(bids.update_bid(db, principal, bid_id, payload))


@router.delete("/{bid_id}", response_model=MessageOut)
def delete_bid(
    bid_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    bids.delete_bid(db, principal, bid_id)
    return MessageOut(message="Bid deleted successfully")
