# Overview: Service-layer operations for the stock movement log.

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..errors import NotFound
from .pagination import paginate
"""
Stock Movement Log Invariants (authoritative)

- Append-only: rows are inserted, never updated.
- Every movement is written inside the same DB transaction as the stock
  mutation it records; append_movement() flushes but never commits.
- quantity is a magnitude; direction is type IN/OUT.
- Listing is newest-first (created_at desc, id desc).
"""


def append_movement(
    *,
    product_id: int,
    user_id: int,
    type: str,
    quantity: Decimal,
    previous_stock: Decimal,
    new_stock: Decimal,
    reason: str,
    notes: Optional[str] = None,
    sale_id: Optional[int] = None,
) -> StockMovement:
    """
    Append one movement to the caller's open transaction.

    - No commit here; the caller's unit of work owns the commit.
    - No updates/deletes of existing movements.
    """
    if type not in (MOVEMENT_IN, MOVEMENT_OUT):
        raise ValueError(f"invalid movement type {type!r}")
    if quantity < 0:
        raise ValueError("movement quantity is a magnitude and cannot be negative")

    movement = StockMovement(
        product_id=product_id,
        user_id=user_id,
        type=type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        notes=notes,
        sale_id=sale_id,
    )
    db.session.add(movement)
    db.session.flush()  # assigns movement.id without committing
    return movement


def movement_for_change(previous_stock: Decimal, new_stock: Decimal) -> tuple[str, Decimal]:
    """Direction and magnitude of a stock change; a zero change counts as IN."""
    delta = new_stock - previous_stock
    return (MOVEMENT_IN if delta >= 0 else MOVEMENT_OUT), abs(delta)


def list_movements(*, owner_id: int, product_id: int, page: int, limit: int) -> dict:
    """
    Owner-scoped, newest-first page of a product's movements.

    Raises NotFound when the product is missing or owned by someone else.
    """
    product = db.session.query(Product.id).filter_by(id=product_id, owner_id=owner_id).first()
    if product is None:
        raise NotFound("Product not found")

    query = (
        db.session.query(StockMovement)
        .options(joinedload(StockMovement.user))
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    )
    movements, pagination = paginate(query, page=page, limit=limit)

    return {
        "items": [m.to_dict() for m in movements],
        "pagination": pagination,
    }
