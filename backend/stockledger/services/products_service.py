# backend/stockledger/services/products_service.py
"""
Product Ledger Service

OWNER SCOPING: every operation takes the acting owner_id explicitly.
- A product id that belongs to another owner is reported exactly like a
  missing id (NotFound), so existence never leaks across accounts.

STOCK MUTATIONS:
- restock/adjust/initialize change current_stock and append a
  StockMovement in the same transaction (run_in_transaction).
- restock is a relative increment evaluated by the database; adjust is an
  absolute set by definition.
- update_* never touches current_stock.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import func, update, delete

from ..calculations import calculate_pack, calculate_weight, ProductTotals
from ..errors import DuplicateName, InvalidQuantity, NegativeStock, NotFound, ValidationFailed
from ..extensions import db
from ..models import Product, SaleLine, StockMovement
from ..models.inventory import PRODUCT_TYPE_PACK, PRODUCT_TYPE_WEIGHT, MOVEMENT_IN
from ..validation import (
    QUANTITY_PLACES,
    REASON_MAX_LENGTH,
    PackAttributes,
    WeightAttributes,
    exceeds_places,
    optional_text,
    to_decimal,
)
from .concurrency import lock_for_update, run_in_transaction
from .movement_service import append_movement, movement_for_change
from .pagination import paginate

REASON_RESTOCK = "RESTOCK"
REASON_ADJUSTMENT = "ADJUSTMENT"
REASON_INITIAL_STOCK = "INITIAL_STOCK"

STOCK_SCALE = QUANTITY_PLACES


def _get_owned_product(
    owner_id: int,
    product_id: int,
    *,
    product_type: str | None = None,
    lock: bool = False,
) -> Product:
    query = db.session.query(Product).filter_by(id=product_id, owner_id=owner_id)
    if product_type is not None:
        query = query.filter_by(type=product_type)
    if lock:
        query = lock_for_update(query).populate_existing()
    product = query.first()
    if product is None:
        if product_type is not None:
            raise NotFound(f"{product_type.capitalize()} product not found")
        raise NotFound("Product not found")
    return product


def _ensure_unique_name(owner_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.owner_id == owner_id, Product.name == name)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise DuplicateName("A product with this name already exists", details={"name": name})


def _apply_totals(product: Product, totals: ProductTotals) -> None:
    product.total_units = totals.total_units
    product.total_invested = totals.total_invested
    product.total_profit = totals.total_profit


def _pack_fields(attrs: PackAttributes) -> dict:
    return {
        "name": attrs.name,
        "pack_quantity": attrs.pack_quantity,
        "products_per_pack": attrs.products_per_pack,
        "buy_price_per_pack": attrs.buy_price_per_pack,
        "sell_price_per_unit": attrs.sell_price_per_unit,
    }


def _weight_fields(attrs: WeightAttributes) -> dict:
    return {
        "name": attrs.name,
        "weight_unit": attrs.weight_unit,
        "total_weight": attrs.total_weight,
        "buy_price_per_unit": attrs.buy_price_per_unit,
        "sell_price_per_unit": attrs.sell_price_per_unit,
    }


def _create(owner_id: int, product_type: str, fields: dict, totals: ProductTotals) -> Product:
    def _op():
        _ensure_unique_name(owner_id, fields["name"])

        product = Product(owner_id=owner_id, type=product_type, current_stock=Decimal("0"), **fields)
        _apply_totals(product, totals)
        db.session.add(product)
        db.session.flush()  # ensure product.id exists before the movement append

        if current_app.config.get("SEED_STOCK_ON_CREATE") and totals.total_units > 0:
            _seed_stock(product, actor_user_id=owner_id)

        return product

    product = run_in_transaction(_op, operation="create_product")
    current_app.logger.info("Created %s product id=%s owner_id=%s", product_type, product.id, owner_id)
    return product


def create_pack_product(*, owner_id: int, attrs: PackAttributes) -> Product:
    totals = calculate_pack(
        attrs.pack_quantity, attrs.products_per_pack, attrs.buy_price_per_pack, attrs.sell_price_per_unit
    )
    return _create(owner_id, PRODUCT_TYPE_PACK, _pack_fields(attrs), totals)


def create_weight_product(*, owner_id: int, attrs: WeightAttributes) -> Product:
    totals = calculate_weight(attrs.total_weight, attrs.buy_price_per_unit, attrs.sell_price_per_unit)
    return _create(owner_id, PRODUCT_TYPE_WEIGHT, _weight_fields(attrs), totals)


def _update(owner_id: int, product_id: int, product_type: str, fields: dict, totals: ProductTotals) -> Product:
    def _op():
        product = _get_owned_product(owner_id, product_id, product_type=product_type, lock=True)

        if fields["name"] != product.name:
            _ensure_unique_name(owner_id, fields["name"], exclude_id=product.id)

        for key, value in fields.items():
            setattr(product, key, value)
        _apply_totals(product, totals)
        db.session.flush()
        return product

    return run_in_transaction(_op, operation="update_product")


def update_pack_product(*, owner_id: int, product_id: int, attrs: PackAttributes) -> Product:
    """Update a pack product. A weight product with this id is NotFound here."""
    totals = calculate_pack(
        attrs.pack_quantity, attrs.products_per_pack, attrs.buy_price_per_pack, attrs.sell_price_per_unit
    )
    return _update(owner_id, product_id, PRODUCT_TYPE_PACK, _pack_fields(attrs), totals)


def update_weight_product(*, owner_id: int, product_id: int, attrs: WeightAttributes) -> Product:
    """Update a weight product. A pack product with this id is NotFound here."""
    totals = calculate_weight(attrs.total_weight, attrs.buy_price_per_unit, attrs.sell_price_per_unit)
    return _update(owner_id, product_id, PRODUCT_TYPE_WEIGHT, _weight_fields(attrs), totals)


def delete_product(*, owner_id: int, product_id: int) -> None:
    """
    Hard-delete a product.

    Its movement history goes with it. Past sale lines stay: their
    product_id is cleared and the product_name snapshot remains.
    """
    def _op():
        product = _get_owned_product(owner_id, product_id, lock=True)

        db.session.execute(
            update(SaleLine)
            .where(SaleLine.product_id == product.id)
            .values(product_id=None)
            .execution_options(synchronize_session=False)
        )
        db.session.execute(
            delete(StockMovement)
            .where(StockMovement.product_id == product.id)
            .execution_options(synchronize_session=False)
        )
        db.session.delete(product)

    run_in_transaction(_op, operation="delete_product")
    current_app.logger.info("Deleted product id=%s owner_id=%s", product_id, owner_id)


def get_product(*, owner_id: int, product_id: int) -> Product:
    return _get_owned_product(owner_id, product_id)


def list_products(*, owner_id: int, page: int, limit: int) -> dict:
    """Owner-scoped product page, newest first."""
    query = (
        db.session.query(Product)
        .filter(Product.owner_id == owner_id)
        .order_by(Product.created_at.desc(), Product.id.desc())
    )
    products, pagination = paginate(query, page=page, limit=limit)
    return {
        "items": [p.to_dict() for p in products],
        "pagination": pagination,
    }


def list_available_products(*, owner_id: int) -> list[Product]:
    """Products that can be sold right now (current_stock > 0), by name."""
    return (
        db.session.query(Product)
        .filter(Product.owner_id == owner_id, Product.current_stock > 0)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def _set_stock(product: Product, value) -> Product:
    """Write current_stock in SQL and reload the row inside the open transaction."""
    db.session.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(current_stock=value, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(product)
    return product


def _seed_stock(product: Product, *, actor_user_id: int) -> None:
    previous = product.current_stock
    _set_stock(product, product.total_units)
    append_movement(
        product_id=product.id,
        user_id=actor_user_id,
        type=MOVEMENT_IN,
        quantity=product.current_stock - previous,
        previous_stock=previous,
        new_stock=product.current_stock,
        reason=REASON_INITIAL_STOCK,
        notes="Stock initialized from total units",
    )


def restock_product(
    *,
    owner_id: int,
    product_id: int,
    quantity,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> Product:
    """
    Add quantity to current_stock and log an IN movement.

    The increment is relative (current_stock + quantity evaluated by the
    database), so concurrent restocks never lose updates.
    """
    qty = to_decimal(quantity)
    if qty is None or qty <= 0:
        raise InvalidQuantity("Quantity must be greater than 0", details={"quantity": quantity})
    if exceeds_places(qty, QUANTITY_PLACES):
        raise InvalidQuantity(
            f"Quantity must have at most {QUANTITY_PLACES} decimal places", details={"quantity": str(qty)}
        )
    reason = optional_text(reason, "reason", max_length=REASON_MAX_LENGTH)
    notes = optional_text(notes, "notes")

    def _op():
        product = _get_owned_product(owner_id, product_id, lock=True)
        previous = product.current_stock

        _set_stock(product, func.round(Product.current_stock + qty, STOCK_SCALE))

        append_movement(
            product_id=product.id,
            user_id=owner_id,
            type=MOVEMENT_IN,
            quantity=qty,
            previous_stock=previous,
            new_stock=product.current_stock,
            reason=reason or REASON_RESTOCK,
            notes=notes,
        )
        return product

    product = run_in_transaction(_op, operation="restock_product")
    current_app.logger.info("Restocked product id=%s by %s (now %s)", product.id, qty, product.current_stock)
    return product


def adjust_stock(
    *,
    owner_id: int,
    product_id: int,
    new_stock,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> Product:
    """
    Set current_stock to an absolute value (manual correction).

    The movement is IN when the stock grew or stayed the same, OUT when it
    shrank; its quantity is the absolute difference.
    """
    target = to_decimal(new_stock)
    if target is None:
        raise ValidationFailed("New stock is required", details={"new_stock": "New stock must be a number"})
    if target < 0:
        raise NegativeStock("Stock cannot be negative", details={"new_stock": str(target)})
    if exceeds_places(target, QUANTITY_PLACES):
        raise ValidationFailed(
            "Invalid new stock",
            details={"new_stock": f"New stock must have at most {QUANTITY_PLACES} decimal places"},
        )
    reason = optional_text(reason, "reason", max_length=REASON_MAX_LENGTH)
    notes = optional_text(notes, "notes")

    def _op():
        product = _get_owned_product(owner_id, product_id, lock=True)
        previous = product.current_stock

        _set_stock(product, target)

        movement_type, magnitude = movement_for_change(previous, product.current_stock)
        append_movement(
            product_id=product.id,
            user_id=owner_id,
            type=movement_type,
            quantity=magnitude,
            previous_stock=previous,
            new_stock=product.current_stock,
            reason=reason or REASON_ADJUSTMENT,
            notes=notes,
        )
        return product

    product = run_in_transaction(_op, operation="adjust_stock")
    current_app.logger.info("Adjusted product id=%s stock to %s", product.id, product.current_stock)
    return product


def initialize_stock(*, owner_id: int, product_id: int) -> Product:
    """
    Seed current_stock from total_units for a product that has none yet.

    Products that already hold stock are returned unchanged.
    """
    def _op():
        product = _get_owned_product(owner_id, product_id, lock=True)
        if product.current_stock == 0 and product.total_units > 0:
            _seed_stock(product, actor_user_id=owner_id)
        return product

    return run_in_transaction(_op, operation="initialize_stock")


def initialize_all_stock(*, owner_id: int | None = None) -> list[Product]:
    """
    Backfill stock for every product still at zero.

    Used by the `flask stock init` command for products created before
    stock tracking was switched on. Each seeded product gets an
    INITIAL_STOCK movement attributed to its owner.
    """
    def _op():
        query = db.session.query(Product).filter(Product.current_stock == 0, Product.total_units > 0)
        if owner_id is not None:
            query = query.filter(Product.owner_id == owner_id)
        products = lock_for_update(query.order_by(Product.id.asc())).all()
        for product in products:
            _seed_stock(product, actor_user_id=product.owner_id)
        return products

    products = run_in_transaction(_op, operation="initialize_all_stock")
    current_app.logger.info("Initialized stock for %d products", len(products))
    return products
