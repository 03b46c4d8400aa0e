"""
Sale Engine - multi-line sale processing

A sale goes through fixed stages and may be rejected at any of them before
anything is written:

    Received -> Validated -> Resolved -> Priced -> StockChecked -> Committed
                    \\           \\          \\            \\
                     +-----------+----------+------------+--> Rejected

The commit is a single transaction: sale header, its lines, one guarded
relative stock decrement per line and one OUT movement per line. A guarded
decrement that matches no row (stock went below the requested quantity
after the availability check) aborts the whole transaction.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import func, update

from ..calculations import calculate_sale_totals, generate_sale_number, round_money
from ..errors import InsufficientStock, NotFound, ProductsNotFound, ValidationFailed
from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..models.inventory import MOVEMENT_OUT
from ..models.sales import SALE_STATUS_COMPLETED
from ..time_utils import parse_range_bound, utcnow
from ..validation import SaleItemInput, optional_text, parse_sale_items, validate_stock_availability
from .concurrency import lock_for_update, run_in_transaction
from .movement_service import append_movement
from .pagination import paginate
from .products_service import STOCK_SCALE

REASON_SALE = "SALE"


def _resolve_products(owner_id: int, items: list[SaleItemInput]) -> dict[int, Product]:
    """One owner-scoped read for every referenced product."""
    product_ids = {item.product_id for item in items}
    products = (
        lock_for_update(
            db.session.query(Product).filter(
                Product.owner_id == owner_id,
                Product.id.in_(sorted(product_ids)),
            )
        )
        .populate_existing()
        .all()
    )

    if len(products) != len(product_ids):
        found = {p.id for p in products}
        raise ProductsNotFound(
            "Some products were not found",
            details={"missing_product_ids": sorted(product_ids - found)},
        )
    return {p.id: p for p in products}


def _price_lines(items: list[SaleItemInput], products: dict[int, Product]) -> list[dict]:
    """Fill in the listed sell price where the caller gave none."""
    priced = []
    for item in items:
        unit_price = item.unit_price
        if unit_price is None:
            unit_price = products[item.product_id].sell_price_per_unit
        priced.append({
            "product_id": item.product_id,
            "quantity": item.quantity,
            "unit_price": unit_price,
        })
    return priced


def _decrement_stock(owner_id: int, product_id: int, quantity: Decimal) -> bool:
    """
    Relative decrement guarded by current_stock >= quantity.

    Evaluated by the database at write time; returns False when the guard
    rejected the row.
    """
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.owner_id == owner_id,
            Product.current_stock >= quantity,
        )
        .values(
            current_stock=func.round(Product.current_stock - quantity, STOCK_SCALE),
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def create_sale(*, owner_id: int, items, notes: Optional[str] = None) -> Sale:
    """
    Validate, price and atomically record a sale.

    Raises ValidationFailed, ProductsNotFound, InsufficientStock or
    TransactionAborted; on any of them nothing has been written.
    """
    sale_items = parse_sale_items(items)
    notes = optional_text(notes, "notes")

    def _op():
        products = _resolve_products(owner_id, sale_items)
        priced = _price_lines(sale_items, products)

        stock_check = validate_stock_availability(products.values(), sale_items)
        if not stock_check.is_valid:
            raise InsufficientStock("Insufficient stock for some products", details=stock_check.errors)

        totals = calculate_sale_totals(priced)

        sale = Sale(
            owner_id=owner_id,
            sale_number=generate_sale_number(),
            total_amount=totals.total_amount,
            total_items=totals.total_items,
            status=SALE_STATUS_COMPLETED,
            notes=notes,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        for index, line in enumerate(totals.lines):
            product = products[line.product_id]
            db.session.add(SaleLine(
                sale_id=sale.id,
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            ))

            if not _decrement_stock(owner_id, product.id, line.quantity):
                db.session.refresh(product)
                raise InsufficientStock(
                    "Insufficient stock for some products",
                    details={
                        f"item_{index}_stock": (
                            f"Insufficient stock. Available: {product.current_stock}, "
                            f"Requested: {line.quantity}"
                        )
                    },
                )

            db.session.refresh(product)
            append_movement(
                product_id=product.id,
                user_id=owner_id,
                type=MOVEMENT_OUT,
                quantity=line.quantity,
                previous_stock=product.current_stock + line.quantity,
                new_stock=product.current_stock,
                reason=REASON_SALE,
                notes=f"Sale {sale.sale_number}",
                sale_id=sale.id,
            )

        return sale

    sale = run_in_transaction(_op, operation="create_sale")
    current_app.logger.info(
        "Sale %s committed: owner_id=%s lines=%d total=%s",
        sale.sale_number, owner_id, len(sale_items), sale.total_amount,
    )
    return sale


def get_sale(*, owner_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, owner_id=owner_id).first()
    if sale is None:
        raise NotFound("Sale not found")
    return sale


def list_sales(*, owner_id: int, page: int, limit: int) -> dict:
    """Owner-scoped sales page with lines, newest first."""
    query = (
        db.session.query(Sale)
        .filter(Sale.owner_id == owner_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
    )
    sales, pagination = paginate(query, page=page, limit=limit)
    return {
        "items": [s.to_dict() for s in sales],
        "pagination": pagination,
    }


def _apply_range(query, start_dt: datetime | None, end_dt: datetime | None):
    if start_dt is not None:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(Sale.created_at <= end_dt)
    return query


def sales_summary(
    *,
    owner_id: int,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    recent_limit: int = 5,
) -> dict:
    """
    Totals over COMPLETED sales in the optional inclusive date range, plus
    the most recent sales in that range.
    """
    try:
        start_dt = parse_range_bound(start_date)
        end_dt = parse_range_bound(end_date, end=True)
    except ValueError as exc:
        raise ValidationFailed(
            "Invalid date range",
            details={"date": "Dates must be ISO-8601 (YYYY-MM-DD or full datetime)"},
        ) from exc

    totals_query = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount), 0),
        func.coalesce(func.sum(Sale.total_items), 0),
    ).filter(Sale.owner_id == owner_id, Sale.status == SALE_STATUS_COMPLETED)
    count, revenue, items_sold = _apply_range(totals_query, start_dt, end_dt).one()

    count = int(count or 0)
    revenue = round_money(revenue or 0)
    items_sold = Decimal(str(items_sold or 0))
    average = round_money(revenue / count) if count else round_money(0)

    recent = (
        _apply_range(db.session.query(Sale).filter(Sale.owner_id == owner_id), start_dt, end_dt)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(recent_limit)
        .all()
    )

    return {
        "summary": {
            "total_sales": count,
            "total_revenue": revenue,
            "total_items_sold": items_sold,
            "average_sale": average,
        },
        "recent_sales": [s.to_dict() for s in recent],
    }
