# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockledger/routes/sales.py
"""Sales API routes, scoped to the authenticated owner."""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..services import products_service, sales_service
from ..validation import parse_pagination

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    page, limit = parse_pagination(
        request.args.get("page"),
        request.args.get("limit"),
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )
    try:
        result = sales_service.list_sales(owner_id=g.current_user.id, page=page, limit=limit)
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(owner_id=g.current_user.id, sale_id=sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale.

    Body:
    {
        "items": [{"product_id": int, "quantity": number, "unit_price": number (optional)}],
        "notes": str (optional)
    }

    unit_price defaults to the product's sell_price_per_unit.
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.create_sale(
            owner_id=g.current_user.id,
            items=data.get("items"),
            notes=data.get("notes"),
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/products/available")
@require_auth
def available_products_route():
    """Products with stock on hand, for building a sale."""
    try:
        products = products_service.list_available_products(owner_id=g.current_user.id)
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list available products")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/reports/summary")
@require_auth
def sales_summary_route():
    """
    Sales totals over an optional inclusive date range.

    Query params:
    - start_date: ISO date or datetime (optional)
    - end_date: ISO date or datetime (optional); a bare date covers the whole day
    """
    try:
        result = sales_service.sales_summary(
            owner_id=g.current_user.id,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            recent_limit=current_app.config["RECENT_SALES_LIMIT"],
        )
        return jsonify(result), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": "Internal server error"}), 500
