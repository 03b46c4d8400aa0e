# Overview: Flask API routes for products and stock operations; parses input and returns JSON responses.

# backend/stockledger/routes/products.py
"""
Product ledger routes.

All routes require authentication and are scoped to g.current_user; a
product owned by someone else answers 404 like a missing one.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..services import movement_service, products_service
from ..validation import parse_pack_attributes, parse_pagination, parse_weight_attributes

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _pagination_args() -> tuple[int, int]:
    return parse_pagination(
        request.args.get("page"),
        request.args.get("limit"),
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List the caller's products, newest first.

    Query params:
    - page: int (optional, default 1)
    - limit: int (optional, default DEFAULT_PAGE_SIZE, max MAX_PAGE_SIZE)
    """
    page, limit = _pagination_args()
    try:
        result = products_service.list_products(owner_id=g.current_user.id, page=page, limit=limit)
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(owner_id=g.current_user.id, product_id=product_id)
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/pack")
@require_auth
def create_pack_product_route():
    try:
        attrs = parse_pack_attributes(request.get_json(silent=True))
        product = products_service.create_pack_product(owner_id=g.current_user.id, attrs=attrs)
        return jsonify({"product": product.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create pack product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/weight")
@require_auth
def create_weight_product_route():
    try:
        attrs = parse_weight_attributes(request.get_json(silent=True))
        product = products_service.create_weight_product(owner_id=g.current_user.id, attrs=attrs)
        return jsonify({"product": product.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create weight product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/pack/<int:product_id>")
@require_auth
def update_pack_product_route(product_id: int):
    """Replace a pack product's attributes and recompute its totals. Stock is untouched."""
    try:
        attrs = parse_pack_attributes(request.get_json(silent=True))
        product = products_service.update_pack_product(
            owner_id=g.current_user.id, product_id=product_id, attrs=attrs
        )
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update pack product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/weight/<int:product_id>")
@require_auth
def update_weight_product_route(product_id: int):
    """Replace a weight product's attributes and recompute its totals. Stock is untouched."""
    try:
        attrs = parse_weight_attributes(request.get_json(silent=True))
        product = products_service.update_weight_product(
            owner_id=g.current_user.id, product_id=product_id, attrs=attrs
        )
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update weight product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(owner_id=g.current_user.id, product_id=product_id)
        return jsonify({"ok": True, "message": "Product deleted successfully"}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/add-stock")
@require_auth
def add_stock_route(product_id: int):
    """
    Restock a product.

    Body: {"quantity": number > 0, "reason": str (optional), "notes": str (optional)}
    """
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.restock_product(
            owner_id=g.current_user.id,
            product_id=product_id,
            quantity=data.get("quantity"),
            reason=data.get("reason"),
            notes=data.get("notes"),
        )
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/adjust-stock")
@require_auth
def adjust_stock_route(product_id: int):
    """
    Set a product's stock to an absolute value.

    Body: {"new_stock": number >= 0, "reason": str (optional), "notes": str (optional)}
    """
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.adjust_stock(
            owner_id=g.current_user.id,
            product_id=product_id,
            new_stock=data.get("new_stock"),
            reason=data.get("reason"),
            notes=data.get("notes"),
        )
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/initialize-stock")
@require_auth
def initialize_stock_route(product_id: int):
    try:
        product = products_service.initialize_stock(owner_id=g.current_user.id, product_id=product_id)
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to initialize stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/stock-movements")
@require_auth
def list_stock_movements_route(product_id: int):
    page, limit = _pagination_args()
    try:
        result = movement_service.list_movements(
            owner_id=g.current_user.id, product_id=product_id, page=page, limit=limit
        )
        return jsonify(result), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return jsonify({"error": "Internal server error"}), 500
