from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from .errors import ValidationFailed


WEIGHT_UNITS = ("kg", "lb")
MIN_NAME_LENGTH = 2

# Stored scale of quantity and money columns.
QUANTITY_PLACES = 3
PRICE_PLACES = 2
REASON_MAX_LENGTH = 64


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: dict[str, str] = field(default_factory=dict)

    def raise_for_errors(self, message: str = "Validation failed") -> None:
        if not self.is_valid:
            raise ValidationFailed(message, details=dict(self.errors))


@dataclass(frozen=True)
class PackAttributes:
    name: str
    pack_quantity: int
    products_per_pack: int
    buy_price_per_pack: Decimal
    sell_price_per_unit: Decimal


@dataclass(frozen=True)
class WeightAttributes:
    name: str
    weight_unit: str
    total_weight: Decimal
    buy_price_per_unit: Decimal
    sell_price_per_unit: Decimal


@dataclass(frozen=True)
class SaleItemInput:
    product_id: int
    quantity: Decimal
    unit_price: Decimal | None = None


def _result(errors: dict[str, str]) -> ValidationResult:
    return ValidationResult(is_valid=not errors, errors=errors)


def to_decimal(value: Any) -> Decimal | None:
    """
    Coerce JSON input to Decimal.

    Returns None for missing, blank, boolean or non-numeric values so the
    caller's "> 0" checks reject them with the field's own message.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def to_int(value: Any) -> int | None:
    """Strict integer coercion: rejects fractions, booleans and scientific notation."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            return None
        try:
            return int(stripped)
        except ValueError:
            return None
    return None


def decimal_places(value: Decimal) -> int:
    """Significant digits after the point (trailing zeros ignored)."""
    exponent = value.normalize().as_tuple().exponent
    return max(-exponent, 0)


def exceeds_places(value: Decimal | None, places: int) -> bool:
    return value is not None and decimal_places(value) > places


def optional_text(value: Any, key: str, *, max_length: int | None = None) -> str | None:
    """
    Validate a free-text field such as notes or reason.

    Missing or blank values become None; anything that is not a string
    raises ValidationFailed.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed(f"Invalid {key}", details={key: f"{key.capitalize()} must be a string"})
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationFailed(
            f"Invalid {key}",
            details={key: f"{key.capitalize()} must be at most {max_length} characters"},
        )
    return value or None


def _clean_name(data: dict) -> str | None:
    name = data.get("name")
    if not isinstance(name, str):
        return None
    name = name.strip()
    if len(name) < MIN_NAME_LENGTH:
        return None
    return name


def _require_positive(
    errors: dict,
    data: dict,
    key: str,
    label: str,
    *,
    integer: bool = False,
    places: int | None = None,
):
    value = to_int(data.get(key)) if integer else to_decimal(data.get(key))
    if value is None or value <= 0:
        errors[key] = f"{label} must be greater than 0"
        return None
    if places is not None and exceeds_places(value, places):
        errors[key] = f"{label} must have at most {places} decimal places"
        return None
    return value


def validate_pack_product(data: dict | None) -> ValidationResult:
    data = data or {}
    errors: dict[str, str] = {}

    if _clean_name(data) is None:
        errors["name"] = "Product name must be at least 2 characters long"
    _require_positive(errors, data, "pack_quantity", "Pack quantity", integer=True)
    _require_positive(errors, data, "products_per_pack", "Products per pack", integer=True)
    _require_positive(errors, data, "buy_price_per_pack", "Buy price per pack", places=PRICE_PLACES)
    _require_positive(errors, data, "sell_price_per_unit", "Sell price per unit", places=PRICE_PLACES)

    return _result(errors)


def validate_weight_product(data: dict | None) -> ValidationResult:
    data = data or {}
    errors: dict[str, str] = {}

    if _clean_name(data) is None:
        errors["name"] = "Product name must be at least 2 characters long"
    if data.get("weight_unit") not in WEIGHT_UNITS:
        errors["weight_unit"] = 'Weight unit must be "lb" or "kg"'
    _require_positive(errors, data, "total_weight", "Total weight", places=QUANTITY_PLACES)
    _require_positive(errors, data, "buy_price_per_unit", "Buy price per unit", places=PRICE_PLACES)
    _require_positive(errors, data, "sell_price_per_unit", "Sell price per unit", places=PRICE_PLACES)

    return _result(errors)


def parse_pack_attributes(data: dict | None) -> PackAttributes:
    validate_pack_product(data).raise_for_errors("Invalid pack product data")
    return PackAttributes(
        name=_clean_name(data),
        pack_quantity=to_int(data["pack_quantity"]),
        products_per_pack=to_int(data["products_per_pack"]),
        buy_price_per_pack=to_decimal(data["buy_price_per_pack"]),
        sell_price_per_unit=to_decimal(data["sell_price_per_unit"]),
    )


def parse_weight_attributes(data: dict | None) -> WeightAttributes:
    validate_weight_product(data).raise_for_errors("Invalid weight product data")
    return WeightAttributes(
        name=_clean_name(data),
        weight_unit=data["weight_unit"],
        total_weight=to_decimal(data["total_weight"]),
        buy_price_per_unit=to_decimal(data["buy_price_per_unit"]),
        sell_price_per_unit=to_decimal(data["sell_price_per_unit"]),
    )


def validate_sale_items(items: Any) -> ValidationResult:
    """Shape check for sale lines. Every bad field of every line is reported."""
    if not isinstance(items, list) or not items:
        return _result({"items": "A sale must include at least one product"})

    errors: dict[str, str] = {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"item_{index}"] = "Sale item must be an object"
            continue

        product_id = item.get("product_id")
        if isinstance(product_id, bool) or not isinstance(product_id, int) or product_id <= 0:
            errors[f"item_{index}_product_id"] = "Invalid product id"

        quantity = to_decimal(item.get("quantity"))
        if quantity is None or quantity <= 0:
            errors[f"item_{index}_quantity"] = "Quantity must be greater than 0"
        elif exceeds_places(quantity, QUANTITY_PLACES):
            errors[f"item_{index}_quantity"] = f"Quantity must have at most {QUANTITY_PLACES} decimal places"

        if item.get("unit_price") is not None:
            unit_price = to_decimal(item.get("unit_price"))
            if unit_price is None or unit_price < 0:
                errors[f"item_{index}_unit_price"] = "Unit price cannot be negative"
            elif exceeds_places(unit_price, PRICE_PLACES):
                errors[f"item_{index}_unit_price"] = f"Unit price must have at most {PRICE_PLACES} decimal places"

    return _result(errors)


def parse_sale_items(items: Any) -> list[SaleItemInput]:
    validate_sale_items(items).raise_for_errors("Invalid sale data")
    return [
        SaleItemInput(
            product_id=item["product_id"],
            quantity=to_decimal(item["quantity"]),
            unit_price=to_decimal(item.get("unit_price")),
        )
        for item in items
    ]


def validate_stock_availability(products: Iterable, items: Iterable[SaleItemInput]) -> ValidationResult:
    """
    Compare each requested line against the fetched product snapshot.

    The snapshot can go stale before commit; the sale commit re-checks
    non-negativity in its guarded decrement.
    """
    by_id = {p.id: p for p in products}
    errors: dict[str, str] = {}

    for index, item in enumerate(items):
        product = by_id.get(item.product_id)
        if product is None:
            errors[f"item_{index}_product"] = "Product not found"
            continue
        if product.current_stock < item.quantity:
            errors[f"item_{index}_stock"] = (
                f"Insufficient stock. Available: {product.current_stock}, "
                f"Requested: {item.quantity}"
            )

    return _result(errors)


def parse_pagination(page: Any, limit: Any, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    page_num = to_int(page) or 1
    limit_num = to_int(limit) or default_limit
    return max(page_num, 1), min(max(limit_num, 1), max_limit)
