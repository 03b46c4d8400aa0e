# Overview: Pure quantity and pricing calculations for products and sales.

"""
Stock Ledger Money Rules (authoritative)

- All arithmetic is done on Decimal; floats are converted through str().
- Every computed monetary value is rounded to 2 places, half-up.
- Quantities (units, weight, sold items) are never rounded here.
"""
from __future__ import annotations

import random
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

CENTS = Decimal("0.01")


def as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value) -> Decimal:
    return as_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ProductTotals:
    total_units: Decimal | int
    total_invested: Decimal
    total_profit: Decimal


@dataclass(frozen=True)
class SaleLineTotal:
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class SaleTotals:
    lines: list[SaleLineTotal]
    total_amount: Decimal
    total_items: Decimal


def calculate_pack(pack_quantity: int, products_per_pack: int, buy_price_per_pack, sell_price_per_unit) -> ProductTotals:
    total_units = int(pack_quantity) * int(products_per_pack)
    total_invested = round_money(int(pack_quantity) * as_decimal(buy_price_per_pack))
    total_profit = round_money(as_decimal(sell_price_per_unit) * total_units - total_invested)
    return ProductTotals(total_units=total_units, total_invested=total_invested, total_profit=total_profit)


def calculate_weight(total_weight, buy_price_per_unit, sell_price_per_unit) -> ProductTotals:
    weight = as_decimal(total_weight)
    total_invested = round_money(weight * as_decimal(buy_price_per_unit))
    total_profit = round_money(as_decimal(sell_price_per_unit) * weight - total_invested)
    return ProductTotals(total_units=weight, total_invested=total_invested, total_profit=total_profit)


def calculate_sale_totals(lines: Iterable[dict]) -> SaleTotals:
    """
    Compute per-line totals and the order summary.

    Each line is a dict with product_id, quantity and unit_price. The order
    total is the sum of the rounded line totals, so it always matches what
    the lines show.
    """
    computed: list[SaleLineTotal] = []
    total_amount = Decimal("0")
    total_items = Decimal("0")

    for line in lines:
        quantity = as_decimal(line["quantity"])
        unit_price = as_decimal(line["unit_price"])
        line_total = round_money(quantity * unit_price)
        computed.append(
            SaleLineTotal(
                product_id=line["product_id"],
                quantity=quantity,
                unit_price=unit_price,
                total_price=line_total,
            )
        )
        total_amount += line_total
        total_items += quantity

    return SaleTotals(lines=computed, total_amount=round_money(total_amount), total_items=total_items)


def generate_sale_number(now_ms: int | None = None) -> str:
    """SALE-<epoch milliseconds>-<3 random digits>; unique enough for display."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = f"{random.randint(0, 999):03d}"
    return f"SALE-{now_ms}-{suffix}"
