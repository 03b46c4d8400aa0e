# Overview: Pytest coverage for product and sale calculations.

import re
from decimal import Decimal

from stockledger.calculations import (
    calculate_pack,
    calculate_sale_totals,
    calculate_weight,
    generate_sale_number,
    round_money,
)


class TestProductCalculations:

    def test_pack_totals(self):
        totals = calculate_pack(5, 8, Decimal("10.00"), Decimal("1.50"))
        assert totals.total_units == 40
        assert totals.total_invested == Decimal("50.00")
        assert totals.total_profit == Decimal("10.00")

    def test_pack_total_units_is_integer(self):
        totals = calculate_pack(3, 12, Decimal("7.25"), Decimal("0.99"))
        assert isinstance(totals.total_units, int)
        assert totals.total_units == 36

    def test_pack_profit_can_be_negative(self):
        totals = calculate_pack(2, 10, Decimal("30.00"), Decimal("1.00"))
        assert totals.total_invested == Decimal("60.00")
        assert totals.total_profit == Decimal("-40.00")

    def test_weight_totals_round_half_up(self):
        totals = calculate_weight(Decimal("25.5"), Decimal("2.50"), Decimal("3.75"))
        assert totals.total_units == Decimal("25.5")
        assert totals.total_invested == Decimal("63.75")
        assert totals.total_profit == Decimal("31.88")

    def test_floats_go_through_str(self):
        totals = calculate_weight(0.1, 0.2, 0.3)
        assert totals.total_invested == Decimal("0.02")
        assert totals.total_profit == Decimal("0.01")


class TestSaleCalculations:

    def test_single_line(self):
        totals = calculate_sale_totals([
            {"product_id": 1, "quantity": Decimal("4"), "unit_price": Decimal("2.00")},
        ])
        assert totals.total_amount == Decimal("8.00")
        assert totals.total_items == Decimal("4")
        assert totals.lines[0].total_price == Decimal("8.00")

    def test_total_is_sum_of_rounded_lines(self):
        totals = calculate_sale_totals([
            {"product_id": 1, "quantity": Decimal("0.333"), "unit_price": Decimal("1.50")},
            {"product_id": 2, "quantity": Decimal("0.333"), "unit_price": Decimal("1.50")},
        ])
        # each line 0.4995 -> 0.50
        assert [line.total_price for line in totals.lines] == [Decimal("0.50"), Decimal("0.50")]
        assert totals.total_amount == Decimal("1.00")
        assert totals.total_items == Decimal("0.666")

    def test_lines_keep_input_order(self):
        totals = calculate_sale_totals([
            {"product_id": 9, "quantity": 1, "unit_price": "3"},
            {"product_id": 4, "quantity": 2, "unit_price": "1.25"},
        ])
        assert [line.product_id for line in totals.lines] == [9, 4]
        assert totals.total_amount == Decimal("5.50")

    def test_round_money(self):
        assert round_money("2.345") == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")
        assert round_money(0) == Decimal("0.00")


class TestSaleNumber:

    def test_format(self):
        assert re.fullmatch(r"SALE-\d+-\d{3}", generate_sale_number())

    def test_uses_given_timestamp(self):
        assert generate_sale_number(now_ms=1717171717171).startswith("SALE-1717171717171-")
