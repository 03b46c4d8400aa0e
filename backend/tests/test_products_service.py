# Overview: Pytest coverage for the product ledger service.

from decimal import Decimal

import pytest

from stockledger.errors import (
    DuplicateName,
    InvalidQuantity,
    NegativeStock,
    NotFound,
    ValidationFailed,
)
from stockledger.models import Product, Sale, SaleLine, StockMovement
from stockledger.services import products_service, sales_service
from stockledger.validation import parse_pack_attributes, parse_weight_attributes

from conftest import PACK_PAYLOAD, WEIGHT_PAYLOAD


def _pack(owner_id, **overrides):
    return products_service.create_pack_product(
        owner_id=owner_id, attrs=parse_pack_attributes({**PACK_PAYLOAD, **overrides})
    )


def _weight(owner_id, **overrides):
    return products_service.create_weight_product(
        owner_id=owner_id, attrs=parse_weight_attributes({**WEIGHT_PAYLOAD, **overrides})
    )


class TestCreateProducts:

    def test_create_pack_matches_calculator(self, db_session, user_a):
        product = _pack(user_a.id)
        fetched = products_service.get_product(owner_id=user_a.id, product_id=product.id)

        assert fetched.type == "pack"
        assert fetched.total_units == 40
        assert fetched.total_invested == Decimal("50.00")
        assert fetched.total_profit == Decimal("10.00")
        assert fetched.current_stock == 0
        assert db_session.query(StockMovement).count() == 0

    def test_create_weight_rounds_profit(self, db_session, user_a):
        product = _weight(
            user_a.id, total_weight=25.5, buy_price_per_unit=2.50, sell_price_per_unit=3.75
        )
        assert product.total_units == Decimal("25.5")
        assert product.total_invested == Decimal("63.75")
        assert product.total_profit == Decimal("31.88")

    def test_weight_round_trips_through_storage(self, db_session, user_a):
        product = _weight(user_a.id, total_weight="1.234", buy_price_per_unit="2.25")
        db_session.expire_all()
        fetched = products_service.get_product(owner_id=user_a.id, product_id=product.id)

        assert fetched.total_weight == Decimal("1.234")
        assert fetched.total_units == Decimal("1.234")
        # 1.234 * 2.25 = 2.7765
        assert fetched.total_invested == Decimal("2.78")

    def test_weight_beyond_stored_precision_is_rejected(self, db_session, user_a):
        with pytest.raises(ValidationFailed) as exc_info:
            _weight(user_a.id, total_weight="1.2345")
        assert set(exc_info.value.details) == {"total_weight"}
        assert db_session.query(Product).count() == 0

    def test_duplicate_name_per_owner(self, db_session, user_a, user_b):
        _pack(user_a.id)
        with pytest.raises(DuplicateName):
            _weight(user_a.id, name="Cookies")

        # another owner may reuse the name
        other = _pack(user_b.id)
        assert other.owner_id == user_b.id

    def test_seed_stock_on_create(self, db_session, user_a, seed_on_create):
        product = _pack(user_a.id)
        assert product.current_stock == 40

        movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
        assert movement.type == "IN"
        assert movement.reason == "INITIAL_STOCK"
        assert movement.quantity == 40
        assert movement.previous_stock == 0
        assert movement.new_stock == 40


class TestUpdateDelete:

    def test_update_recomputes_totals_and_keeps_stock(self, db_session, user_a):
        product = _pack(user_a.id)
        products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity=7)

        updated = products_service.update_pack_product(
            owner_id=user_a.id,
            product_id=product.id,
            attrs=parse_pack_attributes({**PACK_PAYLOAD, "pack_quantity": 10}),
        )
        assert updated.total_units == 80
        assert updated.total_invested == Decimal("100.00")
        assert updated.total_profit == Decimal("20.00")
        assert updated.current_stock == 7

    def test_update_wrong_type_is_not_found(self, db_session, user_a):
        product = _weight(user_a.id)
        with pytest.raises(NotFound):
            products_service.update_pack_product(
                owner_id=user_a.id, product_id=product.id, attrs=parse_pack_attributes(PACK_PAYLOAD)
            )

    def test_update_rename_conflict(self, db_session, user_a):
        _pack(user_a.id)
        rice = _weight(user_a.id)
        with pytest.raises(DuplicateName):
            products_service.update_weight_product(
                owner_id=user_a.id,
                product_id=rice.id,
                attrs=parse_weight_attributes({**WEIGHT_PAYLOAD, "name": "Cookies"}),
            )

    def test_update_keeping_own_name(self, db_session, user_a):
        rice = _weight(user_a.id)
        updated = products_service.update_weight_product(
            owner_id=user_a.id,
            product_id=rice.id,
            attrs=parse_weight_attributes({**WEIGHT_PAYLOAD, "sell_price_per_unit": 6}),
        )
        assert updated.sell_price_per_unit == Decimal("6.00")

    def test_delete_keeps_sale_line_snapshot(self, db_session, user_a):
        product = _pack(user_a.id)
        products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity=5)
        sale = sales_service.create_sale(owner_id=user_a.id, items=[{"product_id": product.id, "quantity": 2}])

        products_service.delete_product(owner_id=user_a.id, product_id=product.id)

        assert db_session.query(Product).count() == 0
        assert db_session.query(StockMovement).count() == 0
        line = db_session.query(SaleLine).filter_by(sale_id=sale.id).one()
        assert line.product_id is None
        assert line.product_name == "Cookies"
        assert db_session.query(Sale).count() == 1

    def test_other_owner_is_not_found(self, db_session, user_a, user_b):
        product = _pack(user_a.id)
        with pytest.raises(NotFound):
            products_service.get_product(owner_id=user_b.id, product_id=product.id)
        with pytest.raises(NotFound):
            products_service.delete_product(owner_id=user_b.id, product_id=product.id)
        with pytest.raises(NotFound):
            products_service.restock_product(owner_id=user_b.id, product_id=product.id, quantity=1)


class TestStockOperations:

    def test_restock_appends_in_movement(self, db_session, user_a):
        product = _pack(user_a.id)
        products_service.restock_product(
            owner_id=user_a.id, product_id=product.id, quantity=10, notes="supplier run"
        )
        product = products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity="2.5")

        assert product.current_stock == Decimal("12.5")
        movements = (
            db_session.query(StockMovement)
            .filter_by(product_id=product.id)
            .order_by(StockMovement.id)
            .all()
        )
        assert [(m.type, m.quantity, m.previous_stock, m.new_stock) for m in movements] == [
            ("IN", Decimal("10"), Decimal("0"), Decimal("10")),
            ("IN", Decimal("2.5"), Decimal("10"), Decimal("12.5")),
        ]
        assert movements[0].reason == "RESTOCK"
        assert movements[0].notes == "supplier run"

    @pytest.mark.parametrize("quantity", [0, -3, None, "abc", True])
    def test_restock_rejects_bad_quantity(self, db_session, user_a, quantity):
        product = _pack(user_a.id)
        with pytest.raises(InvalidQuantity):
            products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity=quantity)
        assert db_session.query(StockMovement).count() == 0

    @pytest.mark.parametrize("quantity", ["0.0004", "1.0005"])
    def test_restock_rejects_sub_precision_quantity(self, db_session, user_a, quantity):
        product = _weight(user_a.id)
        with pytest.raises(InvalidQuantity):
            products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity=quantity)

        assert products_service.get_product(owner_id=user_a.id, product_id=product.id).current_stock == 0
        assert db_session.query(StockMovement).count() == 0

    def test_restock_at_stored_precision(self, db_session, user_a):
        product = _weight(user_a.id)
        product = products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity="0.001")

        assert product.current_stock == Decimal("0.001")
        movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
        assert movement.quantity == Decimal("0.001")
        assert movement.new_stock == Decimal("0.001")

    @pytest.mark.parametrize(
        "field, value",
        [("notes", {"text": "x"}), ("notes", ["x"]), ("reason", 7), ("reason", "R" * 65)],
    )
    def test_restock_rejects_bad_text_fields(self, db_session, user_a, field, value):
        product = _pack(user_a.id)
        with pytest.raises(ValidationFailed) as exc_info:
            products_service.restock_product(
                owner_id=user_a.id, product_id=product.id, quantity=1, **{field: value}
            )
        assert set(exc_info.value.details) == {field}
        assert db_session.query(StockMovement).count() == 0

    def test_adjust_down_to_zero(self, db_session, user_a):
        product = _pack(user_a.id)
        products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity=15)

        product = products_service.adjust_stock(owner_id=user_a.id, product_id=product.id, new_stock=0)

        assert product.current_stock == 0
        out = db_session.query(StockMovement).filter_by(product_id=product.id, type="OUT").one()
        assert out.quantity == 15
        assert out.previous_stock == 15
        assert out.new_stock == 0
        assert out.reason == "ADJUSTMENT"

    def test_adjust_up_and_unchanged(self, db_session, user_a):
        product = _weight(user_a.id)
        products_service.adjust_stock(owner_id=user_a.id, product_id=product.id, new_stock="3.25")
        products_service.adjust_stock(
            owner_id=user_a.id, product_id=product.id, new_stock="3.25", reason="COUNT"
        )

        movements = (
            db_session.query(StockMovement)
            .filter_by(product_id=product.id)
            .order_by(StockMovement.id)
            .all()
        )
        assert [(m.type, m.quantity) for m in movements] == [
            ("IN", Decimal("3.25")),
            ("IN", Decimal("0")),
        ]
        assert movements[1].reason == "COUNT"

    def test_adjust_negative_rejected(self, db_session, user_a):
        product = _pack(user_a.id)
        products_service.restock_product(owner_id=user_a.id, product_id=product.id, quantity=4)

        with pytest.raises(NegativeStock):
            products_service.adjust_stock(owner_id=user_a.id, product_id=product.id, new_stock=-1)

        assert products_service.get_product(owner_id=user_a.id, product_id=product.id).current_stock == 4

    def test_adjust_rejects_sub_precision_and_bad_notes(self, db_session, user_a):
        product = _pack(user_a.id)
        with pytest.raises(ValidationFailed) as exc_info:
            products_service.adjust_stock(owner_id=user_a.id, product_id=product.id, new_stock="2.0001")
        assert set(exc_info.value.details) == {"new_stock"}

        with pytest.raises(ValidationFailed):
            products_service.adjust_stock(
                owner_id=user_a.id, product_id=product.id, new_stock=2, notes={"text": "count"}
            )

        assert products_service.get_product(owner_id=user_a.id, product_id=product.id).current_stock == 0
        assert db_session.query(StockMovement).count() == 0

    def test_adjust_requires_value(self, db_session, user_a):
        product = _pack(user_a.id)
        with pytest.raises(ValidationFailed):
            products_service.adjust_stock(owner_id=user_a.id, product_id=product.id, new_stock=None)

    def test_initialize_stock_only_when_empty(self, db_session, user_a):
        product = _pack(user_a.id)

        product = products_service.initialize_stock(owner_id=user_a.id, product_id=product.id)
        assert product.current_stock == 40

        product = products_service.initialize_stock(owner_id=user_a.id, product_id=product.id)
        assert product.current_stock == 40
        assert db_session.query(StockMovement).filter_by(reason="INITIAL_STOCK").count() == 1

    def test_initialize_all_stock(self, db_session, user_a, user_b):
        _pack(user_a.id)
        stocked = _weight(user_a.id)
        products_service.restock_product(owner_id=user_a.id, product_id=stocked.id, quantity=1)
        _pack(user_b.id)

        seeded = products_service.initialize_all_stock(owner_id=user_a.id)
        assert [p.name for p in seeded] == ["Cookies"]

        seeded = products_service.initialize_all_stock()
        assert len(seeded) == 1
        assert seeded[0].owner_id == user_b.id


class TestListing:

    def test_list_products_paginates_newest_first(self, db_session, user_a, user_b):
        for i in range(3):
            _pack(user_a.id, name=f"Pack {i}")
        _pack(user_b.id)

        first = products_service.list_products(owner_id=user_a.id, page=1, limit=2)
        assert [p["name"] for p in first["items"]] == ["Pack 2", "Pack 1"]
        assert first["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 3,
            "total_pages": 2,
            "has_next": True,
            "has_prev": False,
        }

        second = products_service.list_products(owner_id=user_a.id, page=2, limit=2)
        assert [p["name"] for p in second["items"]] == ["Pack 0"]
        assert second["pagination"]["has_next"] is False

    def test_list_available_products(self, db_session, user_a):
        _pack(user_a.id)
        rice = _weight(user_a.id)
        products_service.restock_product(owner_id=user_a.id, product_id=rice.id, quantity=2)

        available = products_service.list_available_products(owner_id=user_a.id)
        assert [p.id for p in available] == [rice.id]
