from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PRODUCT_TYPE_PACK = "pack"
PRODUCT_TYPE_WEIGHT = "weight"

MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"


class Product(db.Model):
    """
    Product master data plus its live stock level.

    ACQUISITION MODELS (type):
    - pack: bought as pack_quantity packs of products_per_pack units,
      priced per pack, sold per unit.
    - weight: bought as total_weight in weight_unit, priced per unit of
      weight, sold per unit of weight.

    total_units, total_invested and total_profit are derived from the
    acquisition fields on every create/update and never written directly.

    current_stock is only changed by restock, adjustment, initialization
    and sales, each of which appends a StockMovement in the same
    transaction. CHECK ck_products_stock_non_negative backs the service
    checks at the database level.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "name", name="uq_products_owner_name"),
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("type IN ('pack', 'weight')", name="ck_products_type"),
        db.Index("ix_products_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False)

    # pack acquisition
    pack_quantity = db.Column(db.Integer, nullable=True)
    products_per_pack = db.Column(db.Integer, nullable=True)
    buy_price_per_pack = db.Column(db.Numeric(12, 2), nullable=True)

    # weight acquisition
    weight_unit = db.Column(db.String(8), nullable=True)
    total_weight = db.Column(db.Numeric(14, 3), nullable=True)
    buy_price_per_unit = db.Column(db.Numeric(12, 2), nullable=True)

    sell_price_per_unit = db.Column(db.Numeric(12, 2), nullable=False)

    # derived
    total_units = db.Column(db.Numeric(14, 3), nullable=False)
    total_invested = db.Column(db.Numeric(14, 2), nullable=False)
    total_profit = db.Column(db.Numeric(14, 2), nullable=False)

    current_stock = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("products", lazy=True))
    movements = db.relationship(
        "StockMovement",
        back_populates="product",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} type={self.type} owner_id={self.owner_id}>"

    @property
    def is_pack(self) -> bool:
        return self.type == PRODUCT_TYPE_PACK

    def summary_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "type": self.type}

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "type": self.type,
            "sell_price_per_unit": self.sell_price_per_unit,
            "total_units": int(self.total_units) if self.is_pack else self.total_units,
            "total_invested": self.total_invested,
            "total_profit": self.total_profit,
            "current_stock": self.current_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if self.is_pack:
            data.update({
                "pack_quantity": self.pack_quantity,
                "products_per_pack": self.products_per_pack,
                "buy_price_per_pack": self.buy_price_per_pack,
            })
        else:
            data.update({
                "weight_unit": self.weight_unit,
                "total_weight": self.total_weight,
                "buy_price_per_unit": self.buy_price_per_unit,
            })
        return data


class StockMovement(db.Model):
    """
    Append-only record of one stock change.

    quantity is the magnitude of the change; direction lives in type
    (IN/OUT). previous_stock/new_stock bracket the change as seen inside
    the writing transaction. Rows are never updated; they go away only
    together with their product.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("type IN ('IN', 'OUT')", name="ck_stock_movements_type"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_movements_quantity"),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    previous_stock = db.Column(db.Numeric(14, 3), nullable=False)
    new_stock = db.Column(db.Numeric(14, 3), nullable=False)

    reason = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # Set for movements written by a sale
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="movements")
    user = db.relationship("User")

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} {self.type} {self.quantity} product_id={self.product_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "user_full_name": self.user.full_name if self.user else None,
            "type": self.type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reason": self.reason,
            "notes": self.notes,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }
