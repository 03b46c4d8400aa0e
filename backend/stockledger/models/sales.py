from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

SALE_STATUS_COMPLETED = "COMPLETED"


class Sale(db.Model):
    """
    Completed sale header.

    Sales are immutable once committed and are never deleted; a mistake is
    corrected with a stock adjustment, not by removing the sale.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "sale_number", name="uq_sales_owner_number"),
        db.Index("ix_sales_owner_status_created", "owner_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Human-readable number (e.g., "SALE-1717171717171-042")
    sale_number = db.Column(db.String(64), nullable=False)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    total_items = db.Column(db.Numeric(14, 3), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    owner = db.relationship("User", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} sale_number={self.sale_number!r} owner_id={self.owner_id}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "sale_number": self.sale_number,
            "total_amount": self.total_amount,
            "total_items": self.total_items,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    One product/quantity/price entry of a sale.

    unit_price and product_name are snapshots taken at sale time. When the
    product is deleted later, product_id becomes NULL and the snapshot is
    what remains.
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(14, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product": self.product.summary_dict() if self.product else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }
