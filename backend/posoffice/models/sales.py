from __future__ import annotations

from ..extensions import db
from ..money_utils import format_money
from posoffice.time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    Stock outbound document rung up by a cashier or owner.

    Line prices are snapshots taken from the product at transaction time,
    never from the client.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_date_deleted", "date", "deleted_at"),
        db.Index("ix_sales_user_date", "user_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    total_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # Void audit trail (soft delete)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    voided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id])

    details = db.relationship(
        "SaleDetail",
        primaryjoin="and_(Sale.id == SaleDetail.sale_id, SaleDetail.deleted_at.is_(None))",
        order_by="SaleDetail.id",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} user_id={self.user_id} total={self.total_price}>"

    def to_dict(self, include_details: bool = True) -> dict:
        data = {
            "id": self.id,
            "userId": self.user_id,
            "date": to_utc_z(self.date),
            "totalPrice": format_money(self.total_price),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "user": {"id": self.user.id, "name": self.user.name} if self.user else None,
        }
        if include_details:
            data["saleDetail"] = [d.to_dict() for d in self.details]
        return data


class SaleDetail(db.Model):
    """Individual line items on a sale, with price and cost snapshots."""
    __tablename__ = "sale_details"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_details_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_sale_details_unit_price_nonneg"),
        db.CheckConstraint("unit_cost >= 0", name="ck_sale_details_unit_cost_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    unit_cost = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(14, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    sale = db.relationship("Sale", foreign_keys=[sale_id])
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "unitPrice": format_money(self.unit_price),
            "unitCost": format_money(self.unit_cost),
            "subtotal": format_money(self.subtotal),
            "product": {
                "id": self.product.id,
                "name": self.product.name,
                "sellingPrice": format_money(self.product.selling_price),
            } if self.product else None,
        }
