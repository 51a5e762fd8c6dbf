from __future__ import annotations

from ..extensions import db
from ..money_utils import format_money
from posoffice.time_utils import to_utc_z, utcnow


class Purchase(db.Model):
    """
    Stock inbound document from a supplier.

    Created, edited and voided only through purchase_service so that
    total_amount, its detail lines and product stock move together.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_date_deleted", "date", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

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
    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy="dynamic"))

    # Live lines only; voided/edited-away lines keep their rows
    details = db.relationship(
        "PurchaseDetail",
        primaryjoin="and_(Purchase.id == PurchaseDetail.purchase_id, PurchaseDetail.deleted_at.is_(None))",
        order_by="PurchaseDetail.id",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} supplier_id={self.supplier_id} total={self.total_amount}>"

    def to_dict(self, include_details: bool = True) -> dict:
        data = {
            "id": self.id,
            "userId": self.user_id,
            "supplierId": self.supplier_id,
            "date": to_utc_z(self.date),
            "totalAmount": format_money(self.total_amount),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "user": {"id": self.user.id, "name": self.user.name} if self.user else None,
            "supplier": self.supplier.to_dict() if self.supplier else None,
        }
        if include_details:
            data["purchaseDetail"] = [d.to_dict() for d in self.details]
        return data


class PurchaseDetail(db.Model):
    """One product line on a purchase."""
    __tablename__ = "purchase_details"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_purchase_details_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_purchase_details_unit_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(14, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchaseId": self.purchase_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "unitPrice": format_money(self.unit_price),
            "subtotal": format_money(self.subtotal),
            "product": {
                "id": self.product.id,
                "name": self.product.name,
                "purchasePrice": format_money(self.product.purchase_price),
            } if self.product else None,
        }
