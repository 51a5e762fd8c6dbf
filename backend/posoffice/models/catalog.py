from __future__ import annotations

from ..extensions import db
from ..money_utils import format_money
from posoffice.time_utils import to_utc_z


class Category(db.Model):
    """
    Product grouping.

    Products reference their category (owning side); the reverse direction
    is the `products` backref, loaded on demand.
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    # Soft delete: rows stay for historical reporting
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data.

    STOCK: `stock` is written only by stock_service.adjust_stock, as an
    in-place increment/decrement. Catalog edits never touch it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("selling_price >= 0", name="ck_products_selling_price_nonneg"),
        db.CheckConstraint("purchase_price >= 0", name="ck_products_purchase_price_nonneg"),
        db.Index("ix_products_category_active", "category_id", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    purchase_price = db.Column(db.Numeric(12, 2), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    category = db.relationship("Category", backref=db.backref("products", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "name": self.name,
            "sellingPrice": format_money(self.selling_price),
            "purchasePrice": format_money(self.purchase_price),
            "stock": self.stock,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    phone_number = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phoneNumber": self.phone_number,
            "address": self.address,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
