# Overview: Service-layer operations for products; catalog CRUD (stock is not writable here).

"""
Product catalog

STOCK: `stock` is never part of a product payload. New products start at
zero and only purchases and sales move the number (stock_service).
"""

from __future__ import annotations

from ..errors import ConstraintViolationError, NotFoundError, ValidationError
from ..models import Category, Product
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import UnitOfWork

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "categoryId": "category_id",
        "name": "name",
        "sellingPrice": "selling_price",
        "purchasePrice": "purchase_price",
    },
    required_on_create={"categoryId", "name", "sellingPrice", "purchasePrice"},
)


def _validated(payload: dict, partial: bool) -> dict:
    if isinstance(payload, dict) and "stock" in payload:
        raise ValidationError("stock is read-only; it changes only through purchases and sales")
    return validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)


def _ensure_category(session, category_id: int) -> None:
    exists = (
        session.query(Category.id)
        .filter(Category.id == category_id, Category.deleted_at.is_(None))
        .first()
    )
    if exists is None:
        raise ConstraintViolationError(
            f"Category with ID {category_id} does not exist",
            details={"category_id": category_id},
        )


def list_products(session, category_id: int | None = None) -> list[Product]:
    query = session.query(Product).filter(Product.deleted_at.is_(None))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(session, product_id: int) -> Product:
    product = (
        session.query(Product)
        .filter(Product.id == product_id, Product.deleted_at.is_(None))
        .first()
    )
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def create_product(session, payload: dict) -> Product:
    patch = _validated(payload, partial=False)
    with UnitOfWork(session, label="create product"):
        _ensure_category(session, patch["category_id"])
        product = Product(stock=0, **patch)
        session.add(product)
    return product


def update_product(session, product_id: int, payload: dict) -> Product:
    patch = _validated(payload, partial=True)
    with UnitOfWork(session, label="update product"):
        product = get_product(session, product_id)
        if "category_id" in patch:
            _ensure_category(session, patch["category_id"])
        for key, value in patch.items():
            setattr(product, key, value)
    return product


def delete_product(session, product_id: int) -> None:
    """Soft delete. Past purchase and sale lines keep their product reference."""
    with UnitOfWork(session, label="delete product"):
        product = get_product(session, product_id)
        product.deleted_at = utcnow()
