# Overview: Service-layer operations for categories; CRUD with soft delete.

from __future__ import annotations

from ..errors import ConstraintViolationError, NotFoundError
from ..models import Category, Product
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import UnitOfWork

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name": "name"},
    required_on_create={"name"},
)


def _ensure_unique_name(session, name: str, exclude_id: int | None = None) -> None:
    query = session.query(Category.id).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise ConstraintViolationError("Category name already exists", details={"name": name})


def list_categories(session) -> list[Category]:
    return session.query(Category).filter(Category.deleted_at.is_(None)).order_by(Category.name.asc()).all()


def get_category(session, category_id: int) -> Category:
    category = (
        session.query(Category)
        .filter(Category.id == category_id, Category.deleted_at.is_(None))
        .first()
    )
    if category is None:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category


def create_category(session, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    with UnitOfWork(session, label="create category"):
        _ensure_unique_name(session, patch["name"])
        category = Category(**patch)
        session.add(category)
    return category


def update_category(session, category_id: int, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    with UnitOfWork(session, label="update category"):
        category = get_category(session, category_id)
        if "name" in patch:
            _ensure_unique_name(session, patch["name"], exclude_id=category.id)
        for key, value in patch.items():
            setattr(category, key, value)
    return category


def delete_category(session, category_id: int) -> None:
    """Soft delete. Refused while live products still point at the category."""
    with UnitOfWork(session, label="delete category"):
        category = get_category(session, category_id)
        in_use = (
            session.query(Product.id)
            .filter(Product.category_id == category.id, Product.deleted_at.is_(None))
            .first()
        )
        if in_use is not None:
            raise ConstraintViolationError(
                "Category still has products",
                details={"category_id": category.id},
            )
        category.deleted_at = utcnow()
