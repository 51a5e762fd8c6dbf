# Overview: Service-layer operations for suppliers; CRUD with soft delete.

from __future__ import annotations

from ..errors import ConstraintViolationError, NotFoundError
from ..models import Supplier
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_phone, validate_payload
from .concurrency import UnitOfWork

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "phoneNumber": "phone_number",
        "address": "address",
    },
    required_on_create={"name", "phoneNumber"},
)


def _ensure_unique_name(session, name: str, exclude_id: int | None = None) -> None:
    query = session.query(Supplier.id).filter(Supplier.name == name)
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first() is not None:
        raise ConstraintViolationError("Supplier name already exists", details={"name": name})


def _validated(payload: dict, partial: bool) -> dict:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=partial)
    if "phone_number" in patch:
        enforce_phone(patch["phone_number"], "phoneNumber")
    return patch


def list_suppliers(session) -> list[Supplier]:
    return session.query(Supplier).filter(Supplier.deleted_at.is_(None)).order_by(Supplier.name.asc()).all()


def get_supplier(session, supplier_id: int) -> Supplier:
    supplier = (
        session.query(Supplier)
        .filter(Supplier.id == supplier_id, Supplier.deleted_at.is_(None))
        .first()
    )
    if supplier is None:
        raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def create_supplier(session, payload: dict) -> Supplier:
    patch = _validated(payload, partial=False)
    with UnitOfWork(session, label="create supplier"):
        _ensure_unique_name(session, patch["name"])
        supplier = Supplier(**patch)
        session.add(supplier)
    return supplier


def update_supplier(session, supplier_id: int, payload: dict) -> Supplier:
    patch = _validated(payload, partial=True)
    with UnitOfWork(session, label="update supplier"):
        supplier = get_supplier(session, supplier_id)
        if "name" in patch:
            _ensure_unique_name(session, patch["name"], exclude_id=supplier.id)
        for key, value in patch.items():
            setattr(supplier, key, value)
    return supplier


def delete_supplier(session, supplier_id: int) -> None:
    """Soft delete; historical purchases keep pointing at the row."""
    with UnitOfWork(session, label="delete supplier"):
        supplier = get_supplier(session, supplier_id)
        supplier.deleted_at = utcnow()
