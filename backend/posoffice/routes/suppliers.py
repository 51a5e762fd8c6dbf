# Overview: Flask API routes for suppliers; parses input and returns JSON envelopes.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_capability
from ..extensions import db
from ..permissions import Capability
from ..responses import success
from ..services import supplier_service

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_capability(Capability.MANAGE_SUPPLIERS)
def list_suppliers():
    suppliers = supplier_service.list_suppliers(db.session)
    return success("Suppliers retrieved successfully", [s.to_dict() for s in suppliers])


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_capability(Capability.MANAGE_SUPPLIERS)
def get_supplier(supplier_id: int):
    supplier = supplier_service.get_supplier(db.session, supplier_id)
    return success("Supplier retrieved successfully", supplier.to_dict())


@suppliers_bp.post("")
@require_auth
@require_capability(Capability.MANAGE_SUPPLIERS)
def create_supplier():
    supplier = supplier_service.create_supplier(db.session, request.get_json(silent=True))
    current_app.logger.info("Supplier %s created by %s", supplier.id, g.current_user.id)
    return success("Supplier created successfully", supplier.to_dict(), status=201)


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_capability(Capability.MANAGE_SUPPLIERS)
def update_supplier(supplier_id: int):
    supplier = supplier_service.update_supplier(db.session, supplier_id, request.get_json(silent=True))
    return success("Supplier updated successfully", supplier.to_dict())


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_capability(Capability.MANAGE_SUPPLIERS)
def delete_supplier(supplier_id: int):
    supplier_service.delete_supplier(db.session, supplier_id)
    current_app.logger.info("Supplier %s deleted by %s", supplier_id, g.current_user.id)
    return success("Supplier deleted successfully")
