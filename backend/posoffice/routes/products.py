# Overview: Flask API routes for products; parses input and returns JSON envelopes.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_capability
from ..extensions import db
from ..permissions import Capability
from ..responses import success
from ..services import product_service
from ..validation import coerce_int

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_capability(Capability.VIEW_CATALOG)
def list_products():
    """Query: categoryId (optional)"""
    raw = request.args.get("categoryId")
    category_id = coerce_int(raw, "categoryId") if raw not in (None, "") else None
    products = product_service.list_products(db.session, category_id=category_id)
    return success("Products retrieved successfully", [p.to_dict() for p in products])


@products_bp.get("/<int:product_id>")
@require_auth
@require_capability(Capability.VIEW_CATALOG)
def get_product(product_id: int):
    product = product_service.get_product(db.session, product_id)
    return success("Product retrieved successfully", product.to_dict())


@products_bp.post("")
@require_auth
@require_capability(Capability.MANAGE_CATALOG)
def create_product():
    """
    Body: {categoryId, name, sellingPrice, purchasePrice}

    stock is not accepted; new products start at 0.
    """
    product = product_service.create_product(db.session, request.get_json(silent=True))
    current_app.logger.info("Product %s created by %s", product.id, g.current_user.id)
    return success("Product created successfully", product.to_dict(), status=201)


@products_bp.put("/<int:product_id>")
@require_auth
@require_capability(Capability.MANAGE_CATALOG)
def update_product(product_id: int):
    product = product_service.update_product(db.session, product_id, request.get_json(silent=True))
    return success("Product updated successfully", product.to_dict())


@products_bp.delete("/<int:product_id>")
@require_auth
@require_capability(Capability.MANAGE_CATALOG)
def delete_product(product_id: int):
    product_service.delete_product(db.session, product_id)
    current_app.logger.info("Product %s deleted by %s", product_id, g.current_user.id)
    return success("Product deleted successfully")
