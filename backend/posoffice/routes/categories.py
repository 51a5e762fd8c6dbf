# Overview: Flask API routes for categories; parses input and returns JSON envelopes.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_capability
from ..extensions import db
from ..permissions import Capability
from ..responses import success
from ..services import category_service

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_capability(Capability.VIEW_CATALOG)
def list_categories():
    categories = category_service.list_categories(db.session)
    return success("Categories retrieved successfully", [c.to_dict() for c in categories])


@categories_bp.get("/<int:category_id>")
@require_auth
@require_capability(Capability.VIEW_CATALOG)
def get_category(category_id: int):
    category = category_service.get_category(db.session, category_id)
    return success("Category retrieved successfully", category.to_dict())


@categories_bp.post("")
@require_auth
@require_capability(Capability.MANAGE_CATALOG)
def create_category():
    category = category_service.create_category(db.session, request.get_json(silent=True))
    current_app.logger.info("Category %s created by %s", category.id, g.current_user.id)
    return success("Category created successfully", category.to_dict(), status=201)


@categories_bp.put("/<int:category_id>")
@require_auth
@require_capability(Capability.MANAGE_CATALOG)
def update_category(category_id: int):
    category = category_service.update_category(db.session, category_id, request.get_json(silent=True))
    return success("Category updated successfully", category.to_dict())


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_capability(Capability.MANAGE_CATALOG)
def delete_category(category_id: int):
    category_service.delete_category(db.session, category_id)
    current_app.logger.info("Category %s deleted by %s", category_id, g.current_user.id)
    return success("Category deleted successfully")
