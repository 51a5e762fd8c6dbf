# Overview: Flask API routes for purchases; parses input and returns JSON envelopes.

from flask import Blueprint, current_app, g, request, send_file

from ..decorators import require_auth, require_capability
from ..extensions import db
from ..permissions import Capability
from ..responses import success
from ..services import export_service, purchase_service
from ..validation import coerce_datetime, parse_date_range

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


def _range_args(required: bool):
    return parse_date_range(
        request.args.get("startDate"),
        request.args.get("endDate"),
        required=required,
    )


@purchases_bp.post("")
@require_auth
@require_capability(Capability.MANAGE_PURCHASES)
def create_purchase():
    """
    Body:
    {
        "supplierId": 1,
        "date": "2025-02-01T09:30:00Z",   // optional, defaults to now
        "items": [{"productId": 1, "quantity": 5, "unitPrice": "1000.00"}]
    }
    """
    data = request.get_json(silent=True) or {}
    purchase = purchase_service.create_purchase(
        db.session,
        user_id=g.current_user.id,
        supplier_id=data.get("supplierId"),
        items=data.get("items"),
        date=coerce_datetime(data.get("date"), "date"),
    )
    current_app.logger.info(
        "Purchase %s committed by user %s total=%s", purchase.id, g.current_user.id, purchase.total_amount
    )
    return success("Purchase created successfully", purchase.to_dict(), status=201)


@purchases_bp.get("")
@require_auth
@require_capability(Capability.MANAGE_PURCHASES)
def list_purchases():
    """Query: startDate, endDate (optional, both or neither). Newest first."""
    purchases = purchase_service.list_purchases(db.session, _range_args(required=False))
    return success("Purchases retrieved successfully", [p.to_dict() for p in purchases])


@purchases_bp.get("/report")
@require_auth
@require_capability(Capability.VIEW_REPORTS)
def purchase_report():
    purchases = purchase_service.purchase_report(db.session, _range_args(required=True))
    return success("Purchase report generated", [p.to_dict() for p in purchases])


@purchases_bp.get("/report/export")
@require_auth
@require_capability(Capability.VIEW_REPORTS)
def export_purchase_report():
    date_range = _range_args(required=True)
    purchases = purchase_service.purchase_report(db.session, date_range, newest_first=False)

    buf = export_service.purchase_report_workbook(
        purchases,
        currency_format=current_app.config["EXPORT_CURRENCY_FORMAT"],
    )
    filename = export_service.report_filename("purchase_report", date_range)
    return send_file(
        buf,
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=filename,
    )


@purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_capability(Capability.MANAGE_PURCHASES)
def get_purchase(purchase_id: int):
    purchase = purchase_service.get_purchase(db.session, purchase_id)
    return success("Purchase retrieved successfully", purchase.to_dict())


@purchases_bp.put("/<int:purchase_id>")
@require_auth
@require_capability(Capability.MANAGE_PURCHASES)
def edit_purchase(purchase_id: int):
    """Body: same shape as create; replaces supplier and the whole line set."""
    data = request.get_json(silent=True) or {}
    purchase = purchase_service.edit_purchase(
        db.session,
        purchase_id,
        supplier_id=data.get("supplierId"),
        items=data.get("items"),
        date=coerce_datetime(data.get("date"), "date"),
    )
    current_app.logger.info(
        "Purchase %s edited by user %s total=%s", purchase.id, g.current_user.id, purchase.total_amount
    )
    return success("Purchase updated successfully", purchase.to_dict())


@purchases_bp.delete("/<int:purchase_id>")
@require_auth
@require_capability(Capability.MANAGE_PURCHASES)
def void_purchase(purchase_id: int):
    purchase_service.void_purchase(db.session, purchase_id, user_id=g.current_user.id)
    current_app.logger.info("Purchase %s voided by user %s", purchase_id, g.current_user.id)
    return success("Purchase voided successfully")
