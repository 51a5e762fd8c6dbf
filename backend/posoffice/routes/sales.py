# Overview: Flask API routes for sales and profit reports; parses input and returns JSON envelopes.

from flask import Blueprint, current_app, g, request, send_file

from ..decorators import require_auth, require_capability
from ..errors import ForbiddenError
from ..extensions import db
from ..permissions import Capability, Role, authorize
from ..responses import success
from ..services import export_service, reporting_service, sale_service
from ..validation import coerce_datetime, parse_date_range

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _range_args(required: bool):
    return parse_date_range(
        request.args.get("startDate"),
        request.args.get("endDate"),
        required=required,
    )


@sales_bp.post("")
@require_auth
@require_capability(Capability.CREATE_SALE)
def create_sale():
    """
    Body: {"items": [{"productId": 1, "quantity": 2}], "date": optional ISO-8601}

    Prices come from the product record; client prices are ignored.
    Available to: owner, cashier
    """
    data = request.get_json(silent=True) or {}
    sale = sale_service.create_sale(
        db.session,
        user_id=g.current_user.id,
        items=data.get("items"),
        date=coerce_datetime(data.get("date"), "date"),
    )
    current_app.logger.info(
        "Sale %s committed by user %s total=%s", sale.id, g.current_user.id, sale.total_price
    )
    return success("Sale created successfully", sale.to_dict(), status=201)


@sales_bp.get("")
@require_auth
@require_capability(Capability.MANAGE_SALES)
def list_sales():
    sales = sale_service.list_sales(db.session, _range_args(required=False))
    return success("Sales retrieved successfully", [s.to_dict() for s in sales])


@sales_bp.get("/report")
@require_auth
@require_capability(Capability.VIEW_REPORTS)
def sales_report():
    sales = sale_service.sales_report(db.session, _range_args(required=True))
    return success("Sales report generated", [s.to_dict() for s in sales])


@sales_bp.get("/report/export")
@require_auth
@require_capability(Capability.VIEW_REPORTS)
def export_sales_report():
    date_range = _range_args(required=True)
    sales = sale_service.sales_report(db.session, date_range)

    buf = export_service.sales_report_workbook(
        sales,
        currency_format=current_app.config["EXPORT_CURRENCY_FORMAT"],
    )
    return send_file(
        buf,
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_service.report_filename("sales_report", date_range),
    )


@sales_bp.get("/cashier/<int:cashier_id>")
@require_auth
@require_capability(Capability.VIEW_OWN_SALES)
def sales_by_cashier(cashier_id: int):
    """
    Sales rung up by one cashier, optionally within startDate/endDate.

    A cashier may only ask for their own id; owners may ask for anyone.
    """
    role = Role.parse(g.current_user.role)
    if cashier_id != g.current_user.id and not authorize(role, Capability.MANAGE_SALES):
        raise ForbiddenError("Forbidden: cashiers may only view their own sales")

    sales = sale_service.list_sales_by_cashier(db.session, cashier_id, _range_args(required=False))
    return success("Sales retrieved successfully", [s.to_dict() for s in sales])


@sales_bp.get("/profit/date")
@require_auth
@require_capability(Capability.VIEW_REPORTS)
def profit_by_date():
    rows = reporting_service.profit_by_date(db.session, _range_args(required=True))
    return success("Profit by date calculated successfully", rows)


@sales_bp.get("/profit/product")
@require_auth
@require_capability(Capability.VIEW_REPORTS)
def profit_by_product():
    rows = reporting_service.profit_by_product(db.session, _range_args(required=True))
    return success("Profit per product calculated successfully", rows)


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_capability(Capability.MANAGE_SALES)
def get_sale(sale_id: int):
    sale = sale_service.get_sale(db.session, sale_id)
    return success("Sale retrieved successfully", sale.to_dict())


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_capability(Capability.MANAGE_SALES)
def edit_sale(sale_id: int):
    """Body: {"items": [...], "date": optional}. Replaces the whole line set."""
    data = request.get_json(silent=True) or {}
    sale = sale_service.edit_sale(
        db.session,
        sale_id,
        items=data.get("items"),
        date=coerce_datetime(data.get("date"), "date"),
    )
    current_app.logger.info(
        "Sale %s edited by user %s total=%s", sale.id, g.current_user.id, sale.total_price
    )
    return success("Sale updated successfully", sale.to_dict())


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_capability(Capability.MANAGE_SALES)
def void_sale(sale_id: int):
    sale_service.void_sale(db.session, sale_id, user_id=g.current_user.id)
    current_app.logger.info("Sale %s voided by user %s", sale_id, g.current_user.id)
    return success("Sale voided successfully")
