# Overview: Service-layer operations for reporting; read-only profit rollups over committed sales.

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import func

from ..models import Product, Sale, SaleDetail
from ..money_utils import format_money, margin_percent, to_decimal


def _revenue_expr():
    return func.sum(SaleDetail.unit_price * SaleDetail.quantity)


def _cost_expr():
    return func.sum(SaleDetail.unit_cost * SaleDetail.quantity)


def _live_lines_in_range(query, date_range: tuple[datetime, datetime]):
    start, end = date_range
    return (
        query.join(Sale, Sale.id == SaleDetail.sale_id)
        .filter(
            Sale.deleted_at.is_(None),
            SaleDetail.deleted_at.is_(None),
            Sale.date >= start,
            Sale.date < end,
        )
    )


def _money_fields(revenue, cost) -> dict:
    total_sale = to_decimal(revenue)
    total_cost = to_decimal(cost)
    profit = total_sale - total_cost
    return {
        "totalSale": format_money(total_sale),
        "totalCost": format_money(total_cost),
        "profit": format_money(profit),
        "margin": margin_percent(profit, total_sale),
    }


def _day_label(value) -> str:
    # SQLite DATE() yields text; other backends yield a date
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)


def profit_by_date(session, date_range: tuple[datetime, datetime]) -> list[dict]:
    """
    Revenue, cost, profit and margin per calendar day of the parent sale.

    Days come from the stored UTC timestamp. Oldest day first.
    """
    day = func.date(Sale.date)
    query = session.query(
        day.label("day"),
        _revenue_expr().label("revenue"),
        _cost_expr().label("cost"),
    ).select_from(SaleDetail)

    rows = _live_lines_in_range(query, date_range).group_by(day).order_by(day.asc()).all()
    return [
        {"date": _day_label(row.day), **_money_fields(row.revenue, row.cost)}
        for row in rows
    ]


def profit_by_product(session, date_range: tuple[datetime, datetime]) -> list[dict]:
    """Same rollup keyed by product, most profitable first."""
    revenue = _revenue_expr()
    cost = _cost_expr()
    query = session.query(
        SaleDetail.product_id.label("product_id"),
        Product.name.label("product_name"),
        func.sum(SaleDetail.quantity).label("qty_sold"),
        revenue.label("revenue"),
        cost.label("cost"),
    ).select_from(SaleDetail).join(Product, Product.id == SaleDetail.product_id)

    rows = (
        _live_lines_in_range(query, date_range)
        .group_by(SaleDetail.product_id, Product.name)
        .order_by((revenue - cost).desc(), SaleDetail.product_id.asc())
        .all()
    )
    return [
        {
            "productId": row.product_id,
            "productName": row.product_name,
            "qtySold": int(row.qty_sold or 0),
            **_money_fields(row.revenue, row.cost),
        }
        for row in rows
    ]
