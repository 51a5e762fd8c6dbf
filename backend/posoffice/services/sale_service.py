# Overview: Service-layer operations for sales; create, edit and void as single units of work.

"""
Sales Service - stock outbound documents

PRICING: a sale line's unit_price and unit_cost are snapshots of the
product's selling and purchase price at transaction time. Any price sent
by the client is ignored.

STOCK FLOOR: every decrement goes through the stock engine's guarded
UPDATE, so an oversell fails with InsufficientStockError and the whole
sale (header, lines, other products' stock) is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import joinedload, selectinload

from ..errors import NotFoundError, ProductNotFoundError, ValidationError
from ..models import Product, Sale, SaleDetail
from ..time_utils import utcnow
from ..validation import coerce_int, coerce_quantity, enforce_amount
from .concurrency import UnitOfWork, lock_for_update
from .stock_service import apply_deltas


@dataclass(frozen=True)
class SaleItem:
    product_id: int
    quantity: int


def parse_items(items) -> list[SaleItem]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Items are required")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if item.get("productId") in (None, "") or item.get("quantity") in (None, ""):
            raise ValidationError(
                "Each item must have productId and quantity",
                details={"index": index},
            )
        quantity = coerce_quantity(item["quantity"], f"items[{index}].quantity")
        parsed.append(SaleItem(
            product_id=coerce_int(item["productId"], f"items[{index}].productId"),
            quantity=quantity,
        ))
    return parsed


def _lock_sale(session, sale_id: int) -> Sale:
    sale = lock_for_update(
        session.query(Sale).filter(Sale.id == sale_id, Sale.deleted_at.is_(None))
    ).first()
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def _live_lines(session, sale_id: int) -> list[SaleDetail]:
    return (
        session.query(SaleDetail)
        .filter(SaleDetail.sale_id == sale_id, SaleDetail.deleted_at.is_(None))
        .order_by(SaleDetail.id)
        .all()
    )


def _write_lines(session, sale: Sale, items: list[SaleItem]) -> tuple[Decimal, list[tuple[int, int]]]:
    total = Decimal("0.00")
    changes = []
    for item in items:
        product = (
            session.query(Product)
            .filter(Product.id == item.product_id, Product.deleted_at.is_(None))
            .first()
        )
        if product is None:
            raise ProductNotFoundError(item.product_id)

        unit_price = product.selling_price
        subtotal = unit_price * item.quantity
        enforce_amount(subtotal, f"Subtotal for product {product.id}")
        session.add(SaleDetail(
            sale_id=sale.id,
            product_id=product.id,
            quantity=item.quantity,
            unit_price=unit_price,
            unit_cost=product.purchase_price,
            subtotal=subtotal,
        ))

        total += subtotal
        changes.append((product.id, -item.quantity))
    enforce_amount(total, "Sale total")
    return total, changes


def create_sale(session, *, user_id: int, items, date: datetime | None = None) -> Sale:
    """Ring up a sale: snapshot prices, take quantities out of stock."""
    parsed = parse_items(items)

    with UnitOfWork(session, label="create sale"):
        sale = Sale(user_id=user_id, total_price=Decimal("0.00"))
        if date is not None:
            sale.date = date
        session.add(sale)
        session.flush()

        total, changes = _write_lines(session, sale, parsed)
        apply_deltas(session, changes)
        sale.total_price = total

    return sale


def edit_sale(session, sale_id: int, *, items, date: datetime | None = None) -> Sale:
    """
    Replace a sale's line set.

    Reversal of the old lines and the new lines are netted per product, so
    raising a line from 3 to 5 needs only 2 more units on hand.
    """
    parsed = parse_items(items)

    with UnitOfWork(session, label="edit sale"):
        sale = _lock_sale(session, sale_id)

        now = utcnow()
        changes = []
        for line in _live_lines(session, sale.id):
            changes.append((line.product_id, line.quantity))
            line.deleted_at = now

        total, new_changes = _write_lines(session, sale, parsed)
        apply_deltas(session, changes + new_changes)

        sale.total_price = total
        if date is not None:
            sale.date = date

    return sale


def void_sale(session, sale_id: int, *, user_id: int) -> Sale:
    """Void a sale and put its quantities back into stock."""
    with UnitOfWork(session, label="void sale"):
        sale = _lock_sale(session, sale_id)

        now = utcnow()
        changes = []
        for line in _live_lines(session, sale.id):
            changes.append((line.product_id, line.quantity))
            line.deleted_at = now

        apply_deltas(session, changes)

        sale.deleted_at = now
        sale.voided_by_user_id = user_id

    return sale


def _with_relations(query):
    return query.options(
        joinedload(Sale.user),
        selectinload(Sale.details).joinedload(SaleDetail.product),
    )


def get_sale(session, sale_id: int) -> Sale:
    sale = _with_relations(
        session.query(Sale).filter(Sale.id == sale_id, Sale.deleted_at.is_(None))
    ).first()
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(
    session,
    date_range: tuple[datetime, datetime] | None = None,
    *,
    user_id: int | None = None,
    newest_first: bool = True,
) -> list[Sale]:
    """Live sales, optionally for one cashier and/or a half-open [start, end) window."""
    query = _with_relations(session.query(Sale).filter(Sale.deleted_at.is_(None)))
    if user_id is not None:
        query = query.filter(Sale.user_id == user_id)
    if date_range is not None:
        start, end = date_range
        query = query.filter(Sale.date >= start, Sale.date < end)
    if newest_first:
        query = query.order_by(Sale.date.desc(), Sale.id.desc())
    else:
        query = query.order_by(Sale.date.asc(), Sale.id.asc())
    return query.all()


def list_sales_by_cashier(session, cashier_id: int, date_range: tuple[datetime, datetime] | None = None) -> list[Sale]:
    return list_sales(session, date_range, user_id=cashier_id)


def sales_report(session, date_range: tuple[datetime, datetime]) -> list[Sale]:
    """Sales in range with cashier and product names, oldest first."""
    return list_sales(session, date_range, newest_first=False)
