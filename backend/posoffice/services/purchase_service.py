# Overview: Service-layer operations for purchases; create, edit and void as single units of work.

"""
Purchase Service - stock inbound documents

Every workflow runs inside one UnitOfWork:
- create: validate items, persist header + lines, add stock, set total
- edit:   retire old lines, persist new lines, apply the NET stock change
- void:   retire lines and header, remove the stock they added

A purchase line's unitPrice is the supplier's cost as sent by the client.
Committing a line also records that price as the product's purchase price.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import joinedload, selectinload

from ..errors import NotFoundError, ProductNotFoundError, ValidationError
from ..models import Product, Purchase, PurchaseDetail, Supplier
from ..time_utils import utcnow
from ..validation import coerce_int, coerce_money, coerce_quantity, enforce_amount
from .concurrency import UnitOfWork, lock_for_update
from .stock_service import apply_deltas


@dataclass(frozen=True)
class PurchaseItem:
    product_id: int
    quantity: int
    unit_price: Decimal


def parse_items(items) -> list[PurchaseItem]:
    """Validate the raw `items` payload. Raises ValidationError before any write."""
    if not isinstance(items, list) or not items:
        raise ValidationError("Items must be minimum one item")

    parsed = []
    total = Decimal("0.00")
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        missing = [k for k in ("productId", "quantity", "unitPrice") if item.get(k) in (None, "")]
        if missing:
            raise ValidationError(
                "Each item must have productId, quantity, and unitPrice",
                details={"index": index, "missing": missing},
            )
        quantity = coerce_quantity(item["quantity"], f"items[{index}].quantity")
        unit_price = coerce_money(item["unitPrice"], f"items[{index}].unitPrice")
        subtotal = unit_price * quantity
        enforce_amount(subtotal, f"items[{index}] subtotal")
        total += subtotal
        parsed.append(PurchaseItem(
            product_id=coerce_int(item["productId"], f"items[{index}].productId"),
            quantity=quantity,
            unit_price=unit_price,
        ))
    enforce_amount(total, "Purchase total")
    return parsed


def _get_supplier(session, supplier_id) -> Supplier:
    if supplier_id in (None, ""):
        raise ValidationError("Supplier ID, and items are required")
    supplier_id = coerce_int(supplier_id, "supplierId")
    supplier = (
        session.query(Supplier)
        .filter(Supplier.id == supplier_id, Supplier.deleted_at.is_(None))
        .first()
    )
    if supplier is None:
        raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def _lock_purchase(session, purchase_id: int) -> Purchase:
    purchase = lock_for_update(
        session.query(Purchase).filter(Purchase.id == purchase_id, Purchase.deleted_at.is_(None))
    ).first()
    if purchase is None:
        raise NotFoundError("Purchase not found", details={"purchase_id": purchase_id})
    return purchase


def _live_lines(session, purchase_id: int) -> list[PurchaseDetail]:
    return (
        session.query(PurchaseDetail)
        .filter(PurchaseDetail.purchase_id == purchase_id, PurchaseDetail.deleted_at.is_(None))
        .order_by(PurchaseDetail.id)
        .all()
    )


def _write_lines(session, purchase: Purchase, items: list[PurchaseItem]) -> tuple[Decimal, list[tuple[int, int]]]:
    """
    Persist one PurchaseDetail per item and return (total, stock changes).

    Stock is not touched here; the caller hands the changes to apply_deltas
    together with any reversals so the engine sees one net delta per product.
    """
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

        subtotal = item.unit_price * item.quantity
        session.add(PurchaseDetail(
            purchase_id=purchase.id,
            product_id=product.id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=subtotal,
        ))
        # Latest supplier cost becomes the product's purchase price
        product.purchase_price = item.unit_price

        total += subtotal
        changes.append((product.id, item.quantity))
    return total, changes


def create_purchase(
    session,
    *,
    user_id: int,
    supplier_id,
    items,
    date: datetime | None = None,
) -> Purchase:
    """Record goods received from a supplier and add them to stock."""
    parsed = parse_items(items)

    with UnitOfWork(session, label="create purchase"):
        supplier = _get_supplier(session, supplier_id)

        purchase = Purchase(
            user_id=user_id,
            supplier_id=supplier.id,
            total_amount=Decimal("0.00"),
        )
        if date is not None:
            purchase.date = date
        session.add(purchase)
        session.flush()

        total, changes = _write_lines(session, purchase, parsed)
        apply_deltas(session, changes)
        purchase.total_amount = total

    return purchase


def edit_purchase(
    session,
    purchase_id: int,
    *,
    supplier_id,
    items,
    date: datetime | None = None,
) -> Purchase:
    """
    Replace a purchase's supplier and line set.

    Old lines are retired and their stock reversed in the same unit as the
    new lines are applied; readers see either the old or the new purchase.
    """
    parsed = parse_items(items)

    with UnitOfWork(session, label="edit purchase"):
        purchase = _lock_purchase(session, purchase_id)
        supplier = _get_supplier(session, supplier_id)

        now = utcnow()
        changes = []
        for line in _live_lines(session, purchase.id):
            changes.append((line.product_id, -line.quantity))
            line.deleted_at = now

        total, new_changes = _write_lines(session, purchase, parsed)
        apply_deltas(session, changes + new_changes)

        purchase.supplier_id = supplier.id
        purchase.total_amount = total
        if date is not None:
            purchase.date = date

    return purchase


def void_purchase(session, purchase_id: int, *, user_id: int) -> Purchase:
    """
    Void a purchase and take its quantities back out of stock.

    Fails with InsufficientStockError when the received goods have
    already been sold below the purchased quantity.
    """
    with UnitOfWork(session, label="void purchase"):
        purchase = _lock_purchase(session, purchase_id)

        now = utcnow()
        changes = []
        for line in _live_lines(session, purchase.id):
            changes.append((line.product_id, -line.quantity))
            line.deleted_at = now

        apply_deltas(session, changes)

        purchase.deleted_at = now
        purchase.voided_by_user_id = user_id

    return purchase


def _with_relations(query):
    return query.options(
        joinedload(Purchase.user),
        joinedload(Purchase.supplier),
        selectinload(Purchase.details).joinedload(PurchaseDetail.product),
    )


def get_purchase(session, purchase_id: int) -> Purchase:
    purchase = _with_relations(
        session.query(Purchase).filter(Purchase.id == purchase_id, Purchase.deleted_at.is_(None))
    ).first()
    if purchase is None:
        raise NotFoundError("Purchase not found", details={"purchase_id": purchase_id})
    return purchase


def list_purchases(session, date_range: tuple[datetime, datetime] | None = None, *, newest_first: bool = True) -> list[Purchase]:
    """Live purchases, optionally limited to a half-open [start, end) window."""
    query = _with_relations(session.query(Purchase).filter(Purchase.deleted_at.is_(None)))
    if date_range is not None:
        start, end = date_range
        query = query.filter(Purchase.date >= start, Purchase.date < end)
    if newest_first:
        query = query.order_by(Purchase.date.desc(), Purchase.id.desc())
    else:
        query = query.order_by(Purchase.date.asc(), Purchase.id.asc())
    return query.all()


def purchase_report(
    session,
    date_range: tuple[datetime, datetime],
    *,
    newest_first: bool = True,
) -> list[Purchase]:
    """
    Purchases in range with supplier, user and product names.

    Newest first by default; the spreadsheet export asks for oldest first.
    """
    return list_purchases(session, date_range, newest_first=newest_first)
