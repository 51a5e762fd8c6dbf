# Overview: Service-layer operations for stock; the only writer of Product.stock.

"""
Stock Adjustment Engine

Invariants (authoritative):
- Product.stock changes only through adjust_stock(), inside the caller's
  unit of work.
- Each adjustment is a single in-place UPDATE (stock = stock + delta);
  application code never reads stock, computes, and writes it back.
- Floor policy: a negative delta that would take stock below zero is
  rejected with InsufficientStockError. The guard lives in the same UPDATE
  statement, so concurrent sellers of one product are serialized by the
  database row lock and the loser sees the winner's result.
- Positive deltas are never refused for a product that exists.
- Soft-deleted products still accept adjustments (reversals of historical
  lines must always be possible).
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import update

from ..errors import InsufficientStockError, ProductNotFoundError
from ..models import Product


def adjust_stock(session, product_id: int, delta_quantity: int) -> None:
    """
    Apply a signed stock delta to one product atomically.

    Positive delta: purchase received, sale voided.
    Negative delta: sale rung up, purchase voided.

    Raises:
        ProductNotFoundError: no product row with this id
        InsufficientStockError: negative delta would breach the floor
    """
    if delta_quantity == 0:
        if session.query(Product.id).filter(Product.id == product_id).first() is None:
            raise ProductNotFoundError(product_id)
        return

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + delta_quantity)
        .execution_options(synchronize_session=False)
    )
    if delta_quantity < 0:
        stmt = stmt.where(Product.stock + delta_quantity >= 0)

    result = session.execute(stmt)
    if result.rowcount == 1:
        _expire_cached_stock(session, product_id)
        return

    row = session.query(Product.id, Product.name, Product.stock).filter(Product.id == product_id).first()
    if row is None:
        raise ProductNotFoundError(product_id)
    raise InsufficientStockError(
        product_id=product_id,
        available=row.stock,
        requested=-delta_quantity,
        product_name=row.name,
    )


def net_deltas(changes: Iterable[tuple[int, int]]) -> dict[int, int]:
    """Collapse (product_id, delta) pairs into one net delta per product."""
    totals: dict[int, int] = {}
    for product_id, delta in changes:
        totals[product_id] = totals.get(product_id, 0) + delta
    return totals


def apply_deltas(session, changes: Iterable[tuple[int, int]]) -> None:
    """
    Apply a batch of stock changes as net per-product adjustments.

    Increments run before decrements, each group in product id order so
    concurrent documents take row locks in the same order. A document is
    judged against the floor by its final effect only.
    """
    totals = net_deltas(changes)
    ordered = sorted(totals.items(), key=lambda item: (item[1] < 0, item[0]))
    for product_id, delta in ordered:
        if delta != 0:
            adjust_stock(session, product_id, delta)


def _expire_cached_stock(session, product_id: int) -> None:
    # The UPDATE bypasses the identity map; drop any cached value.
    cached = session.identity_map.get(session.identity_key(Product, product_id))
    if cached is not None:
        session.expire(cached, ["stock"])
