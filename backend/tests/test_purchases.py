"""
Purchase workflow tests (service layer and HTTP).

Verifies:
- Create adds stock, stores lines, total equals sum of subtotals
- Create records the supplier price as the product's purchase price
- Failures leave no header, no lines and no stock change
- Void reverses stock exactly and hides the purchase
- Edit reverses old lines and applies new ones in one step
"""

from datetime import datetime
from decimal import Decimal

import pytest

from posoffice.errors import (
    InsufficientStockError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from posoffice.models import Product, Purchase, PurchaseDetail
from posoffice.services import purchase_service, sale_service
from posoffice.time_utils import day_range
from posoffice.validation import MAX_QUANTITY

from conftest import current_stock


def _create(session, owner, supplier, items, **kw):
    return purchase_service.create_purchase(
        session, user_id=owner.id, supplier_id=supplier.id, items=items, **kw
    )


class TestCreatePurchase:

    def test_adds_stock_and_totals(self, session, owner, supplier, make_product):
        a = make_product(name="A", stock=2)
        b = make_product(name="B", stock=0)

        purchase = _create(session, owner, supplier, [
            {"productId": a.id, "quantity": 5, "unitPrice": 1000},
            {"productId": b.id, "quantity": 3, "unitPrice": "2500.50"},
        ])

        assert current_stock(session, a.id) == 7
        assert current_stock(session, b.id) == 3
        assert purchase.total_amount == Decimal("12501.50")
        assert sum(d.subtotal for d in purchase.details) == purchase.total_amount
        assert [d.quantity for d in purchase.details] == [5, 3]

    def test_updates_product_purchase_price(self, session, owner, supplier, make_product):
        product = make_product(purchase="3500.00")
        _create(session, owner, supplier, [{"productId": product.id, "quantity": 1, "unitPrice": 3750}])
        session.expire_all()
        assert session.get(Product, product.id).purchase_price == Decimal("3750.00")

    def test_zero_unit_price_allowed(self, session, owner, supplier, make_product):
        product = make_product()
        purchase = _create(session, owner, supplier, [{"productId": product.id, "quantity": 2, "unitPrice": 0}])
        assert purchase.total_amount == Decimal("0.00")
        assert current_stock(session, product.id) == 2

    def test_explicit_date(self, session, owner, supplier, make_product):
        product = make_product()
        when = datetime(2025, 2, 1, 9, 30)
        purchase = _create(session, owner, supplier, [{"productId": product.id, "quantity": 1, "unitPrice": 1}], date=when)
        assert purchase.date == when

    @pytest.mark.parametrize(
        "items",
        [
            None,
            [],
            [{"productId": 1, "quantity": 1}],
            [{"productId": 1, "quantity": 0, "unitPrice": 10}],
            [{"productId": 1, "quantity": 1.5, "unitPrice": 10}],
            [{"productId": 1, "quantity": 1, "unitPrice": -1}],
            [{"productId": 1, "quantity": 1, "unitPrice": "10.001"}],
        ],
    )
    def test_rejects_bad_items(self, session, owner, supplier, items):
        with pytest.raises(ValidationError):
            _create(session, owner, supplier, items)
        assert session.query(Purchase).count() == 0

    def test_quantity_ceiling(self, session, owner, supplier, make_product):
        product = make_product(stock=0)
        with pytest.raises(ValidationError):
            _create(session, owner, supplier, [
                {"productId": product.id, "quantity": MAX_QUANTITY + 1, "unitPrice": 1},
            ])
        assert current_stock(session, product.id) == 0
        assert session.query(Purchase).count() == 0

    def test_subtotal_and_total_ceiling(self, session, owner, supplier, make_product):
        product = make_product(stock=0)
        with pytest.raises(ValidationError):
            _create(session, owner, supplier, [
                {"productId": product.id, "quantity": 1000, "unitPrice": "9999999999.99"},
            ])
        # each line fits, their sum does not
        with pytest.raises(ValidationError):
            _create(session, owner, supplier, [
                {"productId": product.id, "quantity": 100, "unitPrice": "9999999999.99"},
                {"productId": product.id, "quantity": 100, "unitPrice": "9999999999.99"},
            ])
        assert current_stock(session, product.id) == 0
        assert session.query(PurchaseDetail).count() == 0

    def test_unknown_supplier(self, session, owner, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            purchase_service.create_purchase(
                session,
                user_id=owner.id,
                supplier_id=9999,
                items=[{"productId": product.id, "quantity": 1, "unitPrice": 1}],
            )

    def test_unknown_product_rolls_back_everything(self, session, owner, supplier, make_product):
        a = make_product(name="A", stock=1)
        b = make_product(name="B", stock=1)

        with pytest.raises(ProductNotFoundError):
            _create(session, owner, supplier, [
                {"productId": a.id, "quantity": 5, "unitPrice": 100},
                {"productId": b.id, "quantity": 5, "unitPrice": 100},
                {"productId": 9999, "quantity": 5, "unitPrice": 100},
            ])

        assert session.query(Purchase).count() == 0
        assert session.query(PurchaseDetail).count() == 0
        assert current_stock(session, a.id) == 1
        assert current_stock(session, b.id) == 1


class TestVoidPurchase:

    def test_round_trip_restores_stock(self, session, owner, supplier, make_product):
        product = make_product(stock=4)
        purchase = _create(session, owner, supplier, [{"productId": product.id, "quantity": 5, "unitPrice": 1000}])
        purchase_id = purchase.id
        assert current_stock(session, product.id) == 9

        purchase_service.void_purchase(session, purchase_id, user_id=owner.id)

        assert current_stock(session, product.id) == 4
        with pytest.raises(NotFoundError):
            purchase_service.get_purchase(session, purchase_id)
        assert purchase_service.list_purchases(session) == []

        row = session.get(Purchase, purchase_id)
        assert row.deleted_at is not None
        assert row.voided_by_user_id == owner.id
        assert session.query(PurchaseDetail).filter(PurchaseDetail.deleted_at.is_(None)).count() == 0

    def test_void_twice_is_not_found(self, session, owner, supplier, make_product):
        product = make_product()
        purchase = _create(session, owner, supplier, [{"productId": product.id, "quantity": 1, "unitPrice": 1}])
        purchase_service.void_purchase(session, purchase.id, user_id=owner.id)
        with pytest.raises(NotFoundError):
            purchase_service.void_purchase(session, purchase.id, user_id=owner.id)
        assert current_stock(session, product.id) == 0

    def test_void_after_goods_sold_is_refused(self, session, owner, supplier, make_product):
        product = make_product(stock=0)
        purchase = _create(session, owner, supplier, [{"productId": product.id, "quantity": 5, "unitPrice": 1000}])
        sale_service.create_sale(session, user_id=owner.id, items=[{"productId": product.id, "quantity": 3}])

        with pytest.raises(InsufficientStockError):
            purchase_service.void_purchase(session, purchase.id, user_id=owner.id)

        assert current_stock(session, product.id) == 2
        assert purchase_service.get_purchase(session, purchase.id).deleted_at is None


class TestEditPurchase:

    def test_replaces_lines_and_nets_stock(self, session, owner, supplier, make_product):
        a = make_product(name="A")
        b = make_product(name="B")
        purchase = _create(session, owner, supplier, [{"productId": a.id, "quantity": 5, "unitPrice": 100}])

        edited = purchase_service.edit_purchase(
            session,
            purchase.id,
            supplier_id=supplier.id,
            items=[
                {"productId": a.id, "quantity": 2, "unitPrice": 100},
                {"productId": b.id, "quantity": 4, "unitPrice": 50},
            ],
        )

        assert edited.id == purchase.id
        assert current_stock(session, a.id) == 2
        assert current_stock(session, b.id) == 4
        assert edited.total_amount == Decimal("400.00")
        assert [(d.product_id, d.quantity) for d in edited.details] == [(a.id, 2), (b.id, 4)]
        # Old line kept as history, hidden from reads
        assert session.query(PurchaseDetail).filter(PurchaseDetail.deleted_at.isnot(None)).count() == 1

    def test_failed_edit_keeps_old_state(self, session, owner, supplier, make_product):
        a = make_product(name="A")
        purchase = _create(session, owner, supplier, [{"productId": a.id, "quantity": 5, "unitPrice": 100}])

        with pytest.raises(ProductNotFoundError):
            purchase_service.edit_purchase(
                session,
                purchase.id,
                supplier_id=supplier.id,
                items=[{"productId": 9999, "quantity": 1, "unitPrice": 1}],
            )

        kept = purchase_service.get_purchase(session, purchase.id)
        assert kept.total_amount == Decimal("500.00")
        assert [(d.product_id, d.quantity) for d in kept.details] == [(a.id, 5)]
        assert current_stock(session, a.id) == 5

    def test_edit_unknown_purchase(self, session, owner, supplier, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            purchase_service.edit_purchase(
                session,
                9999,
                supplier_id=supplier.id,
                items=[{"productId": product.id, "quantity": 1, "unitPrice": 1}],
            )


class TestListPurchases:

    def test_range_filter_newest_first(self, session, owner, supplier, make_product):
        product = make_product()
        item = [{"productId": product.id, "quantity": 1, "unitPrice": 1}]
        jan = _create(session, owner, supplier, item, date=datetime(2025, 1, 31, 23, 59))
        feb1 = _create(session, owner, supplier, item, date=datetime(2025, 2, 1, 0, 0))
        feb28 = _create(session, owner, supplier, item, date=datetime(2025, 2, 28, 23, 59, 59))
        mar = _create(session, owner, supplier, item, date=datetime(2025, 3, 1, 0, 0))

        window = day_range(datetime(2025, 2, 1).date(), datetime(2025, 2, 28).date())
        ids = [p.id for p in purchase_service.list_purchases(session, window)]
        assert ids == [feb28.id, feb1.id]

        report_ids = [p.id for p in purchase_service.purchase_report(session, window)]
        assert report_ids == [feb28.id, feb1.id]
        export_ids = [p.id for p in purchase_service.purchase_report(session, window, newest_first=False)]
        assert export_ids == [feb1.id, feb28.id]
        assert jan.id not in ids and mar.id not in ids


class TestPurchaseRoutes:

    def test_create_and_get(self, client, owner_headers, supplier, make_product):
        product = make_product()
        resp = client.post("/api/purchases", json={
            "supplierId": supplier.id,
            "items": [{"productId": product.id, "quantity": 5, "unitPrice": 1000}],
        }, headers=owner_headers)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["message"] == "Purchase created successfully"
        assert body["data"]["totalAmount"] == "5000.00"
        assert body["data"]["supplier"]["name"] == supplier.name
        assert body["data"]["purchaseDetail"][0]["product"]["purchasePrice"] == "1000.00"

        purchase_id = body["data"]["id"]
        got = client.get(f"/api/purchases/{purchase_id}", headers=owner_headers)
        assert got.status_code == 200
        assert got.get_json()["data"]["purchaseDetail"][0]["quantity"] == 5

    def test_missing_items_is_400(self, client, owner_headers, supplier):
        resp = client.post("/api/purchases", json={"supplierId": supplier.id, "items": []}, headers=owner_headers)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert body["data"] is None

    def test_huge_quantity_is_400(self, client, owner_headers, supplier, make_product):
        product = make_product(stock=0)
        resp = client.post("/api/purchases", json={
            "supplierId": supplier.id,
            "items": [{"productId": product.id, "quantity": 10**20, "unitPrice": 1}],
        }, headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "items[0].quantity cannot exceed 1,000,000"

    def test_unknown_product_is_404(self, client, owner_headers, supplier):
        resp = client.post("/api/purchases", json={
            "supplierId": supplier.id,
            "items": [{"productId": 9999, "quantity": 1, "unitPrice": 1}],
        }, headers=owner_headers)
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Product with ID 9999 not found"

    def test_void_and_report_routes(self, client, owner_headers, supplier, make_product):
        product = make_product()
        created = client.post("/api/purchases", json={
            "supplierId": supplier.id,
            "date": "2025-02-10T08:00:00Z",
            "items": [{"productId": product.id, "quantity": 2, "unitPrice": 10}],
        }, headers=owner_headers).get_json()["data"]

        report = client.get(
            "/api/purchases/report?startDate=2025-02-01&endDate=2025-02-28", headers=owner_headers
        )
        assert report.status_code == 200
        assert [p["id"] for p in report.get_json()["data"]] == [created["id"]]

        assert client.get("/api/purchases/report", headers=owner_headers).status_code == 400

        voided = client.delete(f"/api/purchases/{created['id']}", headers=owner_headers)
        assert voided.status_code == 200
        assert client.get(f"/api/purchases/{created['id']}", headers=owner_headers).status_code == 404

    def test_cashier_cannot_purchase(self, client, cashier_headers, supplier, make_product):
        product = make_product()
        resp = client.post("/api/purchases", json={
            "supplierId": supplier.id,
            "items": [{"productId": product.id, "quantity": 1, "unitPrice": 1}],
        }, headers=cashier_headers)
        assert resp.status_code == 403
