"""
Catalog, supplier and system endpoint tests.

Verifies:
- Category and supplier names are unique, soft-deleted rows included
- Product stock cannot be written through the catalog
- Products must reference a live category
- Soft-deleted rows disappear from reads but keep history intact
"""

from datetime import datetime

import pytest

from posoffice.errors import ConstraintViolationError, NotFoundError, ValidationError
from posoffice.models import Category, Product
from posoffice.services import category_service, product_service, sale_service, supplier_service


class TestCategories:

    def test_crud_roundtrip(self, client, owner_headers):
        created = client.post("/api/categories", json={"name": "Makanan"}, headers=owner_headers)
        assert created.status_code == 201
        category_id = created.get_json()["data"]["id"]

        renamed = client.put(f"/api/categories/{category_id}", json={"name": "Snack"}, headers=owner_headers)
        assert renamed.status_code == 200
        assert renamed.get_json()["data"]["name"] == "Snack"

        assert client.delete(f"/api/categories/{category_id}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/categories/{category_id}", headers=owner_headers).status_code == 404

    def test_duplicate_name_is_400(self, client, owner_headers, category):
        resp = client.post("/api/categories", json={"name": "Minuman"}, headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Category name already exists"

    def test_name_of_deleted_category_stays_taken(self, session, category):
        category_service.delete_category(session, category.id)
        with pytest.raises(ConstraintViolationError):
            category_service.create_category(session, {"name": "Minuman"})

    def test_blank_name_rejected(self, session):
        with pytest.raises(ValidationError):
            category_service.create_category(session, {"name": "  "})

    def test_delete_refused_while_products_live(self, session, category, make_product):
        product = make_product()
        with pytest.raises(ConstraintViolationError):
            category_service.delete_category(session, category.id)

        product_service.delete_product(session, product.id)
        category_service.delete_category(session, category.id)
        assert session.get(Category, category.id).deleted_at is not None

    def test_cashier_can_read_not_write(self, client, cashier_headers, category):
        assert client.get("/api/categories", headers=cashier_headers).status_code == 200
        assert client.post("/api/categories", json={"name": "X"}, headers=cashier_headers).status_code == 403


class TestProducts:

    def test_create_starts_at_zero_stock(self, client, owner_headers, category):
        resp = client.post("/api/products", json={
            "categoryId": category.id,
            "name": "Aqua 600ml",
            "sellingPrice": "3500",
            "purchasePrice": 2500,
        }, headers=owner_headers)

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["stock"] == 0
        assert data["sellingPrice"] == "3500.00"
        assert data["purchasePrice"] == "2500.00"

    def test_stock_is_read_only(self, client, owner_headers, category, make_product):
        resp = client.post("/api/products", json={
            "categoryId": category.id, "name": "X", "sellingPrice": 1, "purchasePrice": 1, "stock": 50,
        }, headers=owner_headers)
        assert resp.status_code == 400

        product = make_product(stock=7)
        resp = client.put(f"/api/products/{product.id}", json={"stock": 100}, headers=owner_headers)
        assert resp.status_code == 400

    def test_missing_category(self, client, owner_headers):
        resp = client.post("/api/products", json={
            "categoryId": 9999, "name": "X", "sellingPrice": 1, "purchasePrice": 1,
        }, headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Category with ID 9999 does not exist"

    @pytest.mark.parametrize("price", [-1, "abc", "1.005", True])
    def test_bad_price(self, session, category, price):
        with pytest.raises(ValidationError):
            product_service.create_product(session, {
                "categoryId": category.id, "name": "X", "sellingPrice": price, "purchasePrice": 1,
            })

    def test_update_keeps_stock(self, session, make_product):
        product = make_product(stock=7)
        updated = product_service.update_product(session, product.id, {"name": "Teh Kotak", "sellingPrice": "6000"})
        assert updated.name == "Teh Kotak"
        assert updated.stock == 7

    def test_filter_by_category(self, client, session, owner_headers, category, make_product):
        other = Category(name="Makanan")
        session.add(other)
        session.commit()
        make_product(name="Teh Botol")
        session.add(Product(category_id=other.id, name="Roti", selling_price=1, purchase_price=1, stock=0))
        session.commit()

        resp = client.get(f"/api/products?categoryId={other.id}", headers=owner_headers)
        assert [p["name"] for p in resp.get_json()["data"]] == ["Roti"]

    @pytest.mark.parametrize("value", ["abc", "1.5"])
    def test_malformed_category_filter_is_400(self, client, owner_headers, make_product, value):
        make_product()
        resp = client.get(f"/api/products?categoryId={value}", headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["data"] is None

    def test_deleted_product_hidden_but_history_kept(self, session, cashier, make_product):
        product = make_product(stock=5)
        sale = sale_service.create_sale(
            session, user_id=cashier.id, items=[{"productId": product.id, "quantity": 1}],
            date=datetime(2025, 2, 1, 8, 0),
        )
        product_service.delete_product(session, product.id)

        assert product_service.list_products(session) == []
        with pytest.raises(NotFoundError):
            product_service.get_product(session, product.id)
        assert sale_service.get_sale(session, sale.id).details[0].product.name == "Teh Botol"


class TestSuppliers:

    def test_create_and_list(self, client, owner_headers):
        resp = client.post("/api/suppliers", json={
            "name": "CV Berkah", "phoneNumber": "(021) 555-0101", "address": "Bandung",
        }, headers=owner_headers)
        assert resp.status_code == 201

        listed = client.get("/api/suppliers", headers=owner_headers).get_json()["data"]
        assert [s["name"] for s in listed] == ["CV Berkah"]

    @pytest.mark.parametrize("phone", ["call me", "0812#123"])
    def test_bad_phone(self, session, phone):
        with pytest.raises(ValidationError):
            supplier_service.create_supplier(session, {"name": "X", "phoneNumber": phone})

    def test_phone_required(self, session):
        with pytest.raises(ValidationError):
            supplier_service.create_supplier(session, {"name": "X"})

    def test_duplicate_name(self, session, supplier):
        with pytest.raises(ConstraintViolationError):
            supplier_service.create_supplier(session, {"name": "PT Sumber Makmur", "phoneNumber": "0812"})

    def test_delete_hides_supplier_from_new_purchases(self, client, session, owner_headers, supplier, make_product):
        product = make_product()
        supplier_service.delete_supplier(session, supplier.id)

        resp = client.post("/api/purchases", json={
            "supplierId": supplier.id,
            "items": [{"productId": product.id, "quantity": 1, "unitPrice": 1}],
        }, headers=owner_headers)
        assert resp.status_code == 404


class TestSystem:

    def test_index(self, client):
        body = client.get("/").get_json()
        assert body["success"] is True
        assert body["data"]["name"] == "posoffice"

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["database"]["status"] == "healthy"

    def test_unknown_route_envelope(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.get_json() == {"success": False, "message": "Not found", "data": None}

    def test_cors_for_configured_origin(self, client):
        resp = client.get("/", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        other = client.get("/", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers
