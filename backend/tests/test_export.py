"""
Spreadsheet export tests.

Opens the generated workbook with openpyxl and checks the layout:
header row, merged document cells, GRAND TOTAL row, number formats.
"""

from datetime import date, datetime

from openpyxl import load_workbook

from posoffice.services import export_service, purchase_service, sale_service
from posoffice.time_utils import day_range

FEB = day_range(date(2025, 2, 1), date(2025, 2, 28))


def test_report_filename_uses_last_inclusive_day():
    assert export_service.report_filename("sales_report", FEB) == "sales_report_01-02-25_to_28-02-25.xlsx"


class TestPurchaseWorkbook:

    def test_layout(self, session, owner, supplier, make_product):
        a = make_product(name="Teh Botol")
        b = make_product(name="Kopi Susu")
        purchase_service.create_purchase(
            session, user_id=owner.id, supplier_id=supplier.id,
            items=[
                {"productId": a.id, "quantity": 2, "unitPrice": "3000.00"},
                {"productId": b.id, "quantity": 1, "unitPrice": "8000.00"},
            ],
            date=datetime(2025, 2, 3, 10, 0),
        )
        purchase_service.create_purchase(
            session, user_id=owner.id, supplier_id=supplier.id,
            items=[{"productId": a.id, "quantity": 5, "unitPrice": "3000.00"}],
            date=datetime(2025, 2, 4, 10, 0),
        )

        purchases = purchase_service.purchase_report(session, FEB, newest_first=False)
        ws = load_workbook(export_service.purchase_report_workbook(purchases)).active

        assert ws.title == "Purchase Report"
        assert [c.value for c in ws[1]] == [col.header for col in export_service.PURCHASE_COLUMNS]
        assert ws["A1"].font.bold

        # first purchase spans rows 2-3; its document columns are merged
        merged = {str(r) for r in ws.merged_cells.ranges}
        assert {"A2:A3", "B2:B3", "C2:C3", "D2:D3", "I2:I3"} <= merged
        assert not any(r.startswith("E") for r in merged)

        assert ws["E2"].value == "Teh Botol"
        assert ws["E3"].value == "Kopi Susu"
        assert ws["D2"].value == "PT Sumber Makmur"
        assert ws["B2"].value == datetime(2025, 2, 3, 10, 0)
        assert ws["B2"].number_format == export_service.DATE_FORMAT
        assert ws["I2"].value == 14000
        assert ws["G2"].number_format == export_service.DEFAULT_CURRENCY_FORMAT

        assert ws["D5"].value == "GRAND TOTAL"
        assert ws["I5"].value == 29000
        assert ws["I5"].font.bold
        assert ws.max_row == 5


class TestSalesWorkbook:

    def test_layout(self, session, cashier, make_product):
        product = make_product(name="Teh Botol", selling="5000.00", stock=10)
        sale_service.create_sale(
            session, user_id=cashier.id,
            items=[{"productId": product.id, "quantity": 3}],
            date=datetime(2025, 2, 3, 10, 0),
        )

        sales = sale_service.sales_report(session, FEB)
        ws = load_workbook(export_service.sales_report_workbook(sales, currency_format="#,##0.00")).active

        assert ws.title == "Sales Report"
        assert [c.value for c in ws[1]] == [col.header for col in export_service.SALE_COLUMNS]
        assert ws["C2"].value == "Kasir Satu"
        assert ws["F2"].value == 5000
        assert ws["F2"].number_format == "#,##0.00"
        assert len(ws.merged_cells.ranges) == 0

        assert ws["D3"].value == "GRAND TOTAL"
        assert ws["H3"].value == 15000

    def test_empty_range_has_only_total(self, session):
        ws = load_workbook(export_service.sales_report_workbook([])).active
        assert ws["D2"].value == "GRAND TOTAL"
        assert ws["H2"].value == 0


class TestExportRoutes:

    def test_sales_export_download(self, client, session, cashier, owner_headers, make_product):
        product = make_product(stock=10)
        sale_service.create_sale(
            session, user_id=cashier.id,
            items=[{"productId": product.id, "quantity": 1}],
            date=datetime(2025, 2, 3, 10, 0),
        )

        resp = client.get(
            "/api/sales/report/export?startDate=2025-02-01&endDate=2025-02-28",
            headers=owner_headers,
        )

        assert resp.status_code == 200
        assert resp.mimetype == export_service.XLSX_MIMETYPE
        assert "sales_report_01-02-25_to_28-02-25.xlsx" in resp.headers["Content-Disposition"]
        assert resp.data[:2] == b"PK"

    def test_purchase_export_requires_range(self, client, owner_headers):
        resp = client.get("/api/purchases/report/export", headers=owner_headers)
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_cashier_cannot_export(self, client, cashier_headers):
        resp = client.get(
            "/api/purchases/report/export?startDate=2025-02-01&endDate=2025-02-28",
            headers=cashier_headers,
        )
        assert resp.status_code == 403
