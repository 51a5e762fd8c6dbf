# Overview: Spreadsheet export of purchase and sales reports (openpyxl).

"""
Report workbooks

Layout per transaction: one row per line; the document-level columns
(id, date, cashier, supplier, total) are merged vertically across that
transaction's rows. A bold GRAND TOTAL row closes the sheet.

Pure read-side transform: takes already-loaded Purchase/Sale objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter

from ..money_utils import to_decimal

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DATE_FORMAT = "dd-mm-yyyy hh:mm:ss"
DEFAULT_CURRENCY_FORMAT = '"Rp" #,##0'

_THIN = Side(style="thin")
_BORDER = Border(top=_THIN, left=_THIN, bottom=_THIN, right=_THIN)
_CENTER = Alignment(vertical="center", horizontal="center")


@dataclass(frozen=True)
class Column:
    key: str
    header: str
    width: int
    money: bool = False
    merged: bool = False


PURCHASE_COLUMNS = (
    Column("id", "Purchase ID", 12, merged=True),
    Column("date", "Date", 20, merged=True),
    Column("user", "Cashier", 18, merged=True),
    Column("supplier", "Supplier", 25, merged=True),
    Column("product", "Product", 35),
    Column("qty", "Qty", 8),
    Column("price", "Purchase Price", 15, money=True),
    Column("subtotal", "Subtotal", 15, money=True),
    Column("total", "Total Purchase", 18, money=True, merged=True),
)

SALE_COLUMNS = (
    Column("id", "Sale ID", 10, merged=True),
    Column("date", "Date", 20, merged=True),
    Column("user", "Cashier", 15, merged=True),
    Column("product", "Product", 35),
    Column("qty", "Qty", 8),
    Column("price", "Price", 15, money=True),
    Column("subtotal", "Subtotal", 15, money=True),
    Column("total", "Total Sale", 15, money=True, merged=True),
)


def report_filename(prefix: str, date_range: tuple[datetime, datetime]) -> str:
    """
    e.g. purchase_report_01-02-25_to_28-02-25.xlsx

    date_range is the half-open window, so the last day is end - 1 day.
    """
    start, end = date_range
    last_day = (end - timedelta(days=1)).date()
    return f"{prefix}_{start.strftime('%d-%m-%y')}_to_{last_day.strftime('%d-%m-%y')}.xlsx"


def _build_workbook(
    title: str,
    columns: tuple[Column, ...],
    documents: list[tuple[dict, list[dict]]],
    total_label_key: str,
    currency_format: str,
) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = title

    index = {col.key: i + 1 for i, col in enumerate(columns)}

    for col in columns:
        ws.column_dimensions[get_column_letter(index[col.key])].width = col.width
        cell = ws.cell(row=1, column=index[col.key], value=col.header)
        cell.font = Font(bold=True)

    row = 2
    grand_total = to_decimal(0)
    for header, lines in documents:
        grand_total += to_decimal(header["total"])
        start_row = row
        for line in lines:
            values = {**header, **line}
            for col in columns:
                value = values.get(col.key)
                if col.money and value is not None:
                    value = float(to_decimal(value))
                ws.cell(row=row, column=index[col.key], value=value)
            row += 1

        end_row = row - 1
        if end_row > start_row:
            for col in columns:
                if col.merged:
                    letter = get_column_letter(index[col.key])
                    ws.merge_cells(f"{letter}{start_row}:{letter}{end_row}")
                    ws[f"{letter}{start_row}"].alignment = _CENTER

    total_row = row
    ws.cell(row=total_row, column=index[total_label_key], value="GRAND TOTAL")
    ws.cell(row=total_row, column=index["total"], value=float(grand_total))
    for col in columns:
        ws.cell(row=total_row, column=index[col.key]).font = Font(bold=True)

    for col in columns:
        column_idx = index[col.key]
        for r in range(2, total_row + 1):
            cell = ws.cell(row=r, column=column_idx)
            if col.money:
                cell.number_format = currency_format
            elif col.key == "date":
                cell.number_format = DATE_FORMAT

    for cells in ws.iter_rows(min_row=1, max_row=total_row, max_col=len(columns)):
        for cell in cells:
            cell.border = _BORDER

    return wb


def _save(wb: Workbook) -> BytesIO:
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def _as_local_naive(value: datetime) -> datetime:
    # Excel has no timezone; stored values are already UTC-naive
    return value.replace(tzinfo=None) if value.tzinfo else value


def purchase_report_workbook(purchases, currency_format: str = DEFAULT_CURRENCY_FORMAT) -> BytesIO:
    documents = []
    for purchase in purchases:
        header = {
            "id": purchase.id,
            "date": _as_local_naive(purchase.date),
            "user": purchase.user.name if purchase.user else None,
            "supplier": purchase.supplier.name if purchase.supplier else None,
            "total": purchase.total_amount,
        }
        lines = [
            {
                "product": d.product.name if d.product else None,
                "qty": d.quantity,
                "price": d.unit_price,
                "subtotal": d.subtotal,
            }
            for d in purchase.details
        ]
        documents.append((header, lines))
    return _save(_build_workbook("Purchase Report", PURCHASE_COLUMNS, documents, "supplier", currency_format))


def sales_report_workbook(sales, currency_format: str = DEFAULT_CURRENCY_FORMAT) -> BytesIO:
    documents = []
    for sale in sales:
        header = {
            "id": sale.id,
            "date": _as_local_naive(sale.date),
            "user": sale.user.name if sale.user else None,
            "total": sale.total_price,
        }
        lines = [
            {
                "product": d.product.name if d.product else None,
                "qty": d.quantity,
                "price": d.unit_price,
                "subtotal": d.subtotal,
            }
            for d in sale.details
        ]
        documents.append((header, lines))
    return _save(_build_workbook("Sales Report", SALE_COLUMNS, documents, "product", currency_format))
