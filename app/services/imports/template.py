# app/services/imports/template.py
"""
Downloadable import template with the canonical headers and sample rows.
"""
import csv
import io

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

TEMPLATE_FILENAME = "mau-import-khach-hang"
TEMPLATE_SHEET = "Khách hàng"

TEMPLATE_HEADERS = ("Họ tên", "SĐT", "Email", "Địa chỉ", "Ngày sinh", "Ghi chú", "Tags")

TEMPLATE_ROWS = (
    ("Nguyễn Văn A", "0912345678", "vana@email.com", "123 Nguyễn Huệ, Q.1, TP.HCM",
     "1990-05-15", "Khách quen cửa hàng", "Karaoke, Đại lý miền Nam"),
    ("Trần Thị B", "0987654321", "thib@email.com", "456 Lê Lợi, Q.3, TP.HCM",
     "", "Mua sỉ loa", "Hội trường"),
    ("Lê Văn C", "0909123456", "", "789 Trần Hưng Đạo, TP.HCM",
     "1985-12-01", "", ""),
)

COLUMN_WIDTHS = (20, 15, 25, 35, 12, 25, 30)


def build_template_workbook() -> bytes:
    """XLSX template; phone cells are stored as text so the leading 0 survives."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = TEMPLATE_SHEET

    sheet.append(TEMPLATE_HEADERS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in TEMPLATE_ROWS:
        sheet.append(row)

    for column, width in enumerate(COLUMN_WIDTHS, start=1):
        sheet.column_dimensions[get_column_letter(column)].width = width
    for (cell,) in sheet.iter_rows(min_row=2, min_col=2, max_col=2):
        cell.number_format = "@"

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def build_template_csv() -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(TEMPLATE_HEADERS)
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue()
