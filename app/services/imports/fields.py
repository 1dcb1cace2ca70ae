# app/services/imports/fields.py
"""
Field dictionary for the customer import.

Each canonical field carries a UI label and an ordered list of header
patterns. Patterns are full-match regexes over the *folded* header text
(lower case, accents stripped, separators collapsed), which lets Vietnamese
headers match with or without diacritics. Catalog order is priority order.
"""
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Pattern, Tuple

__all__ = ["CanonicalField", "FieldSpec", "FIELD_DICTIONARY", "fold_header", "match_header", "field_options"]


class CanonicalField(str, Enum):
    """Customer attributes an import column can populate."""
    NAME = "name"
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    PHONE = "phone"
    EMAIL = "email"
    ADDRESS = "address"
    BIRTHDAY = "birthday"
    TAGS = "tags"
    NOTE = "note"
    SOURCE = "source"
    # Informational: recognised so the column maps, never written to the store
    TOTAL_ORDERS = "totalOrders"
    TOTAL_SPENT = "totalSpent"
    CREATED_AT = "createdAt"


@dataclass(frozen=True)
class FieldSpec:
    """One entry of the field dictionary."""
    field: CanonicalField
    label: str
    matchers: Tuple[Pattern, ...]

    def matches(self, folded_header: str) -> bool:
        return any(rgx.fullmatch(folded_header) for rgx in self.matchers)


def _spec(field: CanonicalField, label: str, *patterns: str) -> FieldSpec:
    return FieldSpec(field=field, label=label, matchers=tuple(re.compile(p) for p in patterns))


# Exact names first, loose synonyms last within each entry
FIELD_DICTIONARY: Tuple[FieldSpec, ...] = (
    _spec(CanonicalField.NAME, "Họ tên",
          r"ho ten", r"ho va ten", r"ten khach hang", r"ten kh",
          r"name", r"full ?name", r"customer ?name", r"khach hang"),
    _spec(CanonicalField.FIRST_NAME, "Tên (Haravan)",
          r"ten", r"first ?name", r"given ?name"),
    _spec(CanonicalField.LAST_NAME, "Họ (Haravan)",
          r"ho", r"last ?name", r"family ?name", r"surname"),
    _spec(CanonicalField.PHONE, "SĐT",
          r"sdt", r"so dien thoai", r"dien thoai", r"phone",
          r"phone ?number", r"mobile", r"tel", r"telephone",
          r"so dt", r"dt", r"di dong", r"(so )?dien thoai .+"),
    _spec(CanonicalField.EMAIL, "Email",
          r"e ?mail", r"mail", r"e ?mail address", r"thu dien tu"),
    _spec(CanonicalField.ADDRESS, "Địa chỉ",
          r"dia chi", r"diachi", r"address", r"dia chi .+", r".+ address"),
    _spec(CanonicalField.BIRTHDAY, "Ngày sinh",
          r"ngay sinh", r"birthday", r"sinh nhat", r"dob", r"date of birth", r"birth ?date"),
    _spec(CanonicalField.TAGS, "Tags",
          r"tags?", r"nhan", r"phan loai"),
    _spec(CanonicalField.NOTE, "Ghi chú",
          r"ghi chu", r"notes?", r"mo ta"),
    _spec(CanonicalField.SOURCE, "Nguồn",
          r"nguon", r"source", r"kenh", r"nguon khach( hang)?"),
    _spec(CanonicalField.TOTAL_ORDERS, "Tổng đơn hàng",
          r"tong don hang", r"so don", r"total ?orders", r"order ?count"),
    _spec(CanonicalField.TOTAL_SPENT, "Tổng chi tiêu",
          r"tong tien", r"tong chi tieu", r"total ?spent", r"revenue"),
    _spec(CanonicalField.CREATED_AT, "Ngày tạo",
          r"ngay tao", r"created", r"created ?at", r"ngay dang ky"),
)

_SEPARATORS_RGX = re.compile(r"[\s_\-.]+")


def fold_header(header: str) -> str:
    """
    Fold a header for matching: "Số Điện_Thoại " -> "so dien thoai".

    "đ" has no Unicode decomposition, so it is mapped by hand.
    """
    text = unicodedata.normalize("NFKD", str(header or "").strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.replace("đ", "d")
    return _SEPARATORS_RGX.sub(" ", text).strip()


def match_header(header: str, dictionary: Tuple[FieldSpec, ...] = FIELD_DICTIONARY) -> Optional[CanonicalField]:
    """Return the first field in catalog order whose patterns match the header."""
    folded = fold_header(header)
    if not folded:
        return None
    for spec in dictionary:
        if spec.matches(folded):
            return spec.field
    return None


def label_for(field: CanonicalField) -> str:
    return _LABELS[field]


def field_options() -> List[Dict[str, str]]:
    """Options for the mapping dropdown, "ignore" first."""
    return [{"value": "", "label": "Bỏ qua cột này"}] + [
        {"value": spec.field.value, "label": spec.label} for spec in FIELD_DICTIONARY
    ]


_LABELS: Dict[CanonicalField, str] = {spec.field: spec.label for spec in FIELD_DICTIONARY}
