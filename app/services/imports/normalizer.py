# app/services/imports/normalizer.py
"""
Row normalization: raw cells + header mapping -> NormalizedRow.
"""
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional, Sequence, Tuple

from app.services.imports.fields import CanonicalField
from app.services.imports.mapping import HeaderMapping
from app.services.imports.reader import cell_text
from app.utils.phone import normalize_phone

__all__ = ["NormalizedRow", "normalize_row", "split_tags", "synthesize_name"]


@dataclass(frozen=True)
class NormalizedRow:
    """A spreadsheet row in canonical, comparison-ready form."""
    source_row_index: int
    name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    note: str = ""
    birthday: str = ""
    source: str = ""
    tag_list: Tuple[str, ...] = ()
    raw_cells: Tuple[str, ...] = ()

    @property
    def tags(self) -> FrozenSet[str]:
        return frozenset(self.tag_list)

    def to_record_fields(self) -> Dict[str, Any]:
        """Fields for inserting a new customer; blanks are stored as NULL."""
        return {
            "name": self.name,
            "phone": self.phone,
            "email": self.email or None,
            "address": self.address or None,
            "note": self.note or None,
            "birthday": self.birthday or None,
            "source": self.source or None,
            "tags": list(self.tag_list) or None,
        }


def split_tags(value: str) -> Tuple[str, ...]:
    """Comma separated tags, trimmed, without blanks or repeats."""
    if not value:
        return ()
    tokens = (token.strip() for token in value.split(","))
    return tuple(dict.fromkeys(token for token in tokens if token))


def synthesize_name(first_name: str, last_name: str) -> str:
    """Family name first: ("An", "Nguyễn") -> "Nguyễn An"."""
    return " ".join(part for part in (last_name, first_name) if part).strip()


def _field_value(row: Sequence[Any], mapping: HeaderMapping, field: CanonicalField) -> str:
    column: Optional[int] = mapping.column_for(field)
    if column is None or column >= len(row):
        return ""
    return cell_text(row[column])


def normalize_row(raw_row: Sequence[Any], mapping: HeaderMapping, source_row_index: int) -> NormalizedRow:
    """
    Build the canonical view of one data row.

    Args:
        raw_row: Cells in header order
        mapping: Header mapping for the table
        source_row_index: 1-based spreadsheet row number, for error reporting

    Returns:
        NormalizedRow: Trimmed values, normalized phone, tag tuple
    """
    def value(field: CanonicalField) -> str:
        return _field_value(raw_row, mapping, field)

    name = value(CanonicalField.NAME)
    if not name:
        name = synthesize_name(value(CanonicalField.FIRST_NAME), value(CanonicalField.LAST_NAME))

    return NormalizedRow(
        source_row_index=source_row_index,
        name=name,
        phone=normalize_phone(value(CanonicalField.PHONE)),
        email=value(CanonicalField.EMAIL),
        address=value(CanonicalField.ADDRESS),
        note=value(CanonicalField.NOTE),
        birthday=value(CanonicalField.BIRTHDAY),
        source=value(CanonicalField.SOURCE),
        tag_list=split_tags(value(CanonicalField.TAGS)),
        raw_cells=tuple(cell_text(v) for v in raw_row),
    )
