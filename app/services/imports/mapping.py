# app/services/imports/mapping.py
"""
Header mapping: which spreadsheet column feeds which customer field.

A HeaderMapping is immutable; auto_map() infers one from the header row and
override() returns a copy with one header reassigned. When several columns
claim the same field, the right-most column wins and the clash is reported
through warnings().
"""
import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from app.core.exceptions import MappingError
from app.services.imports.fields import CanonicalField, FIELD_DICTIONARY, label_for, match_header

logger = logging.getLogger("crm_import.imports.mapping")

FieldInput = Union[CanonicalField, str, None]

NAME_FIELDS = frozenset({CanonicalField.NAME, CanonicalField.FIRST_NAME, CanonicalField.LAST_NAME})


class HeaderMapping:
    """Immutable header -> canonical field assignment for one table."""

    __slots__ = ("_headers", "_assignments", "_overridden")

    def __init__(
        self,
        headers: Sequence[str],
        assignments: Mapping[str, Optional[CanonicalField]],
        overridden: Iterable[str] = (),
    ):
        self._headers = tuple(headers)
        self._assignments = MappingProxyType({h: assignments.get(h) for h in self._headers})
        self._overridden: FrozenSet[str] = frozenset(overridden)

    @property
    def headers(self) -> tuple:
        return self._headers

    def field_for(self, header: str) -> Optional[CanonicalField]:
        return self._assignments.get(header)

    def is_overridden(self, header: str) -> bool:
        return header in self._overridden

    def columns_for(self, field: CanonicalField) -> List[int]:
        """Column indexes mapped to a field, in column order."""
        return [i for i, header in enumerate(self._headers) if self._assignments.get(header) == field]

    def column_for(self, field: CanonicalField) -> Optional[int]:
        """The column that supplies a field: the right-most one mapped to it."""
        columns = self.columns_for(field)
        return columns[-1] if columns else None

    def mapped_fields(self) -> FrozenSet[CanonicalField]:
        return frozenset(f for f in self._assignments.values() if f is not None)

    def conflicts(self) -> Dict[CanonicalField, List[str]]:
        """Fields claimed by more than one column, with the claiming headers."""
        claims: Dict[CanonicalField, List[str]] = {}
        for header in self._headers:
            field = self._assignments.get(header)
            if field is not None:
                claims.setdefault(field, []).append(header)
        return {field: headers for field, headers in claims.items() if len(headers) > 1}

    def warnings(self) -> List[str]:
        messages = []
        for field, headers in self.conflicts().items():
            ignored = ", ".join(f'"{h}"' for h in headers[:-1])
            messages.append(
                f'Nhiều cột cùng gán cho "{label_for(field)}": dùng cột "{headers[-1]}", bỏ qua {ignored}'
            )
        return messages

    def with_field(self, header: str, field: Optional[CanonicalField]) -> "HeaderMapping":
        assignments = dict(self._assignments)
        assignments[header] = field
        return HeaderMapping(self._headers, assignments, self._overridden | {header})

    def as_dict(self) -> Dict[str, Optional[str]]:
        """Wire form: header -> field value or None."""
        return {h: (f.value if f is not None else None) for h, f in self._assignments.items()}

    def __eq__(self, other) -> bool:
        if not isinstance(other, HeaderMapping):
            return NotImplemented
        return self._headers == other._headers and dict(self._assignments) == dict(other._assignments)

    def __repr__(self) -> str:
        return f"HeaderMapping({self.as_dict()!r})"


def auto_map(headers: Sequence[str], dictionary=FIELD_DICTIONARY) -> HeaderMapping:
    """
    Infer a mapping from header names.

    Pure function of (headers, dictionary): each header gets the first field
    whose patterns match it, or None when nothing matches.
    """
    assignments = {}
    for header in headers:
        if header not in assignments:
            assignments[header] = match_header(header, dictionary)
    mapping = HeaderMapping(headers, assignments)
    logger.debug(f"Auto-mapped {len(mapping.mapped_fields())} fields from {len(headers)} headers")
    return mapping


def coerce_field(field: FieldInput) -> Optional[CanonicalField]:
    """Accept an enum member, its value, or None/"" for "ignore this column"."""
    if field is None or field == "":
        return None
    if isinstance(field, CanonicalField):
        return field
    try:
        return CanonicalField(field)
    except ValueError:
        raise MappingError(
            f"Unknown field '{field}'",
            details={"field": field, "allowed": [f.value for f in CanonicalField]},
        )


def override(mapping: HeaderMapping, header: str, field: FieldInput) -> HeaderMapping:
    """Reassign one header; manual choices always beat auto-inference."""
    if header not in mapping.headers:
        raise MappingError(f"Unknown column '{header}'", details={"header": header})
    return mapping.with_field(header, coerce_field(field))


def require_identifying_fields(mapping: HeaderMapping) -> None:
    """
    Refuse mappings that can't identify a customer.

    A name (directly or through first/last name) or a phone column must be
    mapped, otherwise every row would fail validation.
    """
    fields = mapping.mapped_fields()
    if not (fields & NAME_FIELDS) and CanonicalField.PHONE not in fields:
        raise MappingError(
            "Cần gán ít nhất cột Họ tên hoặc SĐT",
            details={"mapping": mapping.as_dict()},
        )
