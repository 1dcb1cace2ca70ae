# app/services/imports/duplicates.py
"""
Duplicate resolution against existing customers.

Identity is the normalized phone number only. Rows with the same name but a
different (or missing) phone are never merged.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from app.services.imports.normalizer import NormalizedRow
from app.utils.datetime import utc_now
from app.utils.phone import normalize_phone

logger = logging.getLogger("crm_import.imports.duplicates")

# Overwritten only by non-empty incoming values
SCALAR_MERGE_FIELDS = ("name", "email", "address", "birthday", "source")


@dataclass(frozen=True)
class ExistingRecord:
    """The parts of a stored customer a merge needs to see."""
    id: str
    phone: str
    name: str = ""
    email: str = ""
    address: str = ""
    birthday: str = ""
    source: str = ""
    note: str = ""
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_fields(cls, record_id: str, fields: Dict[str, Any]) -> "ExistingRecord":
        """Snapshot from a field dict (store row or freshly inserted fields)."""
        return cls(
            id=record_id,
            phone=normalize_phone(fields.get("phone")),
            name=fields.get("name") or "",
            email=fields.get("email") or "",
            address=fields.get("address") or "",
            birthday=fields.get("birthday") or "",
            source=fields.get("source") or "",
            note=fields.get("note") or "",
            tags=tuple(fields.get("tags") or ()),
        )


@dataclass(frozen=True)
class Classification:
    is_duplicate: bool
    match_id: Optional[str] = None


class ExistingRecordIndex:
    """
    Normalized phone -> existing record.

    Seeded once from the store before classification. A BatchExecutor works on
    its own copy and registers every record it inserts, so a phone repeated
    later in the same file resolves to an update.
    """

    def __init__(self, records: Iterable[ExistingRecord] = ()):
        self._by_phone: Dict[str, ExistingRecord] = {}
        for record in records:
            key = normalize_phone(record.phone)
            if not key:
                continue
            if key in self._by_phone:
                logger.warning(f"Phone {key} already belongs to {self._by_phone[key].id}, ignoring {record.id}")
                continue
            self._by_phone[key] = record

    def lookup(self, phone: str) -> Optional[ExistingRecord]:
        if not phone:
            return None
        return self._by_phone.get(normalize_phone(phone))

    def register(self, record: ExistingRecord) -> None:
        """Add or replace the record stored under its phone."""
        key = normalize_phone(record.phone)
        if key:
            self._by_phone[key] = record

    def copy(self) -> "ExistingRecordIndex":
        clone = ExistingRecordIndex()
        clone._by_phone = dict(self._by_phone)
        return clone

    def __contains__(self, phone: str) -> bool:
        return self.lookup(phone) is not None

    def __len__(self) -> int:
        return len(self._by_phone)


def classify(row: NormalizedRow, index: ExistingRecordIndex) -> Classification:
    """NEW or UPDATE-OF(existing id), keyed on the normalized phone."""
    existing = index.lookup(row.phone)
    if existing is None:
        return Classification(is_duplicate=False)
    return Classification(is_duplicate=True, match_id=existing.id)


def merge_tags(existing: Iterable[str], incoming: Iterable[str]) -> list:
    """Union keeping existing order first, without repeats."""
    return list(dict.fromkeys([*existing, *incoming]))


def build_patch(row: NormalizedRow, existing: ExistingRecord, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Updates to apply to an existing customer for an incoming row.

    - name/email/address/birthday/source: set only from non-empty values,
      an empty import cell never blanks a stored value
    - tags: union of stored and incoming tags
    - note: a new, different note is appended on its own line
    - updated_at: always refreshed
    """
    patch: Dict[str, Any] = {}
    for field in SCALAR_MERGE_FIELDS:
        value = getattr(row, field)
        if value:
            patch[field] = value

    if row.tag_list:
        patch["tags"] = merge_tags(existing.tags, row.tag_list)

    if row.note and row.note != existing.note:
        patch["note"] = f"{existing.note}\n{row.note}" if existing.note else row.note

    patch["updated_at"] = now or utc_now()
    return patch


def apply_patch(existing: ExistingRecord, patch: Dict[str, Any]) -> ExistingRecord:
    """The record as it looks after the patch, for keeping an index current."""
    changes = {field: patch[field] for field in (*SCALAR_MERGE_FIELDS, "note") if field in patch}
    if "tags" in patch:
        changes["tags"] = tuple(patch["tags"])
    return replace(existing, **changes)
