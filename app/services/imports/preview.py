# app/services/imports/preview.py
"""
Validation pass: every data row normalized, validated and classified.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.services.imports.duplicates import ExistingRecordIndex, classify
from app.services.imports.mapping import HeaderMapping
from app.services.imports.normalizer import NormalizedRow, normalize_row
from app.services.imports.reader import RawTable
from app.services.imports.validator import RowError, validate_row

logger = logging.getLogger("crm_import.imports.preview")

# Spreadsheet row number of the first data row (header is row 1)
FIRST_DATA_ROW = 2


class RowStatus:
    ERROR = "error"
    UPDATE = "update"
    NEW = "new"


@dataclass(frozen=True)
class ParsedRow(NormalizedRow):
    """A normalized row with its validation errors and duplicate match."""
    errors: Tuple[RowError, ...] = ()
    duplicate_of: Optional[str] = None
    duplicate_of_row: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def status(self) -> str:
        if self.errors:
            return RowStatus.ERROR
        if self.duplicate_of or self.duplicate_of_row:
            return RowStatus.UPDATE
        return RowStatus.NEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.source_row_index,
            "status": self.status,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "birthday": self.birthday,
            "source": self.source,
            "note": self.note,
            "tags": list(self.tag_list),
            "errors": [error.to_dict() for error in self.errors],
            "duplicate_of": self.duplicate_of,
            "duplicate_of_row": self.duplicate_of_row,
        }


def parse_row(
    raw_row: Sequence[Any],
    mapping: HeaderMapping,
    source_row_index: int,
    index: ExistingRecordIndex,
) -> ParsedRow:
    normalized = normalize_row(raw_row, mapping, source_row_index)
    errors = tuple(validate_row(normalized))
    match_id = None
    if not errors:
        match_id = classify(normalized, index).match_id
    return ParsedRow(**vars(normalized), errors=errors, duplicate_of=match_id)


def parse_rows(table: RawTable, mapping: HeaderMapping, index: ExistingRecordIndex) -> List[ParsedRow]:
    """
    Run the validation pass over a whole table.

    A valid row whose phone already appeared in an earlier valid row of the
    same file is marked with that row number; the executor turns it into an
    update of the record the earlier row creates.

    Args:
        table: Parsed spreadsheet
        mapping: Confirmed header mapping
        index: Existing records, keyed by normalized phone

    Returns:
        List[ParsedRow]: One entry per data row, in file order
    """
    parsed: List[ParsedRow] = []
    first_seen: Dict[str, int] = {}

    for offset, raw_row in enumerate(table.rows):
        row = parse_row(raw_row, mapping, offset + FIRST_DATA_ROW, index)
        if row.is_valid:
            earlier = first_seen.get(row.phone)
            if earlier is None:
                first_seen[row.phone] = row.source_row_index
            elif row.duplicate_of is None:
                row = replace(row, duplicate_of_row=earlier)
        parsed.append(row)

    counts = summarize(parsed)
    logger.info(
        f"Validated {counts['total']} rows: {counts['new']} new, "
        f"{counts['update']} updates, {counts['error']} errors"
    )
    return parsed


def summarize(rows: Sequence[ParsedRow]) -> Dict[str, int]:
    """Preview counts per status."""
    counts = {RowStatus.NEW: 0, RowStatus.UPDATE: 0, RowStatus.ERROR: 0}
    for row in rows:
        counts[row.status] += 1
    counts["total"] = len(rows)
    return counts
