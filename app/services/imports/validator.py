# app/services/imports/validator.py
"""
Row validation. Every rule runs, so a row reports all of its problems at once.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from app.services.imports.normalizer import NormalizedRow
from app.utils.phone import is_valid_local_phone


class RowErrorCode(str, Enum):
    """Reasons a row is excluded from persistence."""
    MISSING_NAME = "MissingName"
    MISSING_PHONE = "MissingPhone"
    INVALID_PHONE_FORMAT = "InvalidPhoneFormat"


@dataclass(frozen=True)
class RowError:
    code: RowErrorCode
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code.value, "field": self.field, "message": self.message}


def validate_row(row: NormalizedRow) -> List[RowError]:
    """
    Check the mandatory fields of a normalized row.

    Args:
        row: Normalized row

    Returns:
        List[RowError]: Empty when the row can be imported
    """
    errors: List[RowError] = []

    if not row.name:
        errors.append(RowError(RowErrorCode.MISSING_NAME, "name", "Thiếu tên"))

    if not row.phone:
        errors.append(RowError(RowErrorCode.MISSING_PHONE, "phone", "Thiếu SĐT"))
    elif not is_valid_local_phone(row.phone):
        errors.append(RowError(RowErrorCode.INVALID_PHONE_FORMAT, "phone", "SĐT không hợp lệ"))

    return errors
