"""
app/domain/record_validation.py

Domain models used when turning record-store rows into engine inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RecordValidationError:
    """
    One record-level validation error detail.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class ParsedBatch(Generic[T]):
    """
    Typed records that passed validation plus the errors of those that did not.
    """

    records: list[T] = field(default_factory=list)
    errors: list[RecordValidationError] = field(default_factory=list)

    @property
    def rows_failed(self) -> int:
        return len({error.row_number for error in self.errors})
