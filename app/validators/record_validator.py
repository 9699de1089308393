"""
app/validators/record_validator.py

Ingestion boundary between loosely-typed record-store rows and the strict
engine types (:class:`RawEvent`, :class:`SeriesRecord`).

A row that cannot be parsed is skipped: its errors are collected and logged
as warnings, and the remaining rows are still returned.  One bad record
never invalidates a whole aggregate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil.parser import parse as dateutil_parse

from app.domain.record_validation import ParsedBatch, RecordValidationError
from lifecycle.types import ZERO, RawEvent, SeriesRecord

logger = logging.getLogger(__name__)


class RecordValidator:
    """
    Validates and parses event and billing rows.
    """

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    def parse_events(self, rows: Iterable[Mapping[str, Any]]) -> ParsedBatch[RawEvent]:
        """
        Parse every row into a :class:`RawEvent`, skipping malformed rows.
        """

        batch: ParsedBatch[RawEvent] = ParsedBatch()
        for row_number, row in enumerate(rows, start=1):
            event, errors = self.validate_event(row=row, row_number=row_number)
            if event is None:
                batch.errors.extend(errors)
                continue
            batch.records.append(event)
        self._log_skipped("subscription event", batch)
        return batch

    def validate_event(
        self,
        *,
        row: Mapping[str, Any],
        row_number: int,
    ) -> tuple[RawEvent | None, list[RecordValidationError]]:
        """
        Validate and parse one event row.

        ``subscription_id`` and ``event_date`` are required.  A missing
        ``event_type`` or ``plan`` becomes an empty string and a missing
        ``amount`` becomes zero; an unparseable amount is an error.
        """

        errors: list[RecordValidationError] = []

        subscription_id = self._parse_required_string(
            value=row.get("subscription_id"),
            row_number=row_number,
            column="subscription_id",
            errors=errors,
        )
        event_date = self._parse_timestamp(
            value=row.get("event_date"),
            row_number=row_number,
            column="event_date",
            errors=errors,
        )
        amount = self._parse_amount(
            value=row.get("amount"),
            row_number=row_number,
            column="amount",
            required=False,
            errors=errors,
        )

        if errors or event_date is None or amount is None:
            return None, errors

        return (
            RawEvent(
                subscription_id=subscription_id,
                customer_id=self._parse_optional_string(row.get("customer_id")),
                event_type=self._parse_optional_string(row.get("event_type")) or "",
                plan=self._parse_optional_string(row.get("plan")) or "",
                amount=amount,
                event_date=event_date,
            ),
            [],
        )

    # ------------------------------------------------------------------
    # Series records
    # ------------------------------------------------------------------

    def parse_series_records(
        self,
        rows: Iterable[Mapping[str, Any]],
    ) -> ParsedBatch[SeriesRecord]:
        """
        Parse ``{"timestamp", "value"}`` rows into :class:`SeriesRecord`.

        Both fields are required.
        """

        batch: ParsedBatch[SeriesRecord] = ParsedBatch()
        for row_number, row in enumerate(rows, start=1):
            errors: list[RecordValidationError] = []
            timestamp = self._parse_timestamp(
                value=row.get("timestamp"),
                row_number=row_number,
                column="timestamp",
                errors=errors,
            )
            value = self._parse_amount(
                value=row.get("value"),
                row_number=row_number,
                column="value",
                required=True,
                errors=errors,
            )
            if errors or timestamp is None or value is None:
                batch.errors.extend(errors)
                continue
            batch.records.append(SeriesRecord(timestamp=timestamp, value=value))
        self._log_skipped("series record", batch)
        return batch

    # ------------------------------------------------------------------
    # Field parsers
    # ------------------------------------------------------------------

    def _parse_required_string(
        self,
        *,
        value: Any,
        row_number: int,
        column: str,
        errors: list[RecordValidationError],
    ) -> str:
        if self._is_blank(value):
            errors.append(
                RecordValidationError(
                    row_number=row_number,
                    column=column,
                    message="Required value is missing.",
                    value=self._stringify_value(value),
                )
            )
            return ""
        return str(value).strip()

    def _parse_optional_string(self, value: Any) -> str | None:
        if self._is_blank(value):
            return None
        return str(value).strip()

    def _parse_timestamp(
        self,
        *,
        value: Any,
        row_number: int,
        column: str,
        errors: list[RecordValidationError],
    ) -> datetime | None:
        if isinstance(value, datetime):
            return _as_utc(value)

        if self._is_blank(value):
            errors.append(
                RecordValidationError(
                    row_number=row_number,
                    column=column,
                    message="Required value is missing.",
                    value=self._stringify_value(value),
                )
            )
            return None

        try:
            parsed = dateutil_parse(str(value).strip())
        except (TypeError, ValueError, OverflowError):
            errors.append(
                RecordValidationError(
                    row_number=row_number,
                    column=column,
                    message="Timestamp could not be parsed.",
                    value=self._stringify_value(value),
                )
            )
            return None
        return _as_utc(parsed)

    def _parse_amount(
        self,
        *,
        value: Any,
        row_number: int,
        column: str,
        required: bool,
        errors: list[RecordValidationError],
    ) -> Decimal | None:
        if self._is_blank(value):
            if not required:
                return ZERO
            errors.append(
                RecordValidationError(
                    row_number=row_number,
                    column=column,
                    message="Required value is missing.",
                    value=self._stringify_value(value),
                )
            )
            return None

        if isinstance(value, Decimal):
            parsed = value
        else:
            try:
                parsed = Decimal(str(value).strip())
            except (InvalidOperation, ValueError):
                errors.append(
                    RecordValidationError(
                        row_number=row_number,
                        column=column,
                        message="Amount is not a number.",
                        value=self._stringify_value(value),
                    )
                )
                return None

        if not parsed.is_finite():
            errors.append(
                RecordValidationError(
                    row_number=row_number,
                    column=column,
                    message="Amount must be finite.",
                    value=self._stringify_value(value),
                )
            )
            return None

        if parsed < 0:
            errors.append(
                RecordValidationError(
                    row_number=row_number,
                    column=column,
                    message="Amount must not be negative.",
                    value=self._stringify_value(value),
                )
            )
            return None
        return parsed

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        return str(value)

    @staticmethod
    def _log_skipped(kind: str, batch: ParsedBatch[Any]) -> None:
        if not batch.errors:
            return
        logger.warning(
            "Skipped %d malformed %s row(s) of %d",
            batch.rows_failed,
            kind,
            batch.rows_failed + len(batch.records),
        )
        for error in batch.errors:
            logger.warning(
                "Malformed %s row=%d column=%s value=%r: %s",
                kind,
                error.row_number,
                error.column,
                error.value,
                error.message,
            )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
