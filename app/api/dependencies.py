"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from fastapi import HTTPException, Query, status


@dataclass(frozen=True)
class DateWindowQuery:
    start_date: date
    end_date: date


def get_date_window(
    start_date: date = Query(..., description="First civil date of the window (inclusive)."),
    end_date: date = Query(..., description="Last civil date of the window (inclusive)."),
) -> DateWindowQuery:
    """
    Validate that the requested window is not inverted.
    """

    if start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"start_date must not be after end_date; "
                f"got {start_date.isoformat()} > {end_date.isoformat()}."
            ),
        )

    return DateWindowQuery(start_date=start_date, end_date=end_date)
