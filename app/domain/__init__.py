"""
app/domain package marker.
"""

from app.domain.record_validation import ParsedBatch, RecordValidationError

__all__ = [
    "ParsedBatch",
    "RecordValidationError",
]
