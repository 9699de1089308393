"""
Repository-layer exceptions for record-store reads.
"""

from __future__ import annotations


class RecordStoreError(RuntimeError):
    """Base exception for record store failures."""


class UpstreamFetchError(RecordStoreError):
    """
    Raised when a read against the record store fails.

    No partial result accompanies this error: the lifecycle replay needs the
    full per-subscription history, so a failed fetch fails the request.
    """
