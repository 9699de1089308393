"""
tests/conftest.py

Shared fixtures.
"""

from __future__ import annotations

import pytest

from lifecycle.types import RawEvent
from tests.helpers import make_event, utc


@pytest.fixture()
def portfolio() -> list[RawEvent]:
    """
    Three subscriptions across March 2024:

    - sub-1: started 01/03 on Pro (100), renewed 01/04 (still active)
    - sub-2: started 05/03 on Basic (30), cancelled 20/03
    - sub-3: started 15/03 on Pro (120), active
    """
    return [
        make_event("sub-1", "subscription", utc(2024, 3, 1, 12), plan="Pro", amount="100", customer_id="c-1"),
        make_event("sub-2", "subscription", utc(2024, 3, 5, 12), plan="Basic", amount="30", customer_id="c-2"),
        make_event("sub-3", "subscription", utc(2024, 3, 15, 12), plan="Pro", amount="120", customer_id="c-3"),
        make_event("sub-2", "Assinatura Cancelada", utc(2024, 3, 20, 12)),
        make_event("sub-1", "renewal", utc(2024, 4, 1, 12), plan="Pro", amount="100"),
    ]
