"""Gene-level averaging of probe measurements."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

TWO_PLACES = Decimal("0.01")


def average_distinct(values: Iterable[Optional[float]]) -> Optional[Decimal]:
    """Average the distinct values, rounded half-up to two decimal places.

    Repeated identical readings count once and ``None`` entries are ignored.
    Returns ``None`` when no value is left.

    >>> average_distinct([10.0, 10.0, 20.0])
    Decimal('15.00')
    """
    distinct = {v for v in values if v is not None}
    if not distinct:
        return None
    # repr-based conversion keeps 2.675 as 2.675 instead of its binary expansion
    total = sum((Decimal(repr(v)) for v in distinct), Decimal(0))
    return (total / len(distinct)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
