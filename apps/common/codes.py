import datetime as dt
from typing import Optional, Protocol


class _LastFunc(Protocol):
    def __call__(self, prefix: str) -> Optional[str]:
        ...


def format_order_number(prefix: str, day: dt.date, seq: int) -> str:
    return f"{prefix}-{day:%Y%m%d}-{seq:04d}"


def next_order_number(*, prefix: str, day: dt.date, last: _LastFunc) -> str:
    """Return the next sequential order number for ``day``.

    ``last`` receives the day prefix (e.g. ``ORD-20260105-``) and returns the
    highest number already issued under it, or None when the day is empty.
    """
    day_prefix = f"{prefix}-{day:%Y%m%d}-"
    current = last(day_prefix)
    seq = 1
    if current:
        try:
            seq = int(current[len(day_prefix):]) + 1
        except ValueError:
            seq = 1
    return format_order_number(prefix, day, seq)
