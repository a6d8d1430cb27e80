from __future__ import annotations

from datetime import date, datetime
from typing import Protocol


# PUBLIC_INTERFACE
class Clock(Protocol):
    """Source of the current time. Injected wherever 'now' or 'today' is needed."""

    def now(self) -> datetime:
        """Return the current local datetime."""
        ...

    def today(self) -> date:
        """Return the current local calendar date."""
        ...


# PUBLIC_INTERFACE
class SystemClock:
    """Clock backed by the wall clock of the host."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return date.today()
