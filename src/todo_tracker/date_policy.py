from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from .clock import Clock, SystemClock
from .errors import InvalidExtensionError

# Hard cap on a single extension request.
MAX_EXTENSION_DAYS = 365

# A todo may be extended while its due date is today or up to this many days ahead.
EXTENSION_WINDOW_DAYS = 3


# PUBLIC_INTERFACE
class DatePolicy:
    """
    Date arithmetic and window checks used by the extension workflow.

    Everything here is side-effect free; only ``is_due_within_days`` reads the
    injected clock to learn what "today" is.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or SystemClock()

    def is_valid_extension_days(self, days: int) -> bool:
        """Return True for a strictly positive day count. The upper cap is enforced by the extension service."""
        return days > 0

    def calculate_new_due_date(self, current_due_date: Optional[date], days: int) -> date:
        """
        Return ``current_due_date`` moved forward by ``days`` calendar days.

        Raises:
            InvalidExtensionError: if there is no current due date, ``days`` is not
            positive, or the result would fall past ``date.max``.
        """
        if current_due_date is None:
            raise InvalidExtensionError("Current due date must not be empty")
        if not self.is_valid_extension_days(days):
            raise InvalidExtensionError(f"Extension days must be positive, got: {days}")
        try:
            return current_due_date + timedelta(days=days)
        except OverflowError as exc:
            raise InvalidExtensionError(
                f"Extending {current_due_date.isoformat()} by {days} days exceeds the supported date range"
            ) from exc

    def is_due_within_days(self, due_date: Optional[date], days: int) -> bool:
        """True iff today <= due_date <= today + days (both ends inclusive)."""
        if due_date is None:
            return False
        today = self._clock.today()
        return today <= due_date <= today + timedelta(days=days)

    def validate_cross_month_calculation(
        self, original_date: Optional[date], new_date: Optional[date], expected_days: int
    ) -> bool:
        """Check that ``new_date`` lies exactly ``expected_days`` after ``original_date``."""
        if original_date is None or new_date is None:
            return False
        return (new_date - original_date).days == expected_days
