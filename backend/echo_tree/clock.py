"""Time source shared by the trust services."""
from datetime import datetime, timezone


class Clock:
    """Return naive UTC timestamps, matching the DateTime columns."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


system_clock = Clock()
