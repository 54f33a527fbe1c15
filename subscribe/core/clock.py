"""Settable source of the current instant.

Every time-dependent component receives a ``Clock`` instead of calling
``datetime.now`` itself, so simulations and tests can freeze or move time.
"""

from datetime import UTC, datetime


class Clock:
    """A clock that reports live UTC time until a fixed instant is set."""

    def __init__(self, now: datetime | None = None):
        self._now: datetime | None = None
        if now is not None:
            self.set_now(now)

    def now(self) -> datetime:
        if self._now is not None:
            return self._now
        return datetime.now(UTC)

    def set_now(self, value: datetime) -> None:
        """Freeze the clock at ``value``.

        Naive datetimes are treated as UTC.
        """
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        self._now = value

    def reset(self) -> None:
        """Return to live time."""
        self._now = None

    @property
    def is_frozen(self) -> bool:
        return self._now is not None


_clock = Clock()


def get_clock() -> Clock:
    """Return the process-wide clock (FastAPI dependency and worker entry point)."""
    return _clock
