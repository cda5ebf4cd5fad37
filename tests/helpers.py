from datetime import UTC, datetime


class FixedClock:
    """Time port pinned to a settable instant."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._now

    def set_now(self, now: datetime) -> None:
        self._now = now
