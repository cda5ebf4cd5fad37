from datetime import UTC, datetime


class SystemClock:
    """Wall clock in UTC. Satisfies the analytics TimePort."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)
