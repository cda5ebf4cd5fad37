from datetime import UTC, datetime

from src.adapters.clock import SystemClock


def test_system_clock_is_utc():
    clock = SystemClock()
    now = clock.now_utc()
    assert now.tzinfo is not None
    assert now.utcoffset().total_seconds() == 0
    # Sanity check: is it close to real now?
    diff = abs((datetime.now(UTC) - now).total_seconds())
    assert diff < 1.0
