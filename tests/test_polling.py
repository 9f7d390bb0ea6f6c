from __future__ import annotations

import pytest

from eb_deploy_kit.polling import PollTimeout, poll_until


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def test_poll_until_returns_first_done_value_and_reports_pending() -> None:
    clock = _FakeClock()
    values = iter([1, 2, 3, 4])
    pending: list[tuple[int, float]] = []

    result = poll_until(
        lambda: next(values),
        lambda v: v >= 3,
        interval=5,
        on_pending=lambda v, elapsed: pending.append((v, elapsed)),
        sleep=clock.sleep,
        clock=clock,
    )

    assert result == 3
    assert clock.sleeps == [5, 5, 5]
    assert pending == [(1, 5.0), (2, 10.0)]


def test_poll_until_raises_after_timeout() -> None:
    clock = _FakeClock()

    with pytest.raises(PollTimeout) as excinfo:
        poll_until(lambda: "Updating", lambda v: False, interval=10, timeout=25, sleep=clock.sleep, clock=clock)

    assert excinfo.value.elapsed == 30.0
    assert excinfo.value.last_value == "Updating"
    assert len(clock.sleeps) == 3
