from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar


T = TypeVar("T")


class PollTimeout(Exception):
    """poll_until 이 timeout 안에 완료 조건을 만족하지 못함."""

    def __init__(self, elapsed: float, last_value: object = None) -> None:
        super().__init__(f"{elapsed:0.1f}초 동안 완료되지 않았습니다.")
        self.elapsed = elapsed
        self.last_value = last_value


def poll_until(
    fetch: Callable[[], T],
    is_done: Callable[[T], bool],
    *,
    interval: float,
    timeout: Optional[float] = None,
    on_pending: Optional[Callable[[T, float], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    interval 만큼 기다린 뒤 fetch() 를 호출하는 것을 is_done(value) 가 참이 될 때까지 반복한다.

    - timeout=None 이면 무기한 대기
    - 완료 전 매 poll 마다 on_pending(value, elapsed) 호출
    """
    started = clock()
    while True:
        sleep(interval)
        value = fetch()
        if is_done(value):
            return value

        elapsed = clock() - started
        if on_pending is not None:
            on_pending(value, elapsed)
        if timeout is not None and elapsed >= timeout:
            raise PollTimeout(elapsed, value)
