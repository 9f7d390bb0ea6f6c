"""
watcher
-------

updateEnvironment 이후 환경이 다시 Ready 가 될 때까지 상태를 주기적으로 확인한다.

상태 전이:
    Updating --(status=Ready)--> Ready
    Updating --(health=Severe 또는 Updating/Ready 이외의 status)--> Failed
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import DEFAULT_POLL_INTERVAL, DeployTarget
from .environments import EnvironmentStatus, describe_environment
from .errors import ConfigurationError, WatchError
from .logging_utils import get_logger
from .polling import PollTimeout, poll_until


logger = get_logger(__name__)


class WatchState(str, Enum):
    UPDATING = "Updating"
    READY = "Ready"
    FAILED = "Failed"


@dataclass(frozen=True)
class WatchOutcome:
    state: WatchState
    status: EnvironmentStatus
    elapsed: float
    polls: int


def classify(status: EnvironmentStatus) -> WatchState:
    # Severe 는 status 값과 관계없이 실패로 본다.
    if status.is_severe:
        return WatchState.FAILED
    if status.is_ready:
        return WatchState.READY
    if status.is_updating:
        return WatchState.UPDATING
    return WatchState.FAILED


def watch_deployment(
    clients,  # noqa: ANN001
    target: DeployTarget,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    timeout: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> WatchOutcome:
    """
    환경이 Ready 가 되면 WatchOutcome 을 반환하고,
    Failed 상태에 도달하거나 timeout 을 넘기면 WatchError 를 던진다.
    """
    started = clock()
    polls = 0

    def _fetch() -> EnvironmentStatus:
        nonlocal polls
        polls += 1
        try:
            return describe_environment(clients, target)
        except (ClientError, BotoCoreError, ConfigurationError) as e:
            raise WatchError(target.name, f"환경 상태 조회 실패: {e}") from e

    def _on_pending(status: EnvironmentStatus, elapsed: float) -> None:
        logger.info("환경 %s 업데이트 진행 중 (%d초 경과)", target.name, round(elapsed))

    try:
        status = poll_until(
            _fetch,
            lambda s: classify(s) != WatchState.UPDATING,
            interval=interval,
            timeout=timeout,
            on_pending=_on_pending,
            sleep=sleep,
            clock=clock,
        )
    except PollTimeout as e:
        raise WatchError(
            target.name, f"{round(e.elapsed)}초가 지나도 업데이트가 끝나지 않았습니다."
        ) from e

    elapsed = clock() - started
    state = classify(status)

    if state == WatchState.READY:
        logger.info("환경 %s 배포 완료 (%d초 소요)", target.name, round(elapsed))
        return WatchOutcome(state=state, status=status, elapsed=elapsed, polls=polls)

    if status.is_severe:
        raise WatchError(
            target.name, f"환경 health 가 Severe 입니다 ({round(elapsed)}초 경과)"
        )
    raise WatchError(target.name, f"예상하지 못한 환경 status 입니다: {status.status}")
