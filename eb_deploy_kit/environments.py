"""
environments
------------

Elastic Beanstalk 환경 상태 조회와 배포 전 Readiness Gate 를 담당하는 모듈.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from .config import DeployTarget
from .errors import ConfigurationError, PreconditionError
from .logging_utils import get_logger


logger = get_logger(__name__)

STATUS_READY = "Ready"
STATUS_UPDATING = "Updating"
HEALTH_SEVERE = "Severe"


@dataclass(frozen=True)
class EnvironmentStatus:
    """조회 시점의 환경 상태 스냅샷. 매 poll 마다 새로 조회한다."""

    name: str
    status: str
    health: str = ""
    version_label: str = ""

    @property
    def is_ready(self) -> bool:
        return self.status == STATUS_READY

    @property
    def is_updating(self) -> bool:
        return self.status == STATUS_UPDATING

    @property
    def is_severe(self) -> bool:
        return self.health == HEALTH_SEVERE


def describe_environment(clients, target: DeployTarget) -> EnvironmentStatus:  # noqa: ANN001
    """
    DescribeEnvironments 를 한 번 호출해 현재 상태를 반환한다.
    AWS 오류(ClientError/BotoCoreError)는 호출자에게 그대로 전달한다.
    """
    eb = clients.elasticbeanstalk(target.region)
    response = eb.describe_environments(
        ApplicationName=target.application_name,
        EnvironmentNames=[target.environment_name],
        IncludeDeleted=False,
    )
    environments = response.get("Environments") or []
    if not environments:
        raise ConfigurationError(
            f"존재하지 않는 환경입니다: {target.name} "
            f"(application={target.application_name}, environment={target.environment_name})"
        )

    info = environments[0]
    status = EnvironmentStatus(
        name=target.name,
        status=info.get("Status", ""),
        health=info.get("HealthStatus", ""),
        version_label=info.get("VersionLabel", ""),
    )
    logger.debug("환경 상태: %s status=%s health=%s", target.name, status.status, status.health)
    return status


def _describe_for_gate(clients, target: DeployTarget) -> EnvironmentStatus:  # noqa: ANN001
    try:
        return describe_environment(clients, target)
    except (ClientError, BotoCoreError) as e:
        raise PreconditionError(
            f"환경 상태 조회 실패: {target.name} ({e})", targets=[target.name]
        ) from e


def fetch_all_statuses(
    clients,  # noqa: ANN001
    targets: Sequence[DeployTarget],
    max_workers: Optional[int] = None,
) -> List[EnvironmentStatus]:
    """
    모든 타겟의 상태를 병렬로 조회한다. 결과 순서는 targets 순서와 같다.
    """
    if not targets:
        return []

    workers = max_workers or min(len(targets), 8)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="eb-describe") as pool:
        futures = [pool.submit(_describe_for_gate, clients, t) for t in targets]
        # 모든 조회가 끝날 때까지 기다린 뒤 첫 예외를 전달한다.
        results = [f.exception() for f in futures]
        for err in results:
            if err is not None:
                raise err
        return [f.result() for f in futures]


def ensure_all_ready(
    clients,  # noqa: ANN001
    targets: Sequence[DeployTarget],
    max_workers: Optional[int] = None,
) -> List[EnvironmentStatus]:
    """
    모든 타겟이 Ready 상태인지 확인한다.

    하나라도 Ready 가 아니면 업로드 전에 전체 실행을 중단한다.
    (Ready 가 아닌 타겟을 전부 에러 메시지에 포함)
    """
    logger.info("배포 대상 환경 상태 확인: %s", ", ".join(t.name for t in targets))
    statuses = fetch_all_statuses(clients, targets, max_workers=max_workers)

    not_ready = [s for s in statuses if not s.is_ready]
    if not_ready:
        detail = ", ".join(f"{s.name}({s.status or 'unknown'})" for s in not_ready)
        raise PreconditionError(
            "다음 환경이 Ready 상태가 아닙니다: " + detail,
            targets=[s.name for s in not_ready],
        )

    logger.info("모든 환경이 Ready 상태입니다.")
    return statuses
