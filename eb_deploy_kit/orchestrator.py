from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .artifact import build_artifact
from .aws_clients import AwsClients
from .config import DeployConfig, DeployTarget
from .errors import PreconditionError, PublishError, WatchError
from .ignore_rules import load_filter_set
from .logging_utils import get_logger
from .manifest import load_manifest
from . import environments, publisher, watcher, workspace


logger = get_logger(__name__)


def generate_version_label(prefix: str = "ebdeploy", clock: Callable[[], float] = time.time) -> str:
    return f"{prefix}-{int(clock() * 1000)}"


@dataclass
class TargetResult:
    name: str
    ok: bool
    skipped: bool = False
    error: Optional[str] = None
    elapsed: Optional[float] = None


@dataclass
class PipelineResult:
    version_label: str
    artifact_path: Path
    dry_run: bool = False
    results: List[TargetResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[str]:
        return [r.name for r in self.results if r.ok]

    @property
    def failed(self) -> List[TargetResult]:
        return [r for r in self.results if not r.ok and not r.skipped]

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)


def _make_clients(cfg: DeployConfig) -> AwsClients:
    clients = AwsClients(profile=cfg.profile, proxy_url=cfg.proxy_url)
    # 병렬 조회 전에 메인 스레드에서 클라이언트를 만들어 둔다.
    for region in sorted({t.region for t in cfg.targets}):
        clients.elasticbeanstalk(region)
        clients.s3(region)
    return clients


def build(cfg: DeployConfig, version_label: str, runner=None) -> Path:  # noqa: ANN001
    """
    작업 디렉토리 준비 -> manifest 수정본 -> 필터 -> zip 생성 (한 번만 수행)
    """
    working_dir = workspace.prepare_workspace(cfg, version_label, runner=runner)

    manifest = load_manifest(working_dir).revised()
    filters = load_filter_set(working_dir, version_label, cfg.ignore_file)
    return build_artifact(working_dir, version_label, filters, manifest)


def deploy_target(
    clients,  # noqa: ANN001
    cfg: DeployConfig,
    target: DeployTarget,
    artifact: Path,
    version_label: str,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> TargetResult:
    """
    타겟 하나에 대해 publish -> watch 를 수행한다.
    PublishError / WatchError 는 결과로 기록하고 다음 타겟으로 넘어간다.
    """
    logger.info("환경 배포 시작: %s", target.name)
    try:
        publisher.publish(clients, target, artifact, version_label)
        outcome = watcher.watch_deployment(
            clients,
            target,
            interval=cfg.poll_interval,
            timeout=cfg.watch_timeout,
            sleep=sleep,
        )
    except (PublishError, WatchError) as e:
        logger.warning("환경 배포 실패: %s (%s)", target.name, e)
        return TargetResult(name=target.name, ok=False, error=str(e))

    return TargetResult(name=target.name, ok=True, elapsed=outcome.elapsed)


def run_pipeline(
    cfg: DeployConfig,
    clients=None,  # noqa: ANN001
    *,
    runner=None,  # noqa: ANN001
    sleep: Callable[[float], None] = time.sleep,
    version_label: Optional[str] = None,
) -> PipelineResult:
    """
    빌드(1회) -> Readiness Gate(1회) -> 타겟별 publish/watch.

    ConfigurationError / BuildError / PreconditionError 는 그대로 전파되어 전체 실행을 중단시킨다.
    """
    label = version_label or generate_version_label()
    logger.info("버전 라벨: %s", label)

    artifact = build(cfg, label, runner=runner)
    result = PipelineResult(version_label=label, artifact_path=artifact, dry_run=cfg.dry_run)

    if cfg.dry_run:
        logger.info("--dry-run: 아티팩트만 생성하고 배포는 건너뜁니다: %s", artifact)
        result.results = [TargetResult(name=t.name, ok=False, skipped=True) for t in cfg.targets]
        return result

    if clients is None:
        clients = _make_clients(cfg)

    try:
        environments.ensure_all_ready(clients, cfg.targets)

        for target in cfg.targets:
            result.results.append(
                deploy_target(clients, cfg, target, artifact, label, sleep=sleep)
            )
    finally:
        # 업로드가 끝나면 임시 복사본(npm install 결과 포함)은 더 이상 필요 없다.
        if cfg.use_temp_dir:
            workspace.cleanup_working_copy(str(artifact.parent))

    if result.has_failures:
        logger.warning(
            "일부 환경 배포 실패: %s", ", ".join(r.name for r in result.failed)
        )
    else:
        logger.info("deployment %s complete", label)
    return result


def plan_all(cfg: DeployConfig) -> str:
    """
    현재 설정과 배포 대상 환경 목록을 요약 텍스트로 리턴한다. 실제 AWS 호출은 하지 않는다.
    """
    lines: List[str] = []
    lines.append("# Deploy plan")
    lines.append(f"- source_dir: {cfg.source_dir}")
    lines.append(f"- config: {cfg.config_path or '(command line)'}")
    lines.append("")

    lines.append("## Config summary")
    lines.append(f"- profile: {cfg.profile or '(default)'}")
    lines.append(f"- proxy: {'set' if cfg.proxy_url else '(not set)'}")
    lines.append(f"- use_temp_dir: {cfg.use_temp_dir}")
    lines.append(f"- install_dependencies: {cfg.install_dependencies}")
    lines.append(f"- skip_optional_dependencies: {cfg.skip_optional_dependencies}")
    lines.append(f"- poll_interval: {cfg.poll_interval:g}s")
    lines.append(
        f"- watch_timeout: {f'{cfg.watch_timeout:g}s' if cfg.watch_timeout else '(none)'}"
    )
    lines.append("")

    lines.append("## Environments")
    for t in cfg.targets:
        lines.append(
            f"- {t.name}: {t.application_name}/{t.environment_name} "
            f"(region={t.region}, bucket={t.versions_bucket})"
        )

    return "\n".join(lines)


def format_summary(result: PipelineResult) -> str:
    lines: List[str] = []
    lines.append("# Deploy summary")
    lines.append(f"- version: {result.version_label}")
    lines.append(f"- artifact: {result.artifact_path}")
    lines.append("")

    lines.append("## Deployed environments")
    if result.succeeded:
        for r in result.results:
            if r.ok:
                elapsed = f" ({round(r.elapsed)}s)" if r.elapsed is not None else ""
                lines.append(f"- {r.name}{elapsed}")
    else:
        lines.append("- (none)")

    lines.append("")
    lines.append("## Skipped environments")
    skipped = [r.name for r in result.results if r.skipped]
    if skipped:
        for name in skipped:
            lines.append(f"- {name}")
    else:
        lines.append("- (none)")

    lines.append("")
    lines.append("## Failed environments")
    if result.failed:
        for r in result.failed:
            lines.append(f"- {r.name}: {r.error}")
    else:
        lines.append("- (none)")

    return "\n".join(lines)


def check_all(cfg: DeployConfig, clients=None) -> Tuple[str, bool]:  # noqa: ANN001
    """
    실제 배포 없이 모든 환경의 현재 상태를 점검한다.

    Returns:
        summary: 사람이 읽기 좋은 텍스트 요약
        has_issues: Ready 가 아닌 환경이 하나라도 있는지 여부
    """
    if clients is None:
        clients = _make_clients(cfg)

    lines: List[str] = []
    lines.append("# Deploy pre-check")
    lines.append("")
    lines.append("## Environments")

    try:
        statuses = environments.fetch_all_statuses(clients, cfg.targets)
    except PreconditionError as e:
        lines.append(f"- {e}")
        lines.append("")
        lines.append("## Summary")
        lines.append("- 상태: 환경 상태를 조회할 수 없습니다.")
        return "\n".join(lines), True

    not_ready: List[str] = []
    for s in statuses:
        lines.append(
            f"- {s.name}: status={s.status or '?'} health={s.health or '?'} "
            f"version={s.version_label or '(none)'}"
        )
        if not s.is_ready:
            not_ready.append(s.name)

    lines.append("")
    lines.append("## Summary")
    if not_ready:
        lines.append("- 상태: Ready 가 아닌 환경이 있습니다: " + ", ".join(not_ready))
    else:
        lines.append("- 상태: 모든 환경이 Ready 입니다 (배포 가능)")

    return "\n".join(lines), bool(not_ready)
