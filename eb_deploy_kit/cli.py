import os
import sys
from importlib import resources
from typing import Callable, Optional

import click

from .config import DEFAULT_CONFIG_FILE, DeployConfig, load_env_files
from .errors import DeployError
from .logging_utils import setup_logging, get_logger
from .orchestrator import check_all, format_summary, plan_all, run_pipeline


logger = get_logger(__name__)


@click.group()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다. (-vv 는 boto3 로그까지 출력)",
)
@click.pass_context
def main(ctx: click.Context, verbose: int) -> None:
    """Elastic Beanstalk 배포용 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _target_options(func: Callable) -> Callable:
    """deploy/plan/check 가 공유하는 소스 디렉토리 및 타겟 지정 옵션."""
    options = [
        click.argument(
            "source_dir",
            required=False,
            default=".",
            type=click.Path(file_okay=False, dir_okay=True, exists=True),
        ),
        click.option("-c", "--config", "config_path", type=click.Path(dir_okay=False), default=None,
                     help=f"설정 파일 경로 (기본: <SOURCE_DIR>/{DEFAULT_CONFIG_FILE})"),
        click.option("--region", default=None, help="단일 타겟 모드의 AWS 리전 (기본: us-west-2)"),
        click.option("--bucket", default=None, help="단일 타겟 모드의 버전 저장 S3 버킷"),
        click.option("--app-name", "app_name", default=None, help="단일 타겟 모드의 애플리케이션 이름"),
        click.option("--environment", default=None, help="단일 타겟 모드의 환경 이름"),
        click.option("--profile", default=None, help="사용할 AWS 프로파일 이름"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(source_dir: str, **kwargs) -> DeployConfig:  # noqa: ANN003
    load_env_files(source_dir)
    try:
        cfg = DeployConfig.from_sources(source_dir, **kwargs)
    except DeployError as e:
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)
    logger.debug("Config loaded: %s", cfg)
    return cfg


@main.command(name="deploy")
@_target_options
@click.option("--dry-run", "dry_run", is_flag=True, help="zip 아카이브만 만들고 AWS 에는 배포하지 않습니다.")
@click.option(
    "--skip-optional-dependencies",
    "skip_optional_dependencies",
    is_flag=True,
    help="npm install --no-optional 로 설치하고 package.json 의 optionalDependencies 를 제거합니다.",
)
@click.option("--in-place", "in_place", is_flag=True, help="임시 디렉토리 복사 없이 원본 디렉토리에서 작업합니다.")
@click.option("--skip-install", "skip_install", is_flag=True, help="npm install 을 수행하지 않습니다.")
@click.option("--poll-interval", "poll_interval", type=float, default=None, help="배포 상태 확인 간격(초, 기본 20)")
@click.option("--watch-timeout", "watch_timeout", type=float, default=None, help="환경별 최대 대기 시간(초, 기본 무제한)")
@click.option("--strict", is_flag=True, help="하나의 환경이라도 배포에 실패하면 exit 1 로 종료합니다.")
def deploy(
    source_dir: str,
    config_path: Optional[str],
    region: Optional[str],
    bucket: Optional[str],
    app_name: Optional[str],
    environment: Optional[str],
    profile: Optional[str],
    dry_run: bool,
    skip_optional_dependencies: bool,
    in_place: bool,
    skip_install: bool,
    poll_interval: Optional[float],
    watch_timeout: Optional[float],
    strict: bool,
) -> None:
    """프로젝트를 zip 으로 묶어 설정된 모든 환경에 배포"""
    cfg = _load_config(
        source_dir,
        config_path=config_path,
        region=region,
        bucket=bucket,
        app_name=app_name,
        environment=environment,
        profile=profile,
        poll_interval=poll_interval,
        watch_timeout=watch_timeout,
        dry_run=dry_run,
        skip_optional_dependencies=skip_optional_dependencies,
        in_place=in_place,
        skip_install=skip_install,
    )

    try:
        result = run_pipeline(cfg)
    except DeployError as e:
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 오류 발생")
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)

    click.echo(format_summary(result))

    # 환경 단위 실패는 기본적으로 exit 0 (best-effort). --strict 일 때만 실패로 간주한다.
    if strict and result.has_failures:
        sys.exit(1)


@main.command()
@_target_options
def plan(
    source_dir: str,
    config_path: Optional[str],
    region: Optional[str],
    bucket: Optional[str],
    app_name: Optional[str],
    environment: Optional[str],
    profile: Optional[str],
) -> None:
    """현재 설정과 배포 대상 환경 목록을 출력 (AWS 호출 없음)"""
    cfg = _load_config(
        source_dir,
        config_path=config_path,
        region=region,
        bucket=bucket,
        app_name=app_name,
        environment=environment,
        profile=profile,
    )
    click.echo(plan_all(cfg))


@main.command()
@_target_options
def check(
    source_dir: str,
    config_path: Optional[str],
    region: Optional[str],
    bucket: Optional[str],
    app_name: Optional[str],
    environment: Optional[str],
    profile: Optional[str],
) -> None:
    """
    배포 전에 모든 환경이 Ready 상태인지 점검한다.
    (실제 배포는 하지 않는다)
    """
    cfg = _load_config(
        source_dir,
        config_path=config_path,
        region=region,
        bucket=bucket,
        app_name=app_name,
        environment=environment,
        profile=profile,
    )

    try:
        report, has_issues = check_all(cfg)
    except DeployError as e:
        click.echo(f"[ERROR] 체크 실패: {e}", err=True)
        sys.exit(1)
    except Exception as e:  # noqa: BLE001
        logger.exception("사전 체크 중 오류 발생")
        click.echo(f"[ERROR] 체크 실패: {e}", err=True)
        sys.exit(1)

    click.echo(report)

    # Ready 가 아닌 환경이 있으면 exit 1 로 종료하여 CI 등에서 감지 가능하게 한다.
    if has_issues:
        sys.exit(1)


# 패키지 템플릿 이름 -> 생성할 파일 이름
_TEMPLATES = {
    "ebdeploy.example.yml": DEFAULT_CONFIG_FILE,
    "ebignore.example": ".ebignore",
}


@main.command()
@click.argument(
    "source_dir",
    required=False,
    default=".",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
)
def init(source_dir: str) -> None:
    """
    대상 디렉토리에 ebdeploy.yml / .ebignore 템플릿을 생성하는 초기화.
    """
    for name, filename in _TEMPLATES.items():
        target = os.path.join(source_dir, filename)
        if os.path.exists(target):
            click.echo(f"{filename} 이(가) 이미 존재하여 건너뜀")
            continue
        try:
            with resources.files("eb_deploy_kit.examples").joinpath(name).open("r", encoding="utf-8") as src, open(
                target, "w", encoding="utf-8"
            ) as dst:
                dst.write(src.read())
            click.echo(f"{filename} 템플릿을 생성했습니다.")
        except FileNotFoundError:
            click.echo(f"템플릿 {name} 을(를) 패키지에서 찾을 수 없습니다.", err=True)
