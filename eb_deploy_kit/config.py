from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError


ENV_FILES_DEFAULT_ORDER = [".env", ".env.ebdeploy"]

DEFAULT_CONFIG_FILE = "ebdeploy.yml"
DEFAULT_REGION = "us-west-2"
DEFAULT_POLL_INTERVAL = 20.0

# YAML 키 -> DeployTarget 필드
_TARGET_KEYS = {
    "name": "name",
    "region": "region",
    "applicationName": "application_name",
    "environmentName": "environment_name",
    "versionsBucket": "versions_bucket",
}


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y"}


def _get_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} 값이 숫자가 아닙니다: {raw!r}") from e


def _as_float(value: Any, key: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"설정 키 {key} 값이 숫자가 아닙니다: {value!r}") from e


@dataclass(frozen=True)
class DeployTarget:
    """배포 대상 Elastic Beanstalk 환경 하나."""

    name: str
    region: str
    application_name: str
    environment_name: str
    versions_bucket: str

    @classmethod
    def from_mapping(cls, raw: Any, index: int = 0) -> "DeployTarget":
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"environments[{index}] 항목은 매핑이어야 합니다: {raw!r}"
            )

        missing = [key for key in _TARGET_KEYS if not raw.get(key)]
        if missing:
            label = raw.get("name") or f"environments[{index}]"
            raise ConfigurationError(
                f"{label} 에 필수 키가 누락되었습니다: " + ", ".join(missing)
            )

        return cls(**{attr: str(raw[key]) for key, attr in _TARGET_KEYS.items()})


@dataclass
class FileSettings:
    targets: List[DeployTarget]
    poll_interval: Optional[float] = None
    watch_timeout: Optional[float] = None


def load_targets(path: str) -> FileSettings:
    """
    YAML 설정 파일에서 environments 목록과 선택 설정을 읽는다.
    """
    if not os.path.exists(path):
        raise ConfigurationError(f"설정 파일을 찾을 수 없습니다: {path}")

    try:
        with open(path, "r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"설정 파일을 파싱할 수 없습니다: {path} ({e})") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"설정 파일 최상위는 매핑이어야 합니다: {path}")

    raw_targets = data.get("environments")
    if not raw_targets:
        raise ConfigurationError(f"environments 목록이 없거나 비어 있습니다: {path}")
    if not isinstance(raw_targets, list):
        raise ConfigurationError("environments 는 리스트여야 합니다.")

    targets = [DeployTarget.from_mapping(raw, i) for i, raw in enumerate(raw_targets)]

    names = [t.name for t in targets]
    duplicated = sorted({n for n in names if names.count(n) > 1})
    if duplicated:
        raise ConfigurationError("중복된 environment name 이 있습니다: " + ", ".join(duplicated))

    return FileSettings(
        targets=targets,
        poll_interval=_as_float(data.get("pollInterval"), "pollInterval"),
        watch_timeout=_as_float(data.get("watchTimeout"), "watchTimeout"),
    )


@dataclass
class DeployConfig:
    source_dir: str
    targets: List[DeployTarget] = field(default_factory=list)

    # AWS 접속
    profile: Optional[str] = None
    proxy_url: Optional[str] = None

    # 빌드 옵션
    use_temp_dir: bool = True
    install_dependencies: bool = True
    skip_optional_dependencies: bool = False
    ignore_file: str = ".ebignore"

    # 배포 대기
    poll_interval: float = DEFAULT_POLL_INTERVAL
    watch_timeout: Optional[float] = None

    dry_run: bool = False
    config_path: Optional[str] = None

    @classmethod
    def from_sources(
        cls,
        source_dir: str = ".",
        *,
        config_path: Optional[str] = None,
        region: Optional[str] = None,
        bucket: Optional[str] = None,
        app_name: Optional[str] = None,
        environment: Optional[str] = None,
        profile: Optional[str] = None,
        poll_interval: Optional[float] = None,
        watch_timeout: Optional[float] = None,
        dry_run: bool = False,
        skip_optional_dependencies: bool = False,
        in_place: bool = False,
        skip_install: bool = False,
    ) -> "DeployConfig":
        """
        CLI 인자 > 환경변수 > YAML 설정 > 기본값 순으로 설정을 합친다.

        --app-name/--environment/--bucket 중 하나라도 주어지면 YAML 대신
        단일 타겟 모드로 동작한다.
        --region 은 단일 타겟 모드에서만 허용된다.
        """
        single = {"--app-name": app_name, "--environment": environment, "--bucket": bucket}
        settings: Optional[FileSettings] = None
        resolved_path: Optional[str] = None

        if any(single.values()):
            missing = [flag for flag, value in single.items() if not value]
            if missing:
                raise ConfigurationError(
                    "단일 타겟 모드에 필요한 인자가 누락되었습니다: " + ", ".join(missing)
                )
            targets = [
                DeployTarget(
                    name=str(environment),
                    region=region or os.getenv("AWS_REGION") or DEFAULT_REGION,
                    application_name=str(app_name),
                    environment_name=str(environment),
                    versions_bucket=str(bucket),
                )
            ]
        else:
            if region:
                # YAML 모드에서는 타겟마다 region 을 따로 지정한다.
                raise ConfigurationError(
                    "--region 은 --app-name/--environment/--bucket 과 함께 사용해야 합니다 "
                    "(설정 파일 모드에서는 environments 항목마다 region 을 지정하세요)"
                )
            resolved_path = (
                config_path
                or os.getenv("EBDEPLOY_CONFIG")
                or os.path.join(source_dir, DEFAULT_CONFIG_FILE)
            )
            settings = load_targets(resolved_path)
            targets = settings.targets

        effective_interval = poll_interval
        if effective_interval is None:
            effective_interval = _get_float("EBDEPLOY_POLL_INTERVAL")
        if effective_interval is None and settings is not None:
            effective_interval = settings.poll_interval
        if effective_interval is None:
            effective_interval = DEFAULT_POLL_INTERVAL
        if effective_interval <= 0:
            raise ConfigurationError(f"poll interval 은 0보다 커야 합니다: {effective_interval}")

        effective_timeout = watch_timeout
        if effective_timeout is None:
            effective_timeout = _get_float("EBDEPLOY_WATCH_TIMEOUT")
        if effective_timeout is None and settings is not None:
            effective_timeout = settings.watch_timeout

        return cls(
            source_dir=source_dir,
            targets=targets,
            profile=profile or os.getenv("EBDEPLOY_PROFILE") or None,
            proxy_url=os.getenv("HTTPS_PROXY") or os.getenv("https_proxy") or None,
            use_temp_dir=not in_place,
            install_dependencies=not (skip_install or _get_bool("EBDEPLOY_SKIP_INSTALL", False)),
            skip_optional_dependencies=skip_optional_dependencies,
            poll_interval=effective_interval,
            watch_timeout=effective_timeout,
            dry_run=dry_run,
            config_path=resolved_path,
        )
