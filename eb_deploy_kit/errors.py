"""
errors
------

배포 파이프라인 전반에서 사용하는 예외 계층.

- ConfigurationError / BuildError / PreconditionError 는 전체 실행을 중단시킨다.
- PublishError / WatchError 는 환경(target) 단위로 격리되어 기록만 된다.
"""

from __future__ import annotations

from typing import Optional


class DeployError(Exception):
    """ebdeploy 예외의 공통 부모."""


class ConfigurationError(DeployError, ValueError):
    """설정 파일/ignore 파일 누락 또는 잘못된 값."""


class BuildError(DeployError, RuntimeError):
    """아티팩트 빌드(파일 I/O, zip 쓰기, 패키지 설치) 실패."""


class PreconditionError(DeployError, RuntimeError):
    """배포 전 환경이 Ready 상태가 아님."""

    def __init__(self, message: str, targets: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.targets = list(targets or [])


class TargetError(DeployError, RuntimeError):
    """특정 환경 하나에 국한된 실패."""

    def __init__(self, target_name: str, message: str) -> None:
        super().__init__(f"[{target_name}] {message}")
        self.target_name = target_name


class PublishError(TargetError):
    """업로드/버전 등록/환경 업데이트 요청 실패."""


class WatchError(TargetError):
    """배포 후 환경이 Failed 상태에 도달했거나 대기 시간을 초과함."""
