"""
workspace
---------

아카이브를 만들기 전 작업 디렉토리를 준비하는 모듈.

- (기본) 임시 디렉토리에 소스를 복사해 원본을 건드리지 않는다.
- node_modules 를 지우고 npm install --production 을 다시 수행한다.
- 필요 시 optionalDependencies 를 제거한다.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import Callable, List, Optional, Sequence

from .config import DeployConfig
from .errors import BuildError, ConfigurationError
from .logging_utils import get_logger
from .manifest import strip_optional_dependencies
from .subprocess_utils import RunResult, run_command


logger = get_logger(__name__)

# 작업 복사본으로 가져가지 않는 최상위 항목
COPY_EXCLUDES = (".git", "node_modules")


def npm_install_command(skip_optional: bool = False) -> List[str]:
    cmd = ["npm", "install", "--production"]
    if skip_optional:
        cmd.append("--no-optional")
    return cmd


def create_working_copy(source_dir: str, version_label: str) -> str:
    """
    임시 디렉토리(<tmp>/<version_label>)를 만들고 소스 최상위 항목들을 복사한다.
    .git, node_modules 는 복사하지 않는다.
    """
    working_dir = os.path.join(tempfile.gettempdir(), version_label)
    logger.info("작업 디렉토리로 파일 복사: %s", working_dir)

    try:
        os.makedirs(working_dir)
        for name in sorted(os.listdir(source_dir)):
            if name in COPY_EXCLUDES:
                continue
            src = os.path.join(source_dir, name)
            dst = os.path.join(working_dir, name)
            if os.path.isdir(src) and not os.path.islink(src):
                shutil.copytree(src, dst, symlinks=True)
            else:
                shutil.copy2(src, dst, follow_symlinks=False)
    except OSError as e:
        raise BuildError(f"작업 디렉토리 복사 실패: {working_dir} ({e})") from e

    return working_dir


def remove_node_modules(working_dir: str) -> None:
    path = os.path.join(working_dir, "node_modules")
    if os.path.isdir(path):
        logger.info("node_modules 삭제: %s", path)
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise BuildError(f"node_modules 삭제 실패: {e}") from e


def install_dependencies(
    working_dir: str,
    skip_optional: bool = False,
    runner: Optional[Callable[..., RunResult]] = None,
) -> None:
    cmd: Sequence[str] = npm_install_command(skip_optional)
    try:
        (runner or run_command)(cmd, cwd=working_dir, stream_output=True)
    except RuntimeError as e:
        raise BuildError(f"npm install 실패: {e}") from e


def prepare_workspace(
    cfg: DeployConfig,
    version_label: str,
    runner: Optional[Callable[..., RunResult]] = None,
) -> str:
    """
    설정에 따라 작업 디렉토리를 준비하고 그 경로를 반환한다.
    """
    source_dir = os.path.abspath(cfg.source_dir)
    if not os.path.isdir(source_dir):
        raise ConfigurationError(f"소스 디렉토리가 없습니다: {source_dir}")

    if cfg.use_temp_dir:
        working_dir = create_working_copy(source_dir, version_label)
    else:
        logger.warning("원본 디렉토리에서 직접 작업합니다: %s", source_dir)
        working_dir = source_dir

    if cfg.install_dependencies:
        remove_node_modules(working_dir)
        install_dependencies(working_dir, cfg.skip_optional_dependencies, runner=runner)
    else:
        logger.info("npm install 을 건너뜁니다.")

    if cfg.skip_optional_dependencies:
        strip_optional_dependencies(working_dir)

    return working_dir


def cleanup_working_copy(working_dir: str) -> None:
    """임시 작업 디렉토리를 삭제한다. 실패해도 배포 결과에는 영향을 주지 않는다."""
    logger.info("임시 작업 디렉토리 삭제: %s", working_dir)
    try:
        shutil.rmtree(working_dir)
    except OSError as e:
        logger.warning("임시 작업 디렉토리를 삭제하지 못했습니다: %s (%s)", working_dir, e)
