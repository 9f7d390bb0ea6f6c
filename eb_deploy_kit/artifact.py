"""
artifact
--------

작업 디렉토리를 FilterSet 으로 걸러 zip 아카이브(배포 번들)를 만드는 모듈.

- 제외된 디렉토리는 하위로 내려가지 않는다.
- 디렉토리 심볼릭 링크(npm file: 의존성 등)는 따라 들어가되, 상위 디렉토리를 가리키는 순환 링크는 건너뛴다.
- 원본 package.json 은 건너뛰고, 수정된 manifest 를 마지막 엔트리로 한 번만 기록한다.
- 실패 시 부분적으로 쓰인 zip 파일은 진단용으로 그대로 남긴다.
"""

from __future__ import annotations

import os
import zipfile
from pathlib import Path

from .errors import BuildError
from .ignore_rules import FilterSet
from .logging_utils import get_logger
from .manifest import MANIFEST_NAME, ArtifactManifest


logger = get_logger(__name__)


def artifact_path(working_dir: str, version_label: str) -> Path:
    return Path(working_dir) / f"{version_label}.zip"


def _is_link_cycle(dirpath: str, root: str) -> bool:
    """dirpath 의 실제 경로가 자기 상위 디렉토리 중 하나와 같으면 순환이다."""
    real = os.path.realpath(dirpath)
    parent = os.path.dirname(dirpath)
    while len(parent) >= len(root):
        if os.path.realpath(parent) == real:
            return True
        if parent == root:
            break
        parent = os.path.dirname(parent)
    return False


def _raise_walk_error(err: OSError) -> None:
    raise err


def build_artifact(
    working_dir: str,
    version_label: str,
    filters: FilterSet,
    manifest: ArtifactManifest,
) -> Path:
    """
    zip 아카이브를 생성하고 그 경로를 반환한다.
    """
    target = artifact_path(working_dir, version_label)
    logger.info("zip 아카이브 생성: %s", target)

    root = os.path.abspath(working_dir)
    entries = 0

    try:
        with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as archive:
            for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error, followlinks=True):
                if _is_link_cycle(dirpath, root):
                    logger.warning("상위 디렉토리를 가리키는 심볼릭 링크를 건너뜁니다: %s", dirpath)
                    dirnames[:] = []
                    continue

                rel_dir = os.path.relpath(dirpath, root)
                rel_dir = "" if rel_dir == "." else rel_dir.replace(os.sep, "/")

                # 제외된 디렉토리는 in-place 로 지워서 os.walk 가 내려가지 않게 한다.
                dirnames[:] = sorted(
                    d for d in dirnames
                    if filters.allows_directory(f"{rel_dir}/{d}" if rel_dir else d)
                )

                for name in sorted(filenames):
                    rel_path = f"{rel_dir}/{name}" if rel_dir else name
                    if rel_path in (MANIFEST_NAME, target.name):
                        continue
                    if not filters.allows_file(rel_path):
                        continue

                    logger.debug("아카이브 엔트리 추가: %s", rel_path)
                    archive.write(os.path.join(dirpath, name), arcname=rel_path)
                    entries += 1

            logger.debug("수정된 %s 기록", MANIFEST_NAME)
            archive.writestr(MANIFEST_NAME, manifest.to_json())
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise BuildError(f"zip 아카이브 생성 실패: {target} ({e})") from e

    logger.info("zip 아카이브 생성 완료: %s (%d 개 파일 + %s)", target, entries, MANIFEST_NAME)
    return target
