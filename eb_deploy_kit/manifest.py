"""
manifest
--------

package.json 을 읽고, 아카이브에 넣을 수정본(의존성 비움)을 만드는 모듈.
"""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .errors import BuildError, ConfigurationError
from .logging_utils import get_logger


logger = get_logger(__name__)

MANIFEST_NAME = "package.json"

_CLEARED_SECTIONS = ("dependencies", "devDependencies")


def _read_json(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fp:
            data = json.load(fp)
    except json.JSONDecodeError as e:
        raise BuildError(f"{path} 이(가) 올바른 JSON 이 아닙니다: {e}") from e
    except OSError as e:
        raise BuildError(f"{path} 을(를) 읽을 수 없습니다: {e}") from e

    if not isinstance(data, dict):
        raise BuildError(f"{path} 의 최상위 값은 객체여야 합니다.")
    return data


@dataclass
class ArtifactManifest:
    data: Dict[str, Any] = field(default_factory=dict)

    def revised(self) -> "ArtifactManifest":
        """
        플랫폼이 자체 npm install 을 깨끗한 상태에서 시작하도록
        dependencies/devDependencies 를 비우고 preinstall 훅을 제거한 사본을 반환한다.
        (preinstall 은 로컬에서 이미 수행됨)
        """
        data = copy.deepcopy(self.data)
        for section in _CLEARED_SECTIONS:
            data[section] = {}

        scripts = data.get("scripts")
        if isinstance(scripts, dict):
            scripts.pop("preinstall", None)

        return ArtifactManifest(data)

    def to_json(self) -> str:
        return json.dumps(self.data, indent=2)


def load_manifest(working_dir: str) -> ArtifactManifest:
    path = os.path.join(working_dir, MANIFEST_NAME)
    if not os.path.exists(path):
        raise ConfigurationError(f"{MANIFEST_NAME} 이(가) 없습니다: {path}")
    return ArtifactManifest(_read_json(path))


def strip_optional_dependencies(working_dir: str) -> List[str]:
    """
    작업 디렉토리 아래 모든 package.json 에서 optionalDependencies 를 제거한다.

    Elastic Beanstalk 은 배포 시 npm install 을 다시 수행하면서
    --no-optional 을 지정할 방법이 없으므로, 파일 자체에서 섹션을 지운다.
    수정된 파일 경로 목록을 반환한다.
    """
    logger.info("package.json 파일들에서 optionalDependencies 를 제거합니다.")
    changed: List[str] = []

    for root, _dirs, files in os.walk(working_dir):
        if MANIFEST_NAME not in files:
            continue
        path = os.path.join(root, MANIFEST_NAME)
        data = _read_json(path)
        if "optionalDependencies" not in data:
            continue

        logger.debug("optionalDependencies 제거: %s", os.path.relpath(path, working_dir))
        del data["optionalDependencies"]
        try:
            with open(path, "w", encoding="utf-8") as fp:
                fp.write(json.dumps(data, indent=2))
        except OSError as e:
            raise BuildError(f"{path} 을(를) 쓸 수 없습니다: {e}") from e
        changed.append(path)

    return changed
