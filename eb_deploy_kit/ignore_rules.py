"""
ignore_rules
------------

.ebignore 의 glob 패턴을 파일/디렉토리 필터 목록(FilterSet)으로 변환하는 모듈.

모든 패턴은 '!' 접두어가 붙은 제외 패턴으로 저장된다.
트리 순회는 기본이 '포함'이므로, 결과적으로 .ebignore 는 제외 목록으로 동작한다.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Iterable, List, Sequence, Tuple

from .errors import ConfigurationError
from .logging_utils import get_logger


logger = get_logger(__name__)

NEGATION = "!"
DEFAULT_IGNORE_FILE = ".ebignore"

# 배포할 필요가 없는 메타 파일들
_COMMON_EXCLUSIONS = ("README.md", "LICENSE.txt")


def default_exclusions(version_label: str) -> List[str]:
    """생성 중인 zip 파일 자신과 흔한 메타 파일은 항상 제외한다."""
    return [f"{version_label}.zip", *_COMMON_EXCLUSIONS]


def _matches(pattern: str, rel_path: str) -> bool:
    rel_path = rel_path.replace(os.sep, "/").lstrip("/")
    if "/" in pattern:
        return fnmatchcase(rel_path, pattern.lstrip("/"))
    return fnmatchcase(rel_path.rsplit("/", 1)[-1], pattern)


def _allows(patterns: Sequence[str], rel_path: str) -> bool:
    positives = [p for p in patterns if not p.startswith(NEGATION)]
    negatives = [p[len(NEGATION):] for p in patterns if p.startswith(NEGATION)]

    if positives and not any(_matches(p, rel_path) for p in positives):
        return False
    return not any(_matches(p, rel_path) for p in negatives)


@dataclass(frozen=True)
class FilterSet:
    file_patterns: Tuple[str, ...] = ()
    directory_patterns: Tuple[str, ...] = ()

    def allows_file(self, rel_path: str) -> bool:
        return _allows(self.file_patterns, rel_path)

    def allows_directory(self, rel_path: str) -> bool:
        return _allows(self.directory_patterns, rel_path)


def compile_filters(text: str, always_excluded: Iterable[str] = ()) -> FilterSet:
    """
    ignore 파일 본문을 FilterSet 으로 변환하는 순수 함수.

    - '/' 로 끝나는 줄은 디렉토리 패턴 (끝의 '/' 제거)
    - 나머지는 파일 패턴
    - 빈 줄과 '#' 주석은 무시
    - 사용자가 직접 쓴 '!' 패턴은 의미가 모호하므로 거부한다.
    """
    files: List[str] = [NEGATION + name for name in always_excluded]
    directories: List[str] = []

    for lineno, raw in enumerate(text.split("\n"), start=1):
        # 앞쪽 공백은 패턴의 일부로 남긴다.
        pattern = raw.rstrip()
        if not pattern.strip() or pattern.lstrip().startswith("#"):
            continue
        if pattern.startswith(NEGATION):
            raise ConfigurationError(
                f"ignore 파일에는 '!' 패턴을 사용할 수 없습니다 (line {lineno}): {pattern}"
            )

        if pattern.endswith("/"):
            stripped = pattern.rstrip("/")
            if stripped:
                directories.append(NEGATION + stripped)
        else:
            files.append(NEGATION + pattern)

    return FilterSet(file_patterns=tuple(files), directory_patterns=tuple(directories))


def load_filter_set(working_dir: str, version_label: str,
                    ignore_file: str = DEFAULT_IGNORE_FILE) -> FilterSet:
    """
    작업 디렉토리의 ignore 파일을 읽어 FilterSet 을 만든다.
    ignore 파일이 없으면 '전부 포함' 으로 진행하지 않고 실패한다.
    """
    path = os.path.join(working_dir, ignore_file)
    try:
        with open(path, "r", encoding="utf-8") as fp:
            text = fp.read()
    except FileNotFoundError as e:
        raise ConfigurationError(f"{ignore_file} 파일이 없습니다: {path}") from e

    filters = compile_filters(text, default_exclusions(version_label))
    logger.debug(
        "필터 구성: files=%s directories=%s",
        list(filters.file_patterns),
        list(filters.directory_patterns),
    )
    return filters
