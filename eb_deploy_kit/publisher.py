"""
publisher
---------

환경 하나에 대해 아티팩트 업로드 -> 애플리케이션 버전 등록 -> 환경 업데이트 요청을 수행한다.
업데이트 완료 대기는 watcher 가 담당한다.
"""

from __future__ import annotations

from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from .config import DeployTarget
from .errors import PublishError
from .logging_utils import get_logger


logger = get_logger(__name__)


def artifact_key(target: DeployTarget, version_label: str) -> str:
    return f"{target.application_name}/{version_label}.zip"


def _is_version_exists_error(err: ClientError) -> bool:
    error = err.response.get("Error", {})
    message = str(error.get("Message", ""))
    return error.get("Code") == "InvalidParameterValue" and "already exists" in message


def upload_artifact(clients, target: DeployTarget, artifact: Path, version_label: str) -> str:  # noqa: ANN001
    key = artifact_key(target, version_label)
    logger.info("S3 업로드: %s -> s3://%s/%s", target.name, target.versions_bucket, key)
    s3 = clients.s3(target.region)
    with open(artifact, "rb") as body:
        s3.put_object(Bucket=target.versions_bucket, Key=key, Body=body)
    return key


def create_version(clients, target: DeployTarget, version_label: str, key: str) -> None:  # noqa: ANN001
    logger.info("애플리케이션 버전 생성: %s (%s)", version_label, target.application_name)
    eb = clients.elasticbeanstalk(target.region)
    try:
        eb.create_application_version(
            ApplicationName=target.application_name,
            VersionLabel=version_label,
            AutoCreateApplication=False,
            SourceBundle={"S3Bucket": target.versions_bucket, "S3Key": key},
        )
    except ClientError as e:
        # 같은 애플리케이션을 쓰는 다른 환경에서 이미 등록한 버전이면 그대로 사용한다.
        if not _is_version_exists_error(e):
            raise
        logger.info("버전이 이미 존재하여 재사용합니다: %s", version_label)


def update_environment(clients, target: DeployTarget, version_label: str) -> None:  # noqa: ANN001
    logger.info("환경 %s 에 버전 %s 배포 요청", target.environment_name, version_label)
    eb = clients.elasticbeanstalk(target.region)
    eb.update_environment(
        EnvironmentName=target.environment_name,
        VersionLabel=version_label,
    )


def publish(clients, target: DeployTarget, artifact: Path, version_label: str) -> str:  # noqa: ANN001
    """
    업로드/버전 등록/환경 업데이트 중 하나라도 실패하면 PublishError 로 감싸서 던진다.
    업로드한 S3 key 를 반환한다.
    """
    step = "upload"
    try:
        key = upload_artifact(clients, target, artifact, version_label)
        step = "create_application_version"
        create_version(clients, target, version_label, key)
        step = "update_environment"
        update_environment(clients, target, version_label)
    except (ClientError, BotoCoreError, OSError) as e:
        raise PublishError(target.name, f"{step} 단계 실패: {e}") from e
    return key
