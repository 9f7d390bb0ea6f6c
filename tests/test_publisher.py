from __future__ import annotations

import pytest

from conftest import FakeClients, FakeElasticBeanstalk, FakeS3, client_error
from eb_deploy_kit.config import DeployTarget
from eb_deploy_kit.errors import PublishError
from eb_deploy_kit.publisher import artifact_key, publish


TARGET = DeployTarget(
    name="prod",
    region="us-west-2",
    application_name="app",
    environment_name="app-prod",
    versions_bucket="versions",
)
LABEL = "ebdeploy-1700000000000"


@pytest.fixture
def artifact(tmp_path):  # noqa: ANN001, ANN201
    path = tmp_path / f"{LABEL}.zip"
    path.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return path


def test_artifact_key_uses_application_and_label() -> None:
    assert artifact_key(TARGET, LABEL) == "app/ebdeploy-1700000000000.zip"


def test_publish_uploads_registers_and_triggers(artifact) -> None:  # noqa: ANN001
    eb = FakeElasticBeanstalk({})
    s3 = FakeS3()

    key = publish(FakeClients(eb, s3), TARGET, artifact, LABEL)

    assert key == "app/ebdeploy-1700000000000.zip"
    assert s3.uploads == [{"Bucket": "versions", "Key": key, "Body": artifact.read_bytes()}]
    assert eb.created_versions == [
        {
            "ApplicationName": "app",
            "VersionLabel": LABEL,
            "AutoCreateApplication": False,
            "SourceBundle": {"S3Bucket": "versions", "S3Key": key},
        }
    ]
    assert eb.updates == [{"EnvironmentName": "app-prod", "VersionLabel": LABEL}]


def test_existing_version_is_reused(artifact) -> None:  # noqa: ANN001
    eb = FakeElasticBeanstalk({})
    eb.create_error = client_error(
        "InvalidParameterValue",
        f"Application Version {LABEL} already exists.",
        "CreateApplicationVersion",
    )

    publish(FakeClients(eb), TARGET, artifact, LABEL)

    assert eb.updates == [{"EnvironmentName": "app-prod", "VersionLabel": LABEL}]


def test_version_registration_failure_is_publish_error(artifact) -> None:  # noqa: ANN001
    eb = FakeElasticBeanstalk({})
    eb.create_error = client_error("TooManyApplicationVersions", "limit", "CreateApplicationVersion")

    with pytest.raises(PublishError) as excinfo:
        publish(FakeClients(eb), TARGET, artifact, LABEL)

    assert excinfo.value.target_name == "prod"
    assert "create_application_version" in str(excinfo.value)
    assert eb.updates == []


def test_upload_network_error_is_publish_error(artifact) -> None:  # noqa: ANN001
    eb = FakeElasticBeanstalk({})
    s3 = FakeS3(failing_buckets={"versions"})

    with pytest.raises(PublishError) as excinfo:
        publish(FakeClients(eb, s3), TARGET, artifact, LABEL)

    assert "upload" in str(excinfo.value)
    assert eb.created_versions == []
