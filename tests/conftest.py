"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 eb_deploy_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.

AWS 호출은 아래의 Fake 클라이언트로 대체한다.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Dict, List, Optional

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


def client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeElasticBeanstalk:
    """
    environment name -> 상태 dict 목록.
    describe 호출마다 앞에서부터 하나씩 꺼내고, 마지막 값은 계속 유지한다.
    """

    def __init__(self, statuses: Dict[str, List[dict]]) -> None:
        self.statuses = {k: list(v) for k, v in statuses.items()}
        self.describe_calls: List[str] = []
        self.created_versions: List[dict] = []
        self.updates: List[dict] = []
        self.create_error: Optional[Exception] = None

    def describe_environments(self, ApplicationName, EnvironmentNames, IncludeDeleted=False):  # noqa: N803, ANN001
        name = EnvironmentNames[0]
        self.describe_calls.append(name)
        queue = self.statuses.get(name)
        if not queue:
            return {"Environments": []}
        info = queue.pop(0) if len(queue) > 1 else queue[0]
        return {"Environments": [{"EnvironmentName": name, "ApplicationName": ApplicationName, **info}]}

    def create_application_version(self, **kwargs):  # noqa: ANN003
        if self.create_error is not None:
            raise self.create_error
        self.created_versions.append(kwargs)
        return {"ApplicationVersion": {"VersionLabel": kwargs["VersionLabel"]}}

    def update_environment(self, **kwargs):  # noqa: ANN003
        self.updates.append(kwargs)
        name = kwargs["EnvironmentName"]
        return {"EnvironmentName": name, "Status": "Updating"}


class FakeS3:
    def __init__(self, failing_buckets: Optional[set] = None) -> None:
        self.uploads: List[dict] = []
        self.failing_buckets = failing_buckets or set()

    def put_object(self, Bucket, Key, Body):  # noqa: N803, ANN001
        if Bucket in self.failing_buckets:
            raise EndpointConnectionError(endpoint_url=f"https://{Bucket}.s3.amazonaws.com")
        self.uploads.append({"Bucket": Bucket, "Key": Key, "Body": Body.read()})
        return {"ETag": '"fake"'}


class FakeClients:
    """AwsClients 와 같은 인터페이스. 리전과 관계없이 같은 Fake 를 돌려준다."""

    def __init__(self, eb: FakeElasticBeanstalk, s3: Optional[FakeS3] = None) -> None:
        self.eb = eb
        self.s3_client = s3 or FakeS3()

    def elasticbeanstalk(self, region: str) -> FakeElasticBeanstalk:  # noqa: ARG002
        return self.eb

    def s3(self, region: str) -> FakeS3:  # noqa: ARG002
        return self.s3_client


def ready(health: str = "Ok") -> dict:
    return {"Status": "Ready", "HealthStatus": health}


def updating(health: str = "Ok") -> dict:
    return {"Status": "Updating", "HealthStatus": health}


@pytest.fixture
def node_project(tmp_path):  # noqa: ANN001, ANN201
    """
    .ebignore 와 package.json 을 가진 작은 Node 프로젝트.
    """
    project = tmp_path / "app"
    project.mkdir()
    (project / "package.json").write_text(
        json.dumps(
            {
                "name": "sample",
                "version": "1.0.0",
                "scripts": {"start": "node server.js", "preinstall": "node prep.js"},
                "dependencies": {"express": "^4.18.0"},
                "devDependencies": {"mocha": "^10.0.0"},
            }
        ),
        encoding="utf-8",
    )
    (project / "server.js").write_text("console.log('hi');\n", encoding="utf-8")
    (project / "README.md").write_text("# sample\n", encoding="utf-8")
    (project / "debug.log").write_text("noise\n", encoding="utf-8")
    (project / "lib").mkdir()
    (project / "lib" / "util.js").write_text("module.exports = {};\n", encoding="utf-8")
    (project / "test").mkdir()
    (project / "test" / "util.test.js").write_text("// test\n", encoding="utf-8")
    (project / "test" / "package.json").write_text("{}", encoding="utf-8")
    (project / ".ebignore").write_text("test/\n*.log\n", encoding="utf-8")
    return project
