from __future__ import annotations

import pytest

from eb_deploy_kit.config import DEFAULT_POLL_INTERVAL, DeployConfig, DeployTarget, load_targets
from eb_deploy_kit.errors import ConfigurationError


_YAML = """
pollInterval: 5
environments:
  - name: staging
    region: us-east-1
    applicationName: app
    environmentName: app-staging
    versionsBucket: versions
  - name: production
    region: us-west-2
    applicationName: app
    environmentName: app-prod
    versionsBucket: versions
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "EBDEPLOY_CONFIG",
        "EBDEPLOY_PROFILE",
        "EBDEPLOY_POLL_INTERVAL",
        "EBDEPLOY_WATCH_TIMEOUT",
        "EBDEPLOY_SKIP_INSTALL",
        "HTTPS_PROXY",
        "https_proxy",
        "AWS_REGION",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_targets_reads_environments_in_order(tmp_path) -> None:  # noqa: ANN001
    path = tmp_path / "ebdeploy.yml"
    path.write_text(_YAML, encoding="utf-8")

    settings = load_targets(str(path))

    assert [t.name for t in settings.targets] == ["staging", "production"]
    assert settings.targets[0] == DeployTarget(
        name="staging",
        region="us-east-1",
        application_name="app",
        environment_name="app-staging",
        versions_bucket="versions",
    )
    assert settings.poll_interval == 5.0
    assert settings.watch_timeout is None


@pytest.mark.parametrize("body", ["environments: []\n", "pollInterval: 3\n"])
def test_missing_or_empty_environments_is_configuration_error(tmp_path, body: str) -> None:  # noqa: ANN001
    path = tmp_path / "ebdeploy.yml"
    path.write_text(body, encoding="utf-8")

    with pytest.raises(ConfigurationError) as excinfo:
        load_targets(str(path))

    assert "environments" in str(excinfo.value)


def test_target_missing_keys_are_listed(tmp_path) -> None:  # noqa: ANN001
    path = tmp_path / "ebdeploy.yml"
    path.write_text(
        "environments:\n  - name: staging\n    region: us-east-1\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigurationError) as excinfo:
        load_targets(str(path))

    message = str(excinfo.value)
    assert "applicationName" in message
    assert "versionsBucket" in message


def test_missing_config_file_raises(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigurationError):
        DeployConfig.from_sources(str(tmp_path))


def test_single_target_flags_build_one_target(tmp_path) -> None:  # noqa: ANN001
    cfg = DeployConfig.from_sources(
        str(tmp_path), app_name="app", environment="app-prod", bucket="versions"
    )

    assert len(cfg.targets) == 1
    target = cfg.targets[0]
    assert target.region == "us-west-2"
    assert target.environment_name == "app-prod"
    assert cfg.poll_interval == DEFAULT_POLL_INTERVAL
    assert cfg.config_path is None


def test_single_target_partial_flags_raise(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigurationError) as excinfo:
        DeployConfig.from_sources(str(tmp_path), app_name="app")

    assert "--environment" in str(excinfo.value)
    assert "--bucket" in str(excinfo.value)


def test_region_without_single_target_flags_is_rejected(tmp_path) -> None:  # noqa: ANN001
    (tmp_path / "ebdeploy.yml").write_text(_YAML)

    with pytest.raises(ConfigurationError) as excinfo:
        DeployConfig.from_sources(str(tmp_path), region="eu-west-1")

    assert "--region" in str(excinfo.value)


def test_env_overrides_file_and_cli_overrides_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
    (tmp_path / "ebdeploy.yml").write_text(_YAML, encoding="utf-8")
    monkeypatch.setenv("EBDEPLOY_POLL_INTERVAL", "7")
    monkeypatch.setenv("HTTPS_PROXY", "http://proxy.local:3128")

    cfg = DeployConfig.from_sources(str(tmp_path))
    assert cfg.poll_interval == 7.0
    assert cfg.proxy_url == "http://proxy.local:3128"

    cfg = DeployConfig.from_sources(str(tmp_path), poll_interval=1.5)
    assert cfg.poll_interval == 1.5
