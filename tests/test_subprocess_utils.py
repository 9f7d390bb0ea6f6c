from __future__ import annotations

import io
import sys
import time

import pytest

from eb_deploy_kit.subprocess_utils import run_command


def test_capture_mode_returns_output() -> None:
    result = run_command([sys.executable, "-c", "print('done')"], timeout=30)

    assert result.returncode == 0
    assert result.stdout.strip() == "done"


def test_capture_mode_failure_includes_stderr() -> None:
    cmd = [sys.executable, "-c", "import sys; sys.stderr.write('broken'); sys.exit(3)"]

    with pytest.raises(RuntimeError) as excinfo:
        run_command(cmd, timeout=30)

    assert "exit=3" in str(excinfo.value)
    assert "broken" in str(excinfo.value)


def test_stream_mode_echoes_lines(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_out = io.StringIO()
    monkeypatch.setattr(sys, "stdout", fake_out)

    result = run_command(
        [sys.executable, "-c", "print('one'); print('two')"],
        stream_output=True,
        timeout=30,
    )

    assert result.returncode == 0
    assert fake_out.getvalue().splitlines() == ["one", "two"]


def test_missing_command_raises_runtime_error() -> None:
    with pytest.raises(RuntimeError) as excinfo:
        run_command(["definitely-not-a-real-command-ebdeploy"])

    assert "definitely-not-a-real-command-ebdeploy" in str(excinfo.value)


def test_stream_mode_kills_child_after_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdout", io.StringIO())
    cmd = [sys.executable, "-c", "import time; print('start', flush=True); time.sleep(30)"]

    started = time.monotonic()
    with pytest.raises(RuntimeError) as excinfo:
        run_command(cmd, stream_output=True, timeout=0.5)

    assert "초 안에 끝나지 않았습니다" in str(excinfo.value)
    assert time.monotonic() - started < 10
