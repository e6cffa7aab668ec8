from __future__ import annotations

import sys
import threading

import pytest

from gcloud_auth_kit.errors import GcloudCommandError, GcloudNotFoundError, OperationCancelledError
from gcloud_auth_kit.subprocess_utils import run_command


def test_run_command_captures_stdout() -> None:
    result = run_command([sys.executable, "-c", "print('hello')"], timeout=10)

    assert result.succeeded
    assert result.stdout.strip() == "hello"


def test_run_command_overlays_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KIT_BASE_VAR", "base")
    cmd = [
        sys.executable,
        "-c",
        "import os; print(os.environ['KIT_BASE_VAR'], os.environ['KIT_EXTRA_VAR'])",
    ]

    result = run_command(cmd, env={"KIT_EXTRA_VAR": "extra"}, timeout=10)

    assert result.stdout.split() == ["base", "extra"]


def test_run_command_failure_includes_stderr() -> None:
    cmd = [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]

    with pytest.raises(GcloudCommandError) as excinfo:
        run_command(cmd, timeout=10)

    assert excinfo.value.returncode == 3
    assert "boom" in excinfo.value.stderr
    assert "exit=3" in str(excinfo.value)


def test_run_command_without_check_returns_result() -> None:
    result = run_command([sys.executable, "-c", "import sys; sys.exit(2)"], timeout=10, check=False)

    assert result.returncode == 2
    assert not result.succeeded


def test_missing_binary_raises_not_found() -> None:
    with pytest.raises(GcloudNotFoundError):
        run_command(["definitely-not-a-real-gcloud-binary"], timeout=10)


def test_timeout_kills_process() -> None:
    with pytest.raises(GcloudCommandError) as excinfo:
        run_command([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.3)

    assert "0.3" in str(excinfo.value)


def test_cancel_event_stops_waiting() -> None:
    cancel = threading.Event()
    timer = threading.Timer(0.2, cancel.set)
    timer.start()
    try:
        with pytest.raises(OperationCancelledError):
            run_command(
                [sys.executable, "-c", "import time; time.sleep(10)"],
                timeout=10,
                cancel_event=cancel,
            )
    finally:
        timer.cancel()
