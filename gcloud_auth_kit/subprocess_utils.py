from __future__ import annotations

import os
import subprocess
import threading
import time
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Sequence

from .errors import GcloudCommandError, GcloudNotFoundError, OperationCancelledError
from .logging_utils import get_logger


logger = get_logger(__name__)


# cancel_event 확인 주기
_CANCEL_POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


def _home_dir() -> str | None:
    home = os.path.expanduser("~")
    return home if os.path.isdir(home) else None


def _build_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    # 현재 프로세스 환경 위에 덮어쓴다 (CLOUDSDK_* 는 그대로 전달되어야 한다).
    if env is None:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


def run_command(
    cmd: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    timeout: float | None = 60.0,
    cancel_event: threading.Event | None = None,
    check: bool = True,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - stdout/stderr 를 캡처하고, 실패 시 요약을 예외 메시지에 포함한다.
    - 항상 사용자 홈 디렉토리에서 실행한다.
    - cancel_event 가 set 되면 프로세스를 종료하고 OperationCancelledError 를 던진다.
    """
    logger.info("명령 실행: %s", " ".join(cmd))

    try:
        proc = subprocess.Popen(  # noqa: S603
            list(cmd),
            cwd=_home_dir(),
            env=_build_env(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as e:
        raise GcloudNotFoundError(
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud 가 설치되어 있는지 확인하세요)"
        ) from e

    started = time.monotonic()
    deadline = None if timeout is None else started + float(timeout)

    while True:
        if cancel_event is not None and cancel_event.is_set():
            proc.kill()
            proc.communicate()
            raise OperationCancelledError(f"명령 실행이 취소되었습니다: {' '.join(cmd)}")

        wait_for = _CANCEL_POLL_INTERVAL if cancel_event is not None else None
        if deadline is not None:
            remaining = max(deadline - time.monotonic(), 0.0)
            wait_for = remaining if wait_for is None else min(wait_for, remaining)

        try:
            stdout, stderr = proc.communicate(timeout=wait_for)
            break
        except subprocess.TimeoutExpired as e:
            if deadline is not None and time.monotonic() >= deadline:
                proc.kill()
                proc.communicate()
                raise GcloudCommandError(
                    f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}"
                ) from e

    stdout = stdout or ""
    stderr = stderr or ""
    if stderr:
        logger.debug("명령 stderr: %s", shorten(stderr.strip(), width=2000))

    result = RunResult(returncode=proc.returncode, stdout=stdout, stderr=stderr)
    if check and not result.succeeded:
        detail = ""
        if stderr.strip():
            detail = "\nstderr:\n" + shorten(stderr.strip(), width=2000)
        raise GcloudCommandError(
            f"명령 실행 실패: {' '.join(cmd)} (exit={result.returncode}){detail}",
            returncode=result.returncode,
            stderr=stderr,
        )
    return result
