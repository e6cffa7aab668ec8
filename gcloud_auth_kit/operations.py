"""
operations
----------

Compute Engine / GKE 장기 실행 작업(long-running operation)을 DONE 이 될 때까지 폴링한다.
생성 요청을 보낸 쪽이 결과 리소스를 바로 돌려줄 수 있도록 하기 위한 것이다.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import requests

from .config import get_config
from .errors import OperationFailedError
from .logging_utils import get_logger


logger = get_logger(__name__)


COMPUTE_API = "https://compute.googleapis.com/compute/v1"
CONTAINER_API = "https://container.googleapis.com/v1"

COMPUTE_POLL_INTERVAL = 0.15
CONTAINER_POLL_INTERVAL = 0.2

DONE = "DONE"
ABORTING = "ABORTING"


def _log_warnings(operation: dict) -> None:
    for warning in operation.get("warnings") or []:
        logger.warning("operation %s: %s", operation.get("name"), warning.get("message"))


def _get_json(session: requests.Session, url: str) -> dict:
    response = session.get(url)
    response.raise_for_status()
    return response.json()


def _poll(
    fetch: Callable[[], dict],
    operation: dict,
    *,
    interval: float,
    timeout: Optional[float],
    on_poll: Callable[[dict], None],
) -> dict:
    if timeout is None:
        timeout = get_config().operation_poll_timeout
    deadline = None if timeout is None else time.monotonic() + timeout

    on_poll(operation)
    while operation.get("status") != DONE:
        if operation.get("status") == ABORTING:
            break
        if deadline is not None and time.monotonic() >= deadline:
            raise TimeoutError(
                f"operation {operation.get('name')} 이(가) {timeout}초 안에 끝나지 않았습니다."
            )
        time.sleep(interval)
        operation = fetch()
        on_poll(operation)
    return operation


def _wait_for_compute_operation(
    session: requests.Session,
    url: str,
    operation: dict,
    scope: str,
    timeout: Optional[float],
) -> dict:
    name = operation["name"]
    done = _poll(
        lambda: _get_json(session, f"{url}/{name}"),
        operation,
        interval=COMPUTE_POLL_INTERVAL,
        timeout=timeout,
        on_poll=_log_warnings,
    )
    if done.get("error"):
        raise OperationFailedError(
            f"Error waiting for {scope} operation {name}: {done['error']}",
            operation=done,
        )
    logger.debug("%s operation 완료: %s", scope, name)
    return done


def wait_for_zone_operation(
    session: requests.Session,
    project: str,
    zone: str,
    operation: dict,
    *,
    timeout: Optional[float] = None,
) -> dict:
    """
    zone operation 이 끝날 때까지 기다린다.
    작업이 어떤 이유로든 실패하면 OperationFailedError 를 던진다.
    """
    url = f"{COMPUTE_API}/projects/{project}/zones/{zone}/operations"
    return _wait_for_compute_operation(session, url, operation, "zone", timeout)


def wait_for_region_operation(
    session: requests.Session,
    project: str,
    region: str,
    operation: dict,
    *,
    timeout: Optional[float] = None,
) -> dict:
    url = f"{COMPUTE_API}/projects/{project}/regions/{region}/operations"
    return _wait_for_compute_operation(session, url, operation, "region", timeout)


def wait_for_global_operation(
    session: requests.Session,
    project: str,
    operation: dict,
    *,
    timeout: Optional[float] = None,
) -> dict:
    url = f"{COMPUTE_API}/projects/{project}/global/operations"
    return _wait_for_compute_operation(session, url, operation, "global", timeout)


def wait_for_cluster_operation(
    session: requests.Session,
    project: str,
    zone: str,
    operation: dict,
    *,
    activity: str = "cluster operation",
    timeout: Optional[float] = None,
) -> dict:
    """
    GKE operation(PENDING/RUNNING/DONE/ABORTING)이 끝날 때까지 기다린다.
    """
    name = operation["name"]
    url = f"{CONTAINER_API}/projects/{project}/zones/{zone}/operations/{name}"
    started = time.monotonic()

    def _report(op: dict) -> None:
        logger.info(
            "%s: %s (%.1fs)", activity, op.get("status", "UNKNOWN"), time.monotonic() - started
        )

    done = _poll(
        lambda: _get_json(session, url),
        operation,
        interval=CONTAINER_POLL_INTERVAL,
        timeout=timeout,
        on_poll=_report,
    )

    # GKE 는 실패한 operation 도 DONE 으로 끝내고 statusMessage 에 사유를 남긴다.
    error = done.get("error") or done.get("statusMessage")
    if done.get("status") == ABORTING or error:
        raise OperationFailedError(
            f"{activity} 실패 ({name}): {error or done.get('status')}",
            operation=done,
        )
    return done

