"""
gcloud
------

gcloud CLI 를 subprocess 로 호출하고 JSON 출력을 해석하는 래퍼.
gcloud 자체는 외부 협력자로 취급하며, 이 모듈은 진실의 원천(source of truth)이 아니다.
"""

from __future__ import annotations

import json
import os
import shutil
import threading
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from .config import get_config
from .errors import GcloudOutputError
from .logging_utils import get_logger
from .subprocess_utils import run_command
from .user_token import UserToken


logger = get_logger(__name__)


def _resolve_binary(binary: str) -> str:
    # Windows 의 gcloud 는 gcloud.cmd 배치 파일이므로 PATH 에서 실제 경로를 찾는다.
    if os.name == "nt":
        found = shutil.which(binary)
        if found:
            return found
    return binary


def run_gcloud_json(
    args: Sequence[str],
    *,
    env: Optional[Mapping[str, str]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Any:
    """
    `gcloud <args> --format=json` 을 실행하고 파싱된 JSON 을 반환한다.
    """
    cfg = get_config()
    cmd = [_resolve_binary(cfg.gcloud_binary), *args, "--format=json"]
    result = run_command(
        cmd,
        env=env,
        timeout=cfg.command_timeout,
        cancel_event=cancel_event,
    )
    try:
        return json.loads(result.stdout)
    except ValueError as e:
        raise GcloudOutputError(
            f"gcloud {' '.join(args)} 의 출력을 JSON 으로 해석할 수 없습니다."
        ) from e


def get_active_config_json(
    *,
    env: Optional[Mapping[str, str]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> dict:
    """
    현재 활성 설정(설정 properties + credential + sentinel)을 반환한다.
    config-helper 는 호출될 때마다 필요하면 토큰을 새로 발급한다.
    """
    data = run_gcloud_json(
        ["config", "config-helper"],
        env=env,
        cancel_event=cancel_event,
    )
    if not isinstance(data, dict):
        raise GcloudOutputError("gcloud config config-helper 출력이 JSON object 가 아닙니다.")
    logger.debug(
        "활성 설정 이름: %s",
        (data.get("configuration") or {}).get("active_configuration"),
    )
    return data


def get_access_token(
    account: Optional[str] = None,
    *,
    cancel_event: Optional[threading.Event] = None,
) -> UserToken:
    """`gcloud auth print-access-token` 으로 현재 계정의 토큰을 발급받는다."""
    # 만료 판정이 늦지 않도록 발급 시각은 명령 실행 전에 잡는다.
    issued = datetime.now(timezone.utc)

    cfg = get_config()
    args = ["auth", "print-access-token"]
    if account:
        args.append(account)
    cmd = [_resolve_binary(cfg.gcloud_binary), *args, "--format=json"]
    result = run_command(cmd, timeout=cfg.command_timeout, cancel_event=cancel_event)
    return UserToken.from_print_access_token(result.stdout, issued=issued, account=account)


def get_installation_properties_path(
    *,
    cancel_event: Optional[threading.Event] = None,
) -> str:
    """Cloud SDK 전역 installation properties 파일 경로를 반환한다."""
    info = run_gcloud_json(["info"], cancel_event=cancel_event)
    path = None
    if isinstance(info, dict):
        path = ((info.get("config") or {}).get("paths") or {}).get("installation_properties_path")
    if isinstance(path, str) and path:
        return path
    raise FileNotFoundError("Installation Properties file for Google Cloud SDK cannot be found.")
