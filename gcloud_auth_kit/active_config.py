"""
active_config
-------------

gcloud 활성 설정(active configuration) 스냅샷과 프로세스 전역 캐시.

매 API 호출마다 gcloud 를 실행하지 않도록 스냅샷을 캐시하되,
외부에서 일어난 변경(gcloud config 전환, CLOUDSDK_* 환경변수 수정)은
fingerprint 비교로 감지하여 다시 만든다.
"""

from __future__ import annotations

import os
import threading
from datetime import timedelta
from typing import Any, Mapping, Optional

from . import gcloud
from .config import get_config
from .errors import OperationCancelledError, SentinelNotFoundError
from .logging_utils import get_logger
from .user_token import UserToken


logger = get_logger(__name__)


CLOUDSDK_ENV_PREFIX = "CLOUDSDK_"

PROJECT = "project"


def compute_fingerprint(sentinel_file: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    sentinel 파일 mtime + 정렬된 CLOUDSDK_* 환경변수로 fingerprint 를 만든다.

    sentinel 파일은 gcloud 가 활성 설정을 바꿀 때마다 touch 하지만,
    환경변수 변경에는 반응하지 않으므로 두 가지를 함께 본다.
    """
    try:
        fingerprint = repr(os.stat(sentinel_file).st_mtime_ns)
    except OSError:
        fingerprint = "missing"

    env = os.environ if environ is None else environ
    for key in sorted(k for k in env if k.startswith(CLOUDSDK_ENV_PREFIX)):
        fingerprint += f"{key}:{env[key]};"
    return fingerprint


def _find_property(node: Any, key: str) -> tuple[bool, Optional[str]]:
    # 대소문자 구분 없이 key 를 깊이 우선으로 찾는다.
    if isinstance(node, list):
        for child in node:
            found, value = _find_property(child, key)
            if found:
                return True, value
    elif isinstance(node, dict):
        for name, child in node.items():
            if name.lower() == key.lower():
                return True, _as_string(child)
            found, value = _find_property(child, key)
            if found:
                return True, value
    return False, None


def _as_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (dict, list)):
        return None
    return str(value)


def _lookup_path(node: Any, parts: list[str]) -> tuple[bool, Optional[str]]:
    for part in parts:
        if not isinstance(node, dict):
            return False, None
        match = next((k for k in node if k.lower() == part.lower()), None)
        if match is None:
            return False, None
        node = node[match]
    if isinstance(node, (dict, list)):
        return False, None
    return True, _as_string(node)


class ActiveUserConfig:
    """gcloud 활성 설정 하나의 스냅샷."""

    def __init__(self, config_json: Mapping[str, Any]) -> None:
        sentinel = (config_json.get("sentinels") or {}).get("config_sentinel")
        if not isinstance(sentinel, str) or not sentinel:
            raise SentinelNotFoundError(
                "Sentinel file for current active configuration could not be found."
            )
        self.sentinel_file: str = sentinel
        self.fingerprint: str = compute_fingerprint(sentinel)

        configuration = config_json.get("configuration") or {}
        self.name: Optional[str] = configuration.get("active_configuration")
        self.properties: dict = configuration.get("properties") or {}

        self.user_token: UserToken = UserToken.from_credential_json(
            config_json.get("credential"),
            account=self.get_property_value("core/account"),
        )

    def get_property_value(self, key: str) -> Optional[str]:
        """
        설정 property 값을 반환한다.

        `core/project`, `compute.zone` 처럼 section 을 포함한 key 는 경로로 먼저 찾고,
        없으면 마지막 이름으로 전체 트리를 재귀 검색한다. 이름 비교는 대소문자를 무시한다.
        """
        parts = [p for p in key.replace(".", "/").split("/") if p]
        if not parts:
            return None
        if len(parts) > 1:
            found, value = _lookup_path(self.properties, parts)
            if found:
                return value
        _, value = _find_property(self.properties, parts[-1])
        return value

    @property
    def project(self) -> Optional[str]:
        return self.get_property_value("core/project")

    @property
    def zone(self) -> Optional[str]:
        return self.get_property_value("compute/zone")

    @property
    def region(self) -> Optional[str]:
        return self.get_property_value("compute/region")

    @property
    def account(self) -> Optional[str]:
        return self.get_property_value("core/account")

    def is_stale(self) -> bool:
        return compute_fingerprint(self.sentinel_file) != self.fingerprint

    def __repr__(self) -> str:
        return (
            f"ActiveUserConfig(name={self.name!r}, project={self.project!r}, "
            f"account={self.account!r}, sentinel_file={self.sentinel_file!r})"
        )


# 프로세스 전역 단일 슬롯 캐시. refresh 가 유일한 임계 구역이다.
_cache_lock = threading.Lock()
_cached_config: Optional[ActiveUserConfig] = None


def _fresh_cached() -> Optional[ActiveUserConfig]:
    cached = _cached_config
    if cached is not None and not cached.is_stale():
        return cached
    return None


def _token_expired(config: ActiveUserConfig) -> bool:
    margin = timedelta(seconds=get_config().token_expiry_margin)
    return config.user_token.is_expired(margin=margin)


def _usable(config: Optional[ActiveUserConfig]) -> bool:
    return config is not None and not config.is_stale() and not _token_expired(config)


def get_active_config(
    refresh: bool = False,
    cancel_event: Optional[threading.Event] = None,
    replacing: Optional[ActiveUserConfig] = None,
) -> ActiveUserConfig:
    """
    현재 활성 설정을 반환한다. 결과는 다음 호출을 위해 캐시된다.

    refresh=True 이거나 fingerprint 가 바뀌었으면 gcloud 를 다시 실행한다.
    캐시가 새로 만들어질 때마다 (설정 변화가 없더라도) 새 access token 이 발급된다.

    replacing 에는 교체하려는 스냅샷을 넘긴다. lock 을 기다리는 동안 다른 호출자가
    이미 그 스냅샷을 유효한 새 스냅샷으로 바꿨다면 gcloud 를 다시 실행하지 않는다.
    """
    global _cached_config

    if not refresh:
        cached = _fresh_cached()
        if cached is not None:
            return cached

    with _cache_lock:
        # lock 을 기다리는 동안 다른 호출자가 이미 갱신했을 수 있다.
        if not refresh:
            cached = _fresh_cached()
            if cached is not None:
                return cached
        elif replacing is not None and _cached_config is not replacing and _usable(_cached_config):
            logger.debug("다른 호출자가 이미 갱신한 활성 설정을 사용합니다.")
            return _cached_config

        if _cached_config is None:
            logger.info("gcloud 활성 설정을 읽습니다.")
        elif refresh:
            logger.info("gcloud 활성 설정 갱신을 요청받았습니다.")
        else:
            logger.info("gcloud 설정 변경이 감지되어 캐시를 갱신합니다.")

        config_json = gcloud.get_active_config_json(cancel_event=cancel_event)
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("활성 설정 갱신이 취소되었습니다.")

        _cached_config = ActiveUserConfig(config_json)
        logger.debug("활성 설정 캐시 갱신: %r", _cached_config)
        return _cached_config


def get_active_token(
    refresh: bool = False,
    cancel_event: Optional[threading.Event] = None,
    stale_token: Optional[str] = None,
) -> UserToken:
    """
    현재 활성 설정의 토큰을 반환한다.

    토큰은 활성 설정과 함께 캐시된다. refresh=True 이거나 토큰이 만료되었으면
    (만료 60초 전 포함) 활성 설정을 갱신하여 새 토큰을 받는다.
    계정 전환은 fingerprint 가 바뀌므로 활성 설정 캐시 단계에서 감지된다.

    stale_token 은 거부당한 토큰이다. 캐시된 토큰이 이미 그것과 다르고 유효하면
    refresh=True 여도 gcloud 를 실행하지 않고 캐시된 토큰을 돌려준다.
    """
    replacing: Optional[ActiveUserConfig] = None
    if not refresh:
        config = get_active_config(cancel_event=cancel_event)
        if not _token_expired(config):
            return config.user_token
        logger.info("access token 이 만료되어 갱신합니다. (account=%s)", config.account)
        replacing = config
    elif stale_token is not None:
        cached = _cached_config
        if cached is not None and cached.user_token.access_token != stale_token and _usable(cached):
            return cached.user_token
        replacing = cached

    config = get_active_config(refresh=True, cancel_event=cancel_event, replacing=replacing)
    return config.user_token


def clear_cache() -> None:
    """캐시된 활성 설정을 버린다."""
    global _cached_config
    with _cache_lock:
        _cached_config = None


def resolve_property_default(name: str, value: Optional[str], prop: str) -> str:
    """
    호출자가 값을 주지 않았으면 활성 설정의 property 로 채운다.

    예: resolve_property_default("project", None, "core/project")
    """
    if value:
        return value

    default = get_active_config().get_property_value(prop)
    if not default:
        raise ValueError(f"Parameter {name} was not set and does not have a default value.")
    return default
