from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from typing import Optional, List

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.gcloud"]


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} 값이 숫자가 아닙니다: {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} 값은 0 이상이어야 합니다: {raw!r}")
    return value


@dataclass
class KitConfig:
    # gcloud 실행 파일 (PATH 에서 찾거나 절대경로)
    gcloud_binary: str = "gcloud"
    command_timeout: Optional[float] = 60.0

    # 토큰 만료 판정 여유 시간
    token_expiry_margin: float = 60.0

    # None 이면 operation 이 끝날 때까지 무한정 기다린다.
    operation_poll_timeout: Optional[float] = None

    @classmethod
    def from_env(cls) -> "KitConfig":
        margin = _get_float("TOKEN_EXPIRY_MARGIN_SECONDS", 60.0)
        return cls(
            gcloud_binary=os.getenv("GCLOUD_BINARY") or "gcloud",
            command_timeout=_get_float("GCLOUD_COMMAND_TIMEOUT_SECONDS", 60.0),
            token_expiry_margin=60.0 if margin is None else margin,
            operation_poll_timeout=_get_float("OPERATION_POLL_TIMEOUT_SECONDS", None),
        )


_config_lock = threading.Lock()
_config: Optional[KitConfig] = None


def configure(cfg: KitConfig) -> None:
    """프로세스 전역 설정을 교체한다. 주로 CLI 엔트리포인트와 테스트에서 사용."""
    global _config
    with _config_lock:
        _config = cfg


def get_config() -> KitConfig:
    """
    프로세스 전역 설정을 반환한다.
    configure() 가 호출된 적이 없으면 환경변수에서 한 번 읽어 둔다.
    """
    global _config
    with _config_lock:
        if _config is None:
            _config = KitConfig.from_env()
        return _config
