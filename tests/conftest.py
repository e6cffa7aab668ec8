"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 gcloud_auth_kit 패키지가 존재할 때,
site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.
테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import os
import sys

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


@pytest.fixture(autouse=True)
def _isolate_state(monkeypatch: pytest.MonkeyPatch):
    """
    프로세스 전역 캐시/설정과 CLOUDSDK_* 환경변수가 테스트 사이에 새지 않도록 한다.
    """
    from gcloud_auth_kit import active_config
    from gcloud_auth_kit.config import KitConfig, configure

    for key in list(os.environ):
        if key.startswith("CLOUDSDK_"):
            monkeypatch.delenv(key, raising=False)

    configure(KitConfig())
    active_config.clear_cache()
    yield
    active_config.clear_cache()


@pytest.fixture
def sentinel_file(tmp_path) -> str:
    path = tmp_path / "config_sentinel"
    path.write_text("")
    return str(path)


@pytest.fixture
def make_config_json(sentinel_file):
    """config-helper 출력과 같은 모양의 dict 를 만든다."""

    def _make(
        access_token: str = "access_token",
        token_expiry: str | None = "2099-12-12T12:12:12Z",
        account: str = "testing@example.com",
        project: str = "test-project",
    ) -> dict:
        return {
            "configuration": {
                "active_configuration": "testing",
                "properties": {
                    "compute": {"region": "us-central1", "zone": "us-central1-f"},
                    "core": {
                        "account": account,
                        "disable_usage_reporting": "False",
                        "project": project,
                    },
                },
            },
            "credential": {"access_token": access_token, "token_expiry": token_expiry},
            "sentinels": {"config_sentinel": sentinel_file},
        }

    return _make
