from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from gcloud_auth_kit import gcloud
from gcloud_auth_kit.config import KitConfig, configure
from gcloud_auth_kit.errors import GcloudOutputError
from gcloud_auth_kit.subprocess_utils import RunResult


class _Recorder:
    def __init__(self) -> None:
        self.cmds: List[list] = []
        self.outputs: List[str] = []
        self.timeouts: List[float | None] = []

    def __call__(self, cmd, *, env=None, timeout=None, cancel_event=None):  # noqa: ANN001, ARG002
        self.cmds.append(list(cmd))
        self.timeouts.append(timeout)
        return RunResult(returncode=0, stdout=self.outputs.pop(0), stderr="")


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> _Recorder:
    rec = _Recorder()
    monkeypatch.setattr(gcloud, "run_command", rec)
    return rec


def test_run_gcloud_json_appends_format_flag(recorder: _Recorder) -> None:
    configure(KitConfig(gcloud_binary="/opt/sdk/bin/gcloud", command_timeout=12.0))
    recorder.outputs.append('{"a": 1}')

    assert gcloud.run_gcloud_json(["config", "list"]) == {"a": 1}
    assert recorder.cmds == [["/opt/sdk/bin/gcloud", "config", "list", "--format=json"]]
    assert recorder.timeouts == [12.0]


def test_run_gcloud_json_invalid_output_raises(recorder: _Recorder) -> None:
    recorder.outputs.append("WARNING: not json")

    with pytest.raises(GcloudOutputError):
        gcloud.run_gcloud_json(["info"])


def test_get_active_config_json_uses_config_helper(recorder: _Recorder, make_config_json) -> None:
    recorder.outputs.append(json.dumps(make_config_json()))

    data = gcloud.get_active_config_json()

    assert recorder.cmds[0][1:] == ["config", "config-helper", "--format=json"]
    assert data["credential"]["access_token"] == "access_token"


def test_get_active_config_json_rejects_non_object(recorder: _Recorder) -> None:
    recorder.outputs.append("[]")

    with pytest.raises(GcloudOutputError):
        gcloud.get_active_config_json()


def test_get_access_token_parses_token_response(recorder: _Recorder) -> None:
    recorder.outputs.append('{"token_response": {"access_token": "abc", "expires_in": 3600}}')
    before = datetime.now(timezone.utc)

    token = gcloud.get_access_token("user@example.com")

    after = datetime.now(timezone.utc)
    assert recorder.cmds[0][1:] == ["auth", "print-access-token", "user@example.com", "--format=json"]
    assert token.access_token == "abc"
    assert token.account == "user@example.com"
    assert before + timedelta(hours=1) <= token.expiry <= after + timedelta(hours=1)


def test_get_installation_properties_path(recorder: _Recorder) -> None:
    recorder.outputs.append(
        '{"config": {"paths": {"installation_properties_path": "/opt/sdk/properties"}}}'
    )

    assert gcloud.get_installation_properties_path() == "/opt/sdk/properties"


def test_get_installation_properties_path_missing(recorder: _Recorder) -> None:
    recorder.outputs.append('{"config": {"paths": {}}}')

    with pytest.raises(FileNotFoundError):
        gcloud.get_installation_properties_path()
