from __future__ import annotations

import os

import pytest

from gcloud_auth_kit import sdk_settings


@pytest.fixture
def config_dir(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """CLOUDSDK_CONFIG 를 임시 디렉토리로 돌려 둔다."""
    (tmp_path / "configurations").mkdir()
    monkeypatch.setenv("CLOUDSDK_CONFIG", str(tmp_path))
    return tmp_path


def _write_config(config_dir, name: str, body: str, active: bool = True) -> None:
    (config_dir / "configurations" / f"config_{name}").write_text(body)
    if active:
        (config_dir / "active_config").write_text(name)


def test_config_dir_defaults_to_home(monkeypatch: pytest.MonkeyPatch) -> None:
    if os.name == "nt":
        pytest.skip("posix 경로 규칙 전용")
    monkeypatch.delenv("CLOUDSDK_CONFIG", raising=False)

    expected = os.path.join(os.path.expanduser("~"), ".config", "gcloud")
    assert sdk_settings.get_config_dir() == expected


def test_current_configuration_name_and_path(config_dir) -> None:
    _write_config(config_dir, "work", "[core]\nproject = work-project\n")

    assert sdk_settings.get_current_configuration_name() == "work"
    assert sdk_settings.get_current_configuration_file_path() == str(
        config_dir / "configurations" / "config_work"
    )


def test_active_config_name_env_override(config_dir, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_config(config_dir, "work", "[core]\nproject = work-project\n")
    _write_config(config_dir, "home", "[core]\nproject = home-project\n", active=False)
    monkeypatch.setenv("CLOUDSDK_ACTIVE_CONFIG_NAME", "home")

    assert sdk_settings.get_current_configuration_name() == "home"
    assert sdk_settings.get_default_project() == "home-project"


def test_missing_files_return_none(config_dir) -> None:
    assert sdk_settings.get_current_configuration_name() is None
    assert sdk_settings.get_current_configuration_file_path() is None
    assert sdk_settings.get_settings_value("project") is None
    assert sdk_settings.get_default_project() is None


def test_get_settings_value_with_and_without_section(config_dir) -> None:
    _write_config(
        config_dir,
        "default",
        "[core]\nproject = my-project\naccount = me@example.com\n\n[compute]\nzone = us-east1-b\n",
    )

    assert sdk_settings.get_settings_value("core/project") == "my-project"
    assert sdk_settings.get_settings_value("zone") == "us-east1-b"
    assert sdk_settings.get_settings_value("compute/zone") == "us-east1-b"
    assert sdk_settings.get_settings_value("core/zone") is None
    assert sdk_settings.get_settings_value("unknown") is None


def test_malformed_config_file_returns_none(config_dir) -> None:
    _write_config(config_dir, "default", "this is not ini\n")

    assert sdk_settings.get_settings_value("project") is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("False", True), ("True", False), ("garbage", False)],
)
def test_opt_into_usage_reporting(config_dir, raw: str, expected: bool) -> None:
    _write_config(config_dir, "default", f"[core]\ndisable_usage_reporting = {raw}\n")

    assert sdk_settings.get_opt_into_usage_reporting() is expected


def test_opt_into_usage_reporting_defaults_to_false(config_dir) -> None:
    _write_config(config_dir, "default", "[core]\nproject = p\n")

    assert sdk_settings.get_opt_into_usage_reporting() is False


def test_anonymous_client_id(config_dir) -> None:
    generated = sdk_settings.get_anonymous_client_id()
    assert len(generated) == 36
    assert sdk_settings.get_anonymous_client_id() != generated

    (config_dir / ".metricsUUID").write_text("fixed-uuid\n")
    assert sdk_settings.get_anonymous_client_id() == "fixed-uuid"
