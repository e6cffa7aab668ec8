"""
sdk_settings
------------

gcloud 를 실행하지 않고 디스크의 Cloud SDK 설정 파일을 직접 읽는 유틸.

    <config dir>/active_config              활성 설정 이름
    <config dir>/configurations/config_NAME  INI 형식 properties
    <config dir>/.metricsUUID                익명 client id
"""

from __future__ import annotations

import configparser
import os
import uuid
from typing import Optional

from .logging_utils import get_logger


logger = get_logger(__name__)


ACTIVE_CONFIG_FILE_NAME = "active_config"
CONFIGURATIONS_FOLDER_NAME = "configurations"
CLIENT_ID_FILE_NAME = ".metricsUUID"
DEFAULT_CONFIGURATION_NAME = "default"


def get_config_dir() -> Optional[str]:
    """
    Cloud SDK 설정 디렉토리.
    CLOUDSDK_CONFIG > %APPDATA%\\gcloud (Windows) > ~/.config/gcloud
    """
    override = os.getenv("CLOUDSDK_CONFIG")
    if override:
        return override

    if os.name == "nt":
        appdata = os.getenv("APPDATA")
        if not appdata or not os.path.isdir(appdata):
            return None
        return os.path.join(appdata, "gcloud")

    return os.path.join(os.path.expanduser("~"), ".config", "gcloud")


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        logger.debug("Cloud SDK 파일을 읽을 수 없습니다: %s (%s)", path, e)
        return None


def get_current_configuration_name() -> Optional[str]:
    env_name = os.getenv("CLOUDSDK_ACTIVE_CONFIG_NAME")
    if env_name:
        return env_name.strip()

    config_dir = get_config_dir()
    if config_dir is None:
        return None

    text = _read_text(os.path.join(config_dir, ACTIVE_CONFIG_FILE_NAME))
    if text is None:
        return None
    return text.strip() or DEFAULT_CONFIGURATION_NAME


def get_current_configuration_file_path() -> Optional[str]:
    config_dir = get_config_dir()
    name = get_current_configuration_name()
    if config_dir is None or name is None:
        return None

    path = os.path.join(config_dir, CONFIGURATIONS_FOLDER_NAME, f"config_{name}")
    if not os.path.isfile(path):
        return None
    return path


def get_settings_value(setting_name: str) -> Optional[str]:
    """
    활성 설정 파일에서 값을 찾는다.
    `core/project` 처럼 section 을 지정하거나, `project` 처럼 이름만 줄 수 있다.
    """
    config_file = get_current_configuration_file_path()
    if config_file is None:
        return None

    parser = configparser.ConfigParser(interpolation=None)
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            parser.read_file(f)
    except (OSError, configparser.Error) as e:
        logger.debug("Cloud SDK 설정 파일을 해석할 수 없습니다: %s (%s)", config_file, e)
        return None

    section, _, name = setting_name.rpartition("/")
    if section:
        if parser.has_option(section, name):
            return parser.get(section, name)
        return None

    for sec in parser.sections():
        if parser.has_option(sec, name):
            return parser.get(sec, name)
    return None


def get_default_project() -> Optional[str]:
    return get_settings_value("core/project")


def get_opt_into_usage_reporting() -> bool:
    # 파일에는 *비활성화* 여부가 저장되므로 값을 뒤집는다.
    raw = get_settings_value("core/disable_usage_reporting")
    if raw is None:
        return False
    value = raw.strip().lower()
    if value in {"true", "1", "yes", "on"}:
        return False
    if value in {"false", "0", "no", "off"}:
        return True
    return False


def get_anonymous_client_id() -> str:
    config_dir = get_config_dir()
    if config_dir is not None:
        text = _read_text(os.path.join(config_dir, CLIENT_ID_FILE_NAME))
        if text and text.strip():
            return text.strip()
    return str(uuid.uuid4())
