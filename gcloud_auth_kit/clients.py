"""
clients
-------

gcloud 활성 설정의 계정/프로젝트로 google-cloud 클라이언트를 만든다.
project 를 주지 않으면 core/project 를 기본값으로 사용한다.
"""

from __future__ import annotations

from typing import Optional

from google.cloud import bigquery
from google.cloud import secretmanager
from google.cloud import storage

from .active_config import PROJECT, resolve_property_default
from .credentials import SdkCredentials
from .logging_utils import get_logger


logger = get_logger(__name__)


def _project(project: Optional[str]) -> str:
    return resolve_property_default(PROJECT, project, "core/project")


def storage_client(project: Optional[str] = None) -> storage.Client:
    project_id = _project(project)
    logger.debug("Storage client 생성: project=%s", project_id)
    return storage.Client(project=project_id, credentials=SdkCredentials())


def bigquery_client(project: Optional[str] = None) -> bigquery.Client:
    project_id = _project(project)
    logger.debug("BigQuery client 생성: project=%s", project_id)
    return bigquery.Client(project=project_id, credentials=SdkCredentials())


def secret_manager_client() -> secretmanager.SecretManagerServiceClient:
    # Secret Manager 는 요청마다 project 를 resource name 에 담는다.
    return secretmanager.SecretManagerServiceClient(credentials=SdkCredentials())


def secret_name(secret_id: str, project: Optional[str] = None) -> str:
    return f"projects/{_project(project)}/secrets/{secret_id}"
