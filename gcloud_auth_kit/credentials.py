"""
credentials
-----------

gcloud SDK 토큰 캐시를 google-auth 의 credential 인터페이스에 연결한다.

- before_request: 캐시된 Bearer 토큰을 요청 헤더에 붙인다.
- refresh: 토큰을 강제로 갱신한다. AuthorizedSession 은 401 응답을 받으면
  refresh 를 호출하고 요청을 한 번 다시 보낸다.
"""

from __future__ import annotations

import threading
from typing import Optional
from urllib.parse import urlencode

import google.auth.transport.requests
from google.auth import credentials as ga_credentials
from google.auth.transport.requests import AuthorizedSession

from . import active_config
from .errors import AuthenticationError, GcloudError, TokenParseError
from .logging_utils import get_logger
from .user_token import UserToken


logger = get_logger(__name__)


GOOGLE_REVOKE_URI = "https://oauth2.googleapis.com/revoke"


class SdkCredentials(ga_credentials.Credentials):
    """
    `gcloud config config-helper` 가 발급한 토큰을 사용하는 credential.

    토큰은 active_config 의 프로세스 전역 캐시에서 가져오므로,
    여러 인스턴스가 같은 토큰을 공유하고 gcloud 설정 전환도 다음 요청부터 반영된다.
    """

    def __init__(self, cancel_event: Optional[threading.Event] = None) -> None:
        super().__init__()
        self._cancel_event = cancel_event

    def _load(self, refresh: bool, stale_token: Optional[str] = None) -> UserToken:
        try:
            user_token = active_config.get_active_token(
                refresh=refresh, cancel_event=self._cancel_event, stale_token=stale_token
            )
        except (GcloudError, TokenParseError, FileNotFoundError) as e:
            raise AuthenticationError(f"gcloud 에서 access token 을 가져오지 못했습니다: {e}") from e

        if not user_token.access_token:
            raise AuthenticationError("gcloud 가 빈 access token 을 반환했습니다.")

        self.token = user_token.access_token
        # google-auth 는 naive UTC datetime 을 expiry 로 사용한다.
        self.expiry = None if user_token.expiry is None else user_token.expiry.replace(tzinfo=None)
        return user_token

    def refresh(self, request) -> None:  # noqa: ANN001
        logger.info("access token 강제 갱신")
        # 동시에 401 을 받은 요청들은 먼저 끝난 갱신 결과를 함께 쓴다.
        self._load(refresh=True, stale_token=self.token)

    def before_request(self, request, method, url, headers) -> None:  # noqa: ANN001
        self._load(refresh=False)
        self.apply(headers)

    def revoke(self, request: Optional[google.auth.transport.requests.Request] = None) -> bool:
        """
        현재 토큰을 폐기한다.

        캐시된 토큰은 지우지 않는다. 재인증 없이 보낸 다음 요청은 실패해야 하기 때문이다.
        """
        user_token = self._load(refresh=False)
        request = request or google.auth.transport.requests.Request()
        response = request(
            url=GOOGLE_REVOKE_URI,
            method="POST",
            body=urlencode({"token": user_token.access_token}).encode("utf-8"),
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        if response.status != 200:
            logger.warning("토큰 폐기 실패 (status=%s)", response.status)
            return False
        logger.info("토큰을 폐기했습니다. (account=%s)", user_token.account)
        return True


def authorized_session(
    credentials: Optional[SdkCredentials] = None,
) -> AuthorizedSession:
    """
    SdkCredentials 를 사용하는 requests 세션을 만든다.
    401 응답을 받으면 토큰을 한 번 갱신하고 요청을 한 번만 재전송한다.
    """
    return AuthorizedSession(
        credentials or SdkCredentials(),
        refresh_status_codes=(401,),
        max_refresh_attempts=1,
    )
