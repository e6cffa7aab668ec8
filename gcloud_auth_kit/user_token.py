"""
user_token
----------

gcloud 가 발급한 OAuth 2.0 access token 모델.
(http://tools.ietf.org/html/rfc6749#section-5.1)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from .errors import TokenParseError


DEFAULT_EXPIRY_MARGIN = timedelta(seconds=60)

# print-access-token 이 만료 정보를 주지 않을 때 가정하는 수명
DEFAULT_TOKEN_LIFETIME = timedelta(seconds=3600)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_EXPIRY_FIELDS = ("year", "month", "day", "hour", "minute", "second")


def _parse_expiry_fields(raw: Mapping[str, Any]) -> datetime:
    # {"year": ..., "second": ..., "microsecond": ...} 형태. microsecond 는 생략 가능.
    try:
        values = [raw[name] for name in _EXPIRY_FIELDS]
        values.append(raw.get("microsecond", 0))
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            raise TypeError("token_expiry fields must be integers")
        return datetime(*values, tzinfo=timezone.utc)
    except (KeyError, TypeError, ValueError) as e:
        raise TokenParseError(f"Credential JSON contains an invalid token_expiry: {dict(raw)!r}") from e


def parse_expiry(raw: Any) -> datetime:
    """
    token_expiry 를 UTC datetime 으로 변환한다.

    ISO-8601 문자열(timezone 정보가 없으면 UTC 로 간주)과
    year/month/day/hour/minute/second/microsecond 필드를 가진 object 를 받는다.
    """
    if isinstance(raw, Mapping):
        return _parse_expiry_fields(raw)
    if not isinstance(raw, str) or not raw.strip():
        raise TokenParseError("Credential JSON contains an invalid token_expiry.")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise TokenParseError(f"Credential JSON contains an invalid token_expiry: {raw!r}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class UserToken:
    access_token: Optional[str]
    # None 이면 만료되지 않는 토큰 (service account credential)
    expiry: Optional[datetime] = None
    account: Optional[str] = None

    @classmethod
    def from_credential_json(
        cls, credential: Optional[Mapping[str, Any]], account: Optional[str] = None
    ) -> "UserToken":
        """config-helper 출력의 credential 섹션으로부터 토큰을 만든다."""
        if not isinstance(credential, Mapping):
            raise TokenParseError("Credential JSON should contain access token key.")

        access_token = credential.get("access_token")
        if not isinstance(access_token, str):
            raise TokenParseError("Credential JSON should contain access token key.")

        raw_expiry = credential.get("token_expiry")
        expiry = None if raw_expiry is None else parse_expiry(raw_expiry)
        return cls(access_token=access_token, expiry=expiry, account=account)

    @classmethod
    def from_print_access_token(
        cls,
        output: str,
        *,
        issued: datetime,
        account: Optional[str] = None,
    ) -> "UserToken":
        """
        `gcloud auth print-access-token` 출력으로부터 토큰을 만든다.

        issued 는 명령 실행 *전* 시각이어야 한다. 그래야 만료 판정이 늦어지지 않는다.
        JSON(token_response / token / access_token) 과 plain text 출력을 모두 받는다.
        """
        text = (output or "").strip()
        if not text:
            raise TokenParseError("Failed to get access token from gcloud auth print-access-token.")

        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = text

        if isinstance(parsed, str):
            return cls(access_token=parsed, expiry=issued + DEFAULT_TOKEN_LIFETIME, account=account)

        if not isinstance(parsed, Mapping):
            raise TokenParseError("Failed to get access token from gcloud auth print-access-token.")

        response = parsed.get("token_response")
        if isinstance(response, Mapping):
            access_token = response.get("access_token")
            expires_in = response.get("expires_in")
        else:
            access_token = parsed.get("token") or parsed.get("access_token")
            expires_in = parsed.get("expires_in")

        if not isinstance(access_token, str):
            raise TokenParseError("Failed to get access token from gcloud auth print-access-token.")

        if expires_in is None:
            raw_expiry = parsed.get("token_expiry") or parsed.get("expiry")
            if raw_expiry:
                return cls(access_token=access_token, expiry=parse_expiry(raw_expiry), account=account)
            return cls(access_token=access_token, expiry=issued + DEFAULT_TOKEN_LIFETIME, account=account)

        try:
            lifetime = timedelta(seconds=float(expires_in))
        except (TypeError, ValueError) as e:
            raise TokenParseError(f"Invalid expires_in value: {expires_in!r}") from e
        return cls(access_token=access_token, expiry=issued + lifetime, account=account)

    def is_expired(
        self,
        account: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
        margin: timedelta = DEFAULT_EXPIRY_MARGIN,
    ) -> bool:
        """
        토큰이 없거나, margin 안에 만료되거나, 활성 계정이 바뀌었으면 True.
        """
        if not self.access_token:
            return True

        if account is not None and self.account is not None and account != self.account:
            return True

        if self.expiry is None:
            return False

        current = now or _utcnow()
        return self.expiry - margin <= current

    def __repr__(self) -> str:
        # access token 은 로그에 남기지 않는다.
        return f"UserToken(account={self.account!r}, expiry={self.expiry!r})"
