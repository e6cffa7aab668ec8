"""
errors
------

패키지 전반에서 사용하는 예외 정의.
호출 측이 builtin 예외로도 잡을 수 있도록 RuntimeError/ValueError 등을 상속한다.
"""

from __future__ import annotations

from google.auth.exceptions import RefreshError


class GcloudError(RuntimeError):
    """gcloud 실행과 관련된 모든 오류의 기반 클래스."""


class GcloudNotFoundError(GcloudError):
    """gcloud 실행 파일을 찾을 수 없음."""


class GcloudCommandError(GcloudError):
    """gcloud 가 0 이 아닌 exit code 로 종료됨."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class GcloudOutputError(GcloudError):
    """gcloud 출력(JSON)을 해석할 수 없음."""


class OperationCancelledError(RuntimeError):
    """cancel_event 가 설정되어 대기가 중단됨."""


class OperationFailedError(RuntimeError):
    """장기 실행 작업(long-running operation)이 오류로 끝남."""

    def __init__(self, message: str, *, operation: dict | None = None) -> None:
        super().__init__(message)
        self.operation = operation or {}


class TokenParseError(ValueError):
    """credential JSON 에 유효한 access token / expiry 가 없음."""


class SentinelNotFoundError(FileNotFoundError):
    """활성 설정 JSON 에 sentinel 파일 정보가 없음."""


class AuthenticationError(RefreshError):
    """토큰 갱신에 실패함. 호출 측에는 치명적인 인증 오류로 전달된다."""
