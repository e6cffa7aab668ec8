"""
gcloud_auth_kit
---------------

gcloud CLI 의 활성 설정(active configuration)과 OAuth 토큰을 캐시하고,
외부 HTTP 요청에 Bearer 토큰을 주입하는 패키지.
config 전환이나 CLOUDSDK_* 환경변수 변경은 fingerprint 로 감지한다.
"""

__all__ = [
    "active_config",
    "credentials",
    "gcloud",
]
