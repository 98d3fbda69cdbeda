"""
외부 서비스 어댑터 패키지

Gmail API, Google OAuth 토큰 엔드포인트, 토큰 암호화를 담당하는 어댑터들을 포함합니다.
"""

from .encryption_service import EncryptionServiceAdapter
from .gmail_api_client import GmailApiClientAdapter
from .google_oauth_client import GoogleOAuthClientAdapter

__all__ = [
    "EncryptionServiceAdapter",
    "GmailApiClientAdapter",
    "GoogleOAuthClientAdapter",
]
