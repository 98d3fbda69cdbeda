"""
Google OAuth 클라이언트 어댑터

Google 토큰 엔드포인트와의 통신을 담당합니다.
리프레시 토큰 그랜트만 지원하며, 실패 시 재시도하지 않습니다.
"""

from typing import Optional

import httpx

from core.domain.exceptions import TokenRefreshFailedError
from core.domain.ports import LoggerPort, OAuthClientPort

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleOAuthClientAdapter(OAuthClientPort):
    """Google OAuth 토큰 엔드포인트 어댑터"""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        logger: LoggerPort,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.logger = logger
        self.token_url = GOOGLE_TOKEN_URL
        self.timeout = timeout
        self._http_client = http_client

    async def refresh_token(self, refresh_token: str) -> dict:
        """토큰을 갱신합니다."""
        self.logger.debug(f"토큰 갱신 요청: client_id={self.client_id}")

        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}

        if self._http_client is not None:
            response = await self._http_client.post(self.token_url, data=data, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.token_url, data=data, headers=headers)

        if not response.is_success:
            self.logger.error(f"토큰 갱신 실패: {response.status_code} - {response.text}")
            raise TokenRefreshFailedError(response.status_code, response.text)

        self.logger.debug("토큰 갱신 성공")
        return response.json()
