"""
토큰 관리 유즈케이스

원격 호출 전에 유효한 액세스 토큰을 보장합니다.
만료되었거나 만료가 임박한 경우 리프레시 토큰으로 갱신하고 계정에 저장합니다.
"""

from ..domain.entities import Account
from ..domain.exceptions import MissingCredentialError
from ..domain.ports import (
    AccountRepositoryPort,
    LoggerPort,
    OAuthClientPort,
    TokenProviderPort,
)

# 만료 전 갱신 여유 시간 (초)
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class TokenManagementUseCase(TokenProviderPort):
    """토큰 관리 유즈케이스"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        oauth_client: OAuthClientPort,
        logger: LoggerPort,
        margin_seconds: int = TOKEN_EXPIRY_MARGIN_SECONDS,
    ):
        self.account_repository = account_repository
        self.oauth_client = oauth_client
        self.logger = logger
        self.margin_seconds = margin_seconds

    async def ensure_access_token(self, account: Account) -> str:
        """
        유효한 액세스 토큰을 반환합니다.

        Args:
            account: 계정 엔티티 (갱신 시 토큰 필드가 변경됨)

        Returns:
            액세스 토큰

        Raises:
            MissingCredentialError: 리프레시 토큰이 없는 경우
            TokenRefreshFailedError: 토큰 엔드포인트가 갱신을 거부한 경우
        """
        if account.has_valid_access_token(self.margin_seconds):
            return account.access_token

        if not account.can_refresh():
            self.logger.warning(f"갱신할 수 없는 토큰: {account.id}")
            raise MissingCredentialError(account.id)

        self.logger.info(f"토큰 갱신 시작: {account.id}")

        token_response = await self.oauth_client.refresh_token(account.refresh_token)
        account.apply_token_response(token_response)
        await self.account_repository.update(account)

        self.logger.info(f"토큰 갱신 완료: {account.id}, 만료: {account.token_expiry}")
        return account.access_token
