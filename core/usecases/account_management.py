"""
계정 관리 유즈케이스

Gmail 계정의 등록, 조회, 자격 증명 갱신 등의 비즈니스 로직을 구현합니다.
OAuth 동의 화면은 다루지 않으며, 이미 발급된 리프레시 토큰으로 계정을 등록합니다.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ..domain.entities import Account, utcnow
from ..domain.exceptions import AccountNotFoundError
from ..domain.ports import AccountRepositoryPort, LoggerPort


class AccountManagementUseCase:
    """계정 관리 유즈케이스"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        logger: LoggerPort,
    ):
        self.account_repository = account_repository
        self.logger = logger

    async def register_account(
        self,
        email: str,
        refresh_token: str,
        display_name: Optional[str] = None,
        access_token: Optional[str] = None,
        token_expiry: Optional[datetime] = None,
    ) -> Account:
        """
        새로운 Gmail 계정을 등록합니다.

        Args:
            email: 계정 이메일 주소
            refresh_token: OAuth 리프레시 토큰
            display_name: 표시 이름
            access_token: 이미 발급된 액세스 토큰 (선택)
            token_expiry: 액세스 토큰 만료 시간 (선택)

        Returns:
            생성된 계정 엔티티

        Raises:
            ValueError: 중복 계정이거나 리프레시 토큰이 없는 경우
        """
        self.logger.info(f"계정 등록 시작: {email}")

        if not refresh_token:
            raise ValueError("리프레시 토큰이 필요합니다")

        if await self.account_repository.get_by_email(email):
            self.logger.warning(f"중복 계정 등록 시도: {email}")
            raise ValueError(f"이미 등록된 계정입니다: {email}")

        account = Account(
            email=email,
            display_name=display_name,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expiry=token_expiry,
        )
        created_account = await self.account_repository.create(account)

        self.logger.info(f"계정 등록 완료: {created_account.id}, {email}")
        return created_account

    async def get_account(self, account_id: UUID) -> Account:
        """
        ID로 계정을 조회합니다.

        Raises:
            AccountNotFoundError: 계정이 없는 경우
        """
        account = await self.account_repository.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def list_accounts(self, skip: int = 0, limit: int = 100) -> List[Account]:
        """계정 목록을 조회합니다."""
        self.logger.debug(f"계정 목록 조회: skip={skip}, limit={limit}")
        return await self.account_repository.list_all(skip=skip, limit=limit)

    async def update_credentials(self, account_id: UUID, refresh_token: str) -> Account:
        """
        계정의 리프레시 토큰을 교체합니다.

        기존 액세스 토큰은 폐기되어 다음 원격 호출 시 새로 발급됩니다.
        """
        account = await self.get_account(account_id)

        account.refresh_token = refresh_token
        account.access_token = None
        account.token_expiry = None
        account.updated_at = utcnow()

        updated_account = await self.account_repository.update(account)
        self.logger.info(f"자격 증명 교체 완료: {account_id}")
        return updated_account

    async def reset_sync_state(self, account_id: UUID) -> Account:
        """동기화 커서를 초기화하여 다음 동기화를 전체 동기화로 만듭니다."""
        account = await self.get_account(account_id)
        account.commit_cursor(None)

        updated_account = await self.account_repository.update(account)
        self.logger.info(f"동기화 커서 초기화: {account_id}")
        return updated_account
