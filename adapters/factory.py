"""
어댑터 팩토리

모든 어댑터들을 생성하고 의존성을 주입하는 팩토리 클래스입니다.
클린 아키텍처의 의존성 역전 원칙을 구현합니다.
"""

from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.ports import (
    AccountRepositoryPort,
    ConfigPort,
    EncryptionServicePort,
    GmailApiClientPort,
    LabelRepositoryPort,
    LoggerPort,
    MessageRepositoryPort,
    OAuthClientPort,
)
from core.usecases.account_locks import AccountLockRegistry, get_account_lock_registry
from core.usecases.account_management import AccountManagementUseCase
from core.usecases.mailbox_management import MailboxManagementUseCase
from core.usecases.mailbox_sync import MailboxSyncUseCase
from core.usecases.mirror_upsert import MirrorUpsertUseCase
from core.usecases.token_management import TokenManagementUseCase

from .db.repositories import (
    AccountRepositoryAdapter,
    LabelRepositoryAdapter,
    MessageRepositoryAdapter,
)
from .external.encryption_service import EncryptionServiceAdapter
from .external.gmail_api_client import GmailApiClientAdapter
from .external.google_oauth_client import GoogleOAuthClientAdapter
from .logger import LoggerAdapter
from config.adapters import get_config


class AdapterFactory:
    """어댑터 팩토리"""

    def __init__(
        self,
        config: Optional[ConfigPort] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        lock_registry: Optional[AccountLockRegistry] = None,
    ):
        self.config = config or get_config()
        # 테스트에서는 MockTransport 기반 클라이언트를 주입
        self.http_client = http_client
        self.lock_registry = lock_registry or get_account_lock_registry()
        self._logger: Optional[LoggerPort] = None
        self._encryption_service: Optional[EncryptionServicePort] = None
        self._oauth_client: Optional[OAuthClientPort] = None

    def create_logger(self) -> LoggerPort:
        """로거 어댑터를 생성합니다."""
        if self._logger is None:
            self._logger = LoggerAdapter(
                name="gmailmirror",
                level=self.config.get_log_level(),
                format_string=self.config.get_log_format(),
            )
        return self._logger

    def create_encryption_service(self) -> EncryptionServicePort:
        """암호화 서비스 어댑터를 생성합니다."""
        if self._encryption_service is None:
            self._encryption_service = EncryptionServiceAdapter(
                encryption_key=self.config.get_encryption_key(),
                logger=self.create_logger(),
            )
        return self._encryption_service

    def create_oauth_client(self) -> OAuthClientPort:
        """Google OAuth 클라이언트 어댑터를 생성합니다."""
        if self._oauth_client is None:
            self._oauth_client = GoogleOAuthClientAdapter(
                client_id=self.config.get_google_client_id(),
                client_secret=self.config.get_google_client_secret(),
                logger=self.create_logger(),
                timeout=self.config.get_http_timeout(),
                http_client=self.http_client,
            )
        return self._oauth_client

    def create_account_repository(self, session: AsyncSession) -> AccountRepositoryPort:
        """계정 Repository 어댑터를 생성합니다."""
        return AccountRepositoryAdapter(session, self.create_encryption_service())

    def create_message_repository(self, session: AsyncSession) -> MessageRepositoryPort:
        """메시지 Repository 어댑터를 생성합니다."""
        return MessageRepositoryAdapter(session)

    def create_label_repository(self, session: AsyncSession) -> LabelRepositoryPort:
        """라벨 Repository 어댑터를 생성합니다."""
        return LabelRepositoryAdapter(session)

    def create_token_management_usecase(self, session: AsyncSession) -> TokenManagementUseCase:
        """토큰 관리 유즈케이스를 생성합니다."""
        return TokenManagementUseCase(
            account_repository=self.create_account_repository(session),
            oauth_client=self.create_oauth_client(),
            logger=self.create_logger(),
        )

    def create_gmail_api_client(self, session: AsyncSession) -> GmailApiClientPort:
        """
        Gmail API 클라이언트 어댑터를 생성합니다.

        토큰 갱신 결과를 저장해야 하므로 세션 단위로 생성합니다.
        """
        return GmailApiClientAdapter(
            token_provider=self.create_token_management_usecase(session),
            logger=self.create_logger(),
            timeout=self.config.get_http_timeout(),
            http_client=self.http_client,
        )

    def create_account_management_usecase(self, session: AsyncSession) -> AccountManagementUseCase:
        """계정 관리 유즈케이스를 생성합니다."""
        return AccountManagementUseCase(
            account_repository=self.create_account_repository(session),
            logger=self.create_logger(),
        )

    def create_mirror_upsert_usecase(self, session: AsyncSession) -> MirrorUpsertUseCase:
        """미러 업서트 유즈케이스를 생성합니다."""
        return MirrorUpsertUseCase(
            message_repository=self.create_message_repository(session),
            label_repository=self.create_label_repository(session),
            logger=self.create_logger(),
        )

    def create_mailbox_sync_usecase(self, session: AsyncSession) -> MailboxSyncUseCase:
        """메일함 동기화 유즈케이스를 생성합니다."""
        return MailboxSyncUseCase(
            account_repository=self.create_account_repository(session),
            gmail_api_client=self.create_gmail_api_client(session),
            mirror=self.create_mirror_upsert_usecase(session),
            sync_options=self.config.get_sync_options(),
            logger=self.create_logger(),
            lock_registry=self.lock_registry,
        )

    def create_mailbox_management_usecase(self, session: AsyncSession) -> MailboxManagementUseCase:
        """메일함 관리 유즈케이스를 생성합니다."""
        return MailboxManagementUseCase(
            account_repository=self.create_account_repository(session),
            message_repository=self.create_message_repository(session),
            label_repository=self.create_label_repository(session),
            gmail_api_client=self.create_gmail_api_client(session),
            logger=self.create_logger(),
        )

    def get_config(self) -> ConfigPort:
        """설정 객체를 반환합니다."""
        return self.config


# 전역 팩토리 인스턴스
_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """전역 어댑터 팩토리 인스턴스를 반환합니다."""
    global _factory
    if _factory is None:
        _factory = AdapterFactory()
    return _factory


def initialize_adapter_factory(
    config: Optional[ConfigPort] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AdapterFactory:
    """어댑터 팩토리를 초기화합니다."""
    global _factory
    _factory = AdapterFactory(config, http_client=http_client)
    return _factory
