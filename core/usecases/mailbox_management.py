"""
메일함 관리 유즈케이스

미러된 메시지/라벨 조회, 라벨 적용, 라벨별 사용 통계를 제공합니다.
"""

from typing import List, Optional, Sequence
from uuid import UUID

from ..domain.entities import Account, Label, LabelUsage, Message, UNREAD_LABEL_ID
from ..domain.exceptions import AccountNotFoundError
from ..domain.ports import (
    AccountRepositoryPort,
    GmailApiClientPort,
    LabelRepositoryPort,
    LoggerPort,
    MessageRepositoryPort,
)


class MailboxManagementUseCase:
    """메일함 관리 유즈케이스"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        message_repository: MessageRepositoryPort,
        label_repository: LabelRepositoryPort,
        gmail_api_client: GmailApiClientPort,
        logger: LoggerPort,
    ):
        self.account_repository = account_repository
        self.message_repository = message_repository
        self.label_repository = label_repository
        self.gmail_api_client = gmail_api_client
        self.logger = logger

    async def _get_account(self, account_id: UUID) -> Account:
        account = await self.account_repository.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def apply_label(
        self,
        account_id: UUID,
        label_id: str,
        remote_message_ids: Sequence[str],
    ) -> int:
        """
        메시지들에 라벨을 추가합니다.

        원격에 먼저 반영한 뒤 미러를 갱신하며, 원격 호출이 실패하면
        미러는 변경하지 않습니다.

        Args:
            account_id: 계정 ID
            label_id: 추가할 라벨 ID
            remote_message_ids: 대상 메시지 ID 목록

        Returns:
            미러에서 실제로 변경된 메시지 수
        """
        message_ids = list(dict.fromkeys(remote_message_ids))
        if not message_ids:
            return 0

        account = await self._get_account(account_id)

        self.logger.info(f"라벨 적용 시작: {account_id}, 라벨: {label_id}, 대상: {len(message_ids)}개")

        await self.gmail_api_client.batch_modify(
            account,
            message_ids,
            add_label_ids=[label_id],
        )
        modified_count = await self.message_repository.add_label(account.id, message_ids, label_id)

        self.logger.info(f"라벨 적용 완료: {account_id}, 변경: {modified_count}개")
        return modified_count

    async def usage_stats(self, account_id: UUID) -> List[LabelUsage]:
        """라벨별 전체/읽지 않은 메시지 수를 집계합니다."""
        await self._get_account(account_id)
        return await self.message_repository.label_usage(account_id, UNREAD_LABEL_ID)

    async def list_messages(
        self,
        account_id: UUID,
        limit: int = 50,
        label_id: Optional[str] = None,
    ) -> List[Message]:
        """미러된 메시지를 최신순으로 조회합니다."""
        await self._get_account(account_id)
        return await self.message_repository.list_by_account(account_id, limit=limit, label_id=label_id)

    async def list_labels(self, account_id: UUID) -> List[Label]:
        """미러된 라벨을 이름순으로 조회합니다."""
        await self._get_account(account_id)
        return await self.label_repository.list_by_account(account_id)

    async def count_messages(self, account_id: UUID) -> int:
        await self._get_account(account_id)
        return await self.message_repository.count_by_account(account_id)
