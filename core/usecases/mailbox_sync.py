"""
메일함 동기화 유즈케이스

전체 동기화와 증분(히스토리) 동기화 상태 머신을 구동합니다.

    IDLE -> FULL_SYNC -> COMMITTED
    IDLE -> DELTA_SYNC -> COMMITTED
    DELTA_SYNC -> FULL_SYNC  (커서 만료로 404 응답을 받은 경우)

한 계정의 동기화는 순차적으로 진행되며, 메시지 단건 조회 사이마다
설정된 시간만큼 대기하여 API 호출 한도를 지킵니다.
중간에 실패해도 이미 저장된 메시지는 그대로 유지됩니다.
"""

import asyncio
from typing import Awaitable, Callable, Optional
from uuid import UUID

from ..domain.entities import Account, SyncMode, SyncOptions, SyncState, SyncSummary
from ..domain.exceptions import AccountNotFoundError, RemoteApiError
from ..domain.ports import (
    AccountRepositoryPort,
    GmailApiClientPort,
    LoggerPort,
)
from .account_locks import AccountLockRegistry, get_account_lock_registry
from .change_classifier import HISTORY_TYPES, classify_history_page
from .mirror_upsert import METADATA_HEADERS, MirrorUpsertUseCase


class MailboxSyncUseCase:
    """메일함 동기화 유즈케이스"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        gmail_api_client: GmailApiClientPort,
        mirror: MirrorUpsertUseCase,
        sync_options: SyncOptions,
        logger: LoggerPort,
        lock_registry: Optional[AccountLockRegistry] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.account_repository = account_repository
        self.gmail_api_client = gmail_api_client
        self.mirror = mirror
        self.options = sync_options
        self.logger = logger
        self.lock_registry = lock_registry or get_account_lock_registry()
        self._sleep = sleep

    async def sync_mailbox(self, account_id: UUID, force_full: bool = False) -> SyncSummary:
        """
        메일함을 동기화합니다.

        Args:
            account_id: 계정 ID
            force_full: 커서가 있어도 전체 동기화를 수행할지 여부

        Returns:
            동기화 결과 (저장/삭제된 메시지 수)

        Raises:
            AccountNotFoundError: 계정이 없는 경우
            SyncInProgressError: 같은 계정의 동기화가 이미 진행 중인 경우
            MissingCredentialError, TokenRefreshFailedError, RemoteApiError
        """
        async with self.lock_registry.hold(account_id):
            account = await self.account_repository.get_by_id(account_id)
            if account is None:
                raise AccountNotFoundError(account_id)

            self.logger.info(f"메일함 동기화 시작: {account_id}, 전체 동기화 요청: {force_full}")

            try:
                summary = await self._run(account, force_full)
            except Exception as e:
                self.logger.error(f"메일함 동기화 실패: {account_id}, 오류: {str(e)}")
                raise

            self._transition(account, SyncState.COMMITTED)
            self.logger.info(
                f"메일함 동기화 완료: {account_id}, 방식: {summary.mode.value}, "
                f"저장: {summary.upserted_count}, 삭제: {summary.deleted_count}, "
                f"커서: {account.sync_cursor}"
            )
            return summary

    async def _run(self, account: Account, force_full: bool) -> SyncSummary:
        if force_full or account.needs_full_sync():
            return await self._full_sync(account)

        try:
            return await self._delta_sync(account, account.sync_cursor)
        except RemoteApiError as e:
            if not e.is_not_found:
                raise
            # 히스토리 보관 기간이 지나 커서가 만료됨
            self.logger.warning(
                f"히스토리 커서 만료, 전체 동기화로 전환: {account.id}, 커서: {account.sync_cursor}"
            )
            return await self._full_sync(account)

    async def _full_sync(self, account: Account) -> SyncSummary:
        """프로필, 라벨, 메시지 목록을 다시 받아 미러를 재구성합니다."""
        self._transition(account, SyncState.FULL_SYNC)
        summary = SyncSummary(mode=SyncMode.FULL)

        profile = await self.gmail_api_client.get_profile(account)

        labels = await self.gmail_api_client.list_labels(account)
        await self.mirror.upsert_labels(account, labels)

        remaining = self.options.max_full_sync_messages
        page_token = None
        while remaining > 0:
            page = await self.gmail_api_client.list_messages(
                account,
                max_results=min(self.options.page_size, remaining),
                label_ids=self.options.full_sync_label_ids or None,
                page_token=page_token,
            )
            message_refs = (page.get("messages") or [])[:remaining]

            for message_ref in message_refs:
                await self._fetch_and_upsert(account, message_ref["id"], replace_body=True)
                summary.upserted_count += 1

            remaining -= len(message_refs)
            page_token = page.get("nextPageToken")
            if not page_token or not message_refs:
                break

        account.mark_full_sync(profile.get("historyId"))
        await self.account_repository.update(account)

        return summary

    async def _delta_sync(self, account: Account, start_cursor: str) -> SyncSummary:
        """커서 이후의 히스토리만 받아 미러에 반영합니다."""
        self._transition(account, SyncState.DELTA_SYNC)
        summary = SyncSummary(mode=SyncMode.DELTA)

        latest_marker = start_cursor
        page_token = None
        while True:
            response = await self.gmail_api_client.list_history(
                account,
                start_history_id=start_cursor,
                history_types=HISTORY_TYPES,
                page_token=page_token,
            )
            changes = classify_history_page(response.get("history") or [], latest_marker)

            summary.deleted_count += await self.mirror.delete_messages(account, changes.delete)

            for message_id in changes.full_fetch:
                await self._fetch_and_upsert(account, message_id, replace_body=True)
                summary.upserted_count += 1

            for message_id in changes.metadata_only:
                await self._fetch_and_upsert(account, message_id, replace_body=False)
                summary.upserted_count += 1

            # 페이지의 모든 조회가 성공한 뒤에만 커서를 전진
            if changes.latest_marker != latest_marker:
                latest_marker = changes.latest_marker
                account.commit_cursor(latest_marker)
                await self.account_repository.update(account)

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return summary

    async def _fetch_and_upsert(self, account: Account, message_id: str, replace_body: bool) -> None:
        if self.options.rate_limit_delay > 0:
            await self._sleep(self.options.rate_limit_delay)

        if replace_body:
            message = await self.gmail_api_client.get_message(account, message_id, format="full")
        else:
            message = await self.gmail_api_client.get_message(
                account,
                message_id,
                format="metadata",
                metadata_headers=METADATA_HEADERS,
            )

        await self.mirror.upsert_message(account, message, replace_body=replace_body)

    def _transition(self, account: Account, state: SyncState) -> None:
        self.logger.debug(f"동기화 상태 전이: {account.id} -> {state.value}")
