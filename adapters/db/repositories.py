"""
데이터베이스 Repository 어댑터

Core 레이어의 Repository 포트를 구현하는 SQLAlchemy 기반 어댑터들입니다.
SQLite 호환성을 위해 UUID를 문자열로 변환하여 처리합니다.
모든 쓰기는 안정적인 키 기준의 upsert로 수행되어 반복 적용해도 결과가 같습니다.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, desc, func, nulls_last
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.domain.entities import (
    Account,
    Label,
    LabelColor,
    LabelKind,
    LabelUsage,
    Message,
    utcnow,
)
from core.domain.ports import (
    AccountRepositoryPort,
    EncryptionServicePort,
    LabelRepositoryPort,
    MessageRepositoryPort,
)
from .models import AccountModel, LabelModel, MessageModel


class AccountRepositoryAdapter(AccountRepositoryPort):
    """계정 Repository 어댑터 (토큰은 암호화하여 저장)"""

    def __init__(self, session: AsyncSession, encryption_service: EncryptionServicePort):
        self.session = session
        self.encryption_service = encryption_service

    async def create(self, account: Account) -> Account:
        """계정을 생성합니다."""
        model = AccountModel(
            id=str(account.id),  # UUID를 문자열로 변환
            email=account.email,
        )
        await self._apply_entity(model, account)

        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)

        return await self._model_to_entity(model)

    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        """ID로 계정을 조회합니다."""
        model = await self._get_model(account_id)
        if model is None:
            return None

        return await self._model_to_entity(model)

    async def get_by_email(self, email: str) -> Optional[Account]:
        """이메일로 계정을 조회합니다."""
        stmt = select(AccountModel).where(AccountModel.email == email.lower())
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return await self._model_to_entity(model)

    async def list_all(self, skip: int = 0, limit: int = 100) -> List[Account]:
        """모든 계정을 조회합니다."""
        stmt = (
            select(AccountModel)
            .order_by(desc(AccountModel.created_at))
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        models = result.scalars().all()

        return [await self._model_to_entity(model) for model in models]

    async def update(self, account: Account) -> Account:
        """계정을 업데이트합니다."""
        model = await self._get_model(account.id)

        if model is None:
            raise ValueError(f"계정을 찾을 수 없습니다: {account.id}")

        await self._apply_entity(model, account)
        model.updated_at = utcnow()

        await self.session.commit()
        await self.session.refresh(model)

        return await self._model_to_entity(model)

    async def _get_model(self, account_id: UUID) -> Optional[AccountModel]:
        stmt = select(AccountModel).where(AccountModel.id == str(account_id))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _apply_entity(self, model: AccountModel, account: Account) -> None:
        """엔티티 값을 모델에 반영합니다. (토큰 암호화)"""
        model.email = account.email
        model.display_name = account.display_name
        model.access_token = await self._encrypt(account.access_token)
        model.refresh_token = await self._encrypt(account.refresh_token)
        model.token_expiry = account.token_expiry
        model.sync_cursor = account.sync_cursor
        model.last_full_sync_at = account.last_full_sync_at

    async def _encrypt(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return await self.encryption_service.encrypt(value)

    async def _decrypt(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return await self.encryption_service.decrypt(value)

    async def _model_to_entity(self, model: AccountModel) -> Account:
        """모델을 엔티티로 변환합니다."""
        return Account(
            id=UUID(model.id),  # 문자열을 UUID로 변환
            email=model.email,
            display_name=model.display_name,
            access_token=await self._decrypt(model.access_token),
            refresh_token=await self._decrypt(model.refresh_token),
            token_expiry=model.token_expiry,
            sync_cursor=model.sync_cursor,
            last_full_sync_at=model.last_full_sync_at,
            created_at=model.created_at or utcnow(),
            updated_at=model.updated_at or utcnow(),
        )


class MessageRepositoryAdapter(MessageRepositoryPort):
    """메시지 미러 Repository 어댑터"""

    # 라벨 필터 조회 시 한 번에 읽는 행 수
    LIST_BATCH_SIZE = 200

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(
        self,
        account_id: UUID,
        remote_message_id: str,
        document: Dict[str, Any],
    ) -> None:
        """(계정, 메시지 ID) 키로 부분 문서를 병합 저장합니다."""
        model = await self._get_model(account_id, remote_message_id)

        if model is None:
            model = MessageModel(
                account_id=str(account_id),
                remote_message_id=remote_message_id,
                label_ids=[],
            )
            self.session.add(model)

        # 문서에 포함된 필드만 갱신하고 나머지는 기존 값을 유지
        for field, value in document.items():
            setattr(model, field, value)

        await self.session.commit()

    async def get_by_remote_id(
        self,
        account_id: UUID,
        remote_message_id: str,
    ) -> Optional[Message]:
        """메시지 ID로 메시지를 조회합니다."""
        model = await self._get_model(account_id, remote_message_id)

        if model is None:
            return None

        return self._model_to_entity(model)

    async def delete_many(self, account_id: UUID, remote_message_ids: Iterable[str]) -> int:
        """여러 메시지를 삭제합니다."""
        ids = list(remote_message_ids)
        if not ids:
            return 0

        stmt = delete(MessageModel).where(
            MessageModel.account_id == str(account_id),
            MessageModel.remote_message_id.in_(ids),
        )
        result = await self.session.execute(stmt)
        await self.session.commit()

        return result.rowcount or 0

    async def count_by_account(self, account_id: UUID) -> int:
        """계정별 메시지 수를 조회합니다."""
        stmt = select(func.count()).select_from(MessageModel).where(
            MessageModel.account_id == str(account_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def add_label(
        self,
        account_id: UUID,
        remote_message_ids: Iterable[str],
        label_id: str,
    ) -> int:
        """메시지들에 라벨을 추가합니다. 이미 라벨이 있는 메시지는 변경하지 않습니다."""
        ids = list(remote_message_ids)
        if not ids:
            return 0

        stmt = select(MessageModel).where(
            MessageModel.account_id == str(account_id),
            MessageModel.remote_message_id.in_(ids),
        )
        result = await self.session.execute(stmt)

        modified_count = 0
        for model in result.scalars().all():
            current = list(model.label_ids or [])
            if label_id in current:
                continue
            # JSON 컬럼 변경 감지를 위해 새 리스트로 교체
            model.label_ids = current + [label_id]
            modified_count += 1

        await self.session.commit()
        return modified_count

    async def list_by_account(
        self,
        account_id: UUID,
        limit: int = 50,
        label_id: Optional[str] = None,
    ) -> List[Message]:
        """계정별 메시지를 최신순으로 조회합니다."""
        if limit <= 0:
            return []

        stmt = (
            select(MessageModel)
            .where(MessageModel.account_id == str(account_id))
            .order_by(nulls_last(desc(MessageModel.sent_at)), MessageModel.remote_message_id)
        )

        if not label_id:
            result = await self.session.execute(stmt.limit(limit))
            return [self._model_to_entity(model) for model in result.scalars().all()]

        # JSON 배열 포함 여부는 DB마다 문법이 달라 배치 단위로 읽으며 필터링
        batch_size = max(limit, self.LIST_BATCH_SIZE)
        matched: List[MessageModel] = []
        offset = 0
        while len(matched) < limit:
            result = await self.session.execute(stmt.offset(offset).limit(batch_size))
            batch = result.scalars().all()
            matched.extend(model for model in batch if label_id in (model.label_ids or []))
            if len(batch) < batch_size:
                break
            offset += batch_size

        return [self._model_to_entity(model) for model in matched[:limit]]

    async def label_usage(self, account_id: UUID, unread_label_id: str) -> List[LabelUsage]:
        """라벨별 전체/읽지 않은 메시지 수를 집계합니다."""
        stmt = select(MessageModel.label_ids).where(MessageModel.account_id == str(account_id))
        result = await self.session.execute(stmt)

        totals: Counter = Counter()
        unread: Counter = Counter()
        for label_ids in result.scalars().all():
            label_set = set(label_ids or [])
            is_unread = unread_label_id in label_set
            for label in label_set:
                totals[label] += 1
                if is_unread:
                    unread[label] += 1

        return [
            LabelUsage(label_id=label, total=totals[label], unread=unread[label])
            for label in sorted(totals)
        ]

    async def _get_model(self, account_id: UUID, remote_message_id: str) -> Optional[MessageModel]:
        stmt = select(MessageModel).where(
            MessageModel.account_id == str(account_id),
            MessageModel.remote_message_id == remote_message_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _model_to_entity(self, model: MessageModel) -> Message:
        """모델을 엔티티로 변환합니다."""
        return Message(
            account_id=UUID(model.account_id),
            remote_message_id=model.remote_message_id,
            thread_id=model.thread_id,
            history_marker=model.history_marker,
            label_ids=list(model.label_ids or []),
            subject=model.subject,
            sender=model.sender,
            recipients=model.recipients,
            snippet=model.snippet,
            sent_at=model.sent_at,
            size_estimate=model.size_estimate,
            plain_body=model.plain_body,
            html_body=model.html_body,
            headers=dict(model.headers or {}),
            last_synced_at=model.last_synced_at,
        )


class LabelRepositoryAdapter(LabelRepositoryPort):
    """라벨 미러 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert_many(self, labels: Sequence[Label]) -> int:
        """라벨을 일괄 병합 저장합니다."""
        if not labels:
            return 0

        for label in labels:
            stmt = select(LabelModel).where(
                LabelModel.account_id == str(label.account_id),
                LabelModel.remote_label_id == label.remote_label_id,
            )
            result = await self.session.execute(stmt)
            model = result.scalar_one_or_none()

            if model is None:
                model = LabelModel(
                    account_id=str(label.account_id),
                    remote_label_id=label.remote_label_id,
                )
                self.session.add(model)

            model.name = label.name
            model.kind = label.kind.value if label.kind else None
            model.message_list_visibility = label.message_list_visibility
            model.label_list_visibility = label.label_list_visibility
            model.color = label.color.model_dump() if label.color else None
            model.total_count = label.total_count
            model.unread_count = label.unread_count
            model.last_synced_at = label.last_synced_at

        await self.session.commit()
        return len(labels)

    async def get_by_remote_id(self, account_id: UUID, remote_label_id: str) -> Optional[Label]:
        """라벨 ID로 라벨을 조회합니다."""
        stmt = select(LabelModel).where(
            LabelModel.account_id == str(account_id),
            LabelModel.remote_label_id == remote_label_id,
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def list_by_account(self, account_id: UUID) -> List[Label]:
        """계정별 라벨을 이름순으로 조회합니다."""
        stmt = (
            select(LabelModel)
            .where(LabelModel.account_id == str(account_id))
            .order_by(LabelModel.name)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    def _model_to_entity(self, model: LabelModel) -> Label:
        """모델을 엔티티로 변환합니다."""
        return Label(
            account_id=UUID(model.account_id),
            remote_label_id=model.remote_label_id,
            name=model.name,
            kind=LabelKind(model.kind) if model.kind else None,
            message_list_visibility=model.message_list_visibility,
            label_list_visibility=model.label_list_visibility,
            color=LabelColor(**model.color) if model.color else None,
            total_count=model.total_count,
            unread_count=model.unread_count,
            last_synced_at=model.last_synced_at or utcnow(),
        )
