"""
FastAPI 메일함 라우터

동기화 실행, 미러 조회, 라벨 적용을 HTTP로 노출합니다.
도메인 예외는 HTTP 상태 코드로 변환됩니다.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entities import Label, LabelUsage, Message, SyncSummary
from core.domain.exceptions import (
    AccountNotFoundError,
    MailMirrorError,
    MissingCredentialError,
    RemoteApiError,
    SyncInProgressError,
    TokenRefreshFailedError,
)
from adapters.db.database import get_db_session
from adapters.factory import AdapterFactory, get_adapter_factory
from adapters.logger import create_logger

router = APIRouter(prefix="/mailbox", tags=["mailbox"])
logger = create_logger("mailbox_router")


class ApplyLabelRequest(BaseModel):
    """라벨 적용 요청"""

    message_ids: List[str] = Field(default_factory=list, description="대상 메시지 ID 목록")


class ApplyLabelResponse(BaseModel):
    """라벨 적용 결과"""

    label_id: str
    modified_count: int


def get_factory() -> AdapterFactory:
    """어댑터 팩토리 의존성"""
    return get_adapter_factory()


def to_http_exception(error: MailMirrorError) -> HTTPException:
    """도메인 예외를 HTTP 예외로 변환합니다."""
    if isinstance(error, AccountNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, SyncInProgressError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, MissingCredentialError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, (RemoteApiError, TokenRefreshFailedError)):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@router.post("/{account_id}/sync", response_model=SyncSummary)
async def sync_mailbox(
    account_id: UUID,
    force_full: bool = Query(False, description="커서를 무시하고 전체 동기화"),
    session: AsyncSession = Depends(get_db_session),
    factory: AdapterFactory = Depends(get_factory),
):
    """메일함 동기화를 실행합니다."""
    logger.info(f"동기화 요청: account_id={account_id}, force_full={force_full}")

    try:
        usecase = factory.create_mailbox_sync_usecase(session)
        return await usecase.sync_mailbox(account_id, force_full=force_full)
    except MailMirrorError as e:
        logger.error(f"동기화 요청 실패: {account_id}, {str(e)}")
        raise to_http_exception(e)


@router.get("/{account_id}/messages", response_model=List[Message])
async def list_messages(
    account_id: UUID,
    label_id: Optional[str] = Query(None, description="라벨 ID 필터"),
    limit: int = Query(50, ge=1, le=500, description="조회할 메시지 수"),
    session: AsyncSession = Depends(get_db_session),
    factory: AdapterFactory = Depends(get_factory),
):
    """미러된 메시지를 최신순으로 조회합니다."""
    try:
        usecase = factory.create_mailbox_management_usecase(session)
        return await usecase.list_messages(account_id, limit=limit, label_id=label_id)
    except MailMirrorError as e:
        raise to_http_exception(e)


@router.get("/{account_id}/labels", response_model=List[Label])
async def list_labels(
    account_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    factory: AdapterFactory = Depends(get_factory),
):
    """미러된 라벨 목록을 조회합니다."""
    try:
        usecase = factory.create_mailbox_management_usecase(session)
        return await usecase.list_labels(account_id)
    except MailMirrorError as e:
        raise to_http_exception(e)


@router.get("/{account_id}/stats", response_model=List[LabelUsage])
async def usage_stats(
    account_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    factory: AdapterFactory = Depends(get_factory),
):
    """라벨별 전체/읽지 않은 메시지 수를 조회합니다."""
    try:
        usecase = factory.create_mailbox_management_usecase(session)
        return await usecase.usage_stats(account_id)
    except MailMirrorError as e:
        raise to_http_exception(e)


@router.post("/{account_id}/labels/{label_id}/apply", response_model=ApplyLabelResponse)
async def apply_label(
    account_id: UUID,
    label_id: str,
    request: ApplyLabelRequest,
    session: AsyncSession = Depends(get_db_session),
    factory: AdapterFactory = Depends(get_factory),
):
    """메시지들에 라벨을 추가합니다."""
    logger.info(f"라벨 적용 요청: account_id={account_id}, label_id={label_id}")

    try:
        usecase = factory.create_mailbox_management_usecase(session)
        modified_count = await usecase.apply_label(account_id, label_id, request.message_ids)
    except MailMirrorError as e:
        logger.error(f"라벨 적용 실패: {account_id}, {str(e)}")
        raise to_http_exception(e)

    return ApplyLabelResponse(label_id=label_id, modified_count=modified_count)
