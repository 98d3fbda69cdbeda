"""
도메인 엔티티 정의

Gmail 메일함 미러링의 핵심 개념을 나타내는 엔티티들을 정의합니다.
모든 엔티티는 Pydantic 모델을 기반으로 하여 타입 안정성을 보장합니다.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

# Gmail 시스템 라벨 ID
INBOX_LABEL_ID = "INBOX"
UNREAD_LABEL_ID = "UNREAD"


def utcnow() -> datetime:
    """현재 UTC 시간을 반환합니다. (DB 저장용 naive datetime)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SyncMode(str, Enum):
    """동기화 방식"""
    FULL = "full"
    DELTA = "delta"


class SyncState(str, Enum):
    """동기화 상태 머신의 상태"""
    IDLE = "idle"
    FULL_SYNC = "full_sync"
    DELTA_SYNC = "delta_sync"
    COMMITTED = "committed"


class LabelKind(str, Enum):
    """라벨 종류"""
    SYSTEM = "system"
    USER = "user"


class Account(BaseModel):
    """Gmail 계정 엔티티 (자격 증명과 동기화 커서 포함)"""

    id: UUID = Field(default_factory=uuid4, description="계정 고유 ID")
    email: str = Field(..., description="계정 이메일 주소")
    display_name: Optional[str] = Field(None, description="표시 이름")
    access_token: Optional[str] = Field(None, description="액세스 토큰")
    refresh_token: Optional[str] = Field(None, description="리프레시 토큰")
    token_expiry: Optional[datetime] = Field(None, description="액세스 토큰 만료 시간")
    sync_cursor: Optional[str] = Field(None, description="마지막 히스토리 위치 (historyId)")
    last_full_sync_at: Optional[datetime] = Field(None, description="마지막 전체 동기화 시간")
    created_at: datetime = Field(default_factory=utcnow, description="생성 시간")
    updated_at: datetime = Field(default_factory=utcnow, description="수정 시간")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """이메일 형식 검증"""
        if '@' not in v:
            raise ValueError('유효한 이메일 주소가 아닙니다')
        return v.lower()

    def has_valid_access_token(self, margin_seconds: int = 60) -> bool:
        """만료 여유 시간을 두고 액세스 토큰이 유효한지 확인"""
        if not self.access_token or not self.token_expiry:
            return False
        return self.token_expiry - utcnow() > timedelta(seconds=margin_seconds)

    def can_refresh(self) -> bool:
        """토큰 갱신 가능한지 확인"""
        return bool(self.refresh_token)

    def apply_token_response(self, token_response: Dict[str, Any]) -> None:
        """OAuth 토큰 응답을 계정에 반영"""
        expires_in = token_response.get('expires_in') or 3600
        self.access_token = token_response['access_token']
        self.token_expiry = utcnow() + timedelta(seconds=int(expires_in))
        # 새 리프레시 토큰이 발급된 경우에만 교체
        if token_response.get('refresh_token'):
            self.refresh_token = token_response['refresh_token']
        self.updated_at = utcnow()

    def needs_full_sync(self) -> bool:
        """증분 동기화 커서가 없는지 확인"""
        return not self.sync_cursor

    def commit_cursor(self, cursor: Optional[str]) -> None:
        """새 동기화 커서 기록"""
        self.sync_cursor = cursor
        self.updated_at = utcnow()

    def mark_full_sync(self, cursor: Optional[str]) -> None:
        """전체 동기화 완료 기록"""
        self.commit_cursor(cursor)
        self.last_full_sync_at = utcnow()


class LabelColor(BaseModel):
    """라벨 색상"""

    text_color: Optional[str] = None
    background_color: Optional[str] = None


class Label(BaseModel):
    """Gmail 라벨 엔티티"""

    account_id: UUID = Field(..., description="계정 ID")
    remote_label_id: str = Field(..., description="Gmail 라벨 ID")
    name: str = Field(..., description="라벨 이름")
    kind: Optional[LabelKind] = Field(None, description="라벨 종류 (system/user)")
    message_list_visibility: Optional[str] = Field(None, description="메시지 목록 표시 여부")
    label_list_visibility: Optional[str] = Field(None, description="라벨 목록 표시 여부")
    color: Optional[LabelColor] = Field(None, description="라벨 색상")
    total_count: Optional[int] = Field(None, description="전체 메시지 수")
    unread_count: Optional[int] = Field(None, description="읽지 않은 메시지 수")
    last_synced_at: datetime = Field(default_factory=utcnow, description="마지막 동기화 시간")

    @classmethod
    def from_remote(cls, account_id: UUID, data: Dict[str, Any]) -> "Label":
        """Gmail API 라벨 응답을 라벨 엔티티로 변환"""
        color = data.get('color')
        kind = data.get('type')
        return cls(
            account_id=account_id,
            remote_label_id=data['id'],
            name=data.get('name') or data['id'],
            kind=LabelKind(kind.lower()) if kind else None,
            message_list_visibility=data.get('messageListVisibility'),
            label_list_visibility=data.get('labelListVisibility'),
            color=LabelColor(
                text_color=color.get('textColor'),
                background_color=color.get('backgroundColor'),
            ) if color else None,
            total_count=data.get('messagesTotal'),
            unread_count=data.get('messagesUnread'),
        )


class Message(BaseModel):
    """미러링된 메일 메시지 엔티티"""

    account_id: UUID = Field(..., description="계정 ID")
    remote_message_id: str = Field(..., description="Gmail 메시지 ID")
    thread_id: Optional[str] = Field(None, description="스레드 ID")
    history_marker: Optional[str] = Field(None, description="관측 시점의 historyId")
    label_ids: List[str] = Field(default_factory=list, description="라벨 ID 목록")
    subject: Optional[str] = Field(None, description="제목")
    sender: Optional[str] = Field(None, description="발신자 (From)")
    recipients: Optional[str] = Field(None, description="수신자 (To)")
    snippet: Optional[str] = Field(None, description="미리보기")
    sent_at: Optional[datetime] = Field(None, description="발송 시간 (internalDate)")
    size_estimate: Optional[int] = Field(None, description="예상 크기")
    plain_body: Optional[str] = Field(None, description="텍스트 본문")
    html_body: Optional[str] = Field(None, description="HTML 본문")
    headers: Dict[str, str] = Field(default_factory=dict, description="헤더 맵")
    last_synced_at: Optional[datetime] = Field(None, description="마지막 동기화 시간")


class MessageUpdate(BaseModel):
    """
    메시지 부분 업데이트 문서

    설정되지 않은 필드는 model_dump(exclude_unset=True)에서 제외되고,
    명시적으로 None을 설정한 필드는 유지됩니다.
    """

    thread_id: Optional[str] = None
    history_marker: Optional[str] = None
    label_ids: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    sender: Optional[str] = None
    recipients: Optional[str] = None
    snippet: Optional[str] = None
    sent_at: Optional[datetime] = None
    size_estimate: Optional[int] = None
    plain_body: Optional[str] = None
    html_body: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    last_synced_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        """설정된 필드만 담은 업데이트 문서 반환"""
        return self.model_dump(exclude_unset=True)


class MessagePart(BaseModel):
    """
    메시지 페이로드 트리 노드

    하위 파트가 없으면 leaf(mime_type, body_data), 있으면 branch(parts)입니다.
    """

    mime_type: Optional[str] = None
    body_data: Optional[str] = None
    parts: List["MessagePart"] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> Optional["MessagePart"]:
        """Gmail API payload 딕셔너리를 트리로 변환"""
        if not payload:
            return None
        children = [cls.from_payload(part) for part in payload.get('parts') or []]
        return cls(
            mime_type=payload.get('mimeType'),
            body_data=(payload.get('body') or {}).get('data'),
            parts=[child for child in children if child is not None],
        )


class ChangeSet(BaseModel):
    """히스토리 페이지 분류 결과"""

    full_fetch: List[str] = Field(default_factory=list, description="본문 포함 전체 조회 대상")
    metadata_only: List[str] = Field(default_factory=list, description="메타데이터만 조회할 대상")
    delete: List[str] = Field(default_factory=list, description="삭제 대상")
    latest_marker: Optional[str] = Field(None, description="페이지에서 관측된 최신 historyId")

    def is_empty(self) -> bool:
        return not (self.full_fetch or self.metadata_only or self.delete)


class SyncSummary(BaseModel):
    """한 번의 동기화 결과"""

    upserted_count: int = 0
    deleted_count: int = 0
    mode: SyncMode = SyncMode.FULL


class LabelUsage(BaseModel):
    """라벨별 메시지 사용 통계"""

    label_id: str
    total: int = 0
    unread: int = 0


class SyncOptions(BaseModel):
    """동기화 파라미터 (오케스트레이터 생성 시 주입)"""

    page_size: int = Field(default=100, ge=1, le=500, description="목록 조회 페이지 크기")
    max_full_sync_messages: int = Field(default=2000, ge=1, description="전체 동기화 최대 메시지 수")
    rate_limit_delay: float = Field(default=0.2, ge=0, description="메시지 조회 간 대기 시간(초)")
    full_sync_label_ids: List[str] = Field(
        default_factory=lambda: [INBOX_LABEL_ID],
        description="전체 동기화 대상 라벨 (비어 있으면 전체 메일함)",
    )

