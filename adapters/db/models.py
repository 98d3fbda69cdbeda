"""
SQLAlchemy 데이터베이스 모델

도메인 엔티티와 매핑되는 데이터베이스 테이블 모델을 정의합니다.
SQLite 호환성을 위해 UUID는 String으로, 배열과 맵은 JSON으로 처리합니다.
"""

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class AccountModel(Base):
    """계정 테이블 모델"""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255))
    access_token = Column(Text)  # 암호화된 값
    refresh_token = Column(Text)  # 암호화된 값
    token_expiry = Column(DateTime, index=True)
    sync_cursor = Column(String(64))
    last_full_sync_at = Column(DateTime, index=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # 관계 설정
    messages = relationship("MessageModel", back_populates="account")
    labels = relationship("LabelModel", back_populates="account")


class MessageModel(Base):
    """메시지 미러 테이블 모델"""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    remote_message_id = Column(String(255), nullable=False)
    thread_id = Column(String(255), index=True)
    history_marker = Column(String(64))
    label_ids = Column(JSON, nullable=False, default=list)  # 문자열 배열을 JSON으로 저장
    subject = Column(Text)
    sender = Column(Text)
    recipients = Column(Text)
    snippet = Column(Text)
    sent_at = Column(DateTime, index=True)
    size_estimate = Column(Integer)
    plain_body = Column(Text)
    html_body = Column(Text)
    headers = Column(JSON)  # 헤더 이름 -> 값
    last_synced_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('account_id', 'remote_message_id', name='uq_messages_account_remote'),
        Index('idx_messages_account_sent', 'account_id', 'sent_at'),
    )

    # 관계 설정
    account = relationship("AccountModel", back_populates="messages")


class LabelModel(Base):
    """라벨 미러 테이블 모델"""

    __tablename__ = "labels"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    remote_label_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    kind = Column(String(20))  # LabelKind enum을 문자열로 저장
    message_list_visibility = Column(String(50))
    label_list_visibility = Column(String(50))
    color = Column(JSON)
    total_count = Column(Integer)
    unread_count = Column(Integer)
    last_synced_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('account_id', 'remote_label_id', name='uq_labels_account_remote'),
        Index('idx_labels_account_name', 'account_id', 'name'),
    )

    # 관계 설정
    account = relationship("AccountModel", back_populates="labels")
