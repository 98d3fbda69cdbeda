"""
포트 인터페이스 정의

클린 아키텍처의 핵심으로, Core 레이어와 외부 어댑터 간의 계약을 정의합니다.
모든 포트는 추상 기본 클래스(ABC)로 정의되어 구현을 강제합니다.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from .entities import (
    Account,
    Label,
    LabelUsage,
    Message,
    SyncOptions,
)

# 쿼리 파라미터 값: 스칼라, 반복 파라미터용 시퀀스, 생략용 None
QueryValue = Union[str, int, float, bool, Sequence[Union[str, int]], None]


class AccountRepositoryPort(ABC):
    """계정(자격 증명) 저장소 포트"""

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """계정 생성"""
        pass

    @abstractmethod
    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        """ID로 계정 조회"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Account]:
        """이메일로 계정 조회"""
        pass

    @abstractmethod
    async def list_all(self, skip: int = 0, limit: int = 100) -> List[Account]:
        """모든 계정 목록 조회"""
        pass

    @abstractmethod
    async def update(self, account: Account) -> Account:
        """계정 정보 저장 (토큰, 커서 포함)"""
        pass


class MessageRepositoryPort(ABC):
    """메시지 미러 저장소 포트"""

    @abstractmethod
    async def upsert(
        self,
        account_id: UUID,
        remote_message_id: str,
        document: Dict[str, Any],
    ) -> None:
        """(계정, 메시지 ID) 키로 부분 문서를 병합 저장"""
        pass

    @abstractmethod
    async def get_by_remote_id(
        self,
        account_id: UUID,
        remote_message_id: str,
    ) -> Optional[Message]:
        """메시지 ID로 조회"""
        pass

    @abstractmethod
    async def delete_many(self, account_id: UUID, remote_message_ids: Iterable[str]) -> int:
        """여러 메시지 삭제 후 삭제된 수 반환"""
        pass

    @abstractmethod
    async def count_by_account(self, account_id: UUID) -> int:
        """계정별 메시지 수 조회"""
        pass

    @abstractmethod
    async def add_label(
        self,
        account_id: UUID,
        remote_message_ids: Iterable[str],
        label_id: str,
    ) -> int:
        """메시지들에 라벨 추가 후 실제로 변경된 수 반환"""
        pass

    @abstractmethod
    async def list_by_account(
        self,
        account_id: UUID,
        limit: int = 50,
        label_id: Optional[str] = None,
    ) -> List[Message]:
        """계정별 메시지 목록 조회 (최신순)"""
        pass

    @abstractmethod
    async def label_usage(self, account_id: UUID, unread_label_id: str) -> List[LabelUsage]:
        """라벨별 전체/읽지 않은 메시지 수 집계"""
        pass


class LabelRepositoryPort(ABC):
    """라벨 미러 저장소 포트"""

    @abstractmethod
    async def upsert_many(self, labels: Sequence[Label]) -> int:
        """(계정, 라벨 ID) 키로 라벨 일괄 병합 저장"""
        pass

    @abstractmethod
    async def get_by_remote_id(self, account_id: UUID, remote_label_id: str) -> Optional[Label]:
        """라벨 ID로 조회"""
        pass

    @abstractmethod
    async def list_by_account(self, account_id: UUID) -> List[Label]:
        """계정별 라벨 목록 조회 (이름순)"""
        pass


class OAuthClientPort(ABC):
    """OAuth 토큰 엔드포인트 클라이언트 포트"""

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> dict:
        """리프레시 토큰으로 액세스 토큰 갱신"""
        pass


class TokenProviderPort(ABC):
    """원격 호출 전에 유효한 액세스 토큰을 보장하는 포트"""

    @abstractmethod
    async def ensure_access_token(self, account: Account) -> str:
        """유효한 액세스 토큰 반환 (필요 시 갱신)"""
        pass


class GmailApiClientPort(ABC):
    """Gmail API 클라이언트 포트"""

    @abstractmethod
    async def request(
        self,
        account: Account,
        path: str,
        query: Optional[Mapping[str, QueryValue]] = None,
        method: str = "GET",
        json: Optional[dict] = None,
    ) -> dict:
        """인증된 Gmail API 요청"""
        pass

    @abstractmethod
    async def get_profile(self, account: Account) -> dict:
        """메일함 프로필 조회 (historyId 포함)"""
        pass

    @abstractmethod
    async def list_labels(self, account: Account) -> List[dict]:
        """라벨 목록 조회"""
        pass

    @abstractmethod
    async def list_messages(
        self,
        account: Account,
        max_results: int,
        label_ids: Optional[Sequence[str]] = None,
        page_token: Optional[str] = None,
    ) -> dict:
        """메시지 목록 페이지 조회"""
        pass

    @abstractmethod
    async def get_message(
        self,
        account: Account,
        message_id: str,
        format: str = "full",
        metadata_headers: Optional[Sequence[str]] = None,
    ) -> dict:
        """메시지 단건 조회"""
        pass

    @abstractmethod
    async def list_history(
        self,
        account: Account,
        start_history_id: str,
        history_types: Sequence[str],
        page_token: Optional[str] = None,
    ) -> dict:
        """히스토리(변경 로그) 페이지 조회"""
        pass

    @abstractmethod
    async def batch_modify(
        self,
        account: Account,
        message_ids: Sequence[str],
        add_label_ids: Optional[Sequence[str]] = None,
        remove_label_ids: Optional[Sequence[str]] = None,
    ) -> None:
        """여러 메시지의 라벨 일괄 변경"""
        pass


class EncryptionServicePort(ABC):
    """암호화 서비스 포트"""

    @abstractmethod
    async def encrypt(self, data: str) -> str:
        """데이터 암호화"""
        pass

    @abstractmethod
    async def decrypt(self, encrypted_data: str) -> str:
        """데이터 복호화"""
        pass


class LoggerPort(ABC):
    """로거 포트"""

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        pass

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """디버그 로그"""
        pass


class ConfigPort(ABC):
    """설정 포트"""

    # 환경 설정
    @abstractmethod
    def get_environment(self) -> str:
        """환경 조회 (development, production, testing)"""
        pass

    @abstractmethod
    def is_debug(self) -> bool:
        """디버그 모드 여부"""
        pass

    # 데이터베이스 설정
    @abstractmethod
    def get_database_url(self) -> str:
        """데이터베이스 URL 조회"""
        pass

    # Google OAuth 설정
    @abstractmethod
    def get_google_client_id(self) -> str:
        """Google OAuth 클라이언트 ID 조회"""
        pass

    @abstractmethod
    def get_google_client_secret(self) -> str:
        """Google OAuth 클라이언트 시크릿 조회"""
        pass

    @abstractmethod
    def get_http_timeout(self) -> float:
        """외부 HTTP 요청 타임아웃(초) 조회"""
        pass

    # 보안 설정
    @abstractmethod
    def get_encryption_key(self) -> str:
        """암호화 키 조회"""
        pass

    # 로깅 설정
    @abstractmethod
    def get_log_level(self) -> str:
        """로그 레벨 조회"""
        pass

    @abstractmethod
    def get_log_format(self) -> str:
        """로그 포맷 조회"""
        pass

    # 웹 서버 설정
    @abstractmethod
    def get_web_host(self) -> str:
        """웹 서버 호스트 조회"""
        pass

    @abstractmethod
    def get_web_port(self) -> int:
        """웹 서버 포트 조회"""
        pass

    # 동기화 설정
    @abstractmethod
    def get_sync_options(self) -> SyncOptions:
        """동기화 파라미터 조회"""
        pass
