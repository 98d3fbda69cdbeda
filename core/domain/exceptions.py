"""
도메인 예외 정의

동기화 코어에서 발생하는 오류 분류입니다.
코어는 어떤 오류도 자동 재시도하지 않으며 호출자에게 그대로 전달합니다.
"""

from typing import Optional
from uuid import UUID


class MailMirrorError(Exception):
    """메일 미러링 기본 예외"""


class AccountNotFoundError(MailMirrorError):
    """존재하지 않는 계정"""

    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"계정을 찾을 수 없습니다: {account_id}")


class MissingCredentialError(MailMirrorError):
    """리프레시 토큰이 없어 액세스 토큰을 갱신할 수 없음"""

    def __init__(self, account_id: Optional[UUID] = None):
        self.account_id = account_id
        super().__init__(f"리프레시 토큰이 없습니다: {account_id}")


class TokenRefreshFailedError(MailMirrorError):
    """OAuth 토큰 엔드포인트가 갱신을 거부함"""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"토큰 갱신 실패: {status} - {body}")


class RemoteApiError(MailMirrorError):
    """Gmail API의 2xx 이외 응답"""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Gmail API 오류 {status}: {message}")

    @property
    def is_not_found(self) -> bool:
        """커서 만료 신호(404) 여부"""
        return self.status == 404


class SyncInProgressError(MailMirrorError):
    """같은 계정에 대해 동기화가 이미 진행 중"""

    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"이미 동기화가 진행 중입니다: {account_id}")
