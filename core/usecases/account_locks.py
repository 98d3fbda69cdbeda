"""
계정별 동기화 잠금

같은 계정에 대해 동시에 두 번의 동기화가 실행되지 않도록 합니다.
이미 잠긴 계정에 대한 요청은 대기하지 않고 SyncInProgressError로 거부합니다.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional
from uuid import UUID

from ..domain.exceptions import SyncInProgressError


class AccountLockRegistry:
    """계정 ID별 asyncio.Lock 레지스트리"""

    def __init__(self):
        self._locks: Dict[UUID, asyncio.Lock] = {}

    def is_locked(self, account_id: UUID) -> bool:
        lock = self._locks.get(account_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, account_id: UUID) -> AsyncIterator[None]:
        """잠금을 획득하고 블록을 벗어나면 어떤 경로로든 해제합니다."""
        lock = self._locks.setdefault(account_id, asyncio.Lock())
        if lock.locked():
            raise SyncInProgressError(account_id)

        async with lock:
            yield


# 전역 잠금 레지스트리 (프로세스 내 모든 유즈케이스가 공유)
_registry: Optional[AccountLockRegistry] = None


def get_account_lock_registry() -> AccountLockRegistry:
    """전역 잠금 레지스트리를 반환합니다."""
    global _registry
    if _registry is None:
        _registry = AccountLockRegistry()
    return _registry
