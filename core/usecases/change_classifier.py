"""
히스토리 변경 분류

Gmail 히스토리(변경 로그) 한 페이지를 분석하여 어떤 메시지를
전체 조회, 메타데이터 조회, 삭제할지 결정합니다.
"""

from typing import Any, Dict, Iterable, List, Optional

from ..domain.entities import ChangeSet

# 히스토리 조회 시 요청하는 변경 유형
HISTORY_TYPES = ("labelAdded", "labelRemoved", "messageAdded", "messageDeleted")


def later_marker(current: Optional[str], candidate: Optional[str]) -> Optional[str]:
    """두 historyId 중 더 최신 값을 반환합니다. 숫자면 숫자로 비교합니다."""
    if not candidate:
        return current
    if not current:
        return candidate
    if current.isdigit() and candidate.isdigit():
        return candidate if int(candidate) > int(current) else current
    return candidate


def _message_ids(items: Optional[Iterable[Dict[str, Any]]]) -> List[str]:
    ids = []
    for item in items or []:
        message_id = (item.get("message") or {}).get("id")
        if message_id:
            ids.append(message_id)
    return ids


def classify_history_page(
    entries: Iterable[Dict[str, Any]],
    start_marker: Optional[str] = None,
) -> ChangeSet:
    """
    히스토리 엔트리들을 세 개의 서로소 ID 집합으로 분류합니다.

    - messagesAdded: 본문 포함 전체 조회
    - labelsAdded / labelsRemoved: 전체 조회 대상이 아닌 경우에만 메타데이터 조회
    - messagesDeleted: 삭제 (삭제된 메시지는 조회할 수 없으므로 조회 대상에서 제외)

    Args:
        entries: 히스토리 응답의 history 배열 (순서 유지)
        start_marker: 이전 커서 (최신 historyId 계산의 시작점)

    Returns:
        분류 결과와 페이지의 최신 historyId
    """
    # dict는 삽입 순서를 유지하므로 순서 있는 집합으로 사용
    full_fetch: Dict[str, None] = {}
    metadata_only: Dict[str, None] = {}
    to_delete: Dict[str, None] = {}
    latest = start_marker

    for entry in entries:
        latest = later_marker(latest, entry.get("id"))

        for message_id in _message_ids(entry.get("messagesAdded")):
            full_fetch[message_id] = None
            metadata_only.pop(message_id, None)

        for key in ("labelsAdded", "labelsRemoved"):
            for message_id in _message_ids(entry.get(key)):
                if message_id not in full_fetch:
                    metadata_only[message_id] = None

        for message_id in _message_ids(entry.get("messagesDeleted")):
            to_delete[message_id] = None

    return ChangeSet(
        full_fetch=[message_id for message_id in full_fetch if message_id not in to_delete],
        metadata_only=[message_id for message_id in metadata_only if message_id not in to_delete],
        delete=list(to_delete),
        latest_marker=latest,
    )
