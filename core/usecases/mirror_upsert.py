"""
미러 업서트 유즈케이스

Gmail API 메시지/라벨 표현을 로컬 스키마로 정규화하여 저장합니다.
부분 조회(metadata)로 받은 메시지는 기존 본문을 덮어쓰지 않습니다.
"""

import base64
import binascii
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..domain.entities import (
    Account,
    Label,
    MessagePart,
    MessageUpdate,
    utcnow,
)
from ..domain.ports import (
    LabelRepositoryPort,
    LoggerPort,
    MessageRepositoryPort,
)

# metadata 조회 시 요청하는 헤더
METADATA_HEADERS: Tuple[str, ...] = ("Subject", "From", "To", "Date", "Delivered-To")

PLAIN_MIME_TYPE = "text/plain"
HTML_MIME_TYPE = "text/html"


def url_safe_decode(data: Optional[str]) -> Optional[str]:
    """
    base64url 데이터를 문자열로 디코딩합니다.

    '-' -> '+', '_' -> '/' 로 치환 후 패딩을 맞춰 표준 base64로 디코딩합니다.
    """
    if not data:
        return None
    normalized = data.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        raw = base64.b64decode(normalized)
    except (binascii.Error, ValueError):
        return None
    return raw.decode("utf-8", errors="replace")


def pick_header(headers: Optional[Iterable[Dict[str, Any]]], target: str) -> Optional[str]:
    """대소문자 구분 없이 첫 번째로 일치하는 헤더 값을 반환합니다."""
    if not headers:
        return None
    lower = target.lower()
    for header in headers:
        name = header.get("name")
        if name and name.lower() == lower:
            return header.get("value")
    return None


def extract_bodies(part: Optional[MessagePart]) -> Dict[str, str]:
    """
    멀티파트 트리를 깊이 우선으로 순회하여 본문을 추출합니다.

    타입별로 처음 발견된 text/plain, text/html 파트가 채택되며
    이후 파트가 덮어쓰지 않습니다. 노드 자신의 본문이 하위 파트보다 먼저 검사됩니다.
    """
    bodies: Dict[str, str] = {}
    if part is None:
        return bodies

    stack: List[MessagePart] = [part]
    while stack:
        node = stack.pop()
        if node.mime_type in (PLAIN_MIME_TYPE, HTML_MIME_TYPE) and node.mime_type not in bodies:
            decoded = url_safe_decode(node.body_data)
            if decoded:
                bodies[node.mime_type] = decoded
        # 역순으로 쌓아 원래 순서대로 방문
        stack.extend(reversed(node.parts))

    return bodies


def collect_headers(headers: Optional[Iterable[Dict[str, Any]]]) -> Optional[Dict[str, str]]:
    """
    헤더 목록을 이름 -> 값 맵으로 변환합니다.

    이름은 대소문자 구분 없이 비교하며 처음 나온 값만 저장합니다.
    METADATA_HEADERS에 속한 헤더는 표준 표기 이름을 키로 사용합니다.
    """
    if headers is None:
        return None
    canonical = {name.lower(): name for name in METADATA_HEADERS}
    result: Dict[str, str] = {}
    seen = set()
    for header in headers:
        name, value = header.get("name"), header.get("value")
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        if value:
            result[canonical.get(name.lower(), name)] = value
    return result


def parse_internal_date(value: Optional[str]) -> Optional[datetime]:
    """internalDate(epoch 밀리초 문자열)를 datetime으로 변환합니다."""
    if not value:
        return None
    try:
        millis = int(value)
    except (TypeError, ValueError):
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).replace(tzinfo=None)


def build_message_update(remote: Dict[str, Any], replace_body: bool = True) -> MessageUpdate:
    """
    Gmail API 메시지로부터 부분 업데이트 문서를 생성합니다.

    값이 계산되지 않은 필드는 설정하지 않아 문서에서 제외됩니다.
    replace_body가 False면 본문 필드를 아예 포함하지 않습니다.
    """
    payload = remote.get("payload") or {}
    headers = payload.get("headers")

    fields: Dict[str, Any] = {
        "label_ids": list(remote.get("labelIds") or []),
        "last_synced_at": utcnow(),
    }

    for field, key in (
        ("thread_id", "threadId"),
        ("history_marker", "historyId"),
        ("snippet", "snippet"),
        ("size_estimate", "sizeEstimate"),
    ):
        if key in remote:
            fields[field] = remote[key]

    for field, header_name in (
        ("subject", "Subject"),
        ("sender", "From"),
        ("recipients", "To"),
    ):
        value = pick_header(headers, header_name)
        if value is not None:
            fields[field] = value

    sent_at = parse_internal_date(remote.get("internalDate"))
    if sent_at is not None:
        fields["sent_at"] = sent_at

    header_map = collect_headers(headers)
    if header_map is not None:
        fields["headers"] = header_map

    if replace_body:
        bodies = extract_bodies(MessagePart.from_payload(payload))
        if PLAIN_MIME_TYPE in bodies:
            fields["plain_body"] = bodies[PLAIN_MIME_TYPE]
        if HTML_MIME_TYPE in bodies:
            fields["html_body"] = bodies[HTML_MIME_TYPE]

    return MessageUpdate(**fields)


class MirrorUpsertUseCase:
    """미러 업서트 유즈케이스"""

    def __init__(
        self,
        message_repository: MessageRepositoryPort,
        label_repository: LabelRepositoryPort,
        logger: LoggerPort,
    ):
        self.message_repository = message_repository
        self.label_repository = label_repository
        self.logger = logger

    async def upsert_message(
        self,
        account: Account,
        remote_message: Dict[str, Any],
        replace_body: bool = True,
    ) -> None:
        """
        원격 메시지를 (계정, 메시지 ID) 키로 병합 저장합니다.

        Args:
            account: 계정 엔티티
            remote_message: Gmail API 메시지 응답
            replace_body: 본문 필드 갱신 여부 (metadata 조회 시 False)
        """
        update = build_message_update(remote_message, replace_body=replace_body)
        document = update.to_document()

        await self.message_repository.upsert(account.id, remote_message["id"], document)
        self.logger.debug(
            f"메시지 저장: {remote_message['id']}, 본문 갱신: {replace_body}"
        )

    async def delete_messages(self, account: Account, message_ids: List[str]) -> int:
        """원격에서 삭제된 메시지들을 미러에서 일괄 삭제합니다."""
        if not message_ids:
            return 0

        deleted_count = await self.message_repository.delete_many(account.id, message_ids)
        self.logger.debug(f"메시지 삭제: {account.id}, {deleted_count}/{len(message_ids)}개")
        return deleted_count

    async def upsert_labels(self, account: Account, labels: List[Dict[str, Any]]) -> int:
        """원격 라벨 목록을 일괄 병합 저장합니다."""
        if not labels:
            return 0

        entities = [Label.from_remote(account.id, label) for label in labels]
        count = await self.label_repository.upsert_many(entities)

        self.logger.debug(f"라벨 저장: {account.id}, {count}개")
        return count
