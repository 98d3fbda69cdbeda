"""
Gmail API 클라이언트 어댑터

Gmail REST API와의 통신을 담당하는 어댑터입니다.
모든 호출 전에 토큰 제공자를 통해 유효한 액세스 토큰을 확보하며,
2xx 이외의 응답은 상태 코드를 담은 RemoteApiError로 변환합니다.
자동 재시도는 하지 않습니다.
"""

from typing import List, Mapping, Optional, Sequence, Tuple

import httpx

from core.domain.entities import Account
from core.domain.exceptions import RemoteApiError
from core.domain.ports import GmailApiClientPort, LoggerPort, QueryValue, TokenProviderPort

GMAIL_BASE_URL = "https://gmail.googleapis.com/gmail/v1/users/me"


def encode_query(query: Optional[Mapping[str, QueryValue]]) -> List[Tuple[str, str]]:
    """
    쿼리 딕셔너리를 URL 파라미터 목록으로 변환합니다.

    스칼라 값은 단일 파라미터, 리스트 값은 같은 키의 반복 파라미터가 되고
    None 값은 생략됩니다.
    """
    params: List[Tuple[str, str]] = []
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            params.extend((key, _format_value(item)) for item in value)
        else:
            params.append((key, _format_value(value)))
    return params


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class GmailApiClientAdapter(GmailApiClientPort):
    """Gmail API 클라이언트 어댑터"""

    def __init__(
        self,
        token_provider: TokenProviderPort,
        logger: LoggerPort,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token_provider = token_provider
        self.logger = logger
        self.base_url = GMAIL_BASE_URL
        self.timeout = timeout
        self._http_client = http_client

    def build_url(self, path: str) -> str:
        """절대 URL이면 그대로, 아니면 API 기준 URL에 붙입니다."""
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        account: Account,
        path: str,
        query: Optional[Mapping[str, QueryValue]] = None,
        method: str = "GET",
        json: Optional[dict] = None,
    ) -> dict:
        """인증된 Gmail API 요청을 보냅니다."""
        access_token = await self.token_provider.ensure_access_token(account)

        url = self.build_url(path)
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        params = encode_query(query)

        self.logger.debug(f"Gmail API 요청: {method} {url}")

        if self._http_client is not None:
            response = await self._http_client.request(
                method, url, params=params, headers=headers, json=json
            )
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, url, params=params, headers=headers, json=json
                )

        if not response.is_success:
            self.logger.error(f"Gmail API 오류: {response.status_code} - {method} {url}")
            raise RemoteApiError(response.status_code, response.text)

        # batchModify 등은 응답 본문이 없음
        return response.json() if response.content else {}

    async def get_profile(self, account: Account) -> dict:
        """메일함 프로필을 조회합니다."""
        result = await self.request(account, "profile")
        self.logger.debug(f"프로필 조회 성공: historyId={result.get('historyId', 'N/A')}")
        return result

    async def list_labels(self, account: Account) -> List[dict]:
        """라벨 목록을 조회합니다."""
        result = await self.request(account, "labels")
        labels = result.get("labels") or []
        self.logger.debug(f"라벨 목록 조회 성공: {len(labels)}개 라벨")
        return labels

    async def list_messages(
        self,
        account: Account,
        max_results: int,
        label_ids: Optional[Sequence[str]] = None,
        page_token: Optional[str] = None,
    ) -> dict:
        """메시지 목록 페이지를 조회합니다."""
        result = await self.request(
            account,
            "messages",
            {
                "maxResults": max_results,
                "labelIds": list(label_ids) if label_ids else None,
                "pageToken": page_token,
            },
        )
        self.logger.debug(f"메시지 목록 조회 성공: {len(result.get('messages') or [])}개 메시지")
        return result

    async def get_message(
        self,
        account: Account,
        message_id: str,
        format: str = "full",
        metadata_headers: Optional[Sequence[str]] = None,
    ) -> dict:
        """메시지 단건을 조회합니다."""
        return await self.request(
            account,
            f"messages/{message_id}",
            {
                "format": format,
                "metadataHeaders": list(metadata_headers) if metadata_headers else None,
            },
        )

    async def list_history(
        self,
        account: Account,
        start_history_id: str,
        history_types: Sequence[str],
        page_token: Optional[str] = None,
    ) -> dict:
        """히스토리 페이지를 조회합니다."""
        result = await self.request(
            account,
            "history",
            {
                "startHistoryId": start_history_id,
                "historyTypes": list(history_types),
                "pageToken": page_token,
            },
        )
        self.logger.debug(f"히스토리 조회 성공: {len(result.get('history') or [])}개 변경사항")
        return result

    async def batch_modify(
        self,
        account: Account,
        message_ids: Sequence[str],
        add_label_ids: Optional[Sequence[str]] = None,
        remove_label_ids: Optional[Sequence[str]] = None,
    ) -> None:
        """여러 메시지의 라벨을 일괄 변경합니다."""
        body = {"ids": list(message_ids)}
        if add_label_ids:
            body["addLabelIds"] = list(add_label_ids)
        if remove_label_ids:
            body["removeLabelIds"] = list(remove_label_ids)

        await self.request(account, "messages/batchModify", method="POST", json=body)
        self.logger.debug(f"라벨 일괄 변경 성공: {len(body['ids'])}개 메시지")
