"""
Shared test fixtures

In-memory SQLite database, a fake Gmail/OAuth server served through
httpx.MockTransport, and an AdapterFactory wired to both.
"""
import base64
import copy
import json
from datetime import timedelta
from typing import Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from adapters.db.database import DatabaseAdapter
from adapters.factory import AdapterFactory
from config.adapters import TestingConfig
from core.domain.entities import utcnow
from core.usecases.account_locks import AccountLockRegistry

VALID_ACCESS_TOKEN = "valid-access-token"
REFRESHED_ACCESS_TOKEN = "refreshed-access-token"
GMAIL_PREFIX = "/gmail/v1/users/me/"


def b64url(text: str) -> str:
    """Gmail style base64url without padding"""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def make_message(
    message_id: str,
    subject: Optional[str] = "Hello",
    labels=("INBOX",),
    internal_date: str = "1700000000000",
    plain: Optional[str] = "plain body",
    html: Optional[str] = "<p>html body</p>",
    history_id: str = "100",
) -> dict:
    """Gmail API message resource in 'full' format"""
    headers = [
        {"name": "From", "value": "sender@example.com"},
        {"name": "To", "value": "user@example.com"},
        {"name": "Date", "value": "Tue, 14 Nov 2023 22:13:20 +0000"},
    ]
    if subject is not None:
        headers.append({"name": "Subject", "value": subject})

    parts = []
    if plain is not None:
        parts.append({"mimeType": "text/plain", "body": {"data": b64url(plain)}})
    if html is not None:
        parts.append({"mimeType": "text/html", "body": {"data": b64url(html)}})

    return {
        "id": message_id,
        "threadId": f"thread-{message_id}",
        "labelIds": list(labels),
        "snippet": f"snippet of {message_id}",
        "historyId": history_id,
        "internalDate": internal_date,
        "sizeEstimate": 1024,
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": headers,
            "parts": parts,
        },
    }


class FakeGmail:
    """Minimal in-memory Gmail REST API and Google token endpoint"""

    def __init__(self):
        self.history_id = "100"
        self.labels: List[dict] = [
            {"id": "INBOX", "name": "INBOX", "type": "system"},
            {"id": "UNREAD", "name": "UNREAD", "type": "system"},
            {
                "id": "Label_1",
                "name": "Receipts",
                "type": "user",
                "color": {"textColor": "#000000", "backgroundColor": "#ffffff"},
            },
        ]
        self.messages: Dict[str, dict] = {}
        self.history_pages: List[dict] = []
        self.history_expired = False
        self.message_failures: Dict[str, int] = {}
        self.refresh_status = 200
        self.refresh_response = {"access_token": REFRESHED_ACCESS_TOKEN, "expires_in": 3600}
        self.accepted_tokens = {VALID_ACCESS_TOKEN, REFRESHED_ACCESS_TOKEN}
        self.requests: List[httpx.Request] = []
        self.refresh_requests: List[dict] = []
        self.batch_modify_bodies: List[dict] = []

    def add_message(self, message: dict) -> None:
        self.messages[message["id"]] = message

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == GMAIL_PREFIX + path]

    def message_fetches(self) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.path.startswith(GMAIL_PREFIX + "messages/")
            and r.url.path != GMAIL_PREFIX + "messages/batchModify"
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host == "oauth2.googleapis.com":
            return self._token(request)

        auth = request.headers.get("Authorization", "")
        if auth.removeprefix("Bearer ") not in self.accepted_tokens:
            return httpx.Response(401, json={"error": {"code": 401, "message": "invalid token"}})

        path = request.url.path.removeprefix(GMAIL_PREFIX)
        params = request.url.params

        if path == "profile":
            return httpx.Response(200, json={"emailAddress": "user@example.com", "historyId": self.history_id})
        if path == "labels":
            return httpx.Response(200, json={"labels": self.labels})
        if path == "messages":
            return self._list_messages(params)
        if path == "messages/batchModify":
            return self._batch_modify(request)
        if path.startswith("messages/"):
            return self._get_message(path.split("/", 1)[1], params)
        if path == "history":
            return self._history(params)

        return httpx.Response(404, json={"error": {"code": 404, "message": "not found"}})

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.refresh_requests.append(form)
        if self.refresh_status != 200:
            return httpx.Response(self.refresh_status, json={"error": "invalid_grant"})
        return httpx.Response(200, json=self.refresh_response)

    def _list_messages(self, params: httpx.QueryParams) -> httpx.Response:
        wanted = params.get_list("labelIds")
        matching = [
            message for message in self.messages.values()
            if all(label in message["labelIds"] for label in wanted)
        ]
        offset = int(params.get("pageToken") or 0)
        size = int(params.get("maxResults") or 100)
        page = matching[offset:offset + size]

        body = {"messages": [{"id": m["id"], "threadId": m["threadId"]} for m in page]}
        if offset + size < len(matching):
            body["nextPageToken"] = str(offset + size)
        return httpx.Response(200, json=body)

    def _get_message(self, message_id: str, params: httpx.QueryParams) -> httpx.Response:
        if message_id in self.message_failures:
            status = self.message_failures[message_id]
            return httpx.Response(status, json={"error": {"code": status, "message": "failure"}})
        if message_id not in self.messages:
            return httpx.Response(404, json={"error": {"code": 404, "message": "not found"}})

        message = copy.deepcopy(self.messages[message_id])
        if params.get("format") == "metadata":
            wanted = {name.lower() for name in params.get_list("metadataHeaders")}
            headers = [h for h in message["payload"]["headers"] if h["name"].lower() in wanted]
            message["payload"] = {"mimeType": message["payload"]["mimeType"], "headers": headers}
        return httpx.Response(200, json=message)

    def _history(self, params: httpx.QueryParams) -> httpx.Response:
        if self.history_expired:
            return httpx.Response(404, json={"error": {"code": 404, "message": "Requested entity was not found."}})

        index = int(params.get("pageToken") or 0)
        page = dict(self.history_pages[index]) if index < len(self.history_pages) else {}
        page.setdefault("historyId", self.history_id)
        if index + 1 < len(self.history_pages):
            page["nextPageToken"] = str(index + 1)
        return httpx.Response(200, json=page)

    def _batch_modify(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.batch_modify_bodies.append(body)
        for message_id in body["ids"]:
            message = self.messages.get(message_id)
            if message is None:
                continue
            for label in body.get("addLabelIds", []):
                if label not in message["labelIds"]:
                    message["labelIds"].append(label)
        return httpx.Response(204)


@pytest.fixture
def config():
    return TestingConfig()


@pytest.fixture
def fake_gmail():
    return FakeGmail()


@pytest_asyncio.fixture
async def http_client(fake_gmail):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_gmail.handler))
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def db_adapter(config):
    adapter = DatabaseAdapter(config)
    await adapter.initialize()
    await adapter.create_tables()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def session(db_adapter):
    async with db_adapter.get_session() as session:
        yield session


@pytest.fixture
def lock_registry():
    return AccountLockRegistry()


@pytest.fixture
def factory(config, http_client, lock_registry):
    return AdapterFactory(config, http_client=http_client, lock_registry=lock_registry)


@pytest_asyncio.fixture
async def account(factory, session):
    """Registered account holding a still-valid access token"""
    usecase = factory.create_account_management_usecase(session)
    return await usecase.register_account(
        email="user@example.com",
        refresh_token="refresh-token-1",
        display_name="Test User",
        access_token=VALID_ACCESS_TOKEN,
        token_expiry=utcnow() + timedelta(hours=1),
    )
