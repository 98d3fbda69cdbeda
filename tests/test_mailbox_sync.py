"""
Tests for the full/delta sync orchestration
"""
from uuid import uuid4

import pytest

from core.domain.entities import SyncMode, SyncOptions
from core.domain.exceptions import AccountNotFoundError, RemoteApiError, SyncInProgressError
from core.usecases.mailbox_sync import MailboxSyncUseCase
from tests.conftest import make_message


def refs(*ids):
    return [{"message": {"id": message_id}} for message_id in ids]


@pytest.fixture
def mailbox(fake_gmail):
    fake_gmail.add_message(make_message("m1", subject="First", internal_date="1700000000000"))
    fake_gmail.add_message(make_message("m2", subject="Second", internal_date="1700000100000", labels=("INBOX", "UNREAD")))
    fake_gmail.add_message(make_message("archived", labels=("Label_1",)))
    return fake_gmail


async def stored_account(factory, session, account_id):
    return await factory.create_account_repository(session).get_by_id(account_id)


async def stored_messages(factory, session, account_id):
    messages = await factory.create_message_repository(session).list_by_account(account_id, limit=100)
    return {message.remote_message_id: message for message in messages}


@pytest.mark.asyncio
async def test_first_sync_is_full_and_sets_cursor(factory, session, account, mailbox):
    usecase = factory.create_mailbox_sync_usecase(session)

    summary = await usecase.sync_mailbox(account.id)

    assert summary.mode == SyncMode.FULL
    assert summary.upserted_count == 2
    assert summary.deleted_count == 0

    messages = await stored_messages(factory, session, account.id)
    assert set(messages) == {"m1", "m2"}
    assert messages["m1"].plain_body == "plain body"

    stored = await stored_account(factory, session, account.id)
    assert stored.sync_cursor == "100"
    assert stored.last_full_sync_at is not None

    labels = await factory.create_label_repository(session).list_by_account(account.id)
    assert len(labels) == 3

    list_request = mailbox.requests_to("messages")[0]
    assert list_request.url.params.get_list("labelIds") == ["INBOX"]


@pytest.mark.asyncio
async def test_second_pass_without_changes(factory, session, account, mailbox):
    usecase = factory.create_mailbox_sync_usecase(session)
    await usecase.sync_mailbox(account.id)
    before = await stored_account(factory, session, account.id)

    summary = await usecase.sync_mailbox(account.id)

    assert summary.mode == SyncMode.DELTA
    assert (summary.upserted_count, summary.deleted_count) == (0, 0)
    after = await stored_account(factory, session, account.id)
    assert after.sync_cursor == before.sync_cursor == "100"


@pytest.mark.asyncio
async def test_forced_full_sync_is_idempotent(factory, session, account, mailbox):
    usecase = factory.create_mailbox_sync_usecase(session)

    await usecase.sync_mailbox(account.id)
    first = await stored_messages(factory, session, account.id)
    summary = await usecase.sync_mailbox(account.id, force_full=True)
    second = await stored_messages(factory, session, account.id)

    assert summary.mode == SyncMode.FULL
    assert set(first) == set(second)
    for message_id, message in first.items():
        assert message.model_dump(exclude={"last_synced_at"}) == \
            second[message_id].model_dump(exclude={"last_synced_at"})


@pytest.mark.asyncio
async def test_delta_sync_applies_adds_deletes_and_label_changes(factory, session, account, mailbox):
    usecase = factory.create_mailbox_sync_usecase(session)
    await usecase.sync_mailbox(account.id)

    mailbox.add_message(make_message("m3", subject="Third", history_id="101"))
    del mailbox.messages["m1"]
    mailbox.messages["m2"]["labelIds"].append("STARRED")
    mailbox.history_pages = [
        {"history": [
            {"id": "101", "messagesAdded": refs("m3")},
            {"id": "102", "messagesDeleted": refs("m1")},
        ]},
        {"history": [
            {"id": "103", "labelsAdded": refs("m2")},
        ]},
    ]
    mailbox.requests.clear()

    summary = await usecase.sync_mailbox(account.id)

    assert summary.mode == SyncMode.DELTA
    assert summary.upserted_count == 2
    assert summary.deleted_count == 1

    messages = await stored_messages(factory, session, account.id)
    assert set(messages) == {"m2", "m3"}
    assert messages["m3"].subject == "Third"
    assert messages["m2"].label_ids == ["INBOX", "UNREAD", "STARRED"]
    # label-only change must not wipe the stored body
    assert messages["m2"].plain_body == "plain body"

    history_requests = mailbox.requests_to("history")
    assert len(history_requests) == 2
    for request in history_requests:
        assert request.url.params["startHistoryId"] == "100"
        assert request.url.params.get_list("historyTypes") == [
            "labelAdded", "labelRemoved", "messageAdded", "messageDeleted",
        ]
    assert history_requests[1].url.params["pageToken"] == "1"

    formats = {r.url.path.rsplit("/", 1)[1]: r.url.params["format"] for r in mailbox.message_fetches()}
    assert formats == {"m3": "full", "m2": "metadata"}

    stored = await stored_account(factory, session, account.id)
    assert stored.sync_cursor == "103"


@pytest.mark.asyncio
async def test_expired_cursor_falls_back_to_full_sync(factory, session, account, mailbox):
    usecase = factory.create_mailbox_sync_usecase(session)
    await usecase.sync_mailbox(account.id)

    mailbox.history_expired = True
    mailbox.history_id = "900"

    summary = await usecase.sync_mailbox(account.id)

    assert summary.mode == SyncMode.FULL
    assert summary.upserted_count == 2
    stored = await stored_account(factory, session, account.id)
    assert stored.sync_cursor == "900"


@pytest.mark.asyncio
async def test_failed_fetch_keeps_cursor(factory, session, account, mailbox):
    usecase = factory.create_mailbox_sync_usecase(session)
    await usecase.sync_mailbox(account.id)

    mailbox.add_message(make_message("m4"))
    mailbox.message_failures["m4"] = 500
    mailbox.history_pages = [{"history": [{"id": "150", "messagesAdded": refs("m4")}]}]

    with pytest.raises(RemoteApiError) as exc_info:
        await usecase.sync_mailbox(account.id)

    assert exc_info.value.status == 500
    stored = await stored_account(factory, session, account.id)
    assert stored.sync_cursor == "100"
    # earlier writes survive
    assert await factory.create_message_repository(session).count_by_account(account.id) == 2

    # the lock is released after a failure
    del mailbox.message_failures["m4"]
    summary = await usecase.sync_mailbox(account.id)
    assert summary.upserted_count == 1
    assert (await stored_account(factory, session, account.id)).sync_cursor == "150"


@pytest.mark.asyncio
async def test_full_sync_respects_page_size_and_limit(factory, session, account, fake_gmail):
    for index in range(5):
        fake_gmail.add_message(make_message(f"m{index}"))
    sleeps = []

    async def record_sleep(delay):
        sleeps.append(delay)

    usecase = MailboxSyncUseCase(
        account_repository=factory.create_account_repository(session),
        gmail_api_client=factory.create_gmail_api_client(session),
        mirror=factory.create_mirror_upsert_usecase(session),
        sync_options=SyncOptions(page_size=2, max_full_sync_messages=3, rate_limit_delay=0.2),
        logger=factory.create_logger(),
        lock_registry=factory.lock_registry,
        sleep=record_sleep,
    )

    summary = await usecase.sync_mailbox(account.id)

    assert summary.upserted_count == 3
    page_sizes = [r.url.params["maxResults"] for r in fake_gmail.requests_to("messages")]
    assert page_sizes == ["2", "1"]
    assert sleeps == [0.2, 0.2, 0.2]


@pytest.mark.asyncio
async def test_empty_label_filter_lists_whole_mailbox(factory, session, account, mailbox):
    usecase = MailboxSyncUseCase(
        account_repository=factory.create_account_repository(session),
        gmail_api_client=factory.create_gmail_api_client(session),
        mirror=factory.create_mirror_upsert_usecase(session),
        sync_options=SyncOptions(rate_limit_delay=0, full_sync_label_ids=[]),
        logger=factory.create_logger(),
        lock_registry=factory.lock_registry,
    )

    summary = await usecase.sync_mailbox(account.id)

    assert summary.upserted_count == 3
    assert "labelIds" not in mailbox.requests_to("messages")[0].url.params


@pytest.mark.asyncio
async def test_overlapping_sync_is_rejected(factory, session, account, mailbox, lock_registry):
    usecase = factory.create_mailbox_sync_usecase(session)

    async with lock_registry.hold(account.id):
        with pytest.raises(SyncInProgressError):
            await usecase.sync_mailbox(account.id)

    assert mailbox.requests == []
    assert not lock_registry.is_locked(account.id)


@pytest.mark.asyncio
async def test_unknown_account(factory, session):
    usecase = factory.create_mailbox_sync_usecase(session)
    with pytest.raises(AccountNotFoundError):
        await usecase.sync_mailbox(uuid4())
