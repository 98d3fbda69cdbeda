"""
Tests for the SQLAlchemy repositories and configuration
"""
import pytest
from sqlalchemy import event, select

import config.adapters as settings
from adapters.db.database import DatabaseAdapter, open_database
from adapters.db.models import AccountModel
from adapters.db.repositories import MessageRepositoryAdapter
from core.domain.entities import Account
from core.domain.exceptions import SyncInProgressError
from core.usecases.account_locks import AccountLockRegistry
from tests.conftest import make_message


@pytest.mark.asyncio
async def test_tokens_are_encrypted_at_rest(factory, session, account):
    result = await session.execute(select(AccountModel).where(AccountModel.id == str(account.id)))
    model = result.scalar_one()

    assert model.refresh_token != "refresh-token-1"
    assert model.access_token != account.access_token

    stored = await factory.create_account_repository(session).get_by_id(account.id)
    assert stored.refresh_token == "refresh-token-1"


@pytest.mark.asyncio
async def test_register_rejects_duplicate_email(factory, session, account):
    usecase = factory.create_account_management_usecase(session)

    with pytest.raises(ValueError):
        await usecase.register_account(email="USER@example.com", refresh_token="another")


@pytest.mark.asyncio
async def test_cursor_round_trip_and_reset(factory, session, account):
    repository = factory.create_account_repository(session)

    account.mark_full_sync("4242")
    await repository.update(account)
    stored = await repository.get_by_id(account.id)
    assert stored.sync_cursor == "4242"
    assert not stored.needs_full_sync()

    usecase = factory.create_account_management_usecase(session)
    reset = await usecase.reset_sync_state(account.id)
    assert reset.needs_full_sync()
    assert reset.last_full_sync_at is not None


@pytest.mark.asyncio
async def test_update_credentials_drops_access_token(factory, session, account):
    usecase = factory.create_account_management_usecase(session)

    updated = await usecase.update_credentials(account.id, "refresh-token-9")

    assert updated.refresh_token == "refresh-token-9"
    assert updated.access_token is None
    assert not updated.has_valid_access_token()


@pytest.mark.asyncio
async def test_list_accounts(factory, session, account):
    repository = factory.create_account_repository(session)
    await repository.create(Account(email="second@example.com", refresh_token="r2"))

    accounts = await factory.create_account_management_usecase(session).list_accounts()
    assert {a.email for a in accounts} == {"user@example.com", "second@example.com"}


@pytest.mark.asyncio
async def test_lock_registry_releases_after_error():
    registry = AccountLockRegistry()
    account = Account(email="lock@example.com")

    with pytest.raises(RuntimeError):
        async with registry.hold(account.id):
            assert registry.is_locked(account.id)
            with pytest.raises(SyncInProgressError):
                async with registry.hold(account.id):
                    pass
            raise RuntimeError("boom")

    assert not registry.is_locked(account.id)


def test_sync_options_from_settings():
    config = settings.TestingConfig(sync_label_ids="INBOX, UNREAD ,", sync_page_size=50)
    options = config.get_sync_options()

    assert options.full_sync_label_ids == ["INBOX", "UNREAD"]
    assert options.page_size == 50
    assert options.rate_limit_delay == 0.0

    assert settings.TestingConfig(sync_label_ids="").get_sync_options().full_sync_label_ids == []


def test_encryption_key_is_normalized():
    assert len(settings.DevelopmentConfig(encryption_key="short").get_encryption_key()) == 32


def test_production_rejects_sqlite():
    with pytest.raises(ValueError):
        settings.ProductionConfig(
            database_url="sqlite+aiosqlite:///./prod.db",
            google_client_id="id",
            google_client_secret="secret",
            encryption_key="k" * 32,
        )


@pytest.mark.asyncio
async def test_list_by_account_limits_in_query(factory, session, account, db_adapter, monkeypatch):
    mirror = factory.create_mirror_upsert_usecase(session)
    for index in range(7):
        labels = ("INBOX", "Label_1") if index % 2 == 0 else ("INBOX",)
        await mirror.upsert_message(
            account,
            make_message(f"m{index}", internal_date=str(1700000000000 + index * 1000), labels=labels),
        )
    monkeypatch.setattr(MessageRepositoryAdapter, "LIST_BATCH_SIZE", 2)

    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT") and "messages" in statement:
            statements.append(statement)

    engine = db_adapter.engine.sync_engine
    event.listen(engine, "before_cursor_execute", record)
    try:
        repository = factory.create_message_repository(session)
        newest = await repository.list_by_account(account.id, limit=3)
        labelled = await repository.list_by_account(account.id, limit=3, label_id="Label_1")
        everything = await repository.list_by_account(account.id, limit=10, label_id="Label_1")
    finally:
        event.remove(engine, "before_cursor_execute", record)

    assert [m.remote_message_id for m in newest] == ["m6", "m5", "m4"]
    assert [m.remote_message_id for m in labelled] == ["m6", "m4", "m2"]
    assert [m.remote_message_id for m in everything] == ["m6", "m4", "m2", "m0"]
    assert statements
    assert all("LIMIT" in statement.upper() for statement in statements)


@pytest.mark.asyncio
async def test_open_database_closes_engine_on_failure(config, monkeypatch):
    closed = []
    original_close = DatabaseAdapter.close

    async def record_close(self):
        closed.append(self)
        await original_close(self)

    monkeypatch.setattr(DatabaseAdapter, "close", record_close)

    with pytest.raises(RuntimeError):
        async with open_database(config) as db_adapter:
            assert db_adapter.engine is not None
            raise RuntimeError("command failed")

    assert closed == [db_adapter]
