"""
Tests for message normalization and mirror upserts
"""
import pytest

from core.domain.entities import MessagePart
from core.usecases.mirror_upsert import (
    build_message_update,
    extract_bodies,
    parse_internal_date,
    pick_header,
    url_safe_decode,
)
from tests.conftest import b64url, make_message


class TestUrlSafeDecode:

    def test_decodes_url_safe_alphabet(self):
        # "~~~" -> "fn5+" and "???" -> "Pz8/" in the standard alphabet
        assert url_safe_decode("fn5-") == "~~~"
        assert url_safe_decode("Pz8_") == "???"

    def test_restores_missing_padding(self):
        assert url_safe_decode("aGk") == "hi"

    def test_round_trips_unicode(self):
        text = "안녕하세요 >>> ??? ~~~"
        assert url_safe_decode(b64url(text)) == text

    def test_empty_input(self):
        assert url_safe_decode(None) is None
        assert url_safe_decode("") is None


class TestHeaders:

    def test_pick_header_is_case_insensitive_and_first_wins(self):
        headers = [
            {"name": "SUBJECT", "value": "first"},
            {"name": "subject", "value": "second"},
        ]
        assert pick_header(headers, "Subject") == "first"

    def test_pick_header_missing(self):
        assert pick_header([{"name": "From", "value": "a@b.c"}], "Subject") is None
        assert pick_header(None, "Subject") is None

    def test_stored_header_map_keeps_first_value_per_name(self):
        remote = {
            "id": "dup",
            "payload": {
                "headers": [
                    {"name": "Delivered-To", "value": "first@example.com"},
                    {"name": "Delivered-To", "value": "second@example.com"},
                    {"name": "subject", "value": "lower"},
                    {"name": "Subject", "value": "upper"},
                    {"name": "X-Trace", "value": "a"},
                    {"name": "x-trace", "value": "b"},
                ],
            },
        }

        update = build_message_update(remote)
        stored = update.to_document()["headers"]

        assert stored == {
            "Delivered-To": "first@example.com",
            "Subject": "lower",
            "X-Trace": "a",
        }
        assert update.subject == stored["Subject"]


class TestExtractBodies:

    def test_depth_first_first_match_wins(self):
        payload = {
            "mimeType": "multipart/mixed",
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [
                        {"mimeType": "text/plain", "body": {"data": b64url("first plain")}},
                        {"mimeType": "text/html", "body": {"data": b64url("<b>first</b>")}},
                    ],
                },
                {"mimeType": "text/plain", "body": {"data": b64url("second plain")}},
                {"mimeType": "text/html", "body": {"data": b64url("<b>second</b>")}},
            ],
        }
        bodies = extract_bodies(MessagePart.from_payload(payload))

        assert bodies == {"text/plain": "first plain", "text/html": "<b>first</b>"}

    def test_single_part_message(self):
        payload = {"mimeType": "text/plain", "body": {"data": b64url("only body")}}
        assert extract_bodies(MessagePart.from_payload(payload)) == {"text/plain": "only body"}

    def test_no_payload(self):
        assert extract_bodies(None) == {}


class TestBuildMessageUpdate:

    def test_full_message_fields(self):
        document = build_message_update(make_message("m1", subject="Greetings")).to_document()

        assert document["subject"] == "Greetings"
        assert document["sender"] == "sender@example.com"
        assert document["recipients"] == "user@example.com"
        assert document["thread_id"] == "thread-m1"
        assert document["label_ids"] == ["INBOX"]
        assert document["plain_body"] == "plain body"
        assert document["html_body"] == "<p>html body</p>"
        assert document["sent_at"] == parse_internal_date("1700000000000")
        assert document["headers"]["Date"] == "Tue, 14 Nov 2023 22:13:20 +0000"

    def test_missing_header_is_omitted_not_nulled(self):
        document = build_message_update(make_message("m1", subject=None)).to_document()
        assert "subject" not in document

    def test_metadata_update_never_carries_body(self):
        document = build_message_update(make_message("m1"), replace_body=False).to_document()

        assert "plain_body" not in document
        assert "html_body" not in document
        assert document["label_ids"] == ["INBOX"]

    def test_parse_internal_date(self):
        parsed = parse_internal_date("1700000000000")
        assert (parsed.year, parsed.month, parsed.day) == (2023, 11, 14)
        assert parse_internal_date("not-a-number") is None


@pytest.mark.asyncio
class TestMirrorUpsertUseCase:

    async def test_upsert_is_idempotent(self, factory, session, account):
        mirror = factory.create_mirror_upsert_usecase(session)
        repository = factory.create_message_repository(session)

        await mirror.upsert_message(account, make_message("m1"))
        first = await repository.get_by_remote_id(account.id, "m1")
        await mirror.upsert_message(account, make_message("m1"))
        second = await repository.get_by_remote_id(account.id, "m1")

        assert await repository.count_by_account(account.id) == 1
        assert first.model_dump(exclude={"last_synced_at"}) == second.model_dump(exclude={"last_synced_at"})

    async def test_metadata_upsert_keeps_stored_body(self, factory, session, account):
        mirror = factory.create_mirror_upsert_usecase(session)
        repository = factory.create_message_repository(session)

        await mirror.upsert_message(account, make_message("m1"))

        partial = make_message("m1", labels=("INBOX", "STARRED"))
        del partial["payload"]["parts"]
        await mirror.upsert_message(account, partial, replace_body=False)

        stored = await repository.get_by_remote_id(account.id, "m1")
        assert stored.label_ids == ["INBOX", "STARRED"]
        assert stored.plain_body == "plain body"
        assert stored.html_body == "<p>html body</p>"

    async def test_delete_messages(self, factory, session, account):
        mirror = factory.create_mirror_upsert_usecase(session)
        repository = factory.create_message_repository(session)

        await mirror.upsert_message(account, make_message("m1"))
        await mirror.upsert_message(account, make_message("m2"))

        assert await mirror.delete_messages(account, ["m1", "unknown"]) == 1
        assert await mirror.delete_messages(account, []) == 0
        assert await repository.get_by_remote_id(account.id, "m1") is None
        assert await repository.count_by_account(account.id) == 1

    async def test_upsert_labels(self, factory, session, account, fake_gmail):
        mirror = factory.create_mirror_upsert_usecase(session)
        repository = factory.create_label_repository(session)

        assert await mirror.upsert_labels(account, fake_gmail.labels) == 3
        assert await mirror.upsert_labels(account, fake_gmail.labels) == 3

        labels = await repository.list_by_account(account.id)
        assert [label.name for label in labels] == ["INBOX", "Receipts", "UNREAD"]

        receipts = await repository.get_by_remote_id(account.id, "Label_1")
        assert receipts.kind.value == "user"
        assert receipts.color.background_color == "#ffffff"
