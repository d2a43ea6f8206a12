"""
SmartQuery Backend: Share Registry Tests (SQLite)
=================================================

What we test:
    ✅ Tokens are URL-safe, long enough and distinct
    ✅ A snapshot copies title and SQL at share time
    ✅ Snapshots ignore later edits and deletion of the source query
    ✅ Only the owner can share; foreign and missing ids are not found
    ✅ A token collision is retried with a fresh token
    ✅ Share links honour public_base_url
"""

import re
import uuid
from unittest.mock import patch

import pytest

from smartquery.exceptions import NotFoundError
from smartquery.models.share import SharedSnapshot
from smartquery.services.query_service import query_service
from smartquery.services.share_service import generate_share_token, share_service

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestShareTokens:

    def test_tokens_are_url_safe_and_long(self):
        token = generate_share_token()
        assert URL_SAFE.match(token)
        # 16 random bytes (128 bits) encode to at least 22 characters
        assert len(token) >= 22

    def test_tokens_do_not_repeat(self):
        tokens = {generate_share_token() for _ in range(500)}
        assert len(tokens) == 500


class TestCreateShare:

    @pytest.mark.asyncio
    async def test_snapshot_copies_current_state(self, db_session, alice):
        query = await query_service.create_query(db_session, alice.id, "Revenue", "SELECT sum(x) FROM t")

        snapshot = await share_service.create_share(db_session, alice.id, query.id)

        assert snapshot.title == "Revenue"
        assert snapshot.query_text == "SELECT sum(x) FROM t"
        assert snapshot.original_owner_id == alice.id

    @pytest.mark.asyncio
    async def test_each_share_gets_a_new_token(self, db_session, alice):
        query = await query_service.create_query(db_session, alice.id, "Twice", "SELECT 1")

        first = await share_service.create_share(db_session, alice.id, query.id)
        second = await share_service.create_share(db_session, alice.id, query.id)

        assert first.share_token != second.share_token

    @pytest.mark.asyncio
    async def test_snapshot_ignores_later_edits_and_deletion(self, db_session, alice):
        query = await query_service.create_query(db_session, alice.id, "Original", "SELECT 1")
        snapshot = await share_service.create_share(db_session, alice.id, query.id)
        token = snapshot.share_token
        await db_session.commit()

        await query_service.update_query(db_session, alice.id, query.id, "Edited", "SELECT 2")
        await query_service.delete_query(db_session, alice.id, query.id)
        await db_session.commit()
        db_session.expunge_all()

        reloaded = await share_service.get_share(db_session, token)
        assert (reloaded.title, reloaded.query_text) == ("Original", "SELECT 1")

    @pytest.mark.asyncio
    async def test_non_owner_cannot_share(self, db_session, alice, bob):
        query = await query_service.create_query(db_session, alice.id, "Private", "SELECT 1")

        with pytest.raises(NotFoundError):
            await share_service.create_share(db_session, bob.id, query.id)

    @pytest.mark.asyncio
    async def test_missing_query_cannot_be_shared(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await share_service.create_share(db_session, alice.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_token_collision_is_retried(self, db_session, alice):
        query = await query_service.create_query(db_session, alice.id, "Lucky", "SELECT 1")
        db_session.add(SharedSnapshot(
            share_token="taken-token", title="Other", query_text="SELECT 0",
            original_owner_id=alice.id,
        ))
        await db_session.commit()
        db_session.expunge_all()

        with patch(
            "smartquery.services.share_service.generate_share_token",
            side_effect=["taken-token", "fresh-token"],
        ):
            snapshot = await share_service.create_share(db_session, alice.id, query.id)

        assert snapshot.share_token == "fresh-token"
        assert (await share_service.get_share(db_session, "taken-token")).title == "Other"


class TestGetShare:

    @pytest.mark.asyncio
    async def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError):
            await share_service.get_share(db_session, "does-not-exist")


class TestBuildShareLink:

    def test_uses_request_base_url(self):
        link = share_service.build_share_link("abc", "http://test/")
        assert link == "http://test/share/abc"

    def test_public_base_url_wins(self):
        with patch("smartquery.services.share_service.settings") as mock_settings:
            mock_settings.public_base_url = "https://smartquery.example.com/"
            link = share_service.build_share_link("abc", "http://internal:8000/")
        assert link == "https://smartquery.example.com/share/abc"
