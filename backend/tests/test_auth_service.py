"""
SmartQuery Backend: Auth Service Tests (SQLite)
===============================================

What we test:
    ✅ Registration stores a bcrypt hash, never the password
    ✅ Duplicate usernames are rejected with ConflictError
    ✅ Blank credentials are rejected before touching the store
    ✅ Login issues a token for the right user
    ✅ Unknown user → ValidationError, wrong password → AuthError 403
    ✅ Store failures surface as StoreUnavailableError
"""

import pytest
from sqlalchemy.exc import OperationalError

from smartquery.exceptions import AuthError, ConflictError, StoreUnavailableError, ValidationError
from smartquery.security import decode_access_token
from smartquery.services.auth_service import auth_service


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_hashes_password(self, db_session):
        user = await auth_service.register(db_session, "carol", "hunter2")
        assert user.id is not None
        assert user.username == "carol"
        assert user.password_hash != "hunter2"
        assert user.password_hash.startswith("$2")

    @pytest.mark.asyncio
    async def test_username_is_trimmed(self, db_session):
        user = await auth_service.register(db_session, "  carol  ", "hunter2")
        assert user.username == "carol"

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, db_session, alice):
        with pytest.raises(ConflictError):
            await auth_service.register(db_session, "alice", "another")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username,password", [("", "pw"), ("carol", ""), ("   ", "pw")])
    async def test_blank_credentials_rejected(self, mock_db_session, username, password):
        with pytest.raises(ValidationError):
            await auth_service.register(mock_db_session, username, password)
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        with pytest.raises(StoreUnavailableError):
            await auth_service.register(mock_db_session, "carol", "hunter2")


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_returns_token_for_user(self, db_session, alice):
        token = await auth_service.login(db_session, "alice", "wonderland")
        claims = decode_access_token(token)
        assert claims.user_id == alice.id
        assert claims.username == "alice"

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await auth_service.login(db_session, "nobody", "pw")
        assert exc_info.value.message == "Cannot find user."

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, alice):
        with pytest.raises(AuthError) as exc_info:
            await auth_service.login(db_session, "alice", "not-wonderland")
        assert exc_info.value.status_code == 403


class TestPasswordLength:
    """bcrypt refuses input over 72 bytes; the service answers 400 first."""

    @pytest.mark.asyncio
    async def test_register_rejects_100_char_password(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await auth_service.register(mock_db_session, "longpw", "p" * 100)
        assert exc_info.value.field == "password"
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_limit_counts_bytes_not_characters(self, mock_db_session):
        # 37 two-byte characters: 74 bytes
        with pytest.raises(ValidationError):
            await auth_service.register(mock_db_session, "accent", "é" * 37)

    @pytest.mark.asyncio
    async def test_72_byte_password_accepted(self, db_session):
        user = await auth_service.register(db_session, "edge", "p" * 72)
        token = await auth_service.login(db_session, "edge", "p" * 72)
        assert decode_access_token(token).user_id == user.id

    @pytest.mark.asyncio
    async def test_login_rejects_long_password(self, db_session, alice):
        with pytest.raises(ValidationError):
            await auth_service.login(db_session, "alice", "p" * 100)
