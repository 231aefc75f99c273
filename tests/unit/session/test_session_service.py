"""Tests for mailbox sessions and access checks."""

from datetime import timedelta

import pytest

from mailhub.errors import AccessDeniedError, AuthenticationError
from mailhub.utils import now


class TestSessionService:
    """Tests for SessionService."""

    async def test_create_and_authenticate(self, core, mailbox_factory):
        mailbox = await mailbox_factory()

        session = await core.services.session.create_session(mailbox.id)

        assert session.expires_at - session.created_at == timedelta(hours=24)
        authenticated = await core.services.session.get_authenticated_mailbox(session.auth_token)
        assert authenticated.id == mailbox.id

    async def test_unknown_token(self, core):
        with pytest.raises(AuthenticationError):
            await core.services.session.get_authenticated_mailbox("nope")
        assert await core.services.session.is_auth_token_valid("nope") is False

    async def test_expired_session(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        session = await core.services.session.create_session(mailbox.id)
        await core.database.get_collection("sessions").update_one(
            {"auth_token": session.auth_token}, {"$set": {"expires_at": now() - timedelta(seconds=1)}}
        )

        assert await core.services.session.is_auth_token_valid(session.auth_token) is False

    async def test_deactivated_mailbox_loses_session(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        session = await core.services.session.create_session(mailbox.id)

        await core.services.mailbox.set_active(mailbox.id, False)

        with pytest.raises(AuthenticationError):
            await core.services.session.get_authenticated_mailbox(session.auth_token)

    async def test_invalidate(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        session = await core.services.session.create_session(mailbox.id)

        await core.services.session.invalidate_session(session.auth_token)

        assert await core.services.session.is_auth_token_valid(session.auth_token) is False


class TestAccessService:
    """Tests for admin key checks."""

    def test_valid_key(self, core):
        core.services.access.ensure_admin("admin-secret")

    def test_missing_key(self, core):
        with pytest.raises(AuthenticationError):
            core.services.access.ensure_admin(None)

    def test_wrong_key(self, core):
        with pytest.raises(AccessDeniedError):
            core.services.access.ensure_admin("guess")
