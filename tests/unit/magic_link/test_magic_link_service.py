"""Tests for magic-link issuance and redemption."""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from mailhub.core.modules.magic_link.models import MagicLink
from mailhub.core.modules.realtime.notifier import NEW_EMAIL_EVENT
from mailhub.errors import (
    AlreadyUsedTokenError,
    AuthenticationError,
    ExpiredTokenError,
    InactiveAccountError,
    InvalidTokenError,
    NotFoundError,
)
from mailhub.utils import now


class TestIssue:
    """Tests for MagicLinkService.issue."""

    async def test_new_token(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)

        assert link.mailbox_id == mailbox.id
        assert len(link.token) == 64
        assert int(link.token, 16) >= 0
        assert link.used is False
        assert link.expires_at - link.created_at >= timedelta(days=364)

    async def test_outstanding_token_reused(self, core, mailbox_factory):
        """Test that issuing twice returns the same still-valid token."""
        mailbox = await mailbox_factory()
        first = await core.services.magic_link.issue(mailbox.id)
        second = await core.services.magic_link.issue(mailbox.id)

        assert second.token == first.token
        assert len(core.database.get_collection("magic_links").documents) == 1

    async def test_tokens_unique_across_mailboxes(self, core, mailbox_factory):
        alice = await mailbox_factory("alice@bltnm.store")
        bob = await mailbox_factory("bob@bltnm.store")

        alice_link = await core.services.magic_link.issue(alice.id)
        bob_link = await core.services.magic_link.issue(bob.id)

        assert alice_link.token != bob_link.token

    async def test_new_token_after_redemption(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        first = await core.services.magic_link.issue(mailbox.id)
        await core.services.magic_link.redeem(first.token)

        second = await core.services.magic_link.issue(mailbox.id)
        assert second.token != first.token

    async def test_expired_token_not_reused(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        stale = MagicLink(mailbox_id=mailbox.id, token="a" * 64, expires_at=now() - timedelta(days=1))
        await core.database.get_collection("magic_links").insert_one(stale.to_mongo())

        link = await core.services.magic_link.issue(mailbox.id)
        assert link.token != stale.token

    async def test_unknown_mailbox(self, core):
        with pytest.raises(NotFoundError):
            await core.services.magic_link.issue(uuid4())

    async def test_inactive_mailbox(self, core, mailbox_factory):
        mailbox = await mailbox_factory(is_active=False)
        with pytest.raises(InactiveAccountError):
            await core.services.magic_link.issue(mailbox.id)

    def test_build_url(self, core):
        assert core.services.magic_link.build_url("abc") == "https://inbox.bltnm.store/magic-login?token=abc"


class TestRedeem:
    """Tests for MagicLinkService.redeem."""

    async def test_redeem_creates_session(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)

        login = await core.services.magic_link.redeem(link.token)

        assert login.mailbox.id == mailbox.id
        assert login.mailbox.address == "alice@bltnm.store"
        authenticated = await core.services.session.get_authenticated_mailbox(login.auth_token)
        assert authenticated.id == mailbox.id

    async def test_session_expiry_independent_of_link(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)

        login = await core.services.magic_link.redeem(link.token)

        assert login.expires_at < link.expires_at
        assert login.expires_at - now() <= timedelta(hours=24)

    async def test_token_single_use(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)
        await core.services.magic_link.redeem(link.token)

        with pytest.raises(AlreadyUsedTokenError):
            await core.services.magic_link.redeem(link.token)

        stored = MagicLink.from_mongo(await core.database.get_collection("magic_links").find_one({"token": link.token}))
        assert stored is not None
        assert stored.used is True
        assert stored.used_at is not None

    async def test_expired_token(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        expired = MagicLink(mailbox_id=mailbox.id, token="b" * 64, expires_at=now() - timedelta(seconds=1))
        await core.database.get_collection("magic_links").insert_one(expired.to_mongo())

        with pytest.raises(ExpiredTokenError):
            await core.services.magic_link.redeem(expired.token)

    async def test_unknown_token(self, core):
        with pytest.raises(InvalidTokenError):
            await core.services.magic_link.redeem("c" * 64)

    async def test_empty_token(self, core):
        with pytest.raises(InvalidTokenError):
            await core.services.magic_link.redeem("")

    async def test_inactive_mailbox_consumes_token(self, core, mailbox_factory):
        """Test that a token of a deactivated mailbox is used up without a session."""
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)
        await core.services.mailbox.set_active(mailbox.id, False)

        with pytest.raises(InactiveAccountError):
            await core.services.magic_link.redeem(link.token)
        with pytest.raises(AlreadyUsedTokenError):
            await core.services.magic_link.redeem(link.token)
        assert core.database.get_collection("sessions").documents == []

    async def test_concurrent_redemption_single_winner(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)

        results = await asyncio.gather(
            *(core.services.magic_link.redeem(link.token) for _ in range(5)),
            return_exceptions=True,
        )

        winners = [result for result in results if not isinstance(result, Exception)]
        assert len(winners) == 1
        assert all(isinstance(result, AlreadyUsedTokenError) for result in results if isinstance(result, Exception))

    async def test_session_invalid_after_logout(self, core, mailbox_factory):
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)
        login = await core.services.magic_link.redeem(link.token)

        await core.services.session.invalidate_session(login.auth_token)

        with pytest.raises(AuthenticationError):
            await core.services.session.get_authenticated_mailbox(login.auth_token)


class TestEmailLink:
    """Tests for mailing a magic link."""

    async def test_relay_failure_reported_not_raised(self, core, mailbox_factory):
        """Test that a relay outage leaves a usable token with emailed=False."""
        mailbox = await mailbox_factory()

        issued = await core.services.magic_link.email_link(mailbox.id)

        assert issued.emailed is False
        assert issued.url.endswith(issued.token)
        login = await core.services.magic_link.redeem(issued.token)
        assert login.mailbox.id == mailbox.id

    async def test_link_mailed(self, core, mailbox_factory, smtp_client):
        mailbox = await mailbox_factory()
        core.services.mailer._client = smtp_client

        issued = await core.services.magic_link.email_link(mailbox.id)

        assert issued.emailed is True
        [message] = smtp_client.sent
        assert message["To"] == "alice@bltnm.store"
        assert message["From"] == "noreply@bltnm.store"
        assert message["Subject"] == "Your Magic Login Link"
        assert issued.url in message.get_body(preferencelist=("plain",)).get_content()


class TestEndToEnd:
    """Login through a magic link, then receive a live message."""

    async def test_login_register_and_receive(self, core, mailbox_factory, emitter):
        mailbox = await mailbox_factory()
        link = await core.services.magic_link.issue(mailbox.id)
        login = await core.services.magic_link.redeem(link.token)

        core.services.realtime.register("sid-1", str(login.mailbox.id))
        record = await core.services.message.deliver(
            mailbox, from_address="bob@example.com", subject="Hi", body="Hello Alice"
        )

        [(event, payload)] = emitter.received_by("sid-1")
        assert event == NEW_EMAIL_EVENT
        assert payload["id"] == str(record.id)
        assert payload["subject"] == "Hi"
        assert payload["to_address"] == "alice@bltnm.store"
