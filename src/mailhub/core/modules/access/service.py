import secrets

from mailhub.core.core import Service
from mailhub.core.modules.mailbox.models import Mailbox
from mailhub.core.modules.session.models import AuthToken
from mailhub.errors import AccessDeniedError, AuthenticationError


class AccessService(Service):
    async def ensure_authenticated(self, auth_token: AuthToken) -> Mailbox:
        """Ensure the session is valid and return its mailbox."""
        return await self.core.services.session.get_authenticated_mailbox(auth_token)

    def ensure_admin(self, api_key: str | None) -> None:
        """Ensure the caller presented the administrative API key."""
        if not api_key:
            raise AuthenticationError("Admin API key required")
        if not secrets.compare_digest(api_key.encode("utf-8"), self.core.config.admin_api_key.encode("utf-8")):
            raise AccessDeniedError("Admin privileges required")
