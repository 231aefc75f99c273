from datetime import datetime

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field

from mailhub.core.modules.mailbox.models import MailboxView
from mailhub.utils import now
from mailhub.web.deps import AUTH_COOKIE_NAME, AppDep, AuthTokenDep
from mailhub.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class MagicLinkLoginRequest(BaseModel):
    """Magic link redemption request."""

    token: str = Field(..., min_length=1, description="Token from the magic link")


class MagicLinkLoginResponse(BaseModel):
    """Session issued for the mailbox bound to the link."""

    token: str = Field(..., description="Session token for subsequent requests")
    expires_at: datetime = Field(..., description="Session expiry")
    mailbox: MailboxView


@router.post(
    "/auth/magic-link",
    summary="Log in with a magic link",
    description="Redeem a single-use magic link token for a session. The token cannot be used again.",
    operation_id="redeemMagicLink",
    responses={
        200: {"description": "Successfully authenticated"},
        400: {"model": ErrorResponse, "description": "Unknown token"},
        401: {"model": ErrorResponse, "description": "Token expired or already used"},
        403: {"model": ErrorResponse, "description": "Mailbox deactivated"},
    },
)
async def redeem_magic_link(
    login_data: MagicLinkLoginRequest, app: AppDep, request: Request, response: Response
) -> MagicLinkLoginResponse:
    login = await app.redeem_magic_link(login_data.token)

    # Cookie for browser-based clients, lives as long as the session
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=login.auth_token,
        httponly=True,
        samesite="strict",
        secure=request.url.scheme == "https",
        max_age=max(int((login.expires_at - now()).total_seconds()), 0),
    )

    return MagicLinkLoginResponse(token=login.auth_token, expires_at=login.expires_at, mailbox=login.mailbox)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Invalidate the current session.",
    operation_id="logout",
    status_code=204,
    responses={
        204: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout(app: AppDep, auth_token: AuthTokenDep, response: Response) -> None:
    await app.logout(auth_token)
    response.delete_cookie(AUTH_COOKIE_NAME)
