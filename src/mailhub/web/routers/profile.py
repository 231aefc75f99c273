from fastapi import APIRouter

from mailhub.core.modules.mailbox.models import MailboxView
from mailhub.web.deps import AppDep, AuthTokenDep
from mailhub.web.openapi import ErrorResponse

router = APIRouter(tags=["profile"])


@router.get(
    "/profile",
    summary="Get current mailbox",
    description="Get the mailbox of the current session. Inbox clients register this id on the socket.",
    operation_id="getCurrentMailbox",
    responses={
        200: {"description": "Current mailbox"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_profile(app: AppDep, auth_token: AuthTokenDep) -> MailboxView:
    return await app.get_current_mailbox(auth_token)
