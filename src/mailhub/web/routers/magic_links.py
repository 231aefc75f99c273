from datetime import datetime
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from mailhub.web.deps import AdminKeyDep, AppDep
from mailhub.web.openapi import ErrorResponse

router = APIRouter(tags=["magic-links"])


class IssueMagicLinkRequest(BaseModel):
    """Request to issue a magic link for a mailbox."""

    mailbox_id: UUID = Field(..., description="Mailbox the link logs into")
    send_email: bool = Field(False, description="Also mail the link to the mailbox address")


class IssueMagicLinkResponse(BaseModel):
    magic_link: str = Field(..., description="URL that redeems the token in the inbox frontend")
    token: str = Field(..., description="Opaque single-use token")
    expires_at: datetime = Field(..., description="Token expiry")
    emailed: bool = Field(..., description="Whether the link was mailed")


@router.post(
    "/magic-links",
    summary="Issue magic link",
    description=(
        "Issue a single-use login link for a mailbox. While an unused, unexpired link exists "
        "for the mailbox the same link is returned. Requires the admin API key."
    ),
    operation_id="issueMagicLink",
    responses={
        200: {"description": "Magic link issued"},
        401: {"model": ErrorResponse, "description": "Admin API key missing"},
        403: {"model": ErrorResponse, "description": "Invalid admin API key or mailbox deactivated"},
        404: {"model": ErrorResponse, "description": "Mailbox not found"},
    },
)
async def issue_magic_link(request: IssueMagicLinkRequest, app: AppDep, api_key: AdminKeyDep) -> IssueMagicLinkResponse:
    issued = await app.issue_magic_link(api_key, request.mailbox_id, request.send_email)
    return IssueMagicLinkResponse(magic_link=issued.url, token=issued.token, expires_at=issued.expires_at, emailed=issued.emailed)
