from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from mailhub.core.modules.mailbox.models import MailboxView
from mailhub.web.deps import AdminKeyDep, AppDep
from mailhub.web.openapi import ErrorResponse

router = APIRouter(tags=["mailboxes"])


class CreateMailboxRequest(BaseModel):
    address: str = Field(..., min_length=3, description="Address on the local mail domain")


class UpdateMailboxRequest(BaseModel):
    is_active: bool = Field(..., description="Activate or deactivate the mailbox")


@router.get(
    "/mailboxes",
    summary="List mailboxes",
    description="Get all mailboxes. Requires the admin API key.",
    operation_id="listMailboxes",
    responses={
        200: {"description": "All mailboxes"},
        401: {"model": ErrorResponse, "description": "Admin API key missing"},
        403: {"model": ErrorResponse, "description": "Invalid admin API key"},
    },
)
async def list_mailboxes(app: AppDep, api_key: AdminKeyDep) -> list[MailboxView]:
    return await app.get_all_mailboxes(api_key)


@router.post(
    "/mailboxes",
    summary="Create mailbox",
    description="Create an active mailbox on the local mail domain. Requires the admin API key.",
    operation_id="createMailbox",
    status_code=201,
    responses={
        201: {"description": "Mailbox created"},
        400: {"model": ErrorResponse, "description": "Invalid or duplicate address"},
        401: {"model": ErrorResponse, "description": "Admin API key missing"},
        403: {"model": ErrorResponse, "description": "Invalid admin API key"},
    },
)
async def create_mailbox(create_data: CreateMailboxRequest, app: AppDep, api_key: AdminKeyDep) -> MailboxView:
    return await app.create_mailbox(api_key, create_data.address)


@router.patch(
    "/mailboxes/{mailbox_id}",
    summary="Update mailbox",
    description="Activate or deactivate a mailbox. Deactivated mailboxes cannot receive mail or log in.",
    operation_id="updateMailbox",
    responses={
        200: {"description": "Updated mailbox"},
        401: {"model": ErrorResponse, "description": "Admin API key missing"},
        403: {"model": ErrorResponse, "description": "Invalid admin API key"},
        404: {"model": ErrorResponse, "description": "Mailbox not found"},
    },
)
async def update_mailbox(mailbox_id: UUID, update_data: UpdateMailboxRequest, app: AppDep, api_key: AdminKeyDep) -> MailboxView:
    return await app.set_mailbox_active(api_key, mailbox_id, update_data.is_active)
