from uuid import UUID

from fastapi import APIRouter

from mailhub.core.modules.message.models import MessageRecord
from mailhub.web.deps import AppDep, AuthTokenDep
from mailhub.web.openapi import ErrorResponse

router = APIRouter(tags=["messages"])


@router.get(
    "/messages",
    summary="List inbox",
    description="Get all messages of the current mailbox, newest first.",
    operation_id="listMessages",
    responses={
        200: {"description": "Messages of the mailbox"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def list_messages(app: AppDep, auth_token: AuthTokenDep) -> list[MessageRecord]:
    return await app.get_messages(auth_token)


@router.post(
    "/messages/simulate",
    summary="Simulate new message",
    description="Store a demo message for the current mailbox and push it to its live clients.",
    operation_id="simulateMessage",
    status_code=201,
    responses={
        201: {"description": "Message stored and pushed"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def simulate_message(app: AppDep, auth_token: AuthTokenDep) -> MessageRecord:
    return await app.simulate_message(auth_token)


@router.get(
    "/messages/{message_id}",
    summary="Open message",
    description="Get a message of the current mailbox. Opening it marks it read.",
    operation_id="getMessage",
    responses={
        200: {"description": "Message"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Message not found"},
    },
)
async def get_message(message_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> MessageRecord:
    return await app.get_message(auth_token, message_id)
