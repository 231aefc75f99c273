from fastapi import APIRouter
from pydantic import BaseModel, Field

from mailhub.core.modules.mailer.models import DeliveryReceipt
from mailhub.web.deps import AdminKeyDep, AppDep
from mailhub.web.openapi import ErrorResponse

router = APIRouter(tags=["admin"])


class TestMailRequest(BaseModel):
    to: str = Field(..., min_length=3, description="Recipient of the test message")


@router.post(
    "/mail/test",
    summary="Send relay test mail",
    description="Send a DKIM-signed test message through the outbound relay. Requires the admin API key.",
    operation_id="sendTestMail",
    responses={
        200: {"description": "Relay accepted the message"},
        401: {"model": ErrorResponse, "description": "Admin API key missing"},
        403: {"model": ErrorResponse, "description": "Invalid admin API key"},
        502: {"model": ErrorResponse, "description": "Relay rejected the message"},
    },
)
async def send_test_mail(request: TestMailRequest, app: AppDep, api_key: AdminKeyDep) -> DeliveryReceipt:
    return await app.send_test_email(api_key, request.to)
