"""Diagnostic endpoint for checking notification mail delivery."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from booking_relay.config import Settings
from booking_relay.dependencies import get_chat_service, get_settings
from booking_relay.schemas.chat import MailCheckResponse
from booking_relay.services.chat_service import ChatService

router = APIRouter()


def _require_admin_token(expected: Optional[str], provided: Optional[str]) -> None:
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="TESTMAIL_ADMIN_TOKEN not configured",
        )
    if not provided or provided != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


@router.get("/testmail", response_model=MailCheckResponse)
def testmail(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_settings),
    service: ChatService = Depends(get_chat_service),
):
    _require_admin_token(settings.testmail_admin_token, x_admin_token)
    sent = service.notifier.send_test()
    if sent:
        return MailCheckResponse(success=True, message="Test mail sent")
    return MailCheckResponse(
        success=False,
        message="Test mail not sent (check SENDGRID_API_KEY/MAIL_FROM/ADMIN_EMAIL)",
    )
