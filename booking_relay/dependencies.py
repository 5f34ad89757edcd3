from fastapi import Request

from booking_relay.config import Settings
from booking_relay.services.chat_service import ChatService
from booking_relay.services.notification_service import derive_identity


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity(request: Request) -> str:
    """Client identity per the configured strategy (global, ip, ip_user_agent, user_agent)."""
    settings: Settings = request.app.state.settings
    return derive_identity(
        settings.identity_strategy,
        forwarded_for=request.headers.get("x-forwarded-for"),
        remote_addr=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
