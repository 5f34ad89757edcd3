from typing import Callable, Optional

from booking_relay.config import Settings
from booking_relay.logging_config import get_logger
from booking_relay.services.fallback_service import FallbackResponder
from booking_relay.services.llm import GeminiProvider
from booking_relay.services.mail_service import build_mailer
from booking_relay.services.notification_service import (
    JsonFileNotificationStore,
    MemoryNotificationStore,
    NotificationGate,
    Notifier,
)
from booking_relay.services.responder import RuleResponder
from booking_relay.services.session_store import SessionStore
from booking_relay.site_info import SiteInfo

logger = get_logger("chat_service")

EMPTY_MESSAGE_RESPONSE = "Please type your message and I'll be happy to help."

# Schedules fn(*args) to run after the reply, e.g. BackgroundTasks.add_task.
DeferFn = Callable[..., None]


class ChatService:
    """Notification gate, then local rules, then the model."""

    def __init__(
        self,
        sessions: SessionStore,
        responder: RuleResponder,
        fallback: FallbackResponder,
        notifier: Notifier,
    ):
        self.sessions = sessions
        self.responder = responder
        self.fallback = fallback
        self.notifier = notifier

    @property
    def site(self) -> SiteInfo:
        return self.responder.site

    def handle(self, message: Optional[str], identity: str, defer: Optional[DeferFn] = None) -> str:
        """Reply to one message. Without defer the alert email is sent inline."""
        text = (message or "").strip()
        if not text:
            return EMPTY_MESSAGE_RESPONSE

        if self.notifier.claim_new_conversation(identity):
            if defer is None:
                self.notifier.deliver_new_conversation(identity, text)
            else:
                defer(self.notifier.deliver_new_conversation, identity, text)

        with self.sessions.session(identity) as session:
            reply = self.responder.respond(text, session)
            if reply is not None:
                return reply

            logger.info("No rule matched, using model", extra={"context": {"identity": identity}})
            return self.fallback.respond(text, session)

    def reset(self) -> None:
        cleared = self.sessions.reset()
        self.notifier.reset()
        logger.info("State reset", extra={"context": {"sessions_cleared": cleared}})


def build_chat_service(settings: Settings, site: SiteInfo) -> ChatService:
    provider = None
    if settings.gemini_api_key:
        provider = GeminiProvider(
            api_key=settings.gemini_api_key,
            default_model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.llm_timeout_seconds,
        )
    else:
        logger.error("GEMINI_API_KEY not configured, unmatched messages get a canned reply")

    if settings.notify_store_path:
        store = JsonFileNotificationStore(settings.notify_store_path)
    else:
        store = MemoryNotificationStore()

    window_ms = None if settings.notify_once_per_process else int(settings.notify_window_hours * 3600 * 1000)
    notifier = Notifier(
        gate=NotificationGate(store, window_ms),
        mailer=build_mailer(settings),
        recipient=settings.admin_email,
        site=site,
    )

    return ChatService(
        sessions=SessionStore(),
        responder=RuleResponder(site, session_closing_enabled=settings.session_closing_enabled),
        fallback=FallbackResponder(provider, site),
        notifier=notifier,
    )
