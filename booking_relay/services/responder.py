"""Canned replies for recognized intents.

Each intent maps to one handler that may mutate the session and returns the
reply text. The table must cover every intent except UNKNOWN, which is the
signal to hand the message to the model.
"""

import html
import re
from typing import Callable, Optional

from booking_relay.logging_config import get_logger
from booking_relay.services.intent_service import Intent, classify_intent
from booking_relay.services.session_store import BookingChannel, Session
from booking_relay.site_info import SiteInfo

logger = get_logger("responder")

GREETING_RESPONSE = "How may I help you?"
DECLINE_RESPONSE = "No problem! If you change your mind, I'm here to help."
NEGATIVE_RESPONSE = "Alright. Is there anything else I can help you with?"
THANKS_RESPONSE = "You're welcome! Is there anything else I can help you with?"
YOU_TOO_RESPONSE = "Thank you! Have a great day."
FAREWELL_RESPONSE = "Goodbye! Have a great day."
NAME_QUERY_RESPONSE = "I'm the virtual assistant for {website}. I can help you book a consultation."
OWNER_NOT_REPLYING_RESPONSE = (
    "Sorry for the wait! You can reach the owner directly by phone at {phone_link} "
    "or by email at {email_link}."
)
DIDNT_ANSWER_RESPONSE = (
    "Sorry about that! I can only help with booking a consultation. "
    "Would you like to book via Email or Phone?"
)
SMALL_TALK_RESPONSE = "I'm doing well, thanks for asking! How can I help you today?"
EMAIL_REQUEST_RESPONSE = "Our email address is {email_link}."
ALREADY_HAVE_RESPONSE = "Great! Reach out whenever you're ready. Is there anything else I can help you with?"
PREFERENCE_RESPONSE = (
    "Both work well! Email is best for detailed questions, and phone is quickest "
    "for a direct conversation. Would you like to book via Email or Phone?"
)
EMAIL_CHOICE_RESPONSE = "Great! You can email us at {email_link} to book your consultation."
PHONE_CHOICE_RESPONSE = "Great! You can call us at {phone_link} to book your consultation."
ALL_SET_RESPONSE = "You're all set! Is there anything else I can help you with?"
DECLINED_ACK_RESPONSE = "Okay! Let me know if you need anything else."
BOOKING_PROMPT_RESPONSE = "Would you like to book your consultation via Email or Phone?"
SESSION_CLOSED_RESPONSE = "This chat session has ended. Refresh the page to start a new conversation."

CLOSING_INTENTS = {Intent.DECLINE, Intent.FAREWELL}


def email_link(site: SiteInfo) -> str:
    address = html.escape(site.email)
    return f'<a href="mailto:{address}">{address}</a>'


def phone_link(site: SiteInfo) -> str:
    dial = re.sub(r"[^\d+]", "", site.phone)
    return f'<a href="tel:{dial}">{html.escape(site.phone)}</a>'


def _render(template: str, site: SiteInfo) -> str:
    return template.format(
        website=site.website,
        email_link=email_link(site),
        phone_link=phone_link(site),
    )


Handler = Callable[[Session, SiteInfo], str]


def _greeting(session: Session, site: SiteInfo) -> str:
    session.greeted = True
    session.restart()
    return GREETING_RESPONSE


def _decline(session: Session, site: SiteInfo) -> str:
    session.declined = True
    return DECLINE_RESPONSE


def _negative(session: Session, site: SiteInfo) -> str:
    session.declined = True
    return NEGATIVE_RESPONSE


def _choose_email(session: Session, site: SiteInfo) -> str:
    session.provide(BookingChannel.EMAIL, chosen=True)
    return _render(EMAIL_CHOICE_RESPONSE, site)


def _choose_phone(session: Session, site: SiteInfo) -> str:
    session.provide(BookingChannel.PHONE, chosen=True)
    return _render(PHONE_CHOICE_RESPONSE, site)


def _email_request(session: Session, site: SiteInfo) -> str:
    session.provide(BookingChannel.EMAIL, chosen=False)
    return _render(EMAIL_REQUEST_RESPONSE, site)


def _acknowledgement(session: Session, site: SiteInfo) -> str:
    if session.last_provided != BookingChannel.NONE:
        return ALL_SET_RESPONSE
    if session.declined:
        return DECLINED_ACK_RESPONSE
    return BOOKING_PROMPT_RESPONSE


def _canned(template: str) -> Handler:
    def handler(session: Session, site: SiteInfo) -> str:
        return _render(template, site)

    return handler


RULE_HANDLERS: dict[Intent, Handler] = {
    Intent.GREETING: _greeting,
    Intent.DECLINE: _decline,
    Intent.THANKS: _canned(THANKS_RESPONSE),
    Intent.YOU_TOO: _canned(YOU_TOO_RESPONSE),
    Intent.FAREWELL: _canned(FAREWELL_RESPONSE),
    Intent.NAME_QUERY: _canned(NAME_QUERY_RESPONSE),
    Intent.OWNER_NOT_REPLYING: _canned(OWNER_NOT_REPLYING_RESPONSE),
    Intent.DIDNT_ANSWER: _canned(DIDNT_ANSWER_RESPONSE),
    Intent.SMALL_TALK: _canned(SMALL_TALK_RESPONSE),
    Intent.EMAIL_REQUEST: _email_request,
    Intent.ALREADY_HAVE: _canned(ALREADY_HAVE_RESPONSE),
    Intent.PREFERENCE_QUESTION: _canned(PREFERENCE_RESPONSE),
    Intent.CHOOSE_EMAIL: _choose_email,
    Intent.CHOOSE_PHONE: _choose_phone,
    Intent.ACKNOWLEDGEMENT: _acknowledgement,
    Intent.NEGATIVE: _negative,
}

_unhandled = set(Intent) - set(RULE_HANDLERS) - {Intent.UNKNOWN}
if _unhandled:
    raise RuntimeError(f"No rule handler for intents: {sorted(i.value for i in _unhandled)}")


class RuleResponder:
    """Answers recognized intents locally and updates the session."""

    def __init__(self, site: SiteInfo, session_closing_enabled: bool = False):
        self.site = site
        self.session_closing_enabled = session_closing_enabled

    def respond(self, message: str, session: Session) -> Optional[str]:
        """Return a canned reply, or None when the model should answer."""
        if self.session_closing_enabled and session.closed:
            return SESSION_CLOSED_RESPONSE

        intent = classify_intent(message)
        if intent == Intent.UNKNOWN:
            return None

        reply = RULE_HANDLERS[intent](session, self.site)

        if self.session_closing_enabled and intent in CLOSING_INTENTS:
            session.closed = True

        logger.info(
            "Rule matched",
            extra={
                "context": {
                    "intent": intent.value,
                    "declined": session.declined,
                    "last_provided": session.last_provided.value,
                    "closed": session.closed,
                }
            },
        )
        return reply
