import html
import re
import time
from typing import Optional

import httpx

from booking_relay.logging_config import get_logger
from booking_relay.services.llm import LLMProvider, LLMProviderError
from booking_relay.services.result import FailureKind, Result
from booking_relay.services.session_store import BookingChannel, Session
from booking_relay.site_info import SiteInfo

logger = get_logger("fallback_service")

NO_CANDIDATE_RESPONSE = "Sorry, I couldn't get a good response. Would you like to book via Email or Phone?"
SERVICE_UNAVAILABLE_RESPONSE = (
    "Sorry, our assistant is unavailable right now. You can still book a consultation "
    "via Email or Phone. Which would you prefer?"
)
ALREADY_PROVIDED_RESPONSE = (
    "You already have the details you need to book your consultation. "
    "Is there anything else I can help you with?"
)

# The model tends to loop on the channel question after it has been settled.
REASK_PATTERN = re.compile(
    r"would you like to book\s+(?:\w+\s+){0,3}?(?:via|by|through|over)\s+email,?\s+or\s+(?:by\s+)?phone",
    re.IGNORECASE,
)

SYSTEM_PROMPT = """You are a helpful assistant for {website}.
Your only job: help clients book a consultation.

Always greet with: "Hi! How may I help you?"

If the client asks about a consultation, ask:
"Would you like to book via Email or Phone?"

- If Email, reply with: {email}
- If Phone, reply with: {phone}
- If they prefer to book online, reply with: {booking}

Do not answer questions about services, pricing, or anything else.
Stay focused on consultation booking only."""


def build_system_prompt(site: SiteInfo) -> str:
    return SYSTEM_PROMPT.format(
        website=site.website,
        email=site.email,
        phone=site.phone,
        booking=site.booking,
    )


def build_prompt(site: SiteInfo, message: str) -> str:
    return f"{build_system_prompt(site)}\n\nUser: {message}"


def render_model_text(text: str) -> str:
    """Model text as an HTML fragment: escaped, newlines as <br>."""
    return html.escape(text).replace("\n", "<br>")


def is_booking_reask(text: str) -> bool:
    if not text:
        return False
    cleaned = re.sub(r"[*_`]", "", text)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return bool(REASK_PATTERN.search(cleaned))


class FallbackResponder:
    """Relays unmatched messages to the hosted model."""

    def __init__(self, provider: Optional[LLMProvider], site: SiteInfo):
        self.provider = provider
        self.site = site

    def generate(self, message: str) -> Result[str]:
        if self.provider is None:
            logger.error("Generative API key not configured, skipping model call")
            return Result.failure("GEMINI_API_KEY not configured", FailureKind.NOT_CONFIGURED)

        start = time.monotonic()
        try:
            response = self.provider.generate(build_prompt(self.site, message))
        except (httpx.HTTPError, LLMProviderError) as exc:
            logger.error(
                "Model call failed",
                extra={
                    "context": {
                        "error": str(exc),
                        "elapsed_ms": round((time.monotonic() - start) * 1000, 2),
                    }
                },
            )
            return Result.failure(str(exc), FailureKind.UPSTREAM_UNAVAILABLE)

        logger.info(
            "Timing",
            extra={
                "context": {
                    "stage": "fallback_llm_ms",
                    "elapsed_ms": round((time.monotonic() - start) * 1000, 2),
                    "model_name": response.model,
                }
            },
        )

        if not response.content:
            logger.warning(f"Model returned no candidate text (finish_reason={response.finish_reason})")
            return Result.failure("No candidate text", FailureKind.EMPTY_OUTPUT)

        return Result.success(response.content)

    def respond(self, message: str, session: Session) -> str:
        result = self.generate(message)

        if not result.ok:
            if result.kind == FailureKind.EMPTY_OUTPUT:
                return NO_CANDIDATE_RESPONSE
            return SERVICE_UNAVAILABLE_RESPONSE

        reply = result.value
        if session.last_provided != BookingChannel.NONE and is_booking_reask(reply):
            logger.info(
                "Suppressed repeated booking question",
                extra={"context": {"last_provided": session.last_provided.value}},
            )
            return ALREADY_PROVIDED_RESPONSE

        return render_model_text(reply)
