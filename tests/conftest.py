from unittest.mock import Mock

import pytest

from booking_relay.services.chat_service import ChatService
from booking_relay.services.fallback_service import FallbackResponder
from booking_relay.services.llm import LLMResponse
from booking_relay.services.notification_service import MemoryNotificationStore, NotificationGate, Notifier
from booking_relay.services.responder import RuleResponder
from booking_relay.services.session_store import Session, SessionStore
from booking_relay.site_info import DEFAULT_SITE_INFO


@pytest.fixture
def site():
    return DEFAULT_SITE_INFO


@pytest.fixture
def session():
    return Session()


@pytest.fixture
def responder(site):
    return RuleResponder(site)


@pytest.fixture
def llm_provider():
    """Mock model provider answering with a fixed text."""
    provider = Mock()
    provider.generate.return_value = LLMResponse(content="Model answer", model="gemini-test")
    return provider


@pytest.fixture
def clock():
    """Mutable millisecond clock: set clock.now to move time."""
    fake = Mock()
    fake.now = 1_700_000_000_000
    fake.side_effect = lambda: fake.now
    return fake


@pytest.fixture
def mailer():
    fake = Mock()
    fake.send.return_value = True
    return fake


@pytest.fixture
def chat_service(site, llm_provider, mailer, clock):
    gate = NotificationGate(MemoryNotificationStore(), window_ms=24 * 3600 * 1000, clock=clock)
    return ChatService(
        sessions=SessionStore(),
        responder=RuleResponder(site),
        fallback=FallbackResponder(llm_provider, site),
        notifier=Notifier(gate=gate, mailer=mailer, recipient="admin@example.com", site=site),
    )
