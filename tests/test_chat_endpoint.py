from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from booking_relay.config import Settings
from booking_relay.dependencies import get_chat_service, get_identity, get_settings
from booking_relay.main import app
from booking_relay.routers.chat import MSG_INTERNAL_ERROR
from booking_relay.schemas.chat import ChatRequest, ChatResponse
from booking_relay.services.chat_service import EMPTY_MESSAGE_RESPONSE
from booking_relay.services.fallback_service import ALREADY_PROVIDED_RESPONSE
from booking_relay.services.llm import LLMResponse
from booking_relay.services.responder import ALL_SET_RESPONSE, BOOKING_PROMPT_RESPONSE, GREETING_RESPONSE
from booking_relay.services.session_store import BookingChannel


@pytest.fixture
def client(chat_service):
    app.dependency_overrides[get_chat_service] = lambda: chat_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestChatSchemas:
    def test_request_message_optional(self):
        assert ChatRequest().message is None
        assert ChatRequest(message="hi").message == "hi"

    def test_response(self):
        assert ChatResponse(reply="ok").reply == "ok"


class TestChatEndpoint:
    def test_greeting(self, client, chat_service):
        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 200
        assert response.json() == {"reply": GREETING_RESPONSE}
        assert len(chat_service.sessions) == 1

    def test_email_selection(self, client, chat_service, site):
        response = client.post("/api/chat", json={"message": "I'd like to book via email"})

        assert f"mailto:{site.email}" in response.json()["reply"]
        (session,) = chat_service.sessions._sessions.values()
        assert session.last_provided == BookingChannel.EMAIL

    def test_unmatched_message_goes_to_model(self, client, llm_provider):
        response = client.post("/api/chat", json={"message": "what services do you offer?"})

        assert response.json() == {"reply": "Model answer"}
        llm_provider.generate.assert_called_once()

    def test_model_reask_is_replaced_after_channel_given(self, client, llm_provider):
        llm_provider.generate.return_value = LLMResponse(
            content="Would you like to book via email or phone?", model="gemini-test"
        )
        client.post("/api/chat", json={"message": "phone"})

        response = client.post("/api/chat", json={"message": "what happens next?"})

        assert response.json()["reply"] == ALREADY_PROVIDED_RESPONSE

    def test_empty_message(self, client):
        response = client.post("/api/chat", json={})

        assert response.status_code == 200
        assert response.json() == {"reply": EMPTY_MESSAGE_RESPONSE}

    def test_internal_error_still_returns_200(self):
        broken = Mock()
        broken.handle.side_effect = RuntimeError("boom")
        app.dependency_overrides[get_chat_service] = lambda: broken
        try:
            response = TestClient(app).post("/api/chat", json={"message": "hi"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json() == {"reply": MSG_INTERNAL_ERROR}

    def test_alert_email_is_sent_as_background_task(self):
        service = Mock()
        service.handle.return_value = "ok"
        app.dependency_overrides[get_chat_service] = lambda: service
        try:
            TestClient(app).post("/api/chat", json={"message": "hi"})
        finally:
            app.dependency_overrides.clear()

        defer = service.handle.call_args.kwargs["defer"]
        assert defer.__name__ == "add_task"

    def test_legacy_path(self, client):
        response = client.post("/chat", json={"message": "hi"})
        assert response.json() == {"reply": GREETING_RESPONSE}

    def test_ok_is_idempotent(self, client):
        client.post("/api/chat", json={"message": "phone"})

        first = client.post("/api/chat", json={"message": "ok"}).json()
        second = client.post("/api/chat", json={"message": "ok"}).json()

        assert first == second == {"reply": ALL_SET_RESPONSE}


class TestIdentity:
    def test_sessions_split_by_identity(self, client, chat_service):
        app.dependency_overrides[get_identity] = lambda: "visitor-a"
        client.post("/api/chat", json={"message": "email"})
        app.dependency_overrides[get_identity] = lambda: "visitor-b"
        response = client.post("/api/chat", json={"message": "ok"})

        assert response.json() == {"reply": BOOKING_PROMPT_RESPONSE}
        assert chat_service.sessions.get("visitor-a").last_provided == BookingChannel.EMAIL
        assert chat_service.sessions.get("visitor-b").last_provided == BookingChannel.NONE

    def test_forwarded_for_and_user_agent_form_identity(self, client, chat_service):
        client.post(
            "/api/chat",
            json={"message": "hi"},
            headers={"X-Forwarded-For": "203.0.113.9", "User-Agent": "Firefox"},
        )

        (identity,) = chat_service.sessions._sessions.keys()
        assert identity.startswith("203.0.113.9|")


class TestNotifications:
    def test_one_notification_per_window(self, client, mailer, clock):
        client.post("/api/chat", json={"message": "hi"})
        client.post("/api/chat", json={"message": "email"})
        assert mailer.send.call_count == 1

        clock.now += 24 * 3600 * 1000 + 1
        client.post("/api/chat", json={"message": "hi again"})
        assert mailer.send.call_count == 2

    def test_mail_failure_does_not_change_reply(self, client, mailer):
        mailer.send.side_effect = RuntimeError("mail down")

        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 200
        assert response.json() == {"reply": GREETING_RESPONSE}


class TestReset:
    def test_reset_clears_state(self, client, chat_service, mailer):
        client.post("/api/chat", json={"message": "email"})

        response = client.post("/api/reset")

        assert response.status_code == 200
        assert response.json() == {"reset": True}
        assert len(chat_service.sessions) == 0

        after = client.post("/api/chat", json={"message": "ok"})
        assert after.json() == {"reply": BOOKING_PROMPT_RESPONSE}
        assert mailer.send.call_count == 2


class TestSiteInfo:
    def test_returns_site_configuration(self, client, site):
        data = client.get("/api/siteinfo").json()

        assert data["website"] == site.website
        assert data["phone"] == site.phone
        assert data["email"] == site.email
        assert data["booking"] == site.booking
        assert len(data["services"]) == 5
        assert data["services"][0] == {
            "name": "Basic Website Package",
            "price_usd": 49,
            "desc": "Landing page + contact form",
        }


class TestTestMail:
    def test_refuses_when_no_token_configured(self, client, mailer):
        app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, testmail_admin_token=None)

        response = client.get("/testmail", headers={"X-Admin-Token": "anything"})

        assert response.status_code == 500
        mailer.send.assert_not_called()

    def test_requires_configured_token(self, client, mailer):
        app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, testmail_admin_token="secret")

        assert client.get("/testmail").status_code == 401
        assert client.get("/testmail", headers={"X-Admin-Token": "wrong"}).status_code == 401
        ok = client.get("/testmail", headers={"X-Admin-Token": "secret"})
        assert ok.status_code == 200
        assert mailer.send.call_count == 1

    def test_reports_failure(self, client, mailer):
        app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, testmail_admin_token="secret")
        mailer.send.return_value = False

        response = client.get("/testmail", headers={"X-Admin-Token": "secret"})

        assert response.json()["success"] is False


class TestWidget:
    def test_serves_widget_page(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "/api/chat" in response.text

    def test_serves_loader_script(self, client):
        response = client.get("/widget.js")
        assert response.status_code == 200
        assert "chatbot-container" in response.text


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
