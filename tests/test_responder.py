import pytest

from booking_relay.services.intent_service import Intent
from booking_relay.services.responder import (
    ALL_SET_RESPONSE,
    BOOKING_PROMPT_RESPONSE,
    DECLINE_RESPONSE,
    DECLINED_ACK_RESPONSE,
    GREETING_RESPONSE,
    RULE_HANDLERS,
    SESSION_CLOSED_RESPONSE,
    RuleResponder,
    email_link,
    phone_link,
)
from booking_relay.services.session_store import BookingChannel, Session

CHANNEL_PROMPT_WORDS = ("email or phone", "via email", "via phone")


class TestRuleTable:
    def test_table_covers_all_rule_intents(self):
        assert set(RULE_HANDLERS) == set(Intent) - {Intent.UNKNOWN}


class TestLinks:
    def test_email_link(self, site):
        assert email_link(site) == '<a href="mailto:owner@example.com">owner@example.com</a>'

    def test_phone_link_strips_formatting(self, site):
        assert phone_link(site) == '<a href="tel:+15551234567">+1-555-123-4567</a>'


class TestGreeting:
    def test_fresh_session(self, responder, session):
        reply = responder.respond("hi", session)

        assert reply == GREETING_RESPONSE
        assert session.greeted is True

    def test_greeting_starts_fresh_sub_conversation(self, responder, session):
        responder.respond("email", session)
        responder.respond("no thanks", session)

        responder.respond("hello", session)

        assert session.booking_method == BookingChannel.NONE
        assert session.last_provided == BookingChannel.NONE
        assert session.declined is False
        assert session.greeted is True


class TestDecline:
    @pytest.mark.parametrize("message", ["no thanks", "not interested", "maybe later", "I don't want to book", "nope"])
    def test_sets_declined_without_channel_prompt(self, responder, session, message):
        reply = responder.respond(message, session)

        assert session.declined is True
        assert reply is not None
        assert not any(words in reply.lower() for words in CHANNEL_PROMPT_WORDS)

    def test_decline_after_channel_keeps_last_provided(self, responder, session):
        responder.respond("phone", session)

        reply = responder.respond("no thanks", session)

        assert reply == DECLINE_RESPONSE
        assert session.declined is True
        assert session.last_provided == BookingChannel.PHONE


class TestChannelSelection:
    def test_choose_email(self, responder, session, site):
        reply = responder.respond("I'd like to book via email", session)

        assert f"mailto:{site.email}" in reply
        assert session.last_provided == BookingChannel.EMAIL
        assert session.booking_method == BookingChannel.EMAIL

    def test_switch_to_phone_clears_declined(self, responder, session, site):
        responder.respond("email", session)
        responder.respond("no thanks", session)
        assert session.declined is True

        reply = responder.respond("actually phone", session)

        assert "tel:+15551234567" in reply
        assert session.last_provided == BookingChannel.PHONE
        assert session.booking_method == BookingChannel.PHONE
        assert session.declined is False

    def test_email_request_provides_without_choosing(self, responder, session, site):
        reply = responder.respond("what's your email address?", session)

        assert f"mailto:{site.email}" in reply
        assert session.last_provided == BookingChannel.EMAIL
        assert session.booking_method == BookingChannel.NONE


class TestAcknowledgement:
    def test_ok_twice_after_channel_is_stable(self, responder, session):
        responder.respond("phone", session)
        before = Session(**vars(session))

        first = responder.respond("ok", session)
        second = responder.respond("ok", session)

        assert first == ALL_SET_RESPONSE
        assert second == ALL_SET_RESPONSE
        assert session == before

    def test_ok_without_channel_prompts(self, responder, session):
        assert responder.respond("ok", session) == BOOKING_PROMPT_RESPONSE

    def test_ok_after_decline(self, responder, session):
        responder.respond("not interested", session)
        assert responder.respond("ok", session) == DECLINED_ACK_RESPONSE


class TestCannedReplies:
    def test_name_query_mentions_website(self, responder, session, site):
        reply = responder.respond("who are you?", session)
        assert site.website in reply

    def test_owner_complaint_gives_both_contacts(self, responder, session, site):
        reply = responder.respond("the owner never replied", session)
        assert "mailto:" in reply
        assert "tel:" in reply

    def test_canned_reply_does_not_mutate_session(self, responder, session):
        responder.respond("how are you", session)
        assert session == Session()


class TestNoMatch:
    def test_returns_none(self, responder, session):
        assert responder.respond("what services do you offer?", session) is None
        assert session == Session()


class TestSessionClosing:
    @pytest.fixture
    def closing_responder(self, site):
        return RuleResponder(site, session_closing_enabled=True)

    def test_farewell_closes_session(self, closing_responder, session):
        closing_responder.respond("bye", session)

        assert session.closed is True
        assert closing_responder.respond("hi", session) == SESSION_CLOSED_RESPONSE
        assert closing_responder.respond("what do you offer?", session) == SESSION_CLOSED_RESPONSE

    def test_decline_closes_session(self, closing_responder, session):
        closing_responder.respond("no thanks", session)
        assert closing_responder.respond("email", session) == SESSION_CLOSED_RESPONSE
        assert session.last_provided == BookingChannel.NONE

    def test_always_on_by_default(self, responder, session):
        responder.respond("bye", session)

        assert session.closed is False
        assert responder.respond("hi", session) == GREETING_RESPONSE
