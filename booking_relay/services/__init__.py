from booking_relay.services.intent_service import Intent, classify_intent
from booking_relay.services.responder import RuleResponder
from booking_relay.services.result import FailureKind, Result
from booking_relay.services.session_store import BookingChannel, Session, SessionStore
