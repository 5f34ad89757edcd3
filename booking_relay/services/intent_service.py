import re
from enum import Enum
from typing import Callable, Iterable

from booking_relay.logging_config import get_logger

logger = get_logger("intent_service")


class Intent(str, Enum):
    GREETING = "greeting"  # "hi", "hello there"
    DECLINE = "decline"  # "no thanks", "not interested"
    THANKS = "thanks"
    YOU_TOO = "you_too"  # reply to "have a nice day"
    FAREWELL = "farewell"
    NAME_QUERY = "name_query"  # "who are you", "are you a bot"
    OWNER_NOT_REPLYING = "owner_not_replying"  # complaint about the owner
    DIDNT_ANSWER = "didnt_answer"  # complaint about the bot
    SMALL_TALK = "small_talk"
    EMAIL_REQUEST = "email_request"  # "what's your email address"
    ALREADY_HAVE = "already_have"  # "I already have it"
    PREFERENCE_QUESTION = "preference_question"  # "which is better"
    CHOOSE_EMAIL = "choose_email"
    CHOOSE_PHONE = "choose_phone"
    ACKNOWLEDGEMENT = "acknowledgement"  # "ok", "sure"
    NEGATIVE = "negative"  # bare "no", "nope"
    UNKNOWN = "unknown"  # nothing matched, goes to the model


GREETING_PATTERNS = (
    re.compile(r"^(hi|hello|hey|hiya|howdy|yo|greetings|good (morning|afternoon|evening))( there)?\W*$"),
)

DECLINE_PATTERNS = (
    re.compile(
        r"\b(no thanks|no thank you|no thx|not interested|not now|not today|maybe later|"
        r"never ?mind|i'?m good|i am good|no need)\b"
    ),
    re.compile(r"\b(don'?t|do not) (want|need)\b"),
)

THANKS_PATTERNS = (
    re.compile(r"\b(thanks|thank you|thank u|thx|ty|cheers|appreciate it|much appreciated)\b"),
)

YOU_TOO_PATTERNS = (
    re.compile(r"^(and )?(you too|u too|same to you|likewise)\W*$"),
)

FAREWELL_PATTERNS = (
    re.compile(r"\b(bye|goodbye|good bye|see you|see ya|take care)\b"),
    re.compile(r"\bhave a (good|great|nice|lovely) (day|one|night|evening|weekend)\b"),
)

NAME_QUERY_PATTERNS = (
    re.compile(r"\b(what'?s|what is) your name\b"),
    re.compile(r"\bwho (are you|am i (talking|speaking) (to|with))\b"),
    re.compile(r"\bare you (a |an )?(bot|robot|human|real person|real|ai)\b"),
)

OWNER_NOT_REPLYING_PATTERNS = (
    re.compile(
        r"\b(owner|he|she|they|someone|anyone)\b.{0,40}"
        r"\b(not|never|isn'?t|hasn'?t|haven'?t|didn'?t|doesn'?t|don'?t|won'?t)\b.{0,40}"
        r"\b(repl\w*|respond\w*|answer\w*|get(ting)? back|call(ed|ing)? (me )?back|pick(ed|ing)? up)\b"
    ),
    re.compile(
        r"\b(nobody|no one|no-one)\b.{0,40}"
        r"\b(repl\w*|respond\w*|answer\w*|got back|called (me )?back|picked up)\b"
    ),
)

DIDNT_ANSWER_PATTERNS = (
    re.compile(r"\byou (didn'?t|did not|don'?t|do not|never|haven'?t|have not) (answer|reply|respond)\w*"),
    re.compile(r"\b(that'?s|that is|this is) not (what i asked|my question|an answer)\b"),
    re.compile(r"\b(answer|read) my question\b"),
)

SMALL_TALK_PATTERNS = (
    re.compile(
        r"\b(how are you|how are u|how r u|how'?s it going|how is it going|how are things|"
        r"what'?s up|how do you do|how'?s your day|how is your day)\b"
    ),
)

EMAIL_REQUEST_PATTERNS = (
    re.compile(
        r"\b(what'?s|what is|give me|send me|share|tell me|need|can i (get|have)|may i (get|have))\b"
        r".{0,20}\b(your|the) (email|e-mail)\b"
    ),
    re.compile(r"\b(email|e-mail) (address|id)\b"),
)

ALREADY_HAVE_PATTERNS = (
    re.compile(r"\b(already|i) (have|got) (it|that|them|the (email|number|details|info|link|address))\b"),
    re.compile(r"\balready (have|got|did|done|sent|called|emailed|booked)\b"),
)

PREFERENCE_QUESTION_PATTERNS = (
    re.compile(r"\bwhich (one |option )?(is|would be) (better|best|faster|quicker|easier|preferred|recommended)\b"),
    re.compile(r"\bwhich (do|would) you (prefer|recommend|suggest)\b"),
    re.compile(r"\bwhat do you (recommend|suggest|prefer)\b"),
    re.compile(r"\bshould i (email|e-mail|call|phone)\b.{0,20}\bor\b"),
)

EMAIL_CHOICE_PATTERNS = (
    re.compile(r"\b(e-?mail\w*|mail)\b"),
)

PHONE_CHOICE_PATTERNS = (
    re.compile(r"\b(phone|telephone|call|calling|number|ring me)\b"),
)

ACKNOWLEDGEMENT_PATTERNS = (
    re.compile(
        r"^(ok|okay|okey|k|kk|sure|alright|all right|great|cool|nice|got it|perfect|"
        r"sounds good|fine|yes|yeah|yep|yup)\W*$"
    ),
)

NEGATIVE_PATTERNS = (
    re.compile(r"^(no|nope|nah|no way|not really|not yet|no no)\W*$"),
)

# Selection must never fire on a refusal such as "I don't want to call".
NEGATION_PATTERN = re.compile(r"\b(no|not|never|don'?t|do not)\b")


def normalize_for_matching(text: str) -> str:
    """Casefold, fold typographic apostrophes and collapse whitespace."""
    if not text:
        return ""

    normalized = text.strip().casefold()
    normalized = normalized.replace("’", "'").replace("‘", "'")
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized


def _matches(patterns: Iterable[re.Pattern[str]], message: str) -> bool:
    normalized = normalize_for_matching(message)
    if not normalized:
        return False
    return any(pattern.search(normalized) for pattern in patterns)


def has_negation(message: str) -> bool:
    return bool(NEGATION_PATTERN.search(normalize_for_matching(message)))


def is_greeting_message(message: str) -> bool:
    return _matches(GREETING_PATTERNS, message)


def is_decline_message(message: str) -> bool:
    return _matches(DECLINE_PATTERNS, message)


def is_thanks_message(message: str) -> bool:
    return _matches(THANKS_PATTERNS, message)


def is_you_too_message(message: str) -> bool:
    return _matches(YOU_TOO_PATTERNS, message)


def is_farewell_message(message: str) -> bool:
    return _matches(FAREWELL_PATTERNS, message)


def is_name_query_message(message: str) -> bool:
    return _matches(NAME_QUERY_PATTERNS, message)


def is_owner_not_replying_message(message: str) -> bool:
    return _matches(OWNER_NOT_REPLYING_PATTERNS, message)


def is_didnt_answer_message(message: str) -> bool:
    return _matches(DIDNT_ANSWER_PATTERNS, message)


def is_small_talk_message(message: str) -> bool:
    return _matches(SMALL_TALK_PATTERNS, message)


def is_email_request_message(message: str) -> bool:
    return _matches(EMAIL_REQUEST_PATTERNS, message)


def is_already_have_message(message: str) -> bool:
    return _matches(ALREADY_HAVE_PATTERNS, message)


def is_preference_question_message(message: str) -> bool:
    return _matches(PREFERENCE_QUESTION_PATTERNS, message)


def is_email_choice_message(message: str) -> bool:
    return _matches(EMAIL_CHOICE_PATTERNS, message) and not has_negation(message)


def is_phone_choice_message(message: str) -> bool:
    return _matches(PHONE_CHOICE_PATTERNS, message) and not has_negation(message)


def is_acknowledgement_message(message: str) -> bool:
    return _matches(ACKNOWLEDGEMENT_PATTERNS, message)


def is_negative_message(message: str) -> bool:
    return _matches(NEGATIVE_PATTERNS, message)


# Evaluation order is priority order: the first predicate that fires wins.
INTENT_RULES: tuple[tuple[Intent, Callable[[str], bool]], ...] = (
    (Intent.GREETING, is_greeting_message),
    (Intent.DECLINE, is_decline_message),
    (Intent.THANKS, is_thanks_message),
    (Intent.YOU_TOO, is_you_too_message),
    (Intent.FAREWELL, is_farewell_message),
    (Intent.NAME_QUERY, is_name_query_message),
    (Intent.OWNER_NOT_REPLYING, is_owner_not_replying_message),
    (Intent.DIDNT_ANSWER, is_didnt_answer_message),
    (Intent.SMALL_TALK, is_small_talk_message),
    (Intent.EMAIL_REQUEST, is_email_request_message),
    (Intent.ALREADY_HAVE, is_already_have_message),
    (Intent.PREFERENCE_QUESTION, is_preference_question_message),
    (Intent.CHOOSE_EMAIL, is_email_choice_message),
    (Intent.CHOOSE_PHONE, is_phone_choice_message),
    (Intent.ACKNOWLEDGEMENT, is_acknowledgement_message),
    (Intent.NEGATIVE, is_negative_message),
)


def classify_intent(message: str) -> Intent:
    """Return the first intent whose predicate matches, or Intent.UNKNOWN."""
    normalized = normalize_for_matching(message)
    if not normalized:
        return Intent.UNKNOWN

    for intent, predicate in INTENT_RULES:
        if predicate(normalized):
            logger.debug(f"Intent matched: {intent.value}")
            return intent

    return Intent.UNKNOWN
