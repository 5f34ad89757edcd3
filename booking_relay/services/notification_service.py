"""New-conversation email alerts with a per-identity suppression window."""

import hashlib
import html
import json
import os
import tempfile
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from booking_relay.logging_config import get_logger
from booking_relay.services.mail_service import SendGridMailer
from booking_relay.site_info import SiteInfo

logger = get_logger("notification_service")

GLOBAL_IDENTITY = "global"
UNKNOWN_ADDRESS = "unknown"


def now_ms() -> int:
    return int(time.time() * 1000)


def client_address(forwarded_for: Optional[str], remote_addr: Optional[str]) -> str:
    """Prefer the first X-Forwarded-For hop, fall back to the socket address."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return remote_addr or UNKNOWN_ADDRESS


def user_agent_hash(user_agent: Optional[str]) -> str:
    return hashlib.sha256((user_agent or "").encode("utf-8")).hexdigest()[:16]


def derive_identity(
    strategy: str,
    forwarded_for: Optional[str],
    remote_addr: Optional[str],
    user_agent: Optional[str],
) -> str:
    if strategy == "global":
        return GLOBAL_IDENTITY
    if strategy == "ip":
        return client_address(forwarded_for, remote_addr)
    if strategy == "user_agent":
        return f"ua:{user_agent_hash(user_agent)}"
    if strategy == "ip_user_agent":
        return f"{client_address(forwarded_for, remote_addr)}|{user_agent_hash(user_agent)}"
    raise ValueError(f"Unknown identity strategy: {strategy}")


class MemoryNotificationStore:
    def __init__(self) -> None:
        self._records: dict[str, int] = {}

    def get(self, identity: str) -> Optional[int]:
        return self._records.get(identity)

    def set(self, identity: str, timestamp_ms: int) -> None:
        self._records[identity] = timestamp_ms

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class JsonFileNotificationStore(MemoryNotificationStore):
    """Identity -> last-notified millis, mirrored to one JSON object on disk.

    Loaded once at construction; the whole file is rewritten on every change.
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = Path(path)
        self._records = self._load()

    def _load(self) -> dict[str, int]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error(
                "Failed to read notification store, starting empty",
                extra={"context": {"path": str(self.path), "error": str(exc)}},
            )
            return {}
        if not isinstance(raw, dict):
            logger.error("Notification store is not a JSON object, starting empty")
            return {}
        records = {}
        for identity, value in raw.items():
            try:
                records[str(identity)] = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Skipping bad notification record for {identity!r}")
        logger.info("Notification store loaded", extra={"context": {"records": len(records)}})
        return records

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".notify-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._records, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error(
                "Failed to write notification store",
                extra={"context": {"path": str(self.path), "error": str(exc)}},
            )

    def set(self, identity: str, timestamp_ms: int) -> None:
        super().set(identity, timestamp_ms)
        self._save()

    def clear(self) -> None:
        super().clear()
        self._save()


class NotificationGate:
    """Decides whether an identity is due another alert.

    window_ms=None means once per identity for the life of the store.
    """

    def __init__(
        self,
        store: MemoryNotificationStore,
        window_ms: Optional[int],
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.window_ms = window_ms
        self.clock = clock
        self._lock = threading.Lock()

    def _due(self, identity: str, now: int) -> bool:
        last = self.store.get(identity)
        if last is None:
            return True
        if self.window_ms is None:
            return False
        return now - last > self.window_ms

    def should_notify(self, identity: str, now: Optional[int] = None) -> bool:
        with self._lock:
            return self._due(identity, self.clock() if now is None else now)

    def mark_notified(self, identity: str, now: Optional[int] = None) -> None:
        with self._lock:
            self.store.set(identity, self.clock() if now is None else now)

    def claim(self, identity: str, now: Optional[int] = None) -> bool:
        """Check and mark in one step so concurrent requests notify once."""
        with self._lock:
            now = self.clock() if now is None else now
            if not self._due(identity, now):
                return False
            self.store.set(identity, now)
            return True

    def reset(self) -> None:
        with self._lock:
            self.store.clear()


NEW_CONVERSATION_SUBJECT = "New chat conversation on {website}"
NEW_CONVERSATION_BODY = """<h2>New chat conversation</h2>
<p><strong>Website:</strong> {website}</p>
<p><strong>Visitor:</strong> {identity}</p>
<p><strong>Time (UTC):</strong> {timestamp}</p>
<p><strong>First message:</strong></p>
<blockquote>{message}</blockquote>"""


class Notifier:
    """Sends the out-of-band alert when the gate allows it.

    The gate claim runs on the request path; delivery may run in a
    background task after the reply is sent.
    """

    def __init__(
        self,
        gate: NotificationGate,
        mailer: Optional[SendGridMailer],
        recipient: Optional[str],
        site: SiteInfo,
    ):
        self.gate = gate
        self.mailer = mailer
        self.recipient = recipient
        self.site = site
        self._reported_disabled = False

    @property
    def enabled(self) -> bool:
        return self.mailer is not None and bool(self.recipient)

    def _send(self, identity: str, message: str) -> bool:
        subject = NEW_CONVERSATION_SUBJECT.format(website=self.site.website)
        body = NEW_CONVERSATION_BODY.format(
            website=html.escape(self.site.website),
            identity=html.escape(identity),
            timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            message=html.escape(message),
        )
        return self.mailer.send(self.recipient, subject, body)

    def claim_new_conversation(self, identity: str) -> bool:
        """Reserve the alert for identity. True means the caller must deliver it."""
        if not self.enabled:
            if not self._reported_disabled:
                self._reported_disabled = True
                logger.error(
                    "New conversation not notified: mail is not configured",
                    extra={"context": {"identity": identity}},
                )
            return False
        return self.gate.claim(identity)

    def deliver_new_conversation(self, identity: str, message: str) -> bool:
        """Send a claimed alert. Never raises."""
        try:
            sent = self._send(identity, message)
        except Exception as e:
            logger.error(f"Notification failed: {e}", extra={"context": {"identity": identity}})
            return False

        if not sent:
            logger.error("Notification not delivered", extra={"context": {"identity": identity}})
        return sent

    def notify_new_conversation(self, identity: str, message: str) -> bool:
        """Claim and deliver inline. Returns True if an email went out."""
        if not self.claim_new_conversation(identity):
            return False
        return self.deliver_new_conversation(identity, message)

    def send_test(self) -> bool:
        """Send a diagnostic alert, bypassing the gate."""
        if not self.enabled:
            logger.error("Test mail requested but mail is not configured")
            return False
        return self._send("diagnostic", "This is a test notification from the booking relay.")

    def reset(self) -> None:
        self.gate.reset()
