"""Fire-and-forget delivery of application lifecycle notifications.

Events go onto an in-process queue drained by a single daemon worker.
``send_async`` never blocks and never raises: delivery failures are retried
with exponential backoff and then logged, and never reach the caller.
"""
import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from applyhub.config import settings

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    APPLICATION_SENT = "APPLICATION_SENT"
    APPLICATION_RECEIVED = "APPLICATION_RECEIVED"
    APPLICATION_WITHDRAWN = "APPLICATION_WITHDRAWN"


SUBJECTS = {
    NotificationKind.APPLICATION_SENT: "Your application for {job_title} was submitted",
    NotificationKind.APPLICATION_RECEIVED: "New application received for {job_title}",
    NotificationKind.APPLICATION_WITHDRAWN: "Your application for {job_title} was withdrawn",
}


@dataclass(frozen=True)
class NotificationEvent:
    kind: NotificationKind
    application_id: str
    recipient_id: str
    job_title: str
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    )

    @property
    def subject(self) -> str:
        return SUBJECTS[self.kind].format(job_title=self.job_title)


Sender = Callable[[NotificationEvent], None]


class LoggingSender:
    """Default sender; template rendering and mail transport live elsewhere."""

    def __call__(self, event: NotificationEvent) -> None:
        logger.info(
            "Notification %s to user %s: %s", event.kind.value, event.recipient_id, event.subject
        )


_STOP = object()


class NotificationDispatcher:
    def __init__(
        self,
        sender: Sender | None = None,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
    ):
        self._sender = sender or LoggingSender()
        self._max_attempts = max_attempts or settings.notification_max_attempts
        self._backoff = settings.notification_backoff_seconds if backoff_seconds is None else backoff_seconds
        self._queue: queue.Queue = queue.Queue()
        self._worker: threading.Thread | None = None
        self._stopping = False
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self):
        with self._lock:
            if self.running:
                return
            # a worker only exits after consuming the stop marker
            self._stopping = False
            self._worker = threading.Thread(target=self._run, name="notification-dispatcher", daemon=True)
            self._worker.start()

    def stop(self, timeout: float = 5.0):
        with self._lock:
            worker = self._worker
            if worker is None:
                return
            if not self._stopping:
                self._queue.put(_STOP)
                self._stopping = True
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("Notification worker still busy after %.1fs; not stopped", timeout)
                return
            self._worker = None
            self._stopping = False

    def join(self):
        """Block until every queued event has been handled."""
        self._queue.join()

    def send_async(self, event: NotificationEvent) -> None:
        try:
            if not self.running:
                self.start()
            self._queue.put_nowait(event)
        except Exception:
            logger.exception("Could not schedule notification %s for %s", event.kind.value, event.application_id)

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, event: NotificationEvent):
        for attempt in range(1, self._max_attempts + 1):
            try:
                self._sender(event)
                return
            except Exception as exc:
                logger.warning(
                    "Notification %s for %s failed (attempt %d/%d): %s",
                    event.kind.value, event.application_id, attempt, self._max_attempts, exc,
                )
                if attempt < self._max_attempts:
                    time.sleep(self._backoff * (2 ** (attempt - 1)))
        logger.error("Giving up on notification %s for %s", event.kind.value, event.application_id)


dispatcher = NotificationDispatcher()
