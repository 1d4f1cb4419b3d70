"""Enrichment completion poller.

After a note lands, the backend generates a contact summary
asynchronously. The poller re-fetches the contact on a fixed cadence
until the summary appears or there is nothing to summarise.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum

from ..errors import NetworkError, PersistenceError
from ..storage.models import ContactDetail, utc_now
from .scheduler import ScheduledCall, Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.5  # seconds
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_MAX_INTERVAL = 30.0  # seconds
DEFAULT_MAX_FAILURES = 5

FetchFn = Callable[[str], ContactDetail | None]


class PollState(Enum):
    """Lifecycle of one watched contact."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def needs_enrichment(
    detail: ContactDetail,
    activity_window: float | None = None,
    now: datetime | None = None,
) -> bool:
    """Whether a contact is still waiting for its summary.

    Args:
        detail: Freshly fetched contact.
        activity_window: If set, the newest note must be younger than
            this many seconds.
        now: Reference time for the activity window.
    """
    if not detail.has_enrichable_data or detail.ai_summary:
        return False

    if activity_window is None:
        return True
    if not detail.notes:
        return False
    newest = max(note.created_at for note in detail.notes)
    return (now or utc_now()) - newest <= timedelta(seconds=activity_window)


class PollHandle:
    """Handle for one watched contact."""

    def __init__(self, poller: "EnrichmentPoller", contact_id: str) -> None:
        self._poller = poller
        self.contact_id = contact_id
        self._lock = threading.Lock()
        self._state = PollState.ACTIVE
        self._pending: ScheduledCall | None = None
        self._generation = 0
        self.failures = 0
        self.fetch_count = 0
        self.last_detail: ContactDetail | None = None
        self.last_error: Exception | None = None

    @property
    def state(self) -> PollState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        return self.state is PollState.ACTIVE

    def cancel(self) -> None:
        """Stop polling. A fetch already running completes but is ignored."""
        with self._lock:
            if self._state is PollState.CANCELLED:
                return
            self._state = PollState.CANCELLED
            self._generation += 1
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()
        self._poller._release(self)
        logger.debug(f"Stopped watching contact {self.contact_id}")

    def invalidate(self) -> None:
        """Refetch now, outside the regular cadence.

        Polling resumes if the contact still needs enrichment, unless the
        handle was cancelled.
        """
        with self._lock:
            if self._state is PollState.CANCELLED:
                return
        if not self._poller._adopt(self):
            logger.debug(f"Contact {self.contact_id} is already being polled")
            return
        with self._lock:
            if self._state is PollState.CANCELLED:
                return
            self._state = PollState.ACTIVE
            self.failures = 0
        self._poller._schedule(self, 0.0)

    def __repr__(self) -> str:
        return f"PollHandle(contact_id={self.contact_id!r}, state={self.state.value})"


class EnrichmentPoller:
    """Watches contacts until their AI summary lands.

    Example:
        poller = EnrichmentPoller(store.contacts.get_detail)
        handle = poller.watch(contact_id)
    """

    def __init__(
        self,
        fetch: FetchFn,
        scheduler: Scheduler | None = None,
        interval: float = DEFAULT_INTERVAL,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        max_consecutive_failures: int = DEFAULT_MAX_FAILURES,
        activity_window: float | None = None,
        on_update: Callable[[ContactDetail], None] | None = None,
        on_complete: Callable[[PollHandle], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize poller.

        Args:
            fetch: Loads a contact's detail; None when it no longer exists
            scheduler: Delayed-call scheduler (defaults to threading timers)
            interval: Seconds between fetches while enrichment is pending
            backoff_factor: Delay multiplier per consecutive failure
            max_interval: Upper bound for the backed-off delay
            max_consecutive_failures: Failures after which a handle gives up
            activity_window: Only poll while the newest note is this recent
            on_update: Called with every successfully fetched detail
            on_complete: Called when a handle stops because it is done
            on_error: Called with every fetch failure
            clock: Wall clock for the activity window
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self._fetch = fetch
        self._scheduler = scheduler or ThreadingScheduler()
        self._interval = interval
        self._backoff_factor = backoff_factor
        self._max_interval = max_interval
        self._max_failures = max_consecutive_failures
        self._activity_window = activity_window
        self._on_update = on_update
        self._on_complete = on_complete
        self._on_error = on_error
        self._clock = clock

        self._lock = threading.Lock()
        self._handles: dict[str, PollHandle] = {}

    def watch(self, contact_id: str) -> PollHandle:
        """Start watching a contact.

        The first fetch is scheduled immediately. Watching a contact that
        is already being polled returns the existing handle.
        """
        with self._lock:
            existing = self._handles.get(contact_id)
            if existing is not None and existing.is_active:
                return existing
            handle = PollHandle(self, contact_id)
            self._handles[contact_id] = handle

        logger.debug(f"Watching contact {contact_id} for enrichment")
        self._schedule(handle, 0.0)
        return handle

    def get(self, contact_id: str) -> PollHandle | None:
        """Handle currently polling a contact, if any."""
        with self._lock:
            return self._handles.get(contact_id)

    @property
    def active(self) -> list[PollHandle]:
        """Handles still polling."""
        with self._lock:
            return [h for h in self._handles.values() if h.is_active]

    def stop_all(self) -> None:
        """Cancel every handle."""
        with self._lock:
            handles = list(self._handles.values())
        for handle in handles:
            handle.cancel()

    def _schedule(self, handle: PollHandle, delay: float) -> None:
        with handle._lock:
            if handle._state is not PollState.ACTIVE:
                return
            handle._generation += 1
            generation = handle._generation
            previous, handle._pending = handle._pending, None
        if previous is not None:
            previous.cancel()

        call = self._scheduler.call_later(delay, lambda: self._tick(handle, generation))
        with handle._lock:
            if handle._generation == generation and handle._state is PollState.ACTIVE:
                handle._pending = call
                return
        call.cancel()

    def _tick(self, handle: PollHandle, generation: int) -> None:
        with handle._lock:
            if handle._generation != generation or handle._state is not PollState.ACTIVE:
                return
            handle._pending = None
            handle.fetch_count += 1

        logger.debug(f"Polling contact {handle.contact_id} (fetch #{handle.fetch_count})")
        try:
            detail = self._fetch(handle.contact_id)
        except (NetworkError, PersistenceError) as e:
            self._handle_failure(handle, generation, e)
            return
        except Exception as e:
            logger.exception(f"Unexpected error fetching contact {handle.contact_id}")
            self._handle_failure(handle, generation, e)
            return

        with handle._lock:
            if handle._generation != generation or handle._state is not PollState.ACTIVE:
                return
            handle.failures = 0
            handle.last_error = None
            handle.last_detail = detail

        if detail is None:
            logger.info(f"Contact {handle.contact_id} no longer exists, stopping poll")
            self._finish(handle, generation)
            return

        self._notify(self._on_update, detail)

        if needs_enrichment(detail, self._activity_window, self._clock()):
            self._schedule(handle, self._interval)
        else:
            logger.info(f"Enrichment settled for contact {handle.contact_id}")
            self._finish(handle, generation)

    def _handle_failure(self, handle: PollHandle, generation: int, error: Exception) -> None:
        with handle._lock:
            if handle._generation != generation or handle._state is not PollState.ACTIVE:
                return
            handle.failures += 1
            handle.last_error = error
            failures = handle.failures
            if failures >= self._max_failures:
                handle._state = PollState.FAILED

        logger.warning(
            f"Poll of contact {handle.contact_id} failed ({failures} in a row): {error}"
        )
        self._notify(self._on_error, error)

        if failures >= self._max_failures:
            logger.error(f"Giving up on contact {handle.contact_id} after {failures} failures")
            self._release(handle)
            return

        delay = min(self._interval * self._backoff_factor**failures, self._max_interval)
        self._schedule(handle, delay)

    def _finish(self, handle: PollHandle, generation: int) -> None:
        with handle._lock:
            if handle._generation != generation or handle._state is not PollState.ACTIVE:
                return
            handle._state = PollState.COMPLETED
        self._release(handle)
        self._notify(self._on_complete, handle)

    def _adopt(self, handle: PollHandle) -> bool:
        """Register a finished handle again unless another one is polling."""
        with self._lock:
            existing = self._handles.get(handle.contact_id)
            if existing is not None and existing is not handle and existing.is_active:
                return False
            self._handles[handle.contact_id] = handle
            return True

    def _release(self, handle: PollHandle) -> None:
        """Forget a handle that stopped polling."""
        with self._lock:
            if self._handles.get(handle.contact_id) is handle:
                del self._handles[handle.contact_id]

    def _notify(self, callback: Callable | None, arg: object) -> None:
        if callback is None:
            return
        try:
            callback(arg)
        except Exception as e:
            logger.warning(f"Poller callback failed: {e}")


__all__ = [
    "DEFAULT_INTERVAL",
    "EnrichmentPoller",
    "PollHandle",
    "PollState",
    "needs_enrichment",
]
