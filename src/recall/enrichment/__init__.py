"""Enrichment tracking for Recall.

Observes asynchronous summary generation by polling contacts.
"""

from .poller import EnrichmentPoller, PollHandle, PollState, needs_enrichment
from .scheduler import ManualScheduler, ScheduledCall, Scheduler, ThreadingScheduler

__all__ = [
    "EnrichmentPoller",
    "ManualScheduler",
    "PollHandle",
    "PollState",
    "ScheduledCall",
    "Scheduler",
    "ThreadingScheduler",
    "needs_enrichment",
]
