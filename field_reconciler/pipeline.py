"""
Intake pipeline — routes producer events into one application session.

Flow:
  ┌────────────┐  ┌────────────┐  ┌────────────┐
  │ Extraction │  │Form webhook│  │  Lender    │   ← Subscriptions
  │  service   │  │            │  │  matching  │
  └─────┬──────┘  └─────┬──────┘  └─────┬──────┘
        └───────────────┼───────────────┘
                 ┌──────▼──────┐
                 │    Queue    │   ← One consumer, one event at a time
                 └──────┬──────┘
           ┌────────────┴────────────┐
    ┌──────▼──────┐           ┌──────▼──────┐
    │ Field bag   │           │ Match list  │   ← Structural unwrap
    └──────┬──────┘           └──────┬──────┘
    ┌──────▼──────┐           ┌──────▼──────┐
    │   Merge     │           │  Validate   │
    └──────┬──────┘           └──────┬──────┘
           └────────────┬────────────┘
                 ┌──────▼──────┐
                 │   Session   │   ← Record + provenance + matches
                 └─────────────┘

Design principles:
  - Producers never touch the session directly; they publish to a handle.
  - Events are processed to completion before the next one starts, so two
    merges over the same record never interleave.
  - Provenance, not arrival order, decides whether a value may be replaced.
  - There is no timeout: a field no producer mentions simply stays empty.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .matches import clean_lender_matches
from .merge import ApplicationSession
from .models import LenderMatch, MergeReport, ProducerKind
from .unwrap import unwrap_field_bag, unwrap_match_list

logger = logging.getLogger(__name__)

EventResult = MergeReport | list[LenderMatch]


@dataclass
class ProducerEvent:
    source: ProducerKind
    payload: Any


class Subscription:
    """A producer's handle for publishing payloads into an engine's queue."""

    def __init__(self, engine: IntakeEngine, source: ProducerKind):
        self.engine = engine
        self.source = source
        self.active = True

    def publish(self, payload: Any) -> bool:
        """Queue a payload. Returns False once the subscription is closed."""
        if not self.active:
            logger.info("Ignoring %s payload on closed subscription", self.source.value)
            return False
        self.engine._enqueue(ProducerEvent(self.source, payload))
        return True

    def close(self) -> None:
        self.active = False


class IntakeEngine:
    """Owns one session and the queue that feeds it.

    Usage:
        engine = IntakeEngine()
        extraction = engine.subscribe(ProducerKind.DOCUMENT_EXTRACTION)
        extraction.publish(payload)
        engine.process_pending()
        snapshot = engine.session.snapshot()
    """

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self.session = ApplicationSession(initial)
        self._queue: deque[ProducerEvent] = deque()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def subscribe(self, source: ProducerKind) -> Subscription:
        return Subscription(self, source)

    def _enqueue(self, event: ProducerEvent) -> None:
        self._queue.append(event)

    # ─── Consumer ───────────────────────────────────────────────────

    def process_next(self) -> EventResult | None:
        """Process the oldest queued event; None if the queue is empty."""
        if not self._queue:
            return None
        event = self._queue.popleft()
        return self.handle(event.source, event.payload)

    def process_pending(self) -> list[EventResult]:
        """Drain the queue in arrival order."""
        results: list[EventResult] = []
        while self._queue:
            result = self.process_next()
            if result is not None:
                results.append(result)
        return results

    def handle(self, source: ProducerKind, payload: Any) -> EventResult:
        """Apply one producer payload to the session, synchronously."""
        if source is ProducerKind.LENDER_MATCHING:
            return self._handle_lender_matches(payload)
        return self._handle_field_bag(source, payload)

    def _handle_field_bag(self, source: ProducerKind, payload: Any) -> MergeReport:
        bag = unwrap_field_bag(payload)
        logger.info("Received %s payload with %d flattened key(s)", source.value, len(bag))
        return self.session.merge_bag(bag, source)

    def _handle_lender_matches(self, payload: Any) -> list[LenderMatch]:
        matches = clean_lender_matches(unwrap_match_list(payload))
        logger.info("Received %d lender match(es)", len(matches))
        self.session.replace_lender_matches(matches)
        return matches

    # ─── Reset ──────────────────────────────────────────────────────

    def reset(self) -> None:
        """Start over: empty record, no provenance, no queued events.

        Subscriptions stay open so producers can keep publishing.
        """
        dropped = len(self._queue)
        self._queue.clear()
        self.session = ApplicationSession()
        logger.info("Session reset (%d queued event(s) discarded)", dropped)
