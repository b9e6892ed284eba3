"""Change Feed - fan-out of repository write notifications to subscribers.

Invariants:
    - publish() never blocks and never raises, even with zero subscribers
    - Every subscriber active at publish time receives the event exactly once
    - A subscription is removed when its context exits, including on cancellation

Design Decisions:
    - One unbounded asyncio.Queue per subscriber: slow consumers cannot stall
      writers, and watch_* loops re-read state rather than trust event payloads
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Literal

logger = logging.getLogger(__name__)

ChangeKind = Literal["form", "entry"]


@dataclass(frozen=True)
class ChangeEvent:
    """One committed write. form_id is set for entry events too."""
    kind: ChangeKind
    key: str
    form_id: str | None = None

    def concerns_form(self, form_id: str) -> bool:
        return self.form_id == form_id

    def concerns_entry(self, entry_id: str) -> bool:
        return self.kind == "entry" and self.key == entry_id


class ChangeFeed:
    """In-process broadcast used by the repository adapters."""

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[ChangeEvent]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(event)
        logger.debug(
            f"Published {event.kind} change for {event.key}",
            extra={"form_id": event.form_id},
        )

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue[ChangeEvent]]:
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)
