"""Fan-out of events to connected observers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Protocol

from app.schemas import BroadcastMessage

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT = 5.0


class Observer(Protocol):
    async def send_json(self, data: Any, mode: str = "text") -> None: ...


class Broadcaster:
    """Tracks connected observers and pushes event envelopes to them.

    Each send is bounded by ``send_timeout``; an observer that fails or stalls
    is dropped so it cannot hold up the others or the ingest call.
    """

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT) -> None:
        self.send_timeout = send_timeout
        self._observers: List[Observer] = []

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def add(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    async def send_to(self, observer: Observer, event: str, data: Dict[str, Any]) -> bool:
        """Deliver one envelope to a single observer, dropping it on failure."""
        message = BroadcastMessage(event=event, data=data).model_dump(mode="json")
        try:
            await asyncio.wait_for(observer.send_json(message), timeout=self.send_timeout)
        except Exception as exc:
            self.remove(observer)
            logger.warning(
                "Dropping observer after failed send.",
                extra={"event": event, "reason": type(exc).__name__, "observer_count": self.observer_count},
            )
            return False
        return True

    async def broadcast(self, event: str, data: Dict[str, Any]) -> int:
        """Send to every observer connected right now; returns deliveries."""
        observers = list(self._observers)
        if not observers:
            return 0
        results = await asyncio.gather(
            *(self.send_to(observer, event, data) for observer in observers)
        )
        return sum(1 for delivered in results if delivered)
