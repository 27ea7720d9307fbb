import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FeedEntry(Generic[T]):
    value: T
    ticket: int
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DashboardFeed:
    """
    Cache for externally fetched dashboard rows with last-request-wins semantics.

    Every ``refresh`` for a key takes a new ticket before awaiting the fetch.
    When the response arrives, it is stored only if no newer ticket was issued
    for that key in the meantime; a slow, older response is dropped. The feed
    shares no lock with the rewards ledger.
    """

    def __init__(self):
        self._tickets: dict[str, int] = {}
        self._entries: dict[str, FeedEntry] = {}
        self.discarded = 0

    def latest(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        return entry.value if entry else None

    def entry(self, key: str) -> Optional[FeedEntry]:
        return self._entries.get(key)

    def pending(self, key: str) -> bool:
        entry = self._entries.get(key)
        current = self._tickets.get(key, 0)
        return current > (entry.ticket if entry else 0)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    async def refresh(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        timeout: Optional[float] = None,
    ) -> Optional[T]:
        """
        Fetch ``key`` and return the freshest value known afterwards.

        Returns the fetched value when it is still the newest request,
        otherwise whatever the newer request stored (or None if it has not
        landed yet). Fetch errors and timeouts are logged and leave the
        cached value as it was.
        """
        ticket = self._tickets.get(key, 0) + 1
        self._tickets[key] = ticket

        try:
            if timeout is None:
                value = await fetch()
            else:
                value = await asyncio.wait_for(fetch(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Dashboard fetch for %r timed out after %ss", key, timeout)
            return self.latest(key)
        except Exception:
            logger.exception("Dashboard fetch for %r failed", key)
            return self.latest(key)

        if ticket != self._tickets.get(key):
            self.discarded += 1
            logger.debug("Discarding stale %r response (ticket %s)", key, ticket)
            return self.latest(key)

        self._entries[key] = FeedEntry(value=value, ticket=ticket)
        return value
