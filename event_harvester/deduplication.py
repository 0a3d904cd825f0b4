"""Run-scoped discovery set and result collection shared by all harvest tasks."""
from .models import EventRecord


class DiscoverySet:
    """
    Every event ID seen during a run.

    ``claim`` checks and inserts without yielding to the event loop, so two
    tasks racing on the same ID cannot both win it.
    """

    def __init__(self):
        self._seen: set[str] = set()

    def claim(self, event_id: str) -> bool:
        """Return True the first time ``event_id`` is seen, False afterwards."""
        if event_id in self._seen:
            return False
        self._seen.add(event_id)
        return True

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)


class EventCollector:
    """Append-only collection of harvested records, in completion order."""

    def __init__(self):
        self._events: list[EventRecord] = []

    def append(self, event: EventRecord) -> None:
        self._events.append(event)

    def snapshot(self) -> list[EventRecord]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)
