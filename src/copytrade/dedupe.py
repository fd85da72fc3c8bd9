"""Bounded set of recently seen event ids."""
from collections import deque

from ..config import DEDUPE_CAPACITY


class DedupeSet:
    """
    Fixed-capacity set with oldest-first eviction.

    Membership is O(1) through a hash set; a deque keeps insertion order
    so the oldest id can be evicted when capacity is exceeded.
    """

    def __init__(self, capacity: int = DEDUPE_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._order: deque = deque()
        self._members: set = set()

    def check_and_add(self, event_id: str) -> bool:
        """
        Record an event id.

        Returns:
            True if the id was already present (duplicate), False if new.
        """
        if event_id in self._members:
            return True

        self._order.append(event_id)
        self._members.add(event_id)
        if len(self._order) > self.capacity:
            self._members.discard(self._order.popleft())
        return False

    def clear(self) -> None:
        self._order.clear()
        self._members.clear()

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._members

    def __len__(self) -> int:
        return len(self._members)
