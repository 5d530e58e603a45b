"""
Per-tournament serialization.

Every operation that mutates a bracket, its disputes or its payouts runs while
holding the tournament's lock. Retraction cascades can touch any ancestor of a
match, so the lock is scoped to the whole tournament rather than to one match.
A tournament's lock only lives while some thread holds or waits for it.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class TournamentLockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        # tournament id -> [lock, number of threads holding or waiting for it]
        self._locks: Dict[str, List] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, tournament_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(tournament_id)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[tournament_id] = entry
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[tournament_id]
