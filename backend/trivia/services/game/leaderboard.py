import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

DEFAULT_SIZE = 20


def rank(players: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Players by score, highest first. Ties keep their incoming order."""
    return sorted(players, key=lambda p: -(p.get('score') or 0))


class Leaderboard:
    """Top-N view over the players table, recomputed on every player change.

    The window only limits what is displayed; ``total`` counts every player.
    """

    def __init__(self, store, size: int = DEFAULT_SIZE, on_update: Optional[Callable[[], None]] = None):
        self.store = store
        self.size = size
        self.on_update = on_update
        self.rows: List[Dict[str, Any]] = []
        self.total = 0
        self._subscription = None
        self._lock = threading.Lock()

    def refresh(self) -> List[Dict[str, Any]]:
        players = self.store.query('players', order_by='score', descending=True, limit=self.size)
        total = self.store.count('players')
        with self._lock:
            self.rows = rank(players)
            self.total = total
        return self.rows

    def _on_change(self, event) -> None:
        self.refresh()
        if self.on_update is not None:
            self.on_update()

    def watch(self) -> 'Leaderboard':
        if self._subscription is None:
            self._subscription = self.store.subscribe('players', self._on_change)
        self.refresh()
        return self

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'players': [dict(p, rank=i + 1) for i, p in enumerate(self.rows)],
                'total': self.total,
            }
