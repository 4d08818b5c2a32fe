"""Per-device session: persisted identity and the anti-replay answer cache.

This is the participant-side stand-in for browser local storage. The
records are advisory: a device that wipes its storage can answer again
locally, which the server-side unique answer constraint then rejects.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, Iterator, Optional, Tuple

log = logging.getLogger(__name__)

KEY_PREFIX = 'trivia_'


class MemoryStorage:
    """Dict-backed key/value storage; survives a controller restart when shared."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))


class JsonFileStorage(MemoryStorage):
    """Key/value storage persisted to a JSON file after every write."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        data = {}
        if os.path.exists(path):
            with open(path, encoding='utf-8') as fp:
                try:
                    data = json.load(fp)
                except ValueError:
                    log.warning(f"[storage] unreadable session file {path}, starting empty")
        super().__init__(data)

    def _flush(self) -> None:
        tmp = f"{self.path}.tmp"
        with open(tmp, 'w', encoding='utf-8') as fp:
            json.dump(self._data, fp)
        os.replace(tmp, self.path)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            super().set(key, value)
            self._flush()

    def remove(self, key: str) -> None:
        with self._lock:
            super().remove(key)
            self._flush()


class DeviceSession:
    def __init__(self, storage=None, prefix: str = KEY_PREFIX):
        self.storage = storage if storage is not None else MemoryStorage()
        self.prefix = prefix

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def save_identity(self, player_id, nickname: str) -> None:
        self.storage.set(self._key('player_id'), str(player_id))
        self.storage.set(self._key('nickname'), nickname)

    def identity(self) -> Optional[Tuple[int, str]]:
        raw_id = self.storage.get(self._key('player_id'))
        nickname = self.storage.get(self._key('nickname'))
        if not raw_id or not nickname:
            return None
        try:
            return int(raw_id), nickname
        except ValueError:
            return None

    def clear_identity(self) -> None:
        self.storage.remove(self._key('player_id'))
        self.storage.remove(self._key('nickname'))

    def can_answer(self, question_id) -> bool:
        return self.storage.get(self._key(f"answered_{question_id}")) is None

    def record_answer(self, question_id, result: Dict[str, Any]) -> None:
        if not self.can_answer(question_id):
            # Records are write-once
            return
        payload = {'correct': bool(result.get('correct')), 'score': int(result.get('score') or 0)}
        self.storage.set(self._key(f"result_{question_id}"), json.dumps(payload))
        self.storage.set(self._key(f"answered_{question_id}"), 'true')

    def cached_result(self, question_id) -> Optional[Dict[str, Any]]:
        raw = self.storage.get(self._key(f"result_{question_id}"))
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    def clear_all(self) -> None:
        for key in list(self.storage.keys()):
            if key.startswith(self._key('answered_')) or key.startswith(self._key('result_')):
                self.storage.remove(key)

    def logout(self) -> None:
        self.clear_identity()
        self.clear_all()
