"""State Store: point reads/writes over the SQL models plus per-table change
notifications.

Every role talks to the game through this one interface. Writes commit
before any notification goes out, and notifications carry full row
snapshots (``old``/``new``), but consumers are expected to re-fetch the
latest record rather than trust payload order: delivery to Socket.IO
clients is at-least-once and may be reordered by the transport.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from trivia import db
from trivia.errors import Conflict, NotFound
from trivia.models import Answer, GameControl, Player, Question, Settings

log = logging.getLogger(__name__)

TABLES = {
    'settings': Settings,
    'questions': Question,
    'players': Player,
    'game_control': GameControl,
    'answers': Answer,
}

# Tables broadcast to Socket.IO rooms; questions and answers stay server-side
BROADCAST_TABLES = frozenset({'settings', 'game_control', 'players'})

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'


@dataclass
class ChangeEvent:
    table: str
    type: str
    old: Optional[Dict[str, Any]] = None
    new: Optional[Dict[str, Any]] = None

    @property
    def record(self) -> Optional[Dict[str, Any]]:
        return self.new if self.new is not None else self.old

    def to_dict(self) -> Dict[str, Any]:
        return {'table': self.table, 'type': self.type, 'old': self.old, 'new': self.new}


class Subscription:
    def __init__(self, store, table: str, callback: Callable[[ChangeEvent], None],
                 event_types: Optional[Iterable[str]] = None,
                 predicate: Optional[Callable[[ChangeEvent], bool]] = None):
        self.store = store
        self.table = table
        self.callback = callback
        self.event_types = frozenset(event_types) if event_types else None
        self.predicate = predicate
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        if not self.active or event.table != self.table:
            return False
        if self.event_types is not None and event.type not in self.event_types:
            return False
        return self.predicate is None or bool(self.predicate(event))

    def cancel(self) -> None:
        self.active = False
        self.store._remove(self)


class StateStore:
    def __init__(self, app=None, socketio=None):
        self.socketio = None
        self._subscriptions: List[Subscription] = []
        self._lock = threading.RLock()
        if app is not None:
            self.init_app(app, socketio)

    def init_app(self, app, socketio=None) -> None:
        self.socketio = socketio
        with self._lock:
            self._subscriptions = []
        app.extensions['trivia_store'] = self

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise NotFound(f'Unknown table {table!r}')

    def _row(self, table: str, key):
        # populate_existing: re-read the committed row over any identity-map copy
        row = db.session.get(self._model(table), key, populate_existing=True)
        if row is None:
            raise NotFound(f'{table} {key} not found')
        return row

    def get(self, table: str, key) -> Dict[str, Any]:
        return self._row(table, key).to_dict()

    def exists(self, table: str, key) -> bool:
        if key is None:
            return False
        return db.session.get(self._model(table), key, populate_existing=True) is not None

    def _select(self, table, filters=None, order_by=None, descending=False):
        model = self._model(table)
        q = model.query.populate_existing().filter_by(**(filters or {}))
        if order_by:
            names = [order_by] if isinstance(order_by, str) else list(order_by)
            cols = [getattr(model, n) for n in names]
            if descending:
                cols = [c.desc() for c in cols]
            # id as final key keeps ties in insertion order
            q = q.order_by(*cols, model.id.asc())
        else:
            q = q.order_by(model.id.asc())
        return q

    def query(self, table: str, filters: Optional[Dict[str, Any]] = None, order_by=None,
              descending: bool = False, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        q = self._select(table, filters, order_by, descending)
        if limit is not None:
            q = q.limit(limit)
        return [row.to_dict() for row in q.all()]

    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        return self._model(table).query.filter_by(**(filters or {})).count()

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        row = self._model(table)(**values)
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise Conflict(f'{table} insert violates a unique constraint') from exc
        new = row.to_dict()
        self.publish(ChangeEvent(table, INSERT, None, new))
        return new

    def update(self, table: str, key, values: Dict[str, Any]) -> Dict[str, Any]:
        row = self._row(table, key)
        old = row.to_dict()
        for name, value in values.items():
            setattr(row, name, value)
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise Conflict(f'{table} update violates a unique constraint') from exc
        new = row.to_dict()
        self.publish(ChangeEvent(table, UPDATE, old, new))
        return new

    def delete(self, table: str, key=None, filters: Optional[Dict[str, Any]] = None) -> int:
        """Delete one row by key, or every row matching ``filters`` (all rows when
        neither is given). Emits one DELETE event per removed row."""
        if key is not None:
            rows = [self._row(table, key)]
        else:
            rows = self._select(table, filters).all()
        olds = [row.to_dict() for row in rows]
        for row in rows:
            db.session.delete(row)
        db.session.commit()
        for old in olds:
            self.publish(ChangeEvent(table, DELETE, old, None))
        return len(olds)

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], None],
                  event_types: Optional[Iterable[str]] = None,
                  predicate: Optional[Callable[[ChangeEvent], bool]] = None) -> Subscription:
        self._model(table)
        sub = Subscription(self, table, callback, event_types, predicate)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]
        for sub in targets:
            try:
                sub.callback(event)
            except Exception:
                # Write already committed; log and keep notifying
                log.exception(f"[notify-failed] table={event.table} type={event.type}")
        if self.socketio is not None and event.table in BROADCAST_TABLES:
            self.socketio.emit('table_change', event.to_dict(), to=f"table:{event.table}", namespace='/ws')
