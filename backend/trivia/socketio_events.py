from flask_socketio import join_room, leave_room, emit
from trivia import socketio
from trivia.store import BROADCAST_TABLES

PRESENTER_ROOM = 'presenter'


def _room_for(data):
    """Map a subscribe payload to a room name, or None if it names nothing we publish."""
    data = data or {}
    if data.get('room') == PRESENTER_ROOM:
        return PRESENTER_ROOM
    table = data.get('table')
    if table in BROADCAST_TABLES:
        return f"table:{table}"
    return None


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_subscribe(data):
    room = _room_for(data)
    if room is None:
        emit('error', {'message': f"table must be one of {sorted(BROADCAST_TABLES)} (or room='presenter')"})
        return
    join_room(room)
    emit('subscribed', {'room': room})


def handle_unsubscribe(data):
    room = _room_for(data)
    if room is None:
        emit('error', {'message': 'unknown table'})
        return
    leave_room(room)
    emit('unsubscribed', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('subscribe', handle_subscribe, namespace=ns)
        socketio.on_event('unsubscribe', handle_unsubscribe, namespace=ns)
        socketio.on_event('ping', handle_ping, namespace=ns)
