from flask_socketio import join_room, leave_room, emit
from codeguess import socketio
from codeguess.models import GAME_MODES


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _leaderboard_room(data):
    mode = (data or {}).get('mode')
    if mode not in GAME_MODES:
        emit('error', {'message': f"mode must be one of: {', '.join(GAME_MODES)}"})
        return None
    return f"leaderboard:{mode}"


def handle_watch_leaderboard(data):
    room = _leaderboard_room(data)
    if not room:
        return
    join_room(room)
    emit('watching', {'room': room})


def handle_unwatch_leaderboard(data):
    room = _leaderboard_room(data)
    if not room:
        return
    leave_room(room)
    emit('unwatched', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'watch_leaderboard': handle_watch_leaderboard,
        'unwatch_leaderboard': handle_unwatch_leaderboard,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
