from flask import request
from flask_socketio import emit, join_room
from setboard import get_board, get_manager, socketio
from setboard.models import GameState
from typing import Dict, Set

NAMESPACE = '/ws'
BOARD_ROOM = 'board'

# socket id -> stations registered over that socket
_sid_instances: Dict[str, Set[str]] = {}


def broadcast_state(snapshot: GameState) -> None:
    socketio.emit('state_update', snapshot.to_dict(), to=BOARD_ROOM, namespace=NAMESPACE)


def _get_sid() -> str:
    return request.sid  # type: ignore


def _instance_id(data):
    instance_id = (data or {}).get('instance_id')
    if not instance_id:
        emit('error', {'message': 'instance_id is required'})
        return None
    return str(instance_id)


def _owned(instance_id: str) -> bool:
    if instance_id in _sid_instances.get(_get_sid(), set()):
        return True
    emit('error', {'message': f'instance {instance_id} is not registered on this connection'})
    return False


def handle_connect(auth=None):
    join_room(BOARD_ROOM)
    emit('connected', {'message': 'Connected to /ws'})
    emit('state_update', get_manager().get_state().to_dict())


def handle_disconnect(reason=None):
    board = get_board()
    for instance_id in _sid_instances.pop(_get_sid(), set()):
        board.disconnect(instance_id)


def handle_register(data):
    instance_id = _instance_id(data)
    if not instance_id:
        return
    sid = _get_sid()
    if any(instance_id in owned for other, owned in _sid_instances.items() if other != sid):
        emit('error', {'message': f'instance {instance_id} is registered on another connection'})
        return
    position = get_board().connect(instance_id)
    if position is None:
        emit('error', {'message': 'board is full'})
        return
    _sid_instances.setdefault(sid, set()).add(instance_id)
    emit('registered', {'instance_id': instance_id, 'position': position})


def handle_unregister(data):
    instance_id = _instance_id(data)
    if not instance_id or not _owned(instance_id):
        return
    _sid_instances[_get_sid()].discard(instance_id)
    get_board().disconnect(instance_id)
    emit('unregistered', {'instance_id': instance_id})


def handle_press(data):
    instance_id = _instance_id(data)
    if instance_id and _owned(instance_id):
        get_board().press(instance_id)


def handle_release(data):
    instance_id = _instance_id(data)
    if instance_id and _owned(instance_id):
        get_board().release(instance_id)


def handle_register_buzzer(data):
    instance_id = _instance_id(data)
    if not instance_id or not _owned(instance_id):
        return
    try:
        player_id = int((data or {}).get('player_id'))
    except (TypeError, ValueError):
        emit('error', {'message': 'player_id must be an integer'})
        return
    if not get_manager().register_buzzer(instance_id, player_id):
        emit('error', {'message': f'unknown player {player_id}'})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('register', handle_register, namespace=NAMESPACE)
    socketio.on_event('unregister', handle_unregister, namespace=NAMESPACE)
    socketio.on_event('press', handle_press, namespace=NAMESPACE)
    socketio.on_event('release', handle_release, namespace=NAMESPACE)
    socketio.on_event('register_buzzer', handle_register_buzzer, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
