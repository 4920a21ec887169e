from flask_socketio import emit
from flask import current_app, request
from flask_login import current_user
from trivia import socketio
from trivia.services.rooms.errors import AlreadyAnswered, RoomNotFound, TriviaError
from trivia.services.rooms.navigation import View, ViewEvent, transition
from trivia.services.rooms.room_view import GAME_FINISHED, GAME_STARTED, ROUND_COMPLETE, RoomView
from typing import Dict, Any


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # Cancel every change-stream subscription this socket held
    subs = _sid_to_subs.pop(_get_sid(), {})
    for ctx in subs.values():
        ctx['subscription'].unsubscribe()


def handle_subscribe(data):
    room_id = ((data or {}).get('room_id') or '').strip().upper()
    if not room_id:
        emit('error', {'message': 'room_id is required'})
        return
    if not current_user.is_authenticated:
        emit('error', {'message': 'Create an identity first.'})
        return
    services = current_app.extensions['trivia']
    uid = current_user.get_id()
    sid = _get_sid()
    redirect_after = int(current_app.config.get('ROOM_MISSING_REDIRECT_SEC', 3))
    try:
        room = services.rooms.get_room(room_id)
    except RoomNotFound as exc:
        emit('room_missing', {'room_id': room_id, 'message': exc.message, 'redirect_after_sec': redirect_after,
                              'view': transition(View.LOBBY, ViewEvent.ROOM_MISSING).value})
        return
    if not room.has_player(uid):
        emit('error', {'message': 'Join the room before subscribing.'})
        return

    subs = _sid_to_subs.setdefault(sid, {})
    if room_id in subs:
        subs.pop(room_id)['subscription'].unsubscribe()
    ctx = {'view': RoomView(uid), 'screen': View.LOBBY}
    listener = _make_listener(sid, request.namespace, room_id, ctx, redirect_after)
    ctx['subscription'] = services.store.subscribe(services.room_path(room_id), listener)
    if ctx['view'].missing:
        # Deleted between the membership check and the subscription
        ctx['subscription'].unsubscribe()
        return
    subs[room_id] = ctx
    emit('subscribed', {'room_id': room_id})


def handle_unsubscribe(data):
    room_id = ((data or {}).get('room_id') or '').strip().upper()
    if not room_id:
        emit('error', {'message': 'room_id is required'})
        return
    _drop_subscription(_get_sid(), room_id)
    emit('unsubscribed', {'room_id': room_id})


def handle_submit_answer(data):
    data = data or {}
    room_id = (data.get('room_id') or '').strip().upper()
    answer = data.get('answer')
    ctx = _sid_to_subs.get(_get_sid(), {}).get(room_id)
    if ctx is None:
        emit('error', {'message': 'Subscribe to the room before answering.'})
        return
    if not isinstance(answer, str) or not answer:
        emit('error', {'message': 'answer is required'})
        return
    view = ctx['view']
    # Local guard: one submission per question from this client
    if not view.begin_submit():
        emit('error', {'message': AlreadyAnswered.message})
        return
    services = current_app.extensions['trivia']
    try:
        _, correct = services.game.submit_answer(room_id, view.uid, answer)
    except TriviaError as exc:
        view.end_submit(False)
        current_app.logger.info(f"[ws-answer-rejected] room={room_id} uid={view.uid} {type(exc).__name__}")
        emit('error', {'message': exc.message})
        return
    view.end_submit(True)
    emit('answer_accepted', {'room_id': room_id, 'correct': correct})


def handle_ping(data):
    emit('pong', data or {})

# ---- Change-stream helpers ----

_sid_to_subs: Dict[str, Dict[str, Dict[str, Any]]] = {}

def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _drop_subscription(sid: str, room_id: str) -> None:
    ctx = _sid_to_subs.get(sid, {}).pop(room_id, None)
    if ctx:
        ctx['subscription'].unsubscribe()
    if sid in _sid_to_subs and not _sid_to_subs[sid]:
        _sid_to_subs.pop(sid, None)

def _make_listener(sid: str, namespace: str, room_id: str, ctx: Dict[str, Any], redirect_after: int):
    """Build the store callback that forwards one room's snapshots to one socket."""
    view = ctx['view']

    def _listener(snapshot):
        events = view.apply(snapshot)
        if snapshot is None:
            if events:
                ctx['screen'] = transition(ctx['screen'], ViewEvent.ROOM_MISSING)
                socketio.emit('room_missing', {
                    'room_id': room_id,
                    'message': RoomNotFound.message,
                    'redirect_after_sec': redirect_after,
                    'view': ctx['screen'].value,
                }, to=sid, namespace=namespace)
            _drop_subscription(sid, room_id)
            return
        if not view.room.has_player(view.uid):
            # The player left the room; spectating is not supported
            _drop_subscription(sid, room_id)
            socketio.emit('unsubscribed', {'room_id': room_id, 'reason': 'left'}, to=sid, namespace=namespace)
            return
        if GAME_STARTED in events and ctx['screen'] == View.LOBBY:
            ctx['screen'] = transition(ctx['screen'], ViewEvent.GAME_STARTED)
        socketio.emit('snapshot', {
            'room_id': room_id,
            'version': snapshot.version,
            'room': snapshot.data,
            'view': dict(view.to_dict(), screen=ctx['screen'].value),
        }, to=sid, namespace=namespace)
        if ROUND_COMPLETE in events:
            socketio.emit('round_complete', {
                'room_id': room_id,
                'question_index': view.room.current_question_index,
                'correct_answer': view.room.current_question.correct_answer,
            }, to=sid, namespace=namespace)
        if GAME_FINISHED in events:
            socketio.emit('game_over', {'room_id': room_id, 'ranking': view.ranking()}, to=sid, namespace=namespace)

    return _listener


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('subscribe', handle_subscribe, namespace=namespace)
        socketio.on_event('unsubscribe', handle_unsubscribe, namespace=namespace)
        socketio.on_event('submit_answer', handle_submit_answer, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
