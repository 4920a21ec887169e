from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from trivia.services.rooms.errors import TriviaError
from trivia.services.rooms.links import join_link
from trivia.services.rooms.room_view import RoomView


rooms = Blueprint('rooms', __name__)


def _services():
    return current_app.extensions['trivia']


def _room_payload(room, **extra):
    payload = room.to_dict()
    payload['view'] = RoomView.of(room, current_user.get_id()).to_dict()
    payload.update(extra)
    return payload


def _join_link(room_id):
    base = current_app.config.get('PUBLIC_BASE_URL') or request.host_url
    return join_link(base, room_id)


@rooms.errorhandler(TriviaError)
def handle_trivia_error(exc):
    current_app.logger.info(f"[api-error] {request.method} {request.path} {type(exc).__name__}: {exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


@rooms.route('/questions', methods=['GET'])
def get_questions():
    """
    Question batch for a single-player game, which runs entirely client-side.
    """
    amount = request.args.get('amount', type=int)
    questions = _services().loader.load(amount, request.args.get('category'), request.args.get('difficulty'))
    return jsonify([q.to_dict() for q in questions])


@rooms.route('/rooms', methods=['POST'])
@login_required
def create_room():
    """
    Creates a waiting room with the caller as host and first player.
    """
    data = request.get_json(silent=True) or {}
    amount = data.get('amount')
    try:
        amount = int(amount) if amount is not None else None
    except (TypeError, ValueError):
        return jsonify({'error': 'amount must be a number'}), 400
    room = _services().rooms.create_room(
        current_user.get_id(), current_user.name,
        amount=amount, category=data.get('category'), difficulty=data.get('difficulty'),
    )
    return jsonify({
        'room_id': room.room_id,
        'room': _room_payload(room),
        'join_link': _join_link(room.room_id),
    }), 201


@rooms.route('/rooms/<string:room_id>', methods=['GET'])
@login_required
def get_room(room_id):
    room = _services().rooms.get_room(room_id)
    return jsonify(_room_payload(room))


@rooms.route('/rooms/<string:room_id>/join', methods=['POST'])
@login_required
def join_room(room_id):
    room = _services().rooms.join_room(room_id, current_user.get_id(), current_user.name)
    return jsonify(_room_payload(room))


@rooms.route('/rooms/<string:room_id>/leave', methods=['POST'])
@login_required
def leave_room(room_id):
    """
    Removes the caller. The last player out deletes the room; a leaving host
    hands over to the next player in join order.
    """
    room = _services().rooms.leave_room(room_id, current_user.get_id())
    if room is None:
        return jsonify({'message': 'You have left the room.', 'deleted': True})
    return jsonify(_room_payload(room, deleted=False))


@rooms.route('/rooms/<string:room_id>/start', methods=['POST'])
@login_required
def start_game(room_id):
    room = _services().rooms.start_game(room_id, current_user.get_id())
    return jsonify(_room_payload(room))


@rooms.route('/rooms/<string:room_id>/answers', methods=['POST'])
@login_required
def submit_answer(room_id):
    data = request.get_json(silent=True) or {}
    answer = data.get('answer')
    if not isinstance(answer, str) or not answer:
        return jsonify({'error': 'answer is required'}), 400
    room, correct = _services().game.submit_answer(room_id, current_user.get_id(), answer)
    return jsonify(_room_payload(room, correct=correct))


@rooms.route('/rooms/<string:room_id>/advance', methods=['POST'])
@login_required
def advance_question(room_id):
    room = _services().game.advance_question(room_id, current_user.get_id())
    return jsonify(_room_payload(room))


@rooms.route('/rooms/<string:room_id>/link', methods=['GET'])
def get_join_link(room_id):
    return jsonify({'room_id': room_id.strip().upper(), 'join_link': _join_link(room_id)})
