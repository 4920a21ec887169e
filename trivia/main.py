from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_user, logout_user, current_user
from uuid import uuid4
from trivia.models import Identity
from trivia.services.rooms.documents import generate_player_name
from trivia.services.rooms.links import room_code_from_url
from trivia.services.rooms.navigation import View, initial_event, transition

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the trivia room server!'})

@main.route('/api/identity', methods=['POST'])
def identity():
    """
    Returns the caller's anonymous identity, creating one for this browser
    session on first use. An optional name replaces the stored display name.
    """
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if name:
        session['player_name'] = name
    elif not session.get('player_name'):
        session['player_name'] = generate_player_name()

    if current_user.is_authenticated:
        user = Identity(current_user.get_id(), session['player_name'])
    else:
        user = Identity(uuid4().hex, session['player_name'])
        # Session cookie only: the identity ends with the browser session
        login_user(user, remember=False)
        current_app.logger.info(f"[identity] new uid={user.uid}")

    direct_room = room_code_from_url(data['url']) if data.get('url') else None
    payload = user.to_dict()
    payload['direct_join_room'] = direct_room
    payload['view'] = transition(View.LOADING, initial_event(direct_room)).value
    return jsonify(payload)

@main.route('/api/identity', methods=['DELETE'])
def forget_identity():
    logout_user()
    session.pop('player_name', None)
    return jsonify({'message': 'Identity cleared.'})
