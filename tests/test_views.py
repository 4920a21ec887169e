import pytest

from trivia.services.rooms import View, ViewEvent, transition
from trivia.services.rooms.errors import InvalidTransition
from trivia.services.rooms.links import join_link, room_code_from_url
from trivia.services.rooms.navigation import initial_event


def test_multiplayer_path_through_the_screens():
    view = transition(View.LOADING, ViewEvent.IDENTITY_READY)
    assert view == View.MAIN_MENU
    view = transition(view, ViewEvent.CHOOSE_MULTIPLAYER)
    assert view == View.ENTER_NAME
    view = transition(view, ViewEvent.NAME_ENTERED_MULTIPLAYER)
    assert view == View.MULTIPLAYER_MENU
    view = transition(view, ViewEvent.ROOM_CREATED)
    assert view == View.LOBBY
    view = transition(view, ViewEvent.GAME_STARTED)
    assert view == View.GAME
    assert transition(view, ViewEvent.ROOM_MISSING) == View.MULTIPLAYER_MENU
    assert transition(view, ViewEvent.LEAVE_GAME) == View.MAIN_MENU


def test_single_player_and_direct_link_paths():
    assert transition(View.ENTER_NAME, ViewEvent.NAME_ENTERED_SINGLE) == View.GAME
    assert transition(View.LOADING, ViewEvent.DIRECT_JOIN_LINK) == View.ENTER_NAME
    assert transition(View.ENTER_NAME, ViewEvent.ROOM_JOINED) == View.LOBBY
    assert transition(View.LOBBY, ViewEvent.LEFT_ROOM) == View.MULTIPLAYER_MENU


def test_failure_reaches_error_from_anywhere():
    for view in View:
        assert transition(view, ViewEvent.FAILED) == View.ERROR


def test_undefined_transition_raises():
    with pytest.raises(InvalidTransition):
        transition(View.MAIN_MENU, ViewEvent.GAME_STARTED)
    with pytest.raises(InvalidTransition):
        transition(View.ERROR, ViewEvent.BACK)


def test_initial_event():
    assert initial_event(None) == ViewEvent.IDENTITY_READY
    assert initial_event('ABC123') == ViewEvent.DIRECT_JOIN_LINK


def test_join_link_round_trip_keeps_other_params():
    link = join_link('https://trivia.example.com/play?lang=en', 'abc123')
    assert link == 'https://trivia.example.com/play?lang=en&room=ABC123'
    assert room_code_from_url(link) == 'ABC123'


def test_room_code_from_url_without_code():
    assert room_code_from_url('https://trivia.example.com/') is None
    assert room_code_from_url('https://trivia.example.com/?room=%20') is None
    assert room_code_from_url('https://trivia.example.com/?room=xy12zz') == 'XY12ZZ'
