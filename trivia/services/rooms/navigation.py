"""Screen flow of a client as an explicit state machine."""

import enum

from .errors import InvalidTransition


class View(str, enum.Enum):
    LOADING = 'loading'
    MAIN_MENU = 'main_menu'
    ENTER_NAME = 'enter_name'
    MULTIPLAYER_MENU = 'multiplayer_menu'
    LOBBY = 'lobby'
    GAME = 'game'
    ERROR = 'error'


class ViewEvent(str, enum.Enum):
    IDENTITY_READY = 'identity_ready'
    DIRECT_JOIN_LINK = 'direct_join_link'
    CHOOSE_SINGLE = 'choose_single'
    CHOOSE_MULTIPLAYER = 'choose_multiplayer'
    NAME_ENTERED_SINGLE = 'name_entered_single'
    NAME_ENTERED_MULTIPLAYER = 'name_entered_multiplayer'
    BACK = 'back'
    ROOM_CREATED = 'room_created'
    ROOM_JOINED = 'room_joined'
    GAME_STARTED = 'game_started'
    ROOM_MISSING = 'room_missing'
    LEFT_ROOM = 'left_room'
    LEAVE_GAME = 'leave_game'
    FAILED = 'failed'


_TRANSITIONS = {
    (View.LOADING, ViewEvent.IDENTITY_READY): View.MAIN_MENU,
    (View.LOADING, ViewEvent.DIRECT_JOIN_LINK): View.ENTER_NAME,
    (View.MAIN_MENU, ViewEvent.CHOOSE_SINGLE): View.ENTER_NAME,
    (View.MAIN_MENU, ViewEvent.CHOOSE_MULTIPLAYER): View.ENTER_NAME,
    (View.ENTER_NAME, ViewEvent.NAME_ENTERED_SINGLE): View.GAME,
    (View.ENTER_NAME, ViewEvent.NAME_ENTERED_MULTIPLAYER): View.MULTIPLAYER_MENU,
    (View.ENTER_NAME, ViewEvent.ROOM_JOINED): View.LOBBY,
    (View.ENTER_NAME, ViewEvent.BACK): View.MAIN_MENU,
    (View.MULTIPLAYER_MENU, ViewEvent.ROOM_CREATED): View.LOBBY,
    (View.MULTIPLAYER_MENU, ViewEvent.ROOM_JOINED): View.LOBBY,
    (View.MULTIPLAYER_MENU, ViewEvent.BACK): View.ENTER_NAME,
    (View.LOBBY, ViewEvent.GAME_STARTED): View.GAME,
    (View.LOBBY, ViewEvent.ROOM_MISSING): View.MULTIPLAYER_MENU,
    (View.LOBBY, ViewEvent.LEFT_ROOM): View.MULTIPLAYER_MENU,
    (View.GAME, ViewEvent.ROOM_MISSING): View.MULTIPLAYER_MENU,
    (View.GAME, ViewEvent.LEAVE_GAME): View.MAIN_MENU,
}


def transition(view: View, event: ViewEvent) -> View:
    """Return the view reached from `view` on `event`.

    `FAILED` leads to the error screen from anywhere; any other pair missing
    from the table raises `InvalidTransition`.
    """
    if event == ViewEvent.FAILED:
        return View.ERROR
    try:
        return _TRANSITIONS[(view, event)]
    except KeyError:
        raise InvalidTransition(f"No transition from {view.value} on {event.value}")


def initial_event(direct_join_room=None) -> ViewEvent:
    return ViewEvent.DIRECT_JOIN_LINK if direct_join_room else ViewEvent.IDENTITY_READY
