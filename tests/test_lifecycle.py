import re

import pytest

from trivia.services.rooms import GameState, RoomLifecycleManager
from trivia.services.rooms.errors import (
    InvalidState, NotHost, RoomNotFound, StorageWriteError, WriteConflict,
)
from trivia.services.rooms.storage import ArrayUnion

from conftest import RacingStore


class ScriptedChoice:
    """rng stand-in whose choice() replays the characters of fixed codes."""

    def __init__(self, *codes):
        self._chars = iter(''.join(codes))

    def choice(self, seq):
        return next(self._chars)


def manager_with(services, store=None, rng=None, code_attempts=5, conflict_retries=1):
    return RoomLifecycleManager(
        store or services.store, services.loader, namespace='test-trivia-app',
        code_attempts=code_attempts, conflict_retries=conflict_retries, rng=rng,
    )


def test_create_room_defaults(services, loader):
    room = services.rooms.create_room('host-1', 'Alice', amount=2, category='9', difficulty='easy')
    assert re.fullmatch(r'[A-Z0-9]{6}', room.room_id)
    assert room.host_id == 'host-1'
    assert [(p.uid, p.name, p.score) for p in room.players] == [('host-1', 'Alice', 0)]
    assert room.game_state == GameState.WAITING
    assert room.current_question_index == 0
    assert room.answers == {}
    assert len(room.questions) == 2
    assert loader.calls == [(2, '9', 'easy')]

    stored = services.store.get(f'test-trivia-app/rooms/{room.room_id}')
    assert stored.data['hostId'] == 'host-1'
    assert stored.data['gameState'] == 'waiting'


def test_create_room_regenerates_code_on_collision(services):
    rooms = manager_with(services, rng=ScriptedChoice('AAAAAA', 'AAAAAA', 'BBBBBB'))
    first = rooms.create_room('host-1', 'Alice')
    second = rooms.create_room('host-2', 'Bob')
    assert first.room_id == 'AAAAAA'
    assert second.room_id == 'BBBBBB'
    # the existing room was not overwritten
    assert rooms.get_room('AAAAAA').host_id == 'host-1'


def test_create_room_gives_up_after_code_attempts(services):
    rooms = manager_with(services, rng=ScriptedChoice('AAAAAA' * 4), code_attempts=3)
    rooms.create_room('host-1', 'Alice')
    with pytest.raises(StorageWriteError):
        rooms.create_room('host-2', 'Bob')


def test_join_appends_in_order_and_is_idempotent(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.join_room(room.room_id.lower(), 'p-2', 'Bob')
    joined = services.rooms.join_room(f'  {room.room_id} ', 'p-2', 'Bob')
    assert [p.uid for p in joined.players] == ['host-1', 'p-2']
    assert joined.host_id == 'host-1'


def test_rejoin_from_a_stale_read_keeps_one_entry_per_player(services):
    room = services.rooms.create_room('host-1', 'Alice')
    path = services.room_path(room.room_id)
    before_join = services.store.get(path)
    services.rooms.join_room(room.room_id, 'p-2', 'Bob')
    services.store.update(path, {'players': [
        {'uid': 'host-1', 'name': 'Alice', 'score': 0},
        {'uid': 'p-2', 'name': 'Bob', 'score': 1},
    ]})

    class StaleReads:
        def get(self, p):
            return before_join

        def __getattr__(self, name):
            return getattr(services.store, name)

    joined = manager_with(services, store=StaleReads()).join_room(room.room_id, 'p-2', 'Bob')
    assert [(p.uid, p.score) for p in joined.players] == [('host-1', 0), ('p-2', 1)]


def test_join_unknown_room(services):
    with pytest.raises(RoomNotFound) as excinfo:
        services.rooms.join_room('NOPE00', 'p-2', 'Bob')
    assert excinfo.value.message == 'Room not found. Check the code and try again.'


def test_join_allowed_after_start(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.start_game(room.room_id, 'host-1')
    joined = services.rooms.join_room(room.room_id, 'late', 'Carol')
    assert joined.has_player('late')
    assert joined.game_state == GameState.PLAYING


def test_last_player_leaving_deletes_room(services):
    room = services.rooms.create_room('host-1', 'Alice')
    assert services.rooms.leave_room(room.room_id, 'host-1') is None
    with pytest.raises(RoomNotFound):
        services.rooms.get_room(room.room_id)


def test_host_leaving_migrates_to_next_player(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.join_room(room.room_id, 'p-2', 'Bob')
    services.rooms.join_room(room.room_id, 'p-3', 'Carol')

    after = services.rooms.leave_room(room.room_id, 'host-1')
    assert after.host_id == 'p-2'
    assert [p.uid for p in after.players] == ['p-2', 'p-3']

    after = services.rooms.leave_room(room.room_id, 'p-3')
    assert after.host_id == 'p-2'


def test_leave_drops_the_leavers_answer(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.join_room(room.room_id, 'p-2', 'Bob')
    services.rooms.start_game(room.room_id, 'host-1')
    services.game.submit_answer(room.room_id, 'p-2', 'Paris')

    after = services.rooms.leave_room(room.room_id, 'p-2')
    assert after.answers == {}
    assert not after.all_answered


def test_leave_by_non_member_is_a_no_op(services):
    room = services.rooms.create_room('host-1', 'Alice')
    after = services.rooms.leave_room(room.room_id, 'stranger')
    assert [p.uid for p in after.players] == ['host-1']


def test_leave_retries_and_keeps_concurrent_join(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.join_room(room.room_id, 'p-2', 'Bob')

    def late_join(store, path):
        store.update(path, {'players': ArrayUnion({'uid': 'p-3', 'name': 'Carol', 'score': 0})})

    rooms = manager_with(services, store=RacingStore(services.store, late_join))
    after = rooms.leave_room(room.room_id, 'host-1')
    assert [p.uid for p in after.players] == ['p-2', 'p-3']
    assert after.host_id == 'p-2'


def test_leave_gives_up_when_conflicts_persist(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.join_room(room.room_id, 'p-2', 'Bob')

    class AlwaysRacing(RacingStore):
        def update(self, path, fields, expected_version=None):
            if expected_version is not None:
                self.inner.update(path, {'touch': expected_version})
            return self.inner.update(path, fields, expected_version=expected_version)

    rooms = manager_with(services, store=AlwaysRacing(services.store, None), conflict_retries=2)
    with pytest.raises(WriteConflict):
        rooms.leave_room(room.room_id, 'host-1')
    assert services.rooms.get_room(room.room_id).has_player('host-1')


def test_start_game_host_only(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.join_room(room.room_id, 'p-2', 'Bob')
    with pytest.raises(NotHost):
        services.rooms.start_game(room.room_id, 'p-2')
    assert services.rooms.get_room(room.room_id).game_state == GameState.WAITING

    started = services.rooms.start_game(room.room_id, 'host-1')
    assert started.game_state == GameState.PLAYING
    assert started.current_question_index == 0
    again = services.rooms.start_game(room.room_id, 'host-1')
    assert again.version == started.version


def test_start_game_after_finish_is_rejected(services):
    room = services.rooms.create_room('host-1', 'Alice')
    services.rooms.start_game(room.room_id, 'host-1')
    services.store.update(services.room_path(room.room_id), {'gameState': 'finished'})
    with pytest.raises(InvalidState):
        services.rooms.start_game(room.room_id, 'host-1')


def test_start_game_survives_a_concurrent_join(services):
    room = services.rooms.create_room('host-1', 'Alice')

    def late_join(store, path):
        store.update(path, {'players': ArrayUnion({'uid': 'p-2', 'name': 'Bob', 'score': 0})})

    rooms = manager_with(services, store=RacingStore(services.store, late_join))
    started = rooms.start_game(room.room_id, 'host-1')
    assert started.game_state == GameState.PLAYING
    assert [p.uid for p in started.players] == ['host-1', 'p-2']
