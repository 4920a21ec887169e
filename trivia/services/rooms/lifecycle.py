"""Room lifecycle: create, join, leave (with host migration) and start."""

from __future__ import annotations

import logging
import random

from .documents import GameState, Player, Room, generate_room_code, normalize_room_code, room_path
from .errors import DocumentExists, DocumentNotFound, InvalidState, NotHost, RoomNotFound, StorageWriteError, WriteConflict
from .storage import DELETE_FIELD, ArrayUnion

logger = logging.getLogger(__name__)


class RoomLifecycleManager:
    def __init__(self, store, loader, namespace='default-trivia-app', code_length=6,
                 code_attempts=5, conflict_retries=1, rng=None):
        self.store = store
        self.loader = loader
        self.namespace = namespace
        self.code_length = code_length
        self.code_attempts = max(1, code_attempts)
        self.conflict_retries = conflict_retries
        self.rng = rng or random.SystemRandom()

    def path(self, room_id):
        return room_path(self.namespace, normalize_room_code(room_id))

    def get_room(self, room_id) -> Room:
        snapshot = self.store.get(self.path(room_id))
        if snapshot is None:
            raise RoomNotFound()
        return Room.from_snapshot(snapshot)

    def create_room(self, host_uid, host_name, amount=None, category=None, difficulty=None) -> Room:
        """Create a waiting room with the caller as host and only player.

        The insert fails if the code is taken, in which case a fresh code is
        drawn, up to `code_attempts` times.
        """
        questions = self.loader.load(amount, category, difficulty)
        host = Player(uid=host_uid, name=host_name, score=0)
        for attempt in range(1, self.code_attempts + 1):
            room = Room.new(generate_room_code(self.code_length, self.rng), host, questions)
            try:
                snapshot = self.store.create(self.path(room.room_id), room.to_dict())
            except DocumentExists:
                logger.info("[room-code-collision] room=%s attempt=%s", room.room_id, attempt)
                continue
            logger.info("[room-create] room=%s host=%s questions=%s", room.room_id, host_uid, len(questions))
            return Room.from_snapshot(snapshot)
        raise StorageWriteError('Could not create a room. Please try again.')

    def join_room(self, room_id, uid, name) -> Room:
        room = self.get_room(room_id)
        if room.has_player(uid):
            return room
        entry = Player(uid=uid, name=name, score=0).to_dict()
        try:
            snapshot = self.store.update(self.path(room.room_id), {'players': ArrayUnion(entry, key='uid')})
        except DocumentNotFound:
            raise RoomNotFound()
        logger.info("[room-join] room=%s uid=%s", room.room_id, uid)
        return Room.from_snapshot(snapshot)

    def leave_room(self, room_id, uid):
        """Remove `uid`; returns the updated room, or None once it is deleted.

        The new player list, the host and the leaver's answer removal go out in
        one compare-and-set write so a concurrent join is never lost.
        """
        path = self.path(room_id)
        attempts = 0
        while True:
            room = self.get_room(room_id)
            if not room.has_player(uid):
                return room
            remaining = [p for p in room.players if p.uid != uid]
            try:
                if not remaining:
                    self.store.delete(path, expected_version=room.version)
                    logger.info("[room-delete] room=%s last player left", room.room_id)
                    return None
                host_id = remaining[0].uid if room.is_host(uid) else room.host_id
                snapshot = self.store.update(path, {
                    'players': [p.to_dict() for p in remaining],
                    'hostId': host_id,
                    f'answers.{uid}': DELETE_FIELD,
                }, expected_version=room.version)
            except WriteConflict:
                attempts += 1
                if attempts > self.conflict_retries:
                    raise
                continue
            except DocumentNotFound:
                raise RoomNotFound()
            if host_id != room.host_id:
                logger.info("[host-migrate] room=%s from=%s to=%s", room.room_id, room.host_id, host_id)
            logger.info("[room-leave] room=%s uid=%s", room.room_id, uid)
            return Room.from_snapshot(snapshot)

    def start_game(self, room_id, uid) -> Room:
        attempts = 0
        while True:
            room = self.get_room(room_id)
            if not room.is_host(uid):
                raise NotHost()
            if room.game_state == GameState.PLAYING:
                return room
            if room.game_state != GameState.WAITING:
                raise InvalidState('The game has already finished.')
            try:
                snapshot = self.store.update(self.path(room.room_id), {'gameState': GameState.PLAYING.value},
                                             expected_version=room.version)
            except WriteConflict:
                # a join or leave landed in between; re-check host and state
                attempts += 1
                if attempts > self.conflict_retries:
                    raise
                continue
            except DocumentNotFound:
                raise RoomNotFound()
            logger.info("[room-start] room=%s players=%s", room.room_id, len(room.players))
            return Room.from_snapshot(snapshot)
