"""Per-question game flow: answer collection, scoring and advancement."""

from __future__ import annotations

import logging
from typing import Tuple

from .documents import GameState, Player, Room, normalize_room_code, room_path
from .errors import (AlreadyAnswered, DocumentNotFound, InvalidState, NotHost, NotInRoom,
                     RoomNotFound, RoundIncomplete, WriteConflict)

logger = logging.getLogger(__name__)


def _require_playing(room: Room) -> None:
    if room.game_state == GameState.WAITING:
        raise InvalidState('The game has not started yet.')
    if room.game_state != GameState.PLAYING:
        raise InvalidState('The game is over.')


class GameStateMachine:
    """Multiplayer round logic over the shared room document.

    Both writes are compare-and-set against the version they were computed
    from: an answer can never land on a question other than the one it was
    scored against, and advancing clears `answers` in the same write that
    bumps the index.
    """

    def __init__(self, store, namespace='default-trivia-app', conflict_retries=1):
        self.store = store
        self.namespace = namespace
        self.conflict_retries = conflict_retries

    def _path(self, room_id):
        return room_path(self.namespace, normalize_room_code(room_id))

    def _load(self, room_id) -> Room:
        snapshot = self.store.get(self._path(room_id))
        if snapshot is None:
            raise RoomNotFound()
        return Room.from_snapshot(snapshot)

    def _write(self, room: Room, fields) -> Room:
        try:
            snapshot = self.store.update(self._path(room.room_id), fields, expected_version=room.version)
        except DocumentNotFound:
            raise RoomNotFound()
        return Room.from_snapshot(snapshot)

    def submit_answer(self, room_id, uid, answer) -> Tuple[Room, bool]:
        attempts = 0
        while True:
            room = self._load(room_id)
            _require_playing(room)
            player = room.player(uid)
            if player is None:
                raise NotInRoom()
            if room.has_answered(uid):
                raise AlreadyAnswered()
            correct = room.current_question.is_correct(answer)
            fields = {f'answers.{uid}': answer}
            if correct:
                fields['players'] = [
                    Player(p.uid, p.name, p.score + 1).to_dict() if p.uid == uid else p.to_dict()
                    for p in room.players
                ]
            try:
                updated = self._write(room, fields)
            except WriteConflict:
                attempts += 1
                if attempts > self.conflict_retries:
                    logger.warning("[answer-conflict] room=%s uid=%s attempts=%s", room.room_id, uid, attempts)
                    raise
                continue
            logger.info("[answer] room=%s uid=%s question=%s correct=%s",
                        room.room_id, uid, room.current_question_index, correct)
            return updated, correct

    def advance_question(self, room_id, uid) -> Room:
        attempts = 0
        while True:
            room = self._load(room_id)
            if not room.is_host(uid):
                raise NotHost()
            if room.game_state == GameState.FINISHED:
                return room
            _require_playing(room)
            if not room.all_answered:
                raise RoundIncomplete()
            if room.is_last_question:
                fields = {'gameState': GameState.FINISHED.value}
            else:
                fields = {'currentQuestionIndex': room.current_question_index + 1, 'answers': {}}
            try:
                updated = self._write(room, fields)
            except WriteConflict:
                attempts += 1
                if attempts > self.conflict_retries:
                    raise
                continue
            if updated.game_state == GameState.FINISHED:
                logger.info("[room-finish] room=%s scores=%s", room.room_id,
                            {p.uid: p.score for p in updated.players})
            else:
                logger.info("[advance] room=%s question=%s", room.room_id, updated.current_question_index)
            return updated


class SinglePlayerGame:
    """The same round state machine for one local player, with no store."""

    def __init__(self, player_name, questions, uid='local'):
        if not questions:
            raise ValueError('A game needs at least one question.')
        self.uid = uid
        self.room = Room.new('LOCAL', Player(uid=uid, name=player_name), questions)
        self.room.game_state = GameState.PLAYING

    @property
    def player(self) -> Player:
        return self.room.players[0]

    @property
    def current_question(self):
        return self.room.current_question

    @property
    def is_answered(self) -> bool:
        return self.room.all_answered

    @property
    def is_finished(self) -> bool:
        return self.room.game_state == GameState.FINISHED

    @property
    def selected_answer(self):
        return self.room.answers.get(self.uid)

    def submit_answer(self, answer) -> bool:
        _require_playing(self.room)
        if self.room.has_answered(self.uid):
            raise AlreadyAnswered()
        correct = self.current_question.is_correct(answer)
        self.room.answers[self.uid] = answer
        if correct:
            self.player.score += 1
        return correct

    def advance(self) -> None:
        if self.is_finished:
            return
        if not self.is_answered:
            raise RoundIncomplete()
        if self.room.is_last_question:
            self.room.game_state = GameState.FINISHED
        else:
            self.room.current_question_index += 1
            self.room.answers = {}
