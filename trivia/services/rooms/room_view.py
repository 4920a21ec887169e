"""What one subscriber derives from the snapshots pushed to it."""

from __future__ import annotations

import threading
from typing import List, Optional

from .documents import GameState, Room

ROUND_COMPLETE = 'round_complete'
GAME_STARTED = 'game_started'
GAME_FINISHED = 'game_finished'
ROOM_MISSING = 'room_missing'


class RoomView:
    """Per-subscriber view of a room.

    Feed every pushed snapshot to :meth:`apply`; it returns the edge events the
    snapshot produced. ``round_complete`` is reported once per question index,
    however many snapshots arrive while the round stays complete.

    The view also holds the local "already submitted" guard: a second
    :meth:`begin_submit` for the same question is refused while the first is in
    flight or once the answer is on record. The guard is reconciled against
    every snapshot, so a failed write does not leave the player locked out.
    """

    def __init__(self, uid):
        self.uid = uid
        self.room: Optional[Room] = None
        self.missing = False
        self._lock = threading.Lock()
        self._pending_index: Optional[int] = None
        self._completed_rounds = set()

    @classmethod
    def of(cls, room: Room, uid) -> 'RoomView':
        """A view already positioned on `room`, for one-off responses."""
        view = cls(uid)
        view.room = room
        return view

    def apply(self, snapshot) -> List[str]:
        with self._lock:
            if snapshot is None:
                if self.missing:
                    return []
                self.missing = True
                self._pending_index = None
                return [ROOM_MISSING]

            previous = self.room
            room = Room.from_snapshot(snapshot)
            self.room = room
            self.missing = False
            events = []
            was_state = previous.game_state if previous else None
            if room.game_state == GameState.PLAYING and was_state != GameState.PLAYING:
                events.append(GAME_STARTED)
            if (room.game_state == GameState.PLAYING and room.all_answered
                    and room.current_question_index not in self._completed_rounds):
                self._completed_rounds.add(room.current_question_index)
                events.append(ROUND_COMPLETE)
            if room.game_state == GameState.FINISHED and was_state != GameState.FINISHED:
                events.append(GAME_FINISHED)
            if self._pending_index is not None and (
                    room.current_question_index != self._pending_index or room.has_answered(self.uid)):
                self._pending_index = None
            return events

    def begin_submit(self) -> bool:
        with self._lock:
            if self.room is None or self.missing or self._answered_locked():
                return False
            self._pending_index = self.room.current_question_index
            return True

    def end_submit(self, ok: bool) -> None:
        with self._lock:
            if not ok:
                self._pending_index = None

    def _answered_locked(self) -> bool:
        if self.room.has_answered(self.uid):
            return True
        return self._pending_index == self.room.current_question_index

    @property
    def is_answered(self) -> bool:
        with self._lock:
            return self.room is not None and self._answered_locked()

    @property
    def is_host(self) -> bool:
        return self.room is not None and self.room.is_host(self.uid)

    @property
    def selected_answer(self):
        return self.room.answers.get(self.uid) if self.room else None

    @property
    def all_answered(self) -> bool:
        return self.room is not None and self.room.all_answered

    def ranking(self):
        if self.room is None or self.room.game_state != GameState.FINISHED:
            return None
        return [p.to_dict() for p in self.room.ranking()]

    def to_dict(self):
        return {
            'uid': self.uid,
            'is_host': self.is_host,
            'is_answered': self.is_answered,
            'selected_answer': self.selected_answer,
            'all_answered': self.all_answered,
            'ranking': self.ranking(),
        }
