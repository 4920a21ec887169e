"""Room document schema.

The stored document uses the camelCase field names clients read; these
dataclasses are the in-process view of one snapshot of it.
"""

from __future__ import annotations

import enum
import random
import string
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


class GameState(str, enum.Enum):
    WAITING = 'waiting'
    PLAYING = 'playing'
    FINISHED = 'finished'


def generate_room_code(length=6, rng=random):
    return ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_room_code(code: str) -> str:
    return (code or '').strip().upper()


def room_path(namespace: str, room_id: str) -> str:
    return f"{namespace}/rooms/{room_id}"


@dataclass
class Question:
    question: str
    correct_answer: str
    incorrect_answers: List[str]
    answers: List[str]
    category: str = ''
    difficulty: str = ''

    def is_correct(self, answer: str) -> bool:
        return answer == self.correct_answer

    def to_dict(self):
        return {
            'question': self.question,
            'correctAnswer': self.correct_answer,
            'incorrectAnswers': list(self.incorrect_answers),
            'answers': list(self.answers),
            'category': self.category,
            'difficulty': self.difficulty,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            question=data['question'],
            correct_answer=data['correctAnswer'],
            incorrect_answers=list(data.get('incorrectAnswers', [])),
            answers=list(data.get('answers', [])),
            category=data.get('category', ''),
            difficulty=data.get('difficulty', ''),
        )


@dataclass
class Player:
    uid: str
    name: str
    score: int = 0

    def to_dict(self):
        return {'uid': self.uid, 'name': self.name, 'score': self.score}

    @classmethod
    def from_dict(cls, data):
        return cls(uid=data['uid'], name=data.get('name', ''), score=int(data.get('score', 0)))


@dataclass
class Room:
    room_id: str
    host_id: Optional[str]
    players: List[Player] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    current_question_index: int = 0
    game_state: GameState = GameState.WAITING
    answers: Dict[str, str] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    version: Optional[int] = None

    @classmethod
    def new(cls, room_id: str, host: Player, questions: List[Question]) -> 'Room':
        return cls(room_id=room_id, host_id=host.uid, players=[host], questions=list(questions))

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index + 1 >= len(self.questions)

    @property
    def all_answered(self) -> bool:
        """Round completion: every current player has an answer recorded."""
        return bool(self.players) and len(self.answers) == len(self.players)

    def player(self, uid: str) -> Optional[Player]:
        return next((p for p in self.players if p.uid == uid), None)

    def has_player(self, uid: str) -> bool:
        return self.player(uid) is not None

    def has_answered(self, uid: str) -> bool:
        return uid in self.answers

    def is_host(self, uid: str) -> bool:
        return self.host_id is not None and self.host_id == uid

    def ranking(self) -> List[Player]:
        # sorted() is stable, so ties keep join order
        return sorted(self.players, key=lambda p: p.score, reverse=True)

    def to_dict(self):
        return {
            'roomId': self.room_id,
            'hostId': self.host_id,
            'players': [p.to_dict() for p in self.players],
            'questions': [q.to_dict() for q in self.questions],
            'currentQuestionIndex': self.current_question_index,
            'gameState': self.game_state.value,
            'answers': dict(self.answers),
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data, version=None):
        return cls(
            room_id=data['roomId'],
            host_id=data.get('hostId'),
            players=[Player.from_dict(p) for p in data.get('players', [])],
            questions=[Question.from_dict(q) for q in data.get('questions', [])],
            current_question_index=int(data.get('currentQuestionIndex', 0)),
            game_state=GameState(data.get('gameState', GameState.WAITING.value)),
            answers=dict(data.get('answers') or {}),
            created_at=data.get('createdAt', 0.0),
            version=version,
        )

    @classmethod
    def from_snapshot(cls, snapshot):
        return cls.from_dict(snapshot.data, version=snapshot.version)


_NAME_ADJECTIVES = ['Clever', 'Swift', 'Witty', 'Curious', 'Brave', 'Silent', 'Daring', 'Happy', 'Lucky']
_NAME_NOUNS = ['Fox', 'Jaguar', 'Panda', 'Raptor', 'Lion', 'Owl', 'Wolf', 'Monkey', 'Eagle']


def generate_player_name(rng=random):
    """Name used when a player leaves the name field blank."""
    return f"{rng.choice(_NAME_ADJECTIVES)} {rng.choice(_NAME_NOUNS)}"
