"""Question set loading from the Open Trivia DB style provider."""

from __future__ import annotations

import html
import logging
import random
from typing import List, Optional

import requests

from .documents import Question

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://opentdb.com/api.php'


def shuffled(items, rng=random):
    """Return a uniformly shuffled copy of `items` (Fisher-Yates)."""
    result = list(items)
    rng.shuffle(result)
    return result


def fallback_questions() -> List[Question]:
    return [
        Question(
            question='What is the capital of France?',
            correct_answer='Paris',
            incorrect_answers=['London', 'Berlin', 'Madrid'],
            answers=['London', 'Paris', 'Berlin', 'Madrid'],
            category='Geography',
            difficulty='easy',
        ),
        Question(
            question="Who wrote 'Hamlet'?",
            correct_answer='William Shakespeare',
            incorrect_answers=['Charles Dickens', 'Leo Tolstoy', 'Mark Twain'],
            answers=['Charles Dickens', 'William Shakespeare', 'Leo Tolstoy', 'Mark Twain'],
            category='Literature',
            difficulty='easy',
        ),
    ]


class QuestionLoader:
    """Fetches a batch of multiple-choice questions.

    `load` never raises: any transport error, non-2xx status, malformed body or
    non-zero ``response_code`` yields :func:`fallback_questions` instead, with
    their answers shuffled like any fetched batch.
    """

    def __init__(self, api_url=DEFAULT_API_URL, timeout=10.0, default_amount=10, session=None, rng=None):
        self.api_url = api_url or DEFAULT_API_URL
        self.timeout = timeout
        self.default_amount = default_amount
        self.session = session or requests.Session()
        self.rng = rng or random.Random()

    def load(self, amount: Optional[int] = None, category=None, difficulty=None) -> List[Question]:
        params = {
            'amount': amount or self.default_amount,
            'category': category or '',
            'difficulty': difficulty or '',
            'type': 'multiple',
        }
        try:
            response = self.session.get(self.api_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("[questions-fallback] fetch failed: %s", exc)
            return self._fallback()

        if not isinstance(payload, dict):
            logger.warning("[questions-fallback] unexpected body type %s", type(payload).__name__)
            return self._fallback()
        if payload.get('response_code') != 0 or not payload.get('results'):
            logger.warning("[questions-fallback] provider response_code=%s", payload.get('response_code'))
            return self._fallback()

        try:
            return [self._to_question(item) for item in payload['results']]
        except (KeyError, TypeError) as exc:
            logger.warning("[questions-fallback] malformed result: %s", exc)
            return self._fallback()

    def _fallback(self) -> List[Question]:
        questions = fallback_questions()
        for question in questions:
            question.answers = shuffled(question.answers, self.rng)
        return questions

    def _to_question(self, item) -> Question:
        correct = html.unescape(item['correct_answer'])
        incorrect = [html.unescape(a) for a in item['incorrect_answers']]
        return Question(
            question=html.unescape(item['question']),
            correct_answer=correct,
            incorrect_answers=incorrect,
            answers=shuffled([correct] + incorrect, self.rng),
            category=html.unescape(item.get('category', '')),
            difficulty=item.get('difficulty', ''),
        )
