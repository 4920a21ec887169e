"""Room domain services: document store, question loading, lifecycle and play.

Everything here is transport-free. HTTP routes and socket handlers obtain the
wired-up instances from ``current_app.extensions['trivia']`` and translate the
exceptions in :mod:`.errors` into responses.
"""

from .documents import GameState, Player, Question, Room
from .errors import TriviaError
from .gameplay import GameStateMachine, SinglePlayerGame
from .lifecycle import RoomLifecycleManager
from .navigation import View, ViewEvent, transition
from .questions import QuestionLoader
from .room_view import RoomView
from .storage import SqlDocumentStore, StorageClient


class TriviaServices:
    """The services built once per application by ``create_app``."""

    def __init__(self, store, loader, rooms, game, config):
        self.store = store
        self.loader = loader
        self.rooms = rooms
        self.game = game
        self.config = config

    @classmethod
    def from_config(cls, db, config, loader=None):
        store = SqlDocumentStore(db)
        loader = loader or QuestionLoader(
            api_url=config.get('TRIVIA_API_URL'),
            timeout=config.get('QUESTION_FETCH_TIMEOUT_SEC', 10),
            default_amount=config.get('QUESTION_COUNT', 10),
        )
        namespace = config.get('APP_NAMESPACE', 'default-trivia-app')
        retries = config.get('WRITE_CONFLICT_RETRIES', 3)
        rooms = RoomLifecycleManager(
            store, loader,
            namespace=namespace,
            code_length=config.get('ROOM_CODE_LENGTH', 6),
            code_attempts=config.get('ROOM_CODE_ATTEMPTS', 5),
            conflict_retries=retries,
        )
        game = GameStateMachine(store, namespace=namespace, conflict_retries=retries)
        return cls(store, loader, rooms, game, config)

    def room_path(self, room_id):
        return self.rooms.path(room_id)
