import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///trivia.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Documents live under <APP_NAMESPACE>/rooms/<room_id>
    APP_NAMESPACE = os.environ.get('APP_NAMESPACE', 'default-trivia-app')
    # Question provider
    TRIVIA_API_URL = os.environ.get('TRIVIA_API_URL', 'https://opentdb.com/api.php')
    QUESTION_COUNT = int(os.environ.get('QUESTION_COUNT', '10'))
    QUESTION_FETCH_TIMEOUT_SEC = float(os.environ.get('QUESTION_FETCH_TIMEOUT_SEC', '10'))
    # Room codes
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    ROOM_CODE_ATTEMPTS = int(os.environ.get('ROOM_CODE_ATTEMPTS', '5'))
    # Immediate retries after a compare-and-set conflict before surfacing it
    WRITE_CONFLICT_RETRIES = int(os.environ.get('WRITE_CONFLICT_RETRIES', '3'))
    # Clients return to the room menu this long after their room disappears
    ROOM_MISSING_REDIRECT_SEC = int(os.environ.get('ROOM_MISSING_REDIRECT_SEC', '3'))
    # Rooms untouched for this long are removed by `flask purge-rooms`
    STALE_ROOM_HOURS = int(os.environ.get('STALE_ROOM_HOURS', '24'))
    # Base URL for shareable join links; falls back to the request host
    PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL')
