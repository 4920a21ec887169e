"""Errors raised by the room services.

Each carries the HTTP status and the message shown to the player, so the
transport layers can surface them without inspecting the type.
"""


class TriviaError(Exception):
    status_code = 400
    message = 'Something went wrong. Please try again.'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'error': self.message}


class NetworkError(TriviaError):
    status_code = 502
    message = 'Network problem. Please try again.'


class RoomNotFound(TriviaError):
    status_code = 404
    message = 'Room not found. Check the code and try again.'


class StorageWriteError(TriviaError):
    status_code = 503
    message = 'Could not save your change. Please try again.'


class WriteConflict(StorageWriteError):
    status_code = 409
    message = 'The room changed while saving. Please try again.'


class DocumentExists(StorageWriteError):
    status_code = 409
    message = 'A room with that code already exists.'


class DocumentNotFound(TriviaError):
    status_code = 404
    message = 'Document not found.'


class NotHost(TriviaError):
    status_code = 403
    message = 'Only the host can do that.'


class NotInRoom(TriviaError):
    status_code = 403
    message = 'You are not a player in this room.'


class AlreadyAnswered(TriviaError):
    status_code = 409
    message = 'You already answered this question.'


class RoundIncomplete(TriviaError):
    status_code = 409
    message = 'Not every player has answered yet.'


class InvalidState(TriviaError):
    status_code = 409
    message = 'That is not possible right now.'


class InvalidTransition(TriviaError):
    message = 'Invalid view transition.'
