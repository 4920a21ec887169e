from trivia import db
from flask_login import UserMixin
import json
import time


class RoomDocument(db.Model):
    """One shared document, addressed by its slash-separated path.

    `version` is bumped on every committed write and is what compare-and-set
    updates are checked against.
    """
    __tablename__ = 'room_document'
    path = db.Column(db.String(255), primary_key=True)
    data = db.Column(db.Text, nullable=False)  # JSON-encoded document body
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.Float, nullable=False, default=time.time)
    updated_at = db.Column(db.Float, nullable=False, default=time.time, index=True)

    def to_dict(self):
        return {
            'path': self.path,
            'data': json.loads(self.data),
            'version': self.version,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class Identity(UserMixin):
    """Anonymous per-session identity; never persisted."""

    def __init__(self, uid, name=None):
        self.id = uid
        self.name = name

    @property
    def uid(self):
        return self.id

    def to_dict(self):
        return {'uid': self.id, 'name': self.name}
