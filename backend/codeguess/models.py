from codeguess import db
from codeguess.errors import StorageError
from flask import current_app
from datetime import datetime, timezone
import json

CLASSIC = 'classic'
INFINITE = 'infinite'
GAME_MODES = (CLASSIC, INFINITE)


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.String(64), primary_key=True)
    game_mode = db.Column(db.String(16), nullable=False)
    snippets = db.Column(db.Text, nullable=False)  # JSON-encoded list of snippet dicts, fixed at creation
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    results = db.relationship('GameResult', back_populates='session', lazy='dynamic')

    @property
    def snippet_list(self):
        try:
            snippets = json.loads(self.snippets)
        except (TypeError, ValueError) as exc:
            current_app.logger.error(f"[session] id={self.id[:8]}... stored snippets are unreadable: {exc}")
            raise StorageError('Session data is corrupted') from exc
        if not isinstance(snippets, list):
            current_app.logger.error(f"[session] id={self.id[:8]}... stored snippets are not a list")
            raise StorageError('Session data is corrupted')
        return snippets

    def to_dict(self):
        return {
            'sessionId': self.id,
            'snippets': self.snippet_list,
            'gameMode': self.game_mode,
        }


class GameResult(db.Model):
    __tablename__ = 'game_result'
    __table_args__ = (
        db.CheckConstraint('score >= 0 AND score <= total_questions', name='ck_game_result_score_bounds'),
        db.Index('ix_game_result_ranking', 'game_mode', 'score', 'time_taken'),
    )
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), db.ForeignKey('game_session.id'), nullable=True, index=True)
    # Stored escaped; 50 raw characters may grow up to 6x
    player_name = db.Column(db.String(320), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    total_questions = db.Column(db.Integer, nullable=False)
    time_taken = db.Column(db.Float, nullable=False)
    game_mode = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    session = db.relationship('GameSession', back_populates='results')

    def to_dict(self):
        return {
            'player_name': self.player_name,
            'score': self.score,
            'total_questions': self.total_questions,
            'time_taken': self.time_taken,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
