from typing import Any, List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from codeguess.errors import StorageError, ValidationError
from codeguess.models import GameResult

from .sessions import parse_game_mode


def parse_limit(value: Any, default: int = 5, maximum: int = 100) -> int:
    if value is None or value == '':
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError.for_field('limit', 'must be an integer')
    if not 1 <= limit <= maximum:
        raise ValidationError.for_field('limit', f'must be between 1 and {maximum}')
    return limit


def top_results(mode: str, limit: int = 5) -> List[GameResult]:
    """Best results for ``mode``: score desc, then time asc, then oldest first."""
    mode = parse_game_mode(mode, field='mode')
    try:
        return (
            GameResult.query
            .filter(GameResult.game_mode == mode, GameResult.total_questions > 0)
            .order_by(
                GameResult.score.desc(),
                GameResult.time_taken.asc(),
                GameResult.created_at.asc(),
                GameResult.id.asc(),
            )
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.error(f"[leaderboard] database error: {exc}")
        raise StorageError('Database error') from exc
