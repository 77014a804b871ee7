import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import current_app
from markupsafe import escape
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from codeguess import db
from codeguess.errors import SessionNotFound, StorageError, SuspiciousTimingError, ValidationError
from codeguess.models import CLASSIC, GAME_MODES, GameResult, GameSession, utcnow

from .sessions import SESSION_ID_LENGTH

MAX_PLAYER_NAME_LENGTH = 50

_SESSION_ID_RE = re.compile(r'^[0-9a-f]{%d}$' % SESSION_ID_LENGTH)


@dataclass(frozen=True)
class ValidationOutcome:
    result_id: int
    session_id: str
    game_mode: str
    validated_score: int
    validated_total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'resultId': self.result_id,
            'validatedScore': self.validated_score,
            'validatedTotal': self.validated_total,
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return (_is_int(value) or isinstance(value, float)) and math.isfinite(value)


def sanitize_player_name(value: Any) -> Optional[str]:
    """Trim and escape markup; None when the name is empty or too long."""
    if not isinstance(value, str):
        return None
    name = value.strip()
    if not name or len(name) > MAX_PLAYER_NAME_LENGTH:
        return None
    return str(escape(name))


def check_submission(session_id, player_name, claimed_score, claimed_total, time_taken, mode, answers) -> str:
    """Run every precondition and return the sanitized player name.

    All failing fields are reported together in one ValidationError.
    """
    errors: List[Dict[str, str]] = []
    if not isinstance(session_id, str) or not _SESSION_ID_RE.match(session_id):
        errors.append({'field': 'sessionId', 'message': f'must be a {SESSION_ID_LENGTH}-character session token'})
    name = sanitize_player_name(player_name)
    if name is None:
        errors.append({'field': 'playerName', 'message': f'must be 1 to {MAX_PLAYER_NAME_LENGTH} characters'})
    if not _is_int(claimed_score) or claimed_score < 0:
        errors.append({'field': 'score', 'message': 'must be a non-negative integer'})
    if not _is_int(claimed_total) or claimed_total < 0:
        errors.append({'field': 'totalQuestions', 'message': 'must be a non-negative integer'})
    if not _is_number(time_taken) or time_taken < 0:
        errors.append({'field': 'timeTaken', 'message': 'must be a non-negative number'})
    if not isinstance(mode, str) or mode not in GAME_MODES:
        errors.append({'field': 'gameMode', 'message': f"must be one of: {', '.join(GAME_MODES)}"})
    if not isinstance(answers, (list, tuple)):
        errors.append({'field': 'answers', 'message': 'must be an array'})
    if errors:
        raise ValidationError(errors, errors[0]['field'] + ' ' + errors[0]['message'])
    return name


def recompute_score(snippets: Sequence[Dict[str, Any]], answers: Sequence[Any]) -> Tuple[int, int]:
    """Score ``answers`` against the session's own snippet list.

    Position ``i`` only counts while ``answers[i]['snippetIndex'] == i``;
    the first skipped or reordered entry ends the credited prefix. Entries
    past the end of the session are ignored. The client's own
    ``isCorrect``/``correctLanguage`` fields are never read.
    """
    score = 0
    total = 0
    for i in range(min(len(answers), len(snippets))):
        answer = answers[i]
        if not isinstance(answer, dict):
            break
        index = answer.get('snippetIndex')
        if not _is_int(index) or index != i:
            break
        total += 1
        if answer.get('selectedLanguage') == snippets[i].get('language'):
            score += 1
    return score, total


def validate_result(session_id, player_name, claimed_score, claimed_total, time_taken, mode, answers,
                    min_seconds_per_question: Optional[float] = None) -> ValidationOutcome:
    name = check_submission(session_id, player_name, claimed_score, claimed_total, time_taken, mode, answers)

    session = GameSession.query.filter_by(id=session_id, is_completed=False).first()
    if not session:
        current_app.logger.info(f"[validate-reject] id={session_id[:8]}... unknown or completed session")
        raise SessionNotFound()

    snippets = session.snippet_list
    score, total = recompute_score(snippets, answers)

    if score > total:
        raise ValidationError.for_field('answers', 'Invalid score')
    if session.game_mode == CLASSIC and total > len(snippets):
        raise ValidationError.for_field('answers', 'Invalid answer count')

    if min_seconds_per_question is None:
        min_seconds_per_question = float(current_app.config.get('MIN_SECONDS_PER_QUESTION', 1.0))
    if total > 0 and time_taken < total * min_seconds_per_question:
        current_app.logger.warning(
            f"[validate-reject] id={session_id[:8]}... time={time_taken}s for {total} answers below {min_seconds_per_question}s/question"
        )
        raise SuspiciousTimingError()

    if mode != session.game_mode:
        current_app.logger.warning(
            f"[validate] id={session_id[:8]}... submitted mode={mode} differs from session mode={session.game_mode}"
        )
    if (claimed_score, claimed_total) != (score, total):
        current_app.logger.info(
            f"[validate] id={session_id[:8]}... claimed {claimed_score}/{claimed_total} validated {score}/{total}"
        )

    try:
        # Check-and-set on the completion flag; a concurrent submission that
        # already flipped it leaves zero matching rows.
        claimed = db.session.execute(
            update(GameSession)
            .where(GameSession.id == session_id, GameSession.is_completed.is_(False))
            .values(is_completed=True, completed_at=utcnow())
        )
        if claimed.rowcount != 1:
            db.session.rollback()
            current_app.logger.info(f"[validate-reject] id={session_id[:8]}... lost completion race")
            raise SessionNotFound()
        result = GameResult(
            session_id=session_id,
            player_name=name,
            score=score,
            total_questions=total,
            time_taken=float(time_taken),
            game_mode=session.game_mode,
        )
        db.session.add(result)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[validate] database error for id={session_id[:8]}...: {exc}")
        raise StorageError() from exc

    current_app.logger.info(
        f"[validate] id={session_id[:8]}... result={result.id} mode={result.game_mode} score={score}/{total} time={time_taken}s"
    )
    return ValidationOutcome(
        result_id=result.id,
        session_id=session_id,
        game_mode=result.game_mode,
        validated_score=score,
        validated_total=total,
    )
