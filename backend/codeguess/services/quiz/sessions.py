import json
import random
import secrets
from typing import Any, List, Optional, Sequence

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from codeguess import db
from codeguess.corpus import Snippet, SnippetCorpus
from codeguess.errors import ConfigurationError, StorageError, ValidationError
from codeguess.models import CLASSIC, GAME_MODES, GameSession

# 32 random bytes -> 64 hex chars
SESSION_ID_BYTES = 32
SESSION_ID_LENGTH = SESSION_ID_BYTES * 2

_system_random = random.SystemRandom()


def generate_session_id() -> str:
    return secrets.token_hex(SESSION_ID_BYTES)


def shuffled(items: Sequence[Any], rng: Optional[random.Random] = None) -> List[Any]:
    """Return a uniformly shuffled copy of ``items`` (Fisher-Yates)."""
    out = list(items)
    (rng or _system_random).shuffle(out)
    return out


def parse_game_mode(value: Any, field: str = 'gameMode') -> str:
    if not isinstance(value, str) or value not in GAME_MODES:
        raise ValidationError.for_field(field, f"must be one of: {', '.join(GAME_MODES)}")
    return value


def parse_snippets_count(value: Any, default: int = 10, maximum: int = 50, field: str = 'snippetsCount') -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError.for_field(field, 'must be an integer')
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError.for_field(field, 'must be an integer')
    if not 1 <= value <= maximum:
        raise ValidationError.for_field(field, f'must be between 1 and {maximum}')
    return value


def select_snippets(corpus: SnippetCorpus, mode: str, count: int, rng: Optional[random.Random] = None) -> List[Snippet]:
    """Shuffle the whole corpus; classic games keep the first ``count``."""
    order = shuffled(corpus.snippets, rng)
    if mode == CLASSIC:
        return order[:min(count, len(order))]
    return order


def create_session(corpus: SnippetCorpus, mode: Any, requested_count: Any = None,
                   rng: Optional[random.Random] = None) -> GameSession:
    """Create and persist a new game session.

    The stored snippet list is exactly what the client receives and what
    ``validate_result`` later scores against. ``requested_count`` is
    validated for both modes but only applied to classic games.
    """
    cfg = current_app.config
    mode = parse_game_mode(mode)
    count = parse_snippets_count(
        requested_count,
        default=int(cfg.get('DEFAULT_SNIPPETS_COUNT', 10)),
        maximum=int(cfg.get('MAX_SNIPPETS_COUNT', 50)),
    )

    if corpus is None or corpus.is_empty:
        current_app.logger.error("[session-create] refused: snippet corpus is empty")
        raise ConfigurationError()

    chosen = select_snippets(corpus, mode, count, rng)
    session = GameSession(
        id=generate_session_id(),
        game_mode=mode,
        snippets=json.dumps([s.to_dict() for s in chosen]),
        is_completed=False,
    )
    try:
        db.session.add(session)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[session-create] database error: {exc}")
        raise StorageError('Failed to create session') from exc

    current_app.logger.info(f"[session-create] id={session.id[:8]}... mode={mode} snippets={len(chosen)}")
    return session
