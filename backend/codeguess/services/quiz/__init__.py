"""Quiz domain services: session issuing, answer validation, leaderboard.

HTTP routes and the socket layer import from here; nothing in this package
knows about request parsing or response rendering.
"""

from .sessions import create_session, parse_game_mode, parse_snippets_count
from .validation import recompute_score, validate_result, ValidationOutcome
from .leaderboard import top_results, parse_limit

__all__ = [
    'create_session',
    'parse_game_mode',
    'parse_snippets_count',
    'recompute_score',
    'validate_result',
    'ValidationOutcome',
    'top_results',
    'parse_limit',
]
