"""Client side of the quiz protocol.

A :class:`GameLoop` asks the server for a session, walks the returned
snippets in order, records one answer per presented snippet and submits
the batch for server-side validation. When the server cannot be reached
and a local corpus is available the loop runs offline: it keeps score
locally, ``session_id`` stays ``None`` and the result can never be saved
to the leaderboard.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from codeguess.corpus import MAX_DISTRACTORS, Snippet, SnippetCorpus
from codeguess.errors import (
    ERRORS_BY_CODE,
    ConfigurationError,
    QuizError,
    SessionNotFound,
    StorageError,
    SuspiciousTimingError,
    ValidationError,
)
from codeguess.models import CLASSIC, GAME_MODES

logger = logging.getLogger(__name__)

SNIPPETS_PER_GAME = 10


class BackendUnavailable(Exception):
    """The server could not be reached or answered with an unexpected fault."""


class OfflineGameError(Exception):
    """Raised when an offline game is submitted for validation."""


USER_MESSAGES = {
    ValidationError: 'Please check your entry and try again.',
    SessionNotFound: 'This game has already been saved or has expired.',
    SuspiciousTimingError: 'That run was too fast to be recorded on the leaderboard.',
    StorageError: 'The server could not save your result. Please try again.',
    ConfigurationError: 'The game server has no snippets available right now.',
    BackendUnavailable: 'Could not reach the game server.',
    OfflineGameError: 'Offline games are not eligible for the leaderboard.',
}


def describe_error(exc: Exception) -> str:
    for cls in type(exc).__mro__:
        if cls in USER_MESSAGES:
            return USER_MESSAGES[cls]
    return 'Something went wrong.'


def error_from_response(status_code: int, payload: Any) -> Exception:
    body = payload if isinstance(payload, dict) else {}
    message = body.get('error')
    cls = ERRORS_BY_CODE.get(body.get('code'))
    if cls is ValidationError:
        return ValidationError(body.get('errors') or [], message)
    if cls is not None:
        return cls(message)
    # Not our API (wrong base URL, proxy page) or a transient fault
    if not body or status_code in (404, 429) or status_code >= 500:
        return BackendUnavailable(message or f'HTTP {status_code}')
    return QuizError(message)


def parse_session_payload(data: Any) -> Tuple[str, List[Snippet]]:
    """Session id and snippets from a start-session reply.

    A reply that does not look like one means we are not talking to a
    working quiz server, so it is reported as BackendUnavailable.
    """
    if not isinstance(data, dict):
        raise BackendUnavailable('start-session reply is not an object')
    session_id = data.get('sessionId')
    raw = data.get('snippets')
    if not isinstance(session_id, str) or not session_id or not isinstance(raw, list):
        raise BackendUnavailable('start-session reply is missing sessionId or snippets')
    try:
        snippets = [Snippet.from_dict(s) for s in raw]
    except (AttributeError, ValueError) as exc:
        raise BackendUnavailable(f'start-session reply has a malformed snippet: {exc}') from exc
    return session_id, snippets


class HttpBackend:
    """Talks to the quiz API over HTTP with ``requests``."""

    def __init__(self, base_url: str = '', timeout: float = 10.0, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self.http.request(method, self.base_url + path, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendUnavailable(str(exc)) from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            raise error_from_response(response.status_code, payload)
        if payload is None:
            raise BackendUnavailable(f'HTTP {response.status_code} without a JSON body')
        return payload

    def start_session(self, mode: str, snippets_count: Optional[int] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {'gameMode': mode}
        if snippets_count is not None:
            body['snippetsCount'] = snippets_count
        return self._request('POST', '/api/start-session', json=body)

    def validate_result(self, submission: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('POST', '/api/validate-result', json=submission)

    def leaderboard(self, mode: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {'mode': mode}
        if limit is not None:
            params['limit'] = limit
        return self._request('GET', '/api/leaderboard', params=params)


@dataclass(frozen=True)
class AnswerRecord:
    snippet_index: int
    selected_language: str
    correct_language: str
    is_correct: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'snippetIndex': self.snippet_index,
            'selectedLanguage': self.selected_language,
            'correctLanguage': self.correct_language,
            'isCorrect': self.is_correct,
        }


@dataclass(frozen=True)
class SavedResult:
    result_id: int
    validated_score: int
    validated_total: int


class GameLoop:
    def __init__(self, backend, mode: str = CLASSIC, snippets_count: Optional[int] = None,
                 local_corpus: Optional[SnippetCorpus] = None, rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic):
        if mode not in GAME_MODES:
            raise ValueError(f'unknown game mode: {mode}')
        self.backend = backend
        self.mode = mode
        self.snippets_count = snippets_count
        self.local_corpus = local_corpus
        self.rng = rng or random.Random()
        self.clock = clock
        self._reset()

    def _reset(self) -> None:
        self.session_id: Optional[str] = None
        self.session_snippets: List[Snippet] = []
        self.answers: List[AnswerRecord] = []
        self.score = 0
        self.total = 0
        self.saved: Optional[SavedResult] = None
        self.languages = set()
        self._deck: List[Snippet] = []
        self._cursor = 0
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    # -- lifecycle -----------------------------------------------------

    def start(self) -> None:
        self._reset()
        try:
            data = self.backend.start_session(self.mode, self.snippets_count)
            self.session_id, self.session_snippets = parse_session_payload(data)
        except (BackendUnavailable, ConfigurationError, StorageError) as exc:
            if self.local_corpus is None or self.local_corpus.is_empty:
                raise
            logger.warning(f"[game-loop] backend unavailable ({exc}); starting offline {self.mode} game")
            self.session_id = None
            self.session_snippets = self._local_selection()

        if not self.session_snippets:
            raise ConfigurationError()
        self._deck = list(self.session_snippets)
        self.languages = {s.language for s in self.session_snippets}
        if self.local_corpus is not None:
            self.languages |= set(self.local_corpus.languages)
        self._started_at = self.clock()

    def _local_selection(self) -> List[Snippet]:
        pool = list(self.local_corpus.snippets)
        self.rng.shuffle(pool)
        if self.mode == CLASSIC:
            return pool[:self.snippets_count or SNIPPETS_PER_GAME]
        return pool

    @property
    def started(self) -> bool:
        return self._started_at is not None

    @property
    def offline(self) -> bool:
        return self.started and self.session_id is None

    @property
    def finished(self) -> bool:
        return self.mode == CLASSIC and self.started and self._cursor >= len(self._deck)

    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else self.clock()
        return max(0.0, end - self._started_at)

    def stop(self) -> None:
        if self._started_at is not None and self._stopped_at is None:
            self._stopped_at = self.clock()

    # -- play ----------------------------------------------------------

    def current_snippet(self) -> Optional[Snippet]:
        if not self.started or self.finished:
            return None
        return self._deck[self._cursor]

    def options(self) -> List[str]:
        """The correct language plus up to three distractors, shuffled."""
        snippet = self.current_snippet()
        if snippet is None:
            return []
        distractors = [d for d in snippet.distractors if d != snippet.language]
        spare = sorted(self.languages - {snippet.language} - set(distractors))
        self.rng.shuffle(spare)
        while len(distractors) < MAX_DISTRACTORS and spare:
            distractors.append(spare.pop())
        options = [snippet.language] + distractors[:MAX_DISTRACTORS]
        self.rng.shuffle(options)
        return options

    def answer(self, selected_language: str) -> AnswerRecord:
        snippet = self.current_snippet()
        if snippet is None:
            raise RuntimeError('no snippet is being presented')
        is_correct = selected_language == snippet.language
        record = AnswerRecord(
            snippet_index=len(self.answers),
            selected_language=selected_language,
            correct_language=snippet.language,
            is_correct=is_correct,
        )
        self.answers.append(record)
        self.total += 1
        if is_correct:
            self.score += 1

        self._cursor += 1
        if self._cursor >= len(self._deck):
            if self.mode == CLASSIC:
                self.stop()
            else:
                # Loop again in a fresh order; the server only credits the first pass
                self.rng.shuffle(self._deck)
                self._cursor = 0
        return record

    def accuracy(self) -> int:
        if not self.total:
            return 0
        return round(self.score / self.total * 100)

    # -- submission ----------------------------------------------------

    def submission(self, player_name: str) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'playerName': player_name,
            'score': self.score,
            'totalQuestions': self.total,
            'timeTaken': round(self.elapsed(), 3),
            'gameMode': self.mode,
            'answers': [a.to_dict() for a in self.answers],
        }

    def save(self, player_name: str) -> SavedResult:
        """Submit the answers; on success adopt the server's validated tally."""
        if not self.started:
            raise RuntimeError('game has not started')
        if self.offline:
            raise OfflineGameError(USER_MESSAGES[OfflineGameError])
        self.stop()
        data = self.backend.validate_result(self.submission(player_name))
        self.saved = SavedResult(
            result_id=data['resultId'],
            validated_score=data['validatedScore'],
            validated_total=data['validatedTotal'],
        )
        self.score = self.saved.validated_score
        self.total = self.saved.validated_total
        logger.info(f"[game-loop] saved result {self.saved.result_id}: {self.score}/{self.total}")
        return self.saved


def fetch_leaderboard(backend, mode: str = CLASSIC, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Leaderboard rows, or an empty list if the server cannot provide them."""
    try:
        return backend.leaderboard(mode, limit)
    except (QuizError, BackendUnavailable) as exc:
        logger.warning(f"[game-loop] leaderboard unavailable: {exc}")
        return []
