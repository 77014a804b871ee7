import random

import pytest
import requests

from codeguess.client import (
    BackendUnavailable,
    GameLoop,
    HttpBackend,
    OfflineGameError,
    describe_error,
    fetch_leaderboard,
)
from codeguess.corpus import Snippet, SnippetCorpus
from codeguess.errors import SessionNotFound, SuspiciousTimingError


class FlaskTransport:
    """Lets HttpBackend drive a Flask test client instead of the network."""

    class Response:
        def __init__(self, test_response):
            self.status_code = test_response.status_code
            self._payload = test_response.get_json(silent=True)

        def json(self):
            if self._payload is None:
                raise ValueError('no JSON body')
            return self._payload

    def __init__(self, client):
        self.client = client

    def request(self, method, url, timeout=None, json=None, params=None):
        return self.Response(self.client.open(url, method=method, json=json, query_string=params))


class DownTransport:
    def request(self, method, url, timeout=None, **kwargs):
        raise requests.ConnectionError('connection refused')


class StubTransport:
    """Answers every request with a fixed status and body."""

    class Response:
        def __init__(self, status_code, payload):
            self.status_code = status_code
            self._payload = payload

        def json(self):
            if isinstance(self._payload, str):
                raise ValueError('not JSON')
            return self._payload

    def __init__(self, status_code, payload):
        self.status_code = status_code
        self.payload = payload

    def request(self, method, url, timeout=None, **kwargs):
        return self.Response(self.status_code, self.payload)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def backend(client):
    return HttpBackend(session=FlaskTransport(client))


@pytest.fixture()
def clock():
    return FakeClock()


def play_through(loop, clock, wrong_at=(), seconds=2.0):
    while not loop.finished:
        snippet = loop.current_snippet()
        clock.advance(seconds)
        loop.answer('Nope' if len(loop.answers) in wrong_at else snippet.language)


def test_classic_game_saves_validated_score(backend, clock, client):
    loop = GameLoop(backend, 'classic', snippets_count=3, clock=clock)
    loop.start()
    assert not loop.offline
    assert len(loop.session_id) == 64
    play_through(loop, clock, wrong_at={1})
    assert loop.finished
    assert loop.current_snippet() is None
    assert (loop.score, loop.total) == (2, 3)
    assert loop.elapsed() == pytest.approx(6.0)

    saved = loop.save('Grace')
    assert (saved.validated_score, saved.validated_total) == (2, 3)
    rows = client.get('/api/leaderboard?mode=classic').get_json()
    assert rows[0]['player_name'] == 'Grace'
    assert rows[0]['score'] == 2


def test_answers_are_recorded_in_index_order(backend, clock):
    loop = GameLoop(backend, 'classic', snippets_count=4, clock=clock)
    loop.start()
    play_through(loop, clock)
    assert [a.snippet_index for a in loop.answers] == [0, 1, 2, 3]
    assert all(a.is_correct for a in loop.answers)
    assert [a.correct_language for a in loop.answers] == [s.language for s in loop.session_snippets]


def test_server_tally_replaces_local_tally(backend, clock):
    loop = GameLoop(backend, 'classic', snippets_count=2, clock=clock)
    loop.start()
    play_through(loop, clock)
    loop.score = 99
    loop.save('Cheater')
    assert (loop.score, loop.total) == (2, 2)


def test_too_fast_game_is_rejected(backend, clock):
    loop = GameLoop(backend, 'classic', snippets_count=3, clock=clock)
    loop.start()
    play_through(loop, clock, seconds=0.1)
    with pytest.raises(SuspiciousTimingError) as exc_info:
        loop.save('Flash')
    assert 'too fast' in describe_error(exc_info.value)


def test_second_save_is_rejected(backend, clock):
    loop = GameLoop(backend, 'classic', snippets_count=1, clock=clock)
    loop.start()
    play_through(loop, clock)
    loop.save('Once')
    with pytest.raises(SessionNotFound):
        loop.save('Twice')


def test_infinite_mode_loops_and_partial_save(backend, clock):
    loop = GameLoop(backend, 'infinite', clock=clock, rng=random.Random(5))
    loop.start()
    corpus_size = len(loop.session_snippets)
    assert corpus_size == 5
    for _ in range(corpus_size + 2):
        assert not loop.finished
        clock.advance(2.0)
        loop.answer(loop.current_snippet().language)
    assert loop.total == corpus_size + 2
    assert loop.accuracy() == 100
    saved = loop.save('Marathon')
    # only the first lap maps onto the session's stored order
    assert saved.validated_total == corpus_size


def test_infinite_accuracy_percentage(backend, clock):
    loop = GameLoop(backend, 'infinite', clock=clock)
    loop.start()
    assert loop.accuracy() == 0
    loop.answer(loop.current_snippet().language)
    loop.answer('Nope')
    loop.answer('Nope')
    assert loop.accuracy() == 33


def test_options_include_answer_and_distractors(backend, clock):
    loop = GameLoop(backend, 'classic', snippets_count=5, clock=clock, rng=random.Random(2))
    loop.start()
    while not loop.finished:
        snippet = loop.current_snippet()
        options = loop.options()
        assert snippet.language in options
        assert len(options) == len(set(options)) == 4
        loop.answer(snippet.language)
    assert loop.options() == []


def test_offline_fallback(clock):
    local = SnippetCorpus(tuple(Snippet(code=str(i), language=f'L{i}') for i in range(12)))
    loop = GameLoop(HttpBackend(session=DownTransport()), 'classic', local_corpus=local, clock=clock)
    loop.start()
    assert loop.offline
    assert loop.session_id is None
    assert len(loop.session_snippets) == 10
    play_through(loop, clock)
    assert (loop.score, loop.total) == (10, 10)
    with pytest.raises(OfflineGameError):
        loop.save('Nomad')


def test_unreachable_backend_without_local_corpus():
    loop = GameLoop(HttpBackend(session=DownTransport()), 'classic')
    with pytest.raises(BackendUnavailable) as exc_info:
        loop.start()
    assert describe_error(exc_info.value) == 'Could not reach the game server.'


def test_answer_before_start_is_an_error():
    loop = GameLoop(HttpBackend(session=DownTransport()))
    with pytest.raises(RuntimeError):
        loop.answer('Go')


def test_unknown_mode():
    with pytest.raises(ValueError):
        GameLoop(HttpBackend(session=DownTransport()), 'arcade')


def test_fetch_leaderboard_degrades_to_empty(backend):
    assert fetch_leaderboard(backend, 'classic') == []
    assert fetch_leaderboard(backend, 'bogus') == []
    assert fetch_leaderboard(HttpBackend(session=DownTransport())) == []


def _local_corpus():
    return SnippetCorpus(tuple(Snippet(code=str(i), language=f'L{i}') for i in range(12)))


@pytest.mark.parametrize('status, payload', [
    (404, '<html>Not Found</html>'),
    (404, {'error': 'Not Found', 'code': 'not_found'}),
    (200, '<html>captive portal</html>'),
    (502, '<html>Bad Gateway</html>'),
    (201, {'gameMode': 'classic', 'snippets': []}),
    (201, {'sessionId': 'abc', 'snippets': 'nope'}),
    (201, {'sessionId': 'abc', 'snippets': [{'code': 'x'}]}),
    (201, ['not', 'an', 'object']),
])
def test_unusable_start_reply_falls_back_offline(clock, status, payload):
    loop = GameLoop(HttpBackend(session=StubTransport(status, payload)), 'classic',
                    local_corpus=_local_corpus(), clock=clock)
    loop.start()
    assert loop.offline
    assert len(loop.session_snippets) == 10


@pytest.mark.parametrize('status, payload', [
    (404, '<html>Not Found</html>'),
    (201, {'gameMode': 'classic'}),
])
def test_unusable_start_reply_without_local_corpus(status, payload):
    loop = GameLoop(HttpBackend(session=StubTransport(status, payload)), 'classic')
    with pytest.raises(BackendUnavailable):
        loop.start()


def test_non_json_success_is_backend_unavailable():
    backend = HttpBackend(session=StubTransport(200, 'OK'))
    with pytest.raises(BackendUnavailable):
        backend.leaderboard('classic')
    assert fetch_leaderboard(backend) == []
