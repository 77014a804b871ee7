from flask import Blueprint, jsonify, request, current_app
from werkzeug.exceptions import RequestEntityTooLarge
from codeguess import socketio
from codeguess.errors import ValidationError
from codeguess.ratelimit import enforce_rate_limit
from codeguess.services.quiz import create_session, validate_result, top_results, parse_limit


quiz = Blueprint('quiz', __name__)
quiz.before_request(enforce_rate_limit)


def _json_body():
    limit = current_app.config.get('MAX_CONTENT_LENGTH')
    if limit and request.content_length is not None and request.content_length > limit:
        raise RequestEntityTooLarge()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError.for_field('body', 'must be a JSON object')
    return data


def _corpus():
    return current_app.extensions.get('snippet_corpus')


@quiz.route('/start-session', methods=['POST'])
def start_session():
    data = _json_body()
    session = create_session(_corpus(), data.get('gameMode'), data.get('snippetsCount'))
    return jsonify(session.to_dict()), 201


@quiz.route('/validate-result', methods=['POST'])
def submit_result():
    data = _json_body()
    outcome = validate_result(
        data.get('sessionId'),
        data.get('playerName'),
        data.get('score'),
        data.get('totalQuestions'),
        data.get('timeTaken'),
        data.get('gameMode'),
        data.get('answers'),
    )
    # Push to anyone watching this mode's leaderboard
    socketio.emit(
        'leaderboard_update',
        {'mode': outcome.game_mode, 'resultId': outcome.result_id},
        to=f"leaderboard:{outcome.game_mode}",
        namespace='/ws',
    )
    return jsonify(outcome.to_dict())


@quiz.route('/leaderboard', methods=['GET'])
def leaderboard():
    cfg = current_app.config
    mode = request.args.get('mode') or 'classic'
    limit = parse_limit(
        request.args.get('limit'),
        default=int(cfg.get('LEADERBOARD_DEFAULT_LIMIT', 5)),
        maximum=int(cfg.get('LEADERBOARD_MAX_LIMIT', 100)),
    )
    return jsonify([r.to_dict() for r in top_results(mode, limit)])
