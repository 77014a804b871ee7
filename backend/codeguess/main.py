from datetime import datetime, timezone
import os
from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the codeguess game server!'})

@main.route('/health')
def health():
    corpus = current_app.extensions.get('snippet_corpus')
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'snippetsLoaded': len(corpus) if corpus is not None else 0,
        'environment': os.environ.get('FLASK_ENV') or ('testing' if current_app.config.get('TESTING') else 'development'),
    })
