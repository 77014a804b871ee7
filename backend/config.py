import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///' + os.path.join(BASE_DIR, 'game_results.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Snippet corpus, loaded once at startup
    CORPUS_PATH = os.environ.get('CORPUS_PATH') or os.path.join(BASE_DIR, 'codeguess', 'data', 'snippets.json')
    # Classic mode session size
    DEFAULT_SNIPPETS_COUNT = int(os.environ.get('DEFAULT_SNIPPETS_COUNT', '10'))
    MAX_SNIPPETS_COUNT = int(os.environ.get('MAX_SNIPPETS_COUNT', '50'))
    # Results faster than this per validated answer are rejected
    MIN_SECONDS_PER_QUESTION = float(os.environ.get('MIN_SECONDS_PER_QUESTION', '1.0'))
    LEADERBOARD_DEFAULT_LIMIT = int(os.environ.get('LEADERBOARD_DEFAULT_LIMIT', '5'))
    LEADERBOARD_MAX_LIMIT = int(os.environ.get('LEADERBOARD_MAX_LIMIT', '100'))
    # Per-client request limit on /api (requests per window). 0 disables.
    RATE_LIMIT_MAX_REQUESTS = int(os.environ.get('RATE_LIMIT_MAX_REQUESTS', '100'))
    RATE_LIMIT_WINDOW_SEC = int(os.environ.get('RATE_LIMIT_WINDOW_SEC', '900'))
    # Extra CORS origin for the deployed frontend
    FRONTEND_URL = os.environ.get('FRONTEND_URL')
    # Request body cap in bytes; larger bodies are rejected with 413
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', str(10 * 1024 * 1024)))
    # Response headers added to every response
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': os.environ.get('X_FRAME_OPTIONS', 'DENY'),
        'Referrer-Policy': os.environ.get('REFERRER_POLICY', 'no-referrer'),
    }
