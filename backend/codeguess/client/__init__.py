from .game_loop import (
    AnswerRecord,
    BackendUnavailable,
    GameLoop,
    HttpBackend,
    OfflineGameError,
    SavedResult,
    describe_error,
    fetch_leaderboard,
)
