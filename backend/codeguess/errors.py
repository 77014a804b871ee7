"""Error taxonomy shared by the session, validation and leaderboard services.

Every error carries the HTTP status it maps to and a stable ``code`` that
clients can switch on without parsing messages.
"""

from typing import Dict, List, Optional


class QuizError(Exception):
    status_code = 500
    code = 'quiz_error'
    default_message = 'Something went wrong!'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> Dict:
        return {'error': self.message, 'code': self.code}


class ValidationError(QuizError):
    """Malformed or out-of-range input. Nothing was written."""
    status_code = 400
    code = 'validation_error'
    default_message = 'Invalid request'

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> 'ValidationError':
        return cls([{'field': field, 'message': message}], message)

    def to_dict(self) -> Dict:
        payload = super().to_dict()
        payload['errors'] = self.errors
        return payload


class SessionNotFound(QuizError):
    # Missing and already-completed sessions are deliberately indistinguishable
    status_code = 400
    code = 'session_not_found'
    default_message = 'Invalid or expired session'


class SuspiciousTimingError(QuizError):
    status_code = 400
    code = 'suspicious_timing'
    default_message = 'Suspicious completion time'


class StorageError(QuizError):
    status_code = 500
    code = 'storage_error'
    default_message = 'Failed to save result'


class ConfigurationError(QuizError):
    status_code = 500
    code = 'configuration_error'
    default_message = 'No snippets data available'


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (ValidationError, SessionNotFound, SuspiciousTimingError, StorageError, ConfigurationError)
}
