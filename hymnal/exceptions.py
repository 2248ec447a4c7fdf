"""
LPMI Hymnal - Custom Exceptions and Exception Handlers
"""
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = structlog.get_logger('exceptions')


class HymnalException(Exception):
    """Base exception for the hymnal service"""
    def __init__(self, message: str, code: str = "HYMNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            'error': True,
            'code': self.code,
            'message': self.message
        }


class RemoteUnavailableException(HymnalException):
    """Remote document store could not be reached or answered with an error"""
    def __init__(self, message: str, path: str = None):
        self.path = path
        super().__init__(message, code="REMOTE_UNAVAILABLE")
        logger.error(f"Remote error ({path}): {message}")


class TransactionConflictException(RemoteUnavailableException):
    """Conditional write kept losing against concurrent writers"""
    def __init__(self, path: str, attempts: int):
        self.attempts = attempts
        super().__init__(f"Transaction on {path} aborted after {attempts} attempts", path=path)
        self.code = "TRANSACTION_CONFLICT"


class CacheCorruptException(HymnalException):
    """Local cache entry could not be decoded"""
    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Corrupt cache entry {key}: {message}", code="CACHE_CORRUPT")
        logger.warning(f"Cache corrupt: {key}: {message}")


class ValidationException(HymnalException):
    """Validation-related exceptions"""
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")
        logger.warning(f"Validation error: {message}")


class NotFoundException(HymnalException):
    """Requested entity does not exist"""
    def __init__(self, message: str):
        super().__init__(message, code="NOT_FOUND")


class AuthenticationException(HymnalException):
    """Authentication-related exceptions"""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="AUTH_ERROR")
        logger.warning(f"Authentication error: {message}")


class AuthorizationException(HymnalException):
    """Authorization-related exceptions"""
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="FORBIDDEN")
        logger.warning(f"Authorization error: {message}")


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions"""
        return jsonify({
            'error': True,
            'code': e.name.upper().replace(' ', '_'),
            'message': e.description
        }), e.code

    @app.errorhandler(HymnalException)
    def handle_hymnal_exception(e):
        """Handle hymnal custom exceptions"""
        return jsonify(e.to_dict()), 400

    @app.errorhandler(RemoteUnavailableException)
    def handle_remote_exception(e):
        """Handle remote store exceptions"""
        return jsonify(e.to_dict()), 502

    @app.errorhandler(CacheCorruptException)
    def handle_cache_exception(e):
        """Handle local cache exceptions"""
        return jsonify(e.to_dict()), 500

    @app.errorhandler(ValidationException)
    def handle_validation_exception(e):
        """Handle validation exceptions"""
        return jsonify(e.to_dict()), 400

    @app.errorhandler(NotFoundException)
    def handle_not_found_exception(e):
        """Handle missing entities"""
        return jsonify(e.to_dict()), 404

    @app.errorhandler(AuthenticationException)
    def handle_auth_exception(e):
        """Handle authentication exceptions"""
        return jsonify(e.to_dict()), 401

    @app.errorhandler(AuthorizationException)
    def handle_authorization_exception(e):
        """Handle authorization exceptions"""
        return jsonify(e.to_dict()), 403

    @app.errorhandler(Exception)
    def handle_generic_exception(e):
        """Handle all other exceptions"""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'error': True,
            'code': 'INTERNAL_ERROR',
            'message': 'An unexpected error occurred'
        }), 500
