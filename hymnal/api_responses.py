"""
API Response Utilities - Standardized error handling and responses
Repository Results map onto the same envelope through result_response().
"""

from flask import jsonify
from functools import wraps
import logging

from hymnal.exceptions import HymnalException, ValidationException
from hymnal.result import AccessReason, ErrorKind

logger = logging.getLogger(__name__)


# API Error Codes
class ErrorCode:
    SUCCESS = "SUCCESS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    REMOTE_UNAVAILABLE = "REMOTE_UNAVAILABLE"
    CORRUPT_DATA = "CORRUPT_DATA"


def success_response(data=None, message=None, status_code=200, **extra):
    """
    Standard success response format for API endpoints
    """
    response = {"code": ErrorCode.SUCCESS, "success": True}

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    response.update(extra)
    return jsonify(response), status_code


def error_response(
    error_code=ErrorCode.INTERNAL_ERROR,
    message=None,
    details=None,
    status_code=400,
    log_error=True,
    **extra,
):
    """
    Standard error response format for API endpoints
    """
    response = {"code": error_code, "success": False}

    if message:
        response["message"] = message
    elif error_code == ErrorCode.NOT_FOUND:
        response["message"] = "Resource not found"
    elif error_code == ErrorCode.VALIDATION_ERROR:
        response["message"] = "Invalid request parameters"
    elif error_code == ErrorCode.INTERNAL_ERROR:
        response["message"] = "An unexpected error occurred"
    elif error_code == ErrorCode.UNAUTHORIZED:
        response["message"] = "Authentication required"
    elif error_code == ErrorCode.FORBIDDEN:
        response["message"] = "Access forbidden"
    elif error_code == ErrorCode.REMOTE_UNAVAILABLE:
        response["message"] = "Remote database unavailable"

    if details:
        response["details"] = details

    response.update(extra)

    if log_error and error_code in [ErrorCode.INTERNAL_ERROR, ErrorCode.VALIDATION_ERROR]:
        logger.error(f"{error_code}: {message} | Details: {details}")

    return jsonify(response), status_code


# Result error -> (code, HTTP status)
_RESULT_ERRORS = {
    ErrorKind.NOT_FOUND: (ErrorCode.NOT_FOUND, 404),
    ErrorKind.REMOTE_UNAVAILABLE: (ErrorCode.REMOTE_UNAVAILABLE, 503),
    ErrorKind.CORRUPT: (ErrorCode.CORRUPT_DATA, 400),
}


def query_limit(args, name="limit"):
    """Optional non-negative integer query parameter, None when absent"""
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationException(f"{name} must be a whole number, got {raw!r}")
    if limit < 0:
        raise ValidationException(f"{name} must not be negative, got {limit}")
    return limit


def result_response(result, serialize=None, status_code=200):
    """
    Turn a repository Result into a response.

    Access denial answers 401 for login_required and 403 otherwise, with the
    reason code in the body so clients can pick a login or upgrade prompt.
    """
    if result.ok:
        data = serialize(result.value) if serialize else result.value
        return success_response(data, status_code=status_code, is_online=result.is_online)

    if result.error == ErrorKind.ACCESS_DENIED:
        if result.reason == AccessReason.LOGIN_REQUIRED:
            code, status = ErrorCode.UNAUTHORIZED, 401
        else:
            code, status = ErrorCode.FORBIDDEN, 403
    else:
        code, status = _RESULT_ERRORS.get(result.error, (ErrorCode.INTERNAL_ERROR, 500))

    return error_response(
        code,
        message=result.message,
        status_code=status,
        log_error=False,
        reason=result.reason,
        is_online=result.is_online,
    )


def handle_api_errors(f):
    """
    Decorator to standardize error handling for API endpoints
    Automatically catches exceptions and returns consistent error responses
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except HymnalException:
            raise
        except ValueError as e:
            return error_response(ErrorCode.VALIDATION_ERROR, message=str(e), status_code=400)
        except KeyError as e:
            return error_response(
                ErrorCode.VALIDATION_ERROR, message=f"Missing required parameter: {str(e)}", status_code=400
            )
        except Exception as e:
            logger.error(f"Unhandled exception in {f.__name__}: {e}", exc_info=True)
            return error_response(
                ErrorCode.INTERNAL_ERROR,
                message="An unexpected error occurred",
                status_code=500,
            )

    return wrapper
