"""
Error handling for the Lingodeck API.

Every failure reaches the client in the same envelope:
    {"success": false, "message": ..., "code": ..., "details": {...}}

Application errors derive from LingodeckError. Scheduler errors
(FSRSError and its subclasses) are translated through FSRS_ERROR_STATUS.
"""

from typing import Any, Dict, Optional, Tuple

from flask import current_app, jsonify, request

from lingodeck_app.modules.fsrs.exceptions import (
    DomainViolationError,
    EngineCalculationError,
    FSRSError,
    InvalidRatingError,
    InvalidStepConfigError,
)


class LingodeckError(Exception):
    """Base exception class for Lingodeck."""

    def __init__(
        self,
        message: str,
        code: str = 'UNKNOWN_ERROR',
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            'success': False,
            'message': self.message,
            'code': self.code,
            'details': self.details
        }


class NotFoundError(LingodeckError):
    """A deck, card or study session does not exist."""

    def __init__(self, message: str = 'Resource not found', resource: str = None):
        super().__init__(
            message=message,
            code='NOT_FOUND',
            status_code=404,
            details={'resource': resource} if resource else None
        )


class ValidationError(LingodeckError):
    """Bad request payload or an action that does not fit the current state."""

    def __init__(self, message: str = 'Validation failed', errors: Dict = None):
        super().__init__(
            message=message,
            code='VALIDATION_ERROR',
            status_code=400,
            details={'errors': errors} if errors else None
        )


# (code, status) per scheduler error, most specific first
FSRS_ERROR_STATUS = (
    (InvalidRatingError, 'INVALID_RATING', 400),
    (InvalidStepConfigError, 'INVALID_STEP_CONFIG', 400),
    (DomainViolationError, 'DOMAIN_VIOLATION', 400),
    (EngineCalculationError, 'ENGINE_ERROR', 500),
)


def fsrs_error_status(error: FSRSError) -> Tuple[str, int]:
    for error_class, code, status_code in FSRS_ERROR_STATUS:
        if isinstance(error, error_class):
            return code, status_code
    return 'FSRS_ERROR', 500


def error_response(
    message: str,
    code: str = 'ERROR',
    status_code: int = 400,
    details: Dict = None
) -> tuple:
    response = {
        'success': False,
        'message': message,
        'code': code
    }
    if details:
        response['details'] = details
    return jsonify(response), status_code


def success_response(data: Any = None, message: str = None) -> dict:
    response = {'success': True}
    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    return response


def register_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(LingodeckError)
    def handle_lingodeck_error(error):
        current_app.logger.warning(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(FSRSError)
    def handle_fsrs_error(error):
        code, status_code = fsrs_error_status(error)
        if status_code >= 500:
            current_app.logger.error(f"{code}: {error}")
            return error_response(f"FSRS Error: {error}", code, status_code)
        current_app.logger.warning(f"{code}: {error}")
        return error_response(str(error), code, status_code)

    @app.errorhandler(404)
    def handle_not_found(error):
        if request.path.startswith('/api/'):
            return error_response('Endpoint not found', 'NOT_FOUND', 404)
        return error

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        if request.path.startswith('/api/'):
            return error_response('Method not allowed', 'METHOD_NOT_ALLOWED', 405)
        return error

    @app.errorhandler(500)
    def handle_internal_error(error):
        current_app.logger.exception('Internal server error')
        if request.path.startswith('/api/'):
            return error_response('Internal server error', 'SERVER_ERROR', 500)
        return error
