from datetime import datetime

import jwt
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .models import db, isoformat

bp = Blueprint('errors', __name__)

HTTP_ERROR_CODES = {
    400: 'BAD_REQUEST',
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
    413: 'FILE_TOO_LARGE',
    415: 'UNSUPPORTED_FILE_TYPE',
    429: 'RATE_LIMITED',
}


class ApiError(Exception):
    """Error raised by views; rendered into the JSON error envelope."""

    def __init__(self, message, status_code=400, code='BAD_REQUEST', details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details


class ValidationError(ApiError):
    def __init__(self, message, details=None):
        super().__init__(message, 400, 'VALIDATION_ERROR', details)


def not_found(code, message):
    return ApiError(message, 404, code)


def error_response(status_code, code, message, details=None):
    error = {'code': code, 'message': message}
    if details is not None:
        error['details'] = details
    payload = {
        'success': False,
        'error': error,
        'timestamp': isoformat(datetime.utcnow()),
        'path': request.path,
    }
    return jsonify(payload), status_code


@bp.app_errorhandler(ApiError)
def handle_api_error(e):
    if e.status_code >= 500:
        current_app.logger.error(f"{request.method} {request.path} failed: {e.code} {e.message}")
    return error_response(e.status_code, e.code, e.message, e.details)


@bp.app_errorhandler(IntegrityError)
def handle_integrity_error(e):
    db.session.rollback()
    current_app.logger.warning(f"Integrity error on {request.method} {request.path}: {str(e.orig)}")
    return error_response(409, 'DUPLICATE_ENTRY', 'Duplicate entry')


@bp.app_errorhandler(jwt.ExpiredSignatureError)
def handle_expired_token(e):
    return error_response(401, 'TOKEN_EXPIRED', 'Token expired')


@bp.app_errorhandler(jwt.InvalidTokenError)
def handle_invalid_token(e):
    return error_response(401, 'INVALID_TOKEN', 'Invalid token')


@bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    if e.code is None or e.code < 400:
        # Routing redirects are responses, not errors
        return e
    code = HTTP_ERROR_CODES.get(e.code, 'HTTP_ERROR')
    if e.code == 404:
        message = 'Route not found'
    elif e.code == 413:
        message = 'File too large'
    elif e.code == 429:
        message = 'Too many requests'
    else:
        message = e.description or e.name
    details = None
    if e.code == 429:
        details = {'limit': str(e.description)}
    response, status = error_response(e.code, code, message, details)
    if e.code == 405 and e.valid_methods:
        response.headers['Allow'] = ', '.join(e.valid_methods)
    return response, status


@bp.app_errorhandler(Exception)
def handle_unexpected_error(e):
    db.session.rollback()
    current_app.logger.exception(f"Unhandled error on {request.method} {request.path}: {str(e)}")
    if current_app.config.get('ENVIRONMENT') == 'production':
        return error_response(500, 'INTERNAL_ERROR', 'Internal server error')
    details = {'exception': type(e).__name__, 'detail': str(e)} if current_app.debug else None
    return error_response(500, 'INTERNAL_ERROR', str(e) or 'Internal server error', details)
