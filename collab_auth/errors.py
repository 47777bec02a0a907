"""
Renders failures as JSON responses.

This is the only place where failure kinds are mapped to HTTP status codes.
Every service registers these handlers in its application factory.
"""

from typing import Dict, Optional, Tuple, Type
from datetime import datetime
from http import HTTPStatus
import logging

from flask import Flask, Response, current_app, jsonify
from pytz import UTC
from werkzeug.exceptions import HTTPException

from . import exceptions

logger = logging.getLogger(__name__)

STATUS_CODES: Tuple[Tuple[Type[Exception], int], ...] = (
    (exceptions.ValidationFailed, HTTPStatus.BAD_REQUEST),
    (exceptions.NotFound, HTTPStatus.NOT_FOUND),
    (exceptions.Conflict, HTTPStatus.CONFLICT),
    (exceptions.Unauthorized, HTTPStatus.UNAUTHORIZED),
    (exceptions.Forbidden, HTTPStatus.FORBIDDEN),
    (exceptions.StoreUnavailable, HTTPStatus.SERVICE_UNAVAILABLE),
)


def _render(reason: str, status_code: int,
            errors: Optional[Dict[str, list]] = None) -> Response:
    body = {
        'reason': reason,
        'status': int(status_code),
        'service': current_app.config.get('SERVICE_NAME', current_app.name),
        'timestamp': datetime.now(tz=UTC).isoformat(),
    }
    if errors:
        body['errors'] = errors
    response: Response = jsonify(body)
    response.status_code = int(status_code)
    if status_code == HTTPStatus.UNAUTHORIZED:
        response.headers['WWW-Authenticate'] = 'Bearer'
    return response


def status_for(error: Exception) -> int:
    """Get the HTTP status code for a failure."""
    for kind, code in STATUS_CODES:
        if isinstance(error, kind):
            return int(code)
    return int(HTTPStatus.INTERNAL_SERVER_ERROR)


def jsonify_failure(error: Exception) -> Response:
    """Render a typed failure as JSON."""
    code = status_for(error)
    if code == HTTPStatus.SERVICE_UNAVAILABLE:
        logger.warning('Store unavailable: %s', error)
    errors = getattr(error, 'errors', None)
    return _render(str(error), code, errors)


def jsonify_exception(error: HTTPException) -> Response:
    """Render werkzeug exceptions (unknown route, bad method) as JSON."""
    return _render(error.description or error.name, error.code or 500)


def jsonify_unexpected(error: Exception) -> Response:
    """Log an unexpected error, and tell the client nothing about it."""
    logger.exception('Unexpected error: %s', error)
    return _render('Internal server error',
                   HTTPStatus.INTERNAL_SERVER_ERROR)


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    for kind, _ in STATUS_CODES:
        app.errorhandler(kind)(jsonify_failure)
    app.errorhandler(HTTPException)(jsonify_exception)
    app.errorhandler(Exception)(jsonify_unexpected)
