import logging
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class CsvViewError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(CsvViewError):
    status_code = 400


class NotFoundError(CsvViewError):
    status_code = 404


class StorageError(CsvViewError):
    status_code = 500


class UnexpectedError(CsvViewError):
    status_code = 500


def _error_payload(message: str, status_code: int):
    return jsonify({"status": "error", "error": message}), status_code


def register_error_handlers(app: Flask) -> None:
    """Map exceptions raised inside views to the JSON error payload."""

    @app.errorhandler(CsvViewError)
    def handle_csvview_error(exc: CsvViewError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.__class__.__name__, exc.message)
        return _error_payload(exc.message, exc.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return _error_payload(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error")
        return _error_payload(f"Unexpected error: {exc}", UnexpectedError.status_code)
