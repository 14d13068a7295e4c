"""Application error taxonomy and its translation to JSON responses."""

from flask import jsonify
from werkzeug.exceptions import HTTPException


class AppError(Exception):
    """Base error carrying the HTTP status the API answers with."""

    status = 500

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status

    def to_dict(self):
        return {"error": self.message}


class Unauthorized(AppError):
    status = 401


class Forbidden(AppError):
    status = 403


class NotFound(AppError):
    status = 404


class Conflict(AppError):
    """A unique constraint rejected the write."""

    status = 409

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidArgument(AppError):
    status = 400


class Internal(AppError):
    status = 500


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def _app_error(err: AppError):
        if err.status >= 500:
            app.logger.error(f"{type(err).__name__}: {err.message}")
        return jsonify(err.to_dict()), err.status

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return jsonify({"error": err.description or err.name}), err.code

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        app.logger.exception(f"Unhandled error: {err}")
        return jsonify({"error": "Erreur serveur"}), 500
