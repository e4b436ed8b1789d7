"""
Typed errors raised by the scoring services.

Every error carries the HTTP status the API answers with; the Flask handlers
registered in ``register_error_handlers`` render them as
``{"status": false, "message": ...}``.
"""
from flask import jsonify, current_app


class ScoreboardError(Exception):
    """Base class for caller-visible errors."""
    status_code = 500

    def __init__(self, message, status_code=None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(ScoreboardError):
    """Malformed upload, unknown referenced player, bad integer, bad tenant name."""
    status_code = 400


class UnauthorizedError(ScoreboardError):
    status_code = 401


class ForbiddenError(ScoreboardError):
    status_code = 403


class NotFoundError(ScoreboardError):
    status_code = 404


class ConflictError(ScoreboardError):
    """Mutating a finished competition, or a duplicate unique key on create."""
    status_code = 409


class LockTimeoutError(ScoreboardError):
    """
    The tenant lock could not be acquired within TENANT_LOCK_TIMEOUT.
    Nothing was read or written; the caller may retry.
    """
    status_code = 503
    retryable = True


class DispenseError(ScoreboardError):
    """The ID dispenser exhausted its retries."""
    status_code = 500


def register_error_handlers(app):
    @app.errorhandler(ScoreboardError)
    def _handle_scoreboard_error(e):
        if e.status_code >= 500:
            current_app.logger.error("%s: %s", type(e).__name__, e.message)
        else:
            current_app.logger.info("%s: %s", type(e).__name__, e.message)
        return jsonify({"status": False, "message": e.message}), e.status_code
