# backend/errors.py
"""
Typed errors raised by the services and mapped to JSON by the app.

Every response body is {"message": ...}; validation failures add "errors".
Unexpected exceptions are logged with traceback and answered with a
generic 500 so no internals reach the client.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import current_app, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge


class MarketplaceError(Exception):
    http_status = 500

    def __init__(self, message: str, http_status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if http_status is not None:
            self.http_status = http_status

    def to_response(self) -> Dict[str, Any]:
        return {"message": self.message}


# ------------------------------------------------------------
# 400-level
# ------------------------------------------------------------
class ValidationFailed(MarketplaceError):
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "ValidationFailed":
        errors = [
            {
                "field": ".".join(str(p) for p in e.get("loc", ())),
                "message": e.get("msg", "invalid value"),
            }
            for e in exc.errors()
        ]
        return cls("Validation failed", errors)

    def to_response(self) -> Dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class AuthError(MarketplaceError):
    http_status = 401


class Forbidden(MarketplaceError):
    http_status = 403


class NotFound(MarketplaceError):
    http_status = 404


class Conflict(MarketplaceError):
    """Operation is incompatible with the current state of a record."""
    http_status = 400


class Unavailable(Conflict):
    pass


class InsufficientQuantity(Conflict):
    pass


class SelfDealing(Conflict):
    pass


class InvalidTransition(Conflict):
    pass


class InvalidState(Conflict):
    pass


class ConcurrentModification(Conflict):
    http_status = 409


class InvalidSignature(MarketplaceError):
    http_status = 400

    def __init__(self, message: str = "Invalid payment signature"):
        super().__init__(message)


# ------------------------------------------------------------
# Upstream
# ------------------------------------------------------------
class GatewayError(MarketplaceError):
    http_status = 502


class GatewayUnavailable(GatewayError):
    pass


# ------------------------------------------------------------
# Flask wiring
# ------------------------------------------------------------
def register_error_handlers(app):

    @app.errorhandler(MarketplaceError)
    def _marketplace_error(exc: MarketplaceError):
        if exc.http_status >= 500:
            current_app.logger.warning("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_response()), exc.http_status

    @app.errorhandler(ValidationError)
    def _pydantic_error(exc: ValidationError):
        err = ValidationFailed.from_pydantic(exc)
        return jsonify(err.to_response()), err.http_status

    @app.errorhandler(RequestEntityTooLarge)
    def _too_large(exc):
        return jsonify(message="Upload too large"), 413

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return jsonify(message=exc.description or exc.name), exc.code

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error: %s", exc)
        return jsonify(message="Internal server error"), 500
