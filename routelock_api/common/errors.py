# routelock_api/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from routelock_api.common.http import fail

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        out = {"code": self.code, "message": self.message}
        if self.payload:
            out["detail"] = self.payload
        return out


class ValidationError(APIError):
    """Malformed input; nothing was written."""
    def __init__(self, code, message, payload=None):
        super().__init__(code, message, status_code=400, payload=payload)


class ScopeError(APIError):
    """Referenced records are outside the caller's org; nothing was written."""
    def __init__(self, code, message, payload=None):
        super().__init__(code, message, status_code=403, payload=payload)


class StorageError(APIError):
    """Backing store failed; the surrounding transaction was rolled back."""
    def __init__(self, message, payload=None):
        super().__init__("storage_error", message, status_code=500, payload=payload)


class UpstreamDataError(APIError):
    """A required upstream lookup returned nothing usable."""
    def __init__(self, code, message, payload=None):
        super().__init__(code, message, status_code=409, payload=payload)


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)


@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)


@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    return fail(
        message="Conflict / integrity error",
        status=409,
        code="CONSTRAINT_ERROR",
        detail=str(e.orig) if getattr(e, "orig", None) else str(e),
    )


@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500, detail=str(e))
