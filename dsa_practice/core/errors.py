"""
Error taxonomy shared by the API.

Every error leaves the service as {"error": <message>} plus a stable
"code" where the client needs to branch on it.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

TRIAL_LIMIT_REACHED = "TRIAL_LIMIT_REACHED"


class AppError(Exception):
    status_code = 500
    code: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.code:
            body["code"] = self.code
        return body


class BadInput(AppError):
    status_code = 400


class Unauthenticated(AppError):
    status_code = 401


class Unauthorized(AppError):
    status_code = 403


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


class QuotaExceeded(AppError):
    status_code = 403
    code = TRIAL_LIMIT_REACHED


class PersistError(AppError):
    status_code = 500


# ==================== JUDGE ERRORS ====================

class JudgeError(AppError):
    """Anything that prevented the external judge from producing an answer."""
    status_code = 500

    def to_dict(self) -> dict:
        return {"error": f"Failed to evaluate code: {self.message}"}


class TransportError(JudgeError):
    pass


class ProviderError(JudgeError):
    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class DecodeError(JudgeError):
    pass


class JudgeTimeout(JudgeError):
    pass


# ==================== HANDLERS ====================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
