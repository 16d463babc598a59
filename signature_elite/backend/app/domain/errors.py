# backend/app/domain/errors.py
"""
Engine error taxonomy.

Every error is an HTTPException so services can raise it directly and routers
propagate it untouched, the same way ownership checks raise 404s.

  InvalidInput  400  missing/malformed field, never retried
  Forbidden     403  role / ownership / fraud gate
  NotFound      404  reference to a missing entity
  Conflict      409  state machine violation
  Unavailable   503  payment gateway failure, retryable by the caller
"""
from __future__ import annotations

from fastapi import HTTPException


class EngineError(HTTPException):
    status_code_default: int = 500

    def __init__(self, detail: str, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)


class InvalidInput(EngineError):
    status_code_default = 400


class Forbidden(EngineError):
    status_code_default = 403


class NotFound(EngineError):
    status_code_default = 404


class Conflict(EngineError):
    status_code_default = 409


class Unavailable(EngineError):
    status_code_default = 503

    def __init__(self, detail: str, *, retry_after_seconds: int = 5) -> None:
        super().__init__(detail, headers={"Retry-After": str(int(retry_after_seconds))})
