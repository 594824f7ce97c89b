# FILE: artforge/core/errors.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("artforge.errors")


class AppError(Exception):
    """Base for every error the API reports with a stable code."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_http_detail(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


# ---------- generation path ----------

class InvalidPrompt(AppError):
    code = "INVALID_PROMPT"
    status_code = 400


class UnsupportedOption(AppError):
    code = "UNSUPPORTED_OPTION"
    status_code = 400


class InsufficientCredits(AppError):
    code = "INSUFFICIENT_CREDITS"
    status_code = 402

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient credits: {required} required, {available} available.",
            details={"required": required, "available": available},
        )
        self.required = required
        self.available = available


class ProviderErrorKind(str, Enum):
    POLICY_VIOLATION = "policy_violation"
    RATE_LIMITED = "rate_limited"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


_PROVIDER_STATUS = {
    ProviderErrorKind.POLICY_VIOLATION: 400,
    ProviderErrorKind.RATE_LIMITED: 429,
    ProviderErrorKind.TIMEOUT: 504,
    ProviderErrorKind.TRANSPORT: 502,
    ProviderErrorKind.UNKNOWN: 502,
}


class GenerationProviderError(AppError):
    code = "GENERATION_FAILED"

    def __init__(self, kind: ProviderErrorKind, message: str):
        super().__init__(message, details={"kind": kind.value})
        self.kind = kind
        self.status_code = _PROVIDER_STATUS[kind]


class PersistenceError(AppError):
    code = "PERSISTENCE_ERROR"
    status_code = 500


# ---------- ledger path ----------

class AccountNotFound(AppError):
    code = "ACCOUNT_NOT_FOUND"
    status_code = 404

    def __init__(self, account_id: str):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class InvalidTransaction(AppError):
    code = "INVALID_TRANSACTION"
    status_code = 400


# ---------- payment path ----------

class InvalidSignature(AppError):
    code = "INVALID_SIGNATURE"
    status_code = 400


class InvalidPayload(AppError):
    code = "INVALID_PAYLOAD"
    status_code = 400


class SessionNotFound(AppError):
    code = "SESSION_NOT_FOUND"
    status_code = 404

    def __init__(self, external_session_id: str):
        super().__init__(f"Payment session {external_session_id} not found")
        self.external_session_id = external_session_id


class PackageNotFound(AppError):
    code = "PACKAGE_NOT_FOUND"
    status_code = 404


class PaymentProviderError(AppError):
    code = "PAYMENT_PROVIDER_ERROR"
    status_code = 502


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_http_detail()})
