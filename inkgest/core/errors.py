"""
Domain error types, error aggregation and the HTTP error envelope.
"""
import hashlib
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from inkgest.core.config import settings

logger = structlog.get_logger(__name__)


# ---------- Domain errors ----------

class AppError(Exception):
    """Base error carrying an HTTP status and a stable code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ServiceError(AppError):
    """Wrapped collaborator or infrastructure failure."""

    status_code = 500
    code = "SERVICE_ERROR"


# ---------- Aggregation ----------

class ErrorSeverity(Enum):
    LOW = "low"           # expected failures: validation, missing records
    MEDIUM = "medium"     # channel delivery and collaborator failures
    HIGH = "high"         # auth and database failures, always logged


SEVERITY_BY_TYPE = {
    "ValidationError": ErrorSeverity.LOW,
    "NotFoundError": ErrorSeverity.LOW,
    "RequestValidationError": ErrorSeverity.LOW,
    "ServiceError": ErrorSeverity.MEDIUM,
    "HTTPStatusError": ErrorSeverity.MEDIUM,
    "TwilioRestException": ErrorSeverity.MEDIUM,
    "ResendError": ErrorSeverity.MEDIUM,
    "TimeoutException": ErrorSeverity.MEDIUM,
    "AuthenticationError": ErrorSeverity.HIGH,
    "OperationalError": ErrorSeverity.HIGH,
    "DBAPIError": ErrorSeverity.HIGH,
}


@dataclass
class ErrorPattern:
    """One kind of failure seen in one place (endpoint or component)."""
    error_type: str
    message: str
    where: str
    count: int = 0
    first_seen: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)

    @property
    def fingerprint(self) -> str:
        raw = f"{self.error_type}|{self.where}|{self.message}"
        return hashlib.sha1(raw.encode(), usedforsecurity=False).hexdigest()[:10]


class ErrorAggregator:
    """
    Deduplicates repeated failures so a broken channel does not flood the logs
    once per reminder. HIGH errors and first occurrences are always logged;
    after that MEDIUM every ``log_threshold`` hits and LOW every 5x that.
    """

    def __init__(self, log_threshold: int = 10, time_window: int = 300):
        self.log_threshold = max(1, log_threshold)
        self.time_window = time_window
        self.patterns: Dict[str, ErrorPattern] = {}

    @staticmethod
    def severity_for(error: Exception) -> ErrorSeverity:
        known = SEVERITY_BY_TYPE.get(type(error).__name__)
        if known is not None:
            return known
        if isinstance(error, (AppError, HTTPException)):
            return ErrorSeverity.LOW if error.status_code < 500 else ErrorSeverity.MEDIUM
        return ErrorSeverity.MEDIUM

    def _due(self, pattern: ErrorPattern, severity: ErrorSeverity) -> bool:
        if severity is ErrorSeverity.HIGH or pattern.count == 1:
            return True
        every = self.log_threshold if severity is ErrorSeverity.MEDIUM else self.log_threshold * 5
        return pattern.count % every == 0

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  severity: Optional[ErrorSeverity] = None) -> str:
        """Count the failure and log it when due. Returns the pattern fingerprint."""
        context = context or {}
        severity = severity or self.severity_for(error)
        where = context.get("component") or context.get("endpoint") or "unknown"

        probe = ErrorPattern(type(error).__name__, str(error)[:100], where)
        pattern = self.patterns.setdefault(probe.fingerprint, probe)
        pattern.count += 1
        pattern.last_seen = time.time()

        if self._due(pattern, severity):
            logger.error(
                "aggregated_error",
                error_hash=pattern.fingerprint,
                error_type=pattern.error_type,
                message=str(error)[:200],
                count=pattern.count,
                severity=severity.value,
                **context,
            )
        self.prune()
        return pattern.fingerprint

    def prune(self) -> None:
        """Forget patterns idle for ten windows."""
        cutoff = time.time() - self.time_window * 10
        stale = [fp for fp, p in self.patterns.items() if p.last_seen < cutoff]
        for fp in stale:
            del self.patterns[fp]

    def get_error_summary(self) -> Dict[str, Any]:
        now = time.time()
        recent = [p for p in self.patterns.values() if now - p.last_seen < self.time_window]
        by_where: Dict[str, int] = defaultdict(int)
        for p in recent:
            by_where[p.where] += p.count
        top = sorted(recent, key=lambda p: p.count, reverse=True)[:5]
        return {
            "total_unique_errors": len(recent),
            "total_error_count": sum(p.count for p in recent),
            "by_component": dict(by_where),
            "top_errors": [
                {"fingerprint": p.fingerprint, "type": p.error_type, "where": p.where,
                 "message": p.message, "count": p.count}
                for p in top
            ],
        }


error_aggregator = ErrorAggregator(log_threshold=settings.ERROR_AGGREGATION_THRESHOLD)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> str:
    return error_aggregator.log_error(error, context, severity)


def get_error_summary() -> Dict[str, Any]:
    return error_aggregator.get_error_summary()


# ---------- HTTP envelope ----------

def _field_errors(exc: RequestValidationError) -> list[dict]:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain and validation errors onto the {success, error} envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log_error(exc, {"endpoint": request.url.path, "method": request.method})
        body = {"success": False, "error": exc.message, "code": exc.code}
        if isinstance(exc, ValidationError) and exc.field:
            body["details"] = [{"field": exc.field, "message": exc.message}]
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"success": False, "error": "Invalid request data", "details": _field_errors(exc)},
            status_code=400,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log_error(exc, {"endpoint": request.url.path, "method": request.method}, ErrorSeverity.HIGH)
        return JSONResponse({"success": False, "error": str(exc) or "Internal server error"}, status_code=500)
