"""
errors.py
Error kinds returned by the client services, plus the result wrapper that keeps
exceptions from escaping the service layer.
"""

from __future__ import annotations

import functools
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


class GymError(Exception):
    kind = "StorageError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GymError):
    kind = "ValidationError"
    status_code = 400


class Conflict(GymError):
    kind = "Conflict"
    status_code = 409


class NotFound(GymError):
    kind = "NotFound"
    status_code = 404


class Unauthorized(GymError):
    kind = "Unauthorized"
    status_code = 401


class StorageError(GymError):
    kind = "StorageError"
    status_code = 500


@dataclass
class OpResult:
    ok: bool
    value: Any = None
    error: GymError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def kind(self) -> str | None:
        return self.error.kind if self.error else None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


def require_owner(authorized: bool) -> None:
    if not authorized:
        raise Unauthorized("Login required.")


def service_boundary(func: Callable[..., Any]) -> Callable[..., OpResult]:
    """
    Wrap a service operation so it always returns an OpResult.
    Operations may return an OpResult themselves (to attach warnings).
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> OpResult:
        try:
            value = func(*args, **kwargs)
        except GymError as exc:
            logger.info("%s rejected: %s (%s)", func.__name__, exc.message, exc.kind)
            return OpResult(ok=False, error=exc)
        except (sqlite3.Error, OSError) as exc:
            logger.exception("%s failed in storage", func.__name__)
            return OpResult(ok=False, error=StorageError(f"Storage failure: {exc}"))
        if isinstance(value, OpResult):
            return value
        return OpResult(ok=True, value=value)

    return wrapper
