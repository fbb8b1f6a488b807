"""ServiceResult and ServiceError — the envelope every service method returns.

Domain exceptions never cross the service boundary: :func:`error_result`
turns a ``KgError`` into ``ok=False`` with the exception's ``code``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from kgctl.domain.errors import KgError

_JSON_TYPES = (str, int, float, bool, list, dict)


class ServiceError(BaseModel):
    """Machine-readable failure: a stable ``code`` plus human text."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name (``"process_document"``, ``"query"``, ...).
        data: JSON-ready payload on success.
        warnings: Non-fatal problems (skipped files, plugin hook failures).
        error: Set when ``ok`` is False.
        meta: Optional extras such as timings.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None


def failure(
    op: str,
    code: str,
    message: str,
    *,
    detail: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=message, detail=detail or {}),
        warnings=warnings or [],
    )


def error_result(op: str, exc: KgError, *, warnings: list[str] | None = None) -> ServiceResult:
    """Wrap a domain exception, keeping its code and JSON-safe detail."""
    detail = {
        key: value if value is None or isinstance(value, _JSON_TYPES) else str(value)
        for key, value in exc.detail.items()
    }
    return failure(op, exc.code, exc.message, detail=detail, warnings=warnings)
