"""
Common response DTOs shared across endpoints.

ApiResponse    — the storefront envelope ``{success, message, data}``
ErrorResponse  — shape produced by AppError.to_dict()
HealthResponse — GET /health
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every successful response body."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Başarılı"
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    message: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]
