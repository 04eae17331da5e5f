"""Common Pydantic schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="Path to the invalid field")
    message: str = Field(..., description="Validation error message")


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint."""

    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Human-readable error message")
    error_id: Optional[str] = Field(None, description="Correlation ID for server-side logs")
    violations: Optional[List[Violation]] = Field(None, description="Validation errors")


class SuccessResponse(BaseModel):
    """Base for success envelopes."""

    success: bool = Field(True, description="Always true for successful calls")
