"""Service exceptions rendered as the back-office JSON error envelope.

Every error response has the shape ``{"success": false, "error": <message>}``,
optionally extended with fields such as ``error_id``.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(HTTPException):
    """
    Base exception for errors surfaced to API callers.

    Args:
        status_code: HTTP status code
        message: Human-readable error message returned to the caller
        extensions: Additional fields merged into the error body
        headers: HTTP headers to include in response
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.extensions = extensions or {}
        super().__init__(status_code=status_code, detail=message, headers=headers)

    @property
    def body(self) -> Dict[str, Any]:
        """Error envelope for this exception."""
        return {"success": False, "error": self.message, **self.extensions}


class InvalidArgumentError(ServiceError):
    """Missing or malformed identifiers and amounts."""

    def __init__(self, message: str = "Invalid request", field: Optional[str] = None):
        extensions = {"field": field} if field else None
        super().__init__(status_code=400, message=message, extensions=extensions)


class AuthenticationError(ServiceError):
    """Exception for requests without a valid admin session."""

    def __init__(self, message: str = "Admin authentication required"):
        super().__init__(status_code=401, message=message)


class NotFoundError(ServiceError):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"{resource_type.capitalize()}"
            if resource_id is not None:
                message += f" {resource_id}"
            message += " not found"
        super().__init__(status_code=404, message=message)


class ConflictError(ServiceError):
    """Exception when a request conflicts with the current resource state."""

    def __init__(self, message: str = "The request conflicts with the current state of the resource"):
        super().__init__(status_code=409, message=message)


class PersistenceError(ServiceError):
    """
    Store unreachable or query failure.

    The caller sees a generic message and an error id; the diagnostic is
    logged server-side under the same id.
    """

    def __init__(
        self,
        message: str = "A database error occurred while processing the request",
        error_id: Optional[str] = None,
    ):
        self.error_id = error_id or str(uuid.uuid4())
        super().__init__(
            status_code=500,
            message=message,
            extensions={"error_id": self.error_id},
        )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError as the error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.body,
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render request validation failures as 400 responses.

    The first violation becomes the error message; all of them are listed
    under ``violations``.
    """
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    if violations and violations[0]["path"]:
        message = f"{violations[0]['path']}: {violations[0]['message']}"
    else:
        message = "Invalid request"

    return JSONResponse(
        status_code=400,
        content={"success": False, "error": message, "violations": violations},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Convert unhandled exceptions into a 500 envelope.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Error envelope with an error id for log correlation
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path},
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "error_id": error_id,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        },
    )
