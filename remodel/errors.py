# remodel/errors.py
"""
Error taxonomy shared by every store and router.

Each error knows its HTTP status and the ``kind`` string that ends up in the
error envelope ``{"success": false, "error": kind, "message": ...}``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "PortalError",
    "ValidationError",
    "AuthError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "ConflictError",
    "StorageError",
    "PartialWriteError",
    "describe_validation_errors",
    "validation_error_from",
]


class PortalError(Exception):
    status_code = 500
    kind = "StorageError"

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(PortalError):
    status_code = 400
    kind = "ValidationError"


class AuthError(PortalError):
    status_code = 401
    kind = "AuthError"


class Unauthenticated(PortalError):
    status_code = 401
    kind = "Unauthenticated"


class Forbidden(PortalError):
    status_code = 403
    kind = "Forbidden"


class NotFound(PortalError):
    status_code = 404
    kind = "NotFound"


class ConflictError(PortalError):
    status_code = 409
    kind = "ConflictError"


class StorageError(PortalError):
    status_code = 500
    kind = "StorageError"


class PartialWriteError(StorageError):
    """A two-document write where only some of the saves went through."""

    def __init__(self, message: str, *, detail: Dict[str, Any]) -> None:
        super().__init__(message)
        self.detail = detail

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["detail"] = self.detail
        return payload


def describe_validation_errors(errors: list) -> tuple:
    """
    Turn pydantic's error list into (field, message) for the envelope.
    Only the first error is reported; loc ('body', 'items', 2, 'quantity')
    becomes 'items[2].quantity'.
    """
    if not errors:
        return None, "Invalid input"
    first = errors[0]
    field = ""
    for part in first.get("loc", ()):
        if part == "body" and not field:
            continue
        if isinstance(part, int):
            field += f"[{part}]"
        else:
            field += f".{part}" if field else str(part)
    msg = str(first.get("msg", "Invalid input"))
    # pydantic prefixes errors raised from our validators with "Value error, "
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return (field or None), (f"{field}: {msg}" if field else msg)


def validation_error_from(exc: Any) -> ValidationError:
    """Convert a pydantic ValidationError raised inside a store into ours."""
    field, message = describe_validation_errors(exc.errors())
    return ValidationError(message, field=field)
