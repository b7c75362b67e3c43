# src/actions/results.py
"""Discriminated result returned by every mutating action."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from src.schemas import format_issues


NOT_AUTHENTICATED = "Not authenticated."
INVALID_DATA = "Invalid form data."


@dataclass
class ActionResult:
    """Either `success` (with optional data/message) or `error` (with issues).

    `kind` classifies failures so transports can pick a status code:
    "auth", "validation", "not_found", "conflict", "backend".
    """

    success: bool = False
    error: Optional[str] = None
    issues: List[Dict[str, Any]] = field(default_factory=list)
    data: Any = None
    message: Optional[str] = None
    kind: Optional[str] = None
    changed: Optional[bool] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ActionResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, kind: str = "validation", issues=None) -> "ActionResult":
        return cls(success=False, error=error, kind=kind, issues=list(issues or []))

    @classmethod
    def unauthenticated(cls) -> "ActionResult":
        return cls.fail(NOT_AUTHENTICATED, kind="auth")

    @classmethod
    def invalid(cls, exc: ValidationError, error: str = INVALID_DATA) -> "ActionResult":
        return cls.fail(error, kind="validation", issues=format_issues(exc))

    @classmethod
    def backend(cls, exc: Exception) -> "ActionResult":
        return cls.fail(f"Backend error: {exc}", kind="backend")

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            payload: Dict[str, Any] = {"success": True}
            if self.data is not None:
                payload["data"] = self.data
            if self.message:
                payload["message"] = self.message
            if self.changed is not None:
                payload["changed"] = self.changed
            return payload

        payload = {"error": self.error}
        if self.issues:
            payload["issues"] = self.issues
        return payload
