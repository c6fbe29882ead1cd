"""
Interfaces for the components that sit around the firewall.

The prompt sanitizer, secret redactor and audit log are provided by the
host application. Only their shapes are fixed here; the firewall itself
talks to an :class:`AuditLog` when one is supplied.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


class SanitizeResult(BaseModel):
    clean: str
    threat_count: int = 0


class RedactResult(BaseModel):
    clean: str
    secret_count: int = 0


@runtime_checkable
class InputSanitizer(Protocol):
    """Flags injection attempts in text before it reaches the model."""

    def sanitize(self, text: str) -> SanitizeResult: ...


@runtime_checkable
class SecretRedactor(Protocol):
    """Strips keys, seed phrases and similar secrets from model output."""

    def redact(self, text: str) -> RedactResult: ...


@runtime_checkable
class AuditLog(Protocol):
    """Append-only record of firewall decisions."""

    def log(self, entry: dict[str, Any]) -> str: ...

    def export(self) -> str: ...
