"""Exception hierarchy shared by the store, state and presentation layers."""

from __future__ import annotations

from pydantic import ValidationError


class PromptionError(Exception):
    """Base class for all promption errors."""


class StoreError(PromptionError):
    """Raised when a persistent-store operation fails."""


class NotFoundError(StoreError):
    """Raised when a record cannot be located, including after a write."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.capitalize()} '{key}' not found")


class SystemTagError(StoreError):
    """Raised on an attempt to delete or rename a seeded system tag."""

    def __init__(self, tag_name: str, action: str = "deleted") -> None:
        self.tag_name = tag_name
        super().__init__(f"System tag '{tag_name}' cannot be {action}")


class ActionError(PromptionError):
    """Normalized failure of an application-state action.

    ``message`` is a short human-readable string; ``cause`` keeps the
    original exception so callers can map it to a status code.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def describe_error(exc: BaseException) -> str:
    """Collapse an exception into a single display message."""
    if isinstance(exc, ValidationError):
        parts: list[str] = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()))
            msg = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
            parts.append(f"{loc}: {msg}" if loc else msg)
        return "; ".join(parts) or "Invalid input"
    if isinstance(exc, ActionError):
        return exc.message
    return str(exc) or exc.__class__.__name__
