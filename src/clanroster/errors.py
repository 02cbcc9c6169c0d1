from __future__ import annotations

from typing import Iterable


class ModerationError(Exception):
    """Base class for every error the roster engine surfaces to its caller."""


class ValidationError(ModerationError):
    """Input rejected before any store access (empty batch, bad rank, ...)."""


class Forbidden(ModerationError):
    """Caller lacks the administrative capability."""

    def __init__(self, message: str = "caller may not perform administrative actions") -> None:
        super().__init__(message)


class Conflict(ModerationError):
    """One or more ids in a batch are under an active ban."""

    def __init__(self, game_ids: Iterable[str]) -> None:
        self.game_ids: tuple[str, ...] = tuple(game_ids)
        super().__init__(f"active ban blocks: {', '.join(self.game_ids)}")


class NotFound(ModerationError):
    """Addressed record or ledger entry does not exist."""


class StoreUnavailable(ModerationError):
    """Transient persistence failure. Never retried by the engine."""
