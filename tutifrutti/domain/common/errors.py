# tutifrutti/domain/common/errors.py
from __future__ import annotations


class GameError(Exception):
    """
    A rejected intent. Reported to the originating caller only, never broadcast,
    and never fatal to the room.
    """
    code = "GAME_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(GameError):
    code = "VALIDATION"


class ConflictError(GameError):
    code = "CONFLICT"


class DuplicateName(ConflictError):
    code = "DUPLICATE_NAME"


class RoomFull(ConflictError):
    code = "ROOM_FULL"


class WrongPassword(ConflictError):
    code = "WRONG_PASSWORD"


class GameAlreadyStarted(ConflictError):
    code = "GAME_ALREADY_STARTED"


class BadPhase(ConflictError):
    code = "BAD_PHASE"


class AuthorizationError(GameError):
    code = "NOT_CREATOR"


class NotFoundError(GameError):
    code = "NOT_FOUND"


class RoomNotFound(NotFoundError):
    code = "ROOM_NOT_FOUND"


class PlayerNotFound(NotFoundError):
    code = "PLAYER_NOT_FOUND"


class NoRoom(NotFoundError):
    code = "NO_ROOM"


class RateLimitError(GameError):
    code = "RATE_LIMITED"
