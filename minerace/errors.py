"""Errors raised by the room and board layers.

Moves on flagged, revealed or off-board cells are not errors: the session
ignores them with an early return and tells nobody.
"""


class GameError(Exception):
    """Base class for errors reported back to a player."""
    message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class RoomNotFound(GameError):
    message = "Room not found"


class RoomFull(GameError):
    message = "Room is full"


class NotAdmin(GameError):
    message = "Only the room admin can start the game"


class BoardConfigError(GameError, ValueError):
    """Mine count cannot fit outside the safe zone."""
    message = "Too many mines for the board size"
