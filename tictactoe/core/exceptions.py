"""Custom exceptions. Everything the domain can complain about derives from GameError."""


class GameError(Exception):
    """Top-level exception for this application."""


class GameStateError(GameError):
    """Operation is not allowed given the current status of the game."""


class NotYourTurnError(GameError):
    """A player tried to move while the other player holds the turn."""


class IllegalMoveError(GameError):
    """Target cell is out of range or already occupied."""


class SessionNotFoundError(GameError):
    """No game session is registered under the requested ID."""


class InvalidRequestError(GameError):
    """Request data is structurally fine, but its content is not acceptable."""


class ProtocolError(GameError):
    """A realtime frame could not be decoded into a message envelope."""


class PersistenceUnavailableError(GameError):
    """The result store is not configured, so stored results cannot be queried."""
