"""Exceptions raised by the player and its collaborators."""


class PlayerError(Exception):
    """Base class for player errors."""


class SinkError(PlayerError):
    """The media sink rejected a command (load failure, autoplay blocked...)."""


class HistoryError(PlayerError):
    """The history store could not be reached or refused the request."""
