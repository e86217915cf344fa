"""
Media sink capability consumed by the playback engine.

A sink loads a URL, reports position/duration and accepts transport commands.
It notifies listeners of time progress, loaded metadata, the end of playback
and media errors (a load that failed after ``load`` returned).
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List

logger = logging.getLogger(__name__)


class MediaSink(ABC):
    """Interface for audio outputs. Listener bookkeeping is shared."""

    def __init__(self):
        self._time_update_callbacks: List[Callable[[float], None]] = []
        self._metadata_callbacks: List[Callable[[float], None]] = []
        self._ended_callbacks: List[Callable[[], None]] = []
        self._error_callbacks: List[Callable[[str], None]] = []

    @abstractmethod
    def load(self, url: str) -> None:
        """Replace the current media with ``url``."""
        pass

    @abstractmethod
    def play(self) -> None:
        """Start or resume playback. May raise SinkError."""
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def seek(self, position: float) -> None:
        """Seek to an absolute position in seconds."""
        pass

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        """Set volume (0.0 - 1.0)."""
        pass

    @property
    @abstractmethod
    def current_time(self) -> float:
        pass

    @property
    @abstractmethod
    def duration(self) -> float:
        pass

    def close(self) -> None:
        """Release the underlying output."""
        pass

    # Subscriptions
    def on_time_update(self, callback: Callable[[float], None]) -> None:
        if callback not in self._time_update_callbacks:
            self._time_update_callbacks.append(callback)

    def on_metadata_loaded(self, callback: Callable[[float], None]) -> None:
        if callback not in self._metadata_callbacks:
            self._metadata_callbacks.append(callback)

    def on_ended(self, callback: Callable[[], None]) -> None:
        if callback not in self._ended_callbacks:
            self._ended_callbacks.append(callback)

    def on_error(self, callback: Callable[[str], None]) -> None:
        if callback not in self._error_callbacks:
            self._error_callbacks.append(callback)

    def _emit_time_update(self, position: float) -> None:
        for callback in list(self._time_update_callbacks):
            try:
                callback(position)
            except Exception:
                logger.exception("Error in time update callback %r", callback)

    def _emit_metadata_loaded(self, duration: float) -> None:
        for callback in list(self._metadata_callbacks):
            try:
                callback(duration)
            except Exception:
                logger.exception("Error in metadata callback %r", callback)

    def _emit_ended(self) -> None:
        for callback in list(self._ended_callbacks):
            try:
                callback()
            except Exception:
                logger.exception("Error in ended callback %r", callback)

    def _emit_error(self, message: str) -> None:
        for callback in list(self._error_callbacks):
            try:
                callback(message)
            except Exception:
                logger.exception("Error in media error callback %r", callback)
