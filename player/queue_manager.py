"""
Play queue for the playback engine.
Holds the ordered tracks being played and the position of the current one.
"""

from typing import List, Optional, Sequence, Tuple
import logging

from shared.models import Track

logger = logging.getLogger(__name__)


class PlaybackQueue:
    """
    Ordered, session-scoped play queue with a cursor.

    Navigation never wraps: stepping past either end leaves the cursor where
    it is. Not thread-safe on its own; the engine serializes access.
    """

    def __init__(self):
        self._tracks: List[Track] = []
        self._index = 0

    def replace(self, track: Track, tracks: Optional[Sequence[Track]] = None) -> int:
        """
        Replace the whole queue and point the cursor at ``track``.

        With no sequence (or an empty one) the queue is just ``[track]``.
        If ``track`` is not part of the sequence the cursor falls back to 0.
        Returns the new cursor position.
        """
        self._tracks = list(tracks) if tracks else [track]
        self._index = self.index_of(track.id)
        if self._index < 0:
            logger.debug(f"Track {track.id} not in its queue, starting at index 0")
            self._index = 0
        return self._index

    def index_of(self, track_id: str) -> int:
        for i, t in enumerate(self._tracks):
            if t.id == track_id:
                return i
        return -1

    @property
    def index(self) -> int:
        return self._index

    @property
    def tracks(self) -> Tuple[Track, ...]:
        return tuple(self._tracks)

    def has_next(self) -> bool:
        return self._index < len(self._tracks) - 1

    def has_previous(self) -> bool:
        return self._index > 0

    def advance(self) -> Optional[Track]:
        """Move to the next track and return it, or None at the end."""
        if not self.has_next():
            return None
        self._index += 1
        return self._tracks[self._index]

    def step_back(self) -> Optional[Track]:
        """Move to the previous track and return it, or None at the start."""
        if not self.has_previous():
            return None
        self._index -= 1
        return self._tracks[self._index]
