"""
Core playback engine.
Owns the playback state and the play queue, drives a media sink, and keeps
the listening history up to date with resume positions.
"""

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from shared.constants import (
    DEFAULT_VOLUME,
    HISTORY_WORKERS,
    MAX_VOLUME,
    MIN_VOLUME,
    POSITION_SAVE_DELAY_SEC,
    RESTART_THRESHOLD_SEC,
)
from shared.models import PlaybackState, Track

from .history import HistoryStore, NullHistory
from .queue_manager import PlaybackQueue
from .sink import MediaSink

logger = logging.getLogger(__name__)


class PlaybackEngine:
    """
    Single authority over what is playing.

    One instance per session. Operations come from the UI, notifications from
    the sink (possibly on another thread); both are serialized by one lock.
    History lookups and saves run on a background executor and never block or
    fail an operation.
    """

    def __init__(
        self,
        sink: MediaSink,
        history: Optional[HistoryStore] = None,
        save_delay: float = POSITION_SAVE_DELAY_SEC,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        executor: Optional[Executor] = None,
    ):
        self.sink = sink
        self.history = history or NullHistory()

        self._queue = PlaybackQueue()
        self._lock = threading.RLock()

        # State
        self._current_track: Optional[Track] = None
        self._is_playing = False
        self._current_time = 0.0
        self._duration = 0.0
        self._volume = DEFAULT_VOLUME
        self._resume_position = 0.0

        # Resume seek waiting for the sink to load metadata: (track_id, position)
        self._pending_resume: Optional[Tuple[str, float]] = None
        self._metadata_loaded = False
        # Bumped on every load and every user positioning; a resume lookup
        # only applies if nothing bumped it while it was in flight.
        self._position_generation = 0

        # Position persistence
        self._save_delay = save_delay
        self._timer_factory = timer_factory
        self._save_timer: Optional[threading.Timer] = None
        self._save_generation = 0

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=HISTORY_WORKERS, thread_name_prefix="history"
        )

        self._state_callbacks: List[Callable[[PlaybackState], None]] = []

        # Bind events
        self.sink.on_time_update(self._handle_time_update)
        self.sink.on_metadata_loaded(self._handle_metadata_loaded)
        self.sink.on_ended(self._handle_ended)
        self.sink.on_error(self._handle_media_error)

        self.sink.set_volume(self._volume)

    # ----------------------------
    # Observable state
    # ----------------------------

    @property
    def state(self) -> PlaybackState:
        """Snapshot of the current playback state."""
        with self._lock:
            return PlaybackState(
                current_track=self._current_track,
                queue=self._queue.tracks,
                current_index=self._queue.index,
                is_playing=self._is_playing,
                current_time=self._current_time,
                duration=self._duration,
                volume=self._volume,
                resume_position=self._resume_position,
            )

    @property
    def current_track(self) -> Optional[Track]:
        return self._current_track

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def current_time(self) -> float:
        return self._current_time

    def add_state_listener(self, callback: Callable[[PlaybackState], None]) -> None:
        """Register a callback receiving a snapshot after every state change."""
        if callback not in self._state_callbacks:
            self._state_callbacks.append(callback)

    def remove_state_listener(self, callback: Callable[[PlaybackState], None]) -> None:
        if callback in self._state_callbacks:
            self._state_callbacks.remove(callback)

    # ----------------------------
    # Operations
    # ----------------------------

    def play_track(self, track: Track, queue: Optional[Sequence[Track]] = None) -> None:
        """
        Play ``track`` now, replacing the queue with ``queue`` (or ``[track]``).

        A saved position for the track is looked up in the background and
        seeked to once the sink has loaded the media.
        """
        with self._lock:
            self._cancel_save_timer()
            self._queue.replace(track, queue)
            self._current_track = track
            self._resume_position = 0.0
            self._pending_resume = None

            if self._load_current():
                self._set_playing(True)
            generation = self._position_generation
            self._notify_state()

        self._submit(self._lookup_resume, track, generation)

    def toggle_play_pause(self) -> None:
        with self._lock:
            if self._current_track is None:
                return
            self._set_playing(not self._is_playing)
            self._notify_state()

    def play_next(self) -> None:
        """Advance to the next queued track. Does nothing at the end of the queue."""
        with self._lock:
            next_track = self._queue.advance()
            if next_track is None:
                return
            self._switch_to(next_track)
            self._notify_state()

    def play_previous(self) -> None:
        """
        Restart the current track if it is more than a few seconds in,
        otherwise go back one track. Does nothing at the start of the queue.
        """
        with self._lock:
            if self._current_track is None:
                return
            if self._current_time > RESTART_THRESHOLD_SEC:
                self._user_positioned()
                self.sink.seek(0.0)
                self._current_time = 0.0
                self._notify_state()
                return

            previous_track = self._queue.step_back()
            if previous_track is None:
                return
            self._switch_to(previous_track)
            self._notify_state()

    def seek(self, position: float) -> None:
        """Seek to ``position`` seconds; ``current_time`` reflects it immediately."""
        with self._lock:
            if self._current_track is None:
                return
            position = max(0.0, float(position))
            self._user_positioned()
            self.sink.seek(position)
            self._current_time = position
            self._notify_state()

    def change_volume(self, volume: float) -> None:
        """Set volume (0.0 - 1.0)."""
        with self._lock:
            self._volume = max(MIN_VOLUME, min(MAX_VOLUME, float(volume)))
            self.sink.set_volume(self._volume)
            self._notify_state()

    def close(self) -> None:
        """End of session: drop the pending save and stop background work."""
        with self._lock:
            self._cancel_save_timer()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # ----------------------------
    # Sink notifications
    # ----------------------------

    def _handle_time_update(self, position: float) -> None:
        with self._lock:
            track = self._current_track
            if track is None:
                return
            self._current_time = position
            self._restart_save_timer(track, position)
            self._notify_state()

    def _handle_metadata_loaded(self, duration: float) -> None:
        with self._lock:
            self._duration = duration
            self._metadata_loaded = True
            pending = self._pending_resume
            if pending and self._current_track and pending[0] == self._current_track.id:
                self._apply_resume(pending[1])
            self._notify_state()

    def _handle_ended(self) -> None:
        with self._lock:
            track = self._current_track
            if track is None:
                return

            next_track = self._queue.advance()
            if next_track is not None:
                logger.debug(f"Track {track.id} ended, auto-playing {next_track.id}")
                self._is_playing = True
                self._switch_to(next_track)
            else:
                logger.debug(f"Track {track.id} ended at the end of the queue")
                self._cancel_save_timer()
                self._set_playing(False)
                self._current_time = 0.0
                self._save_position(track, 0.0)
            self._notify_state()

    def _handle_media_error(self, message: str) -> None:
        with self._lock:
            track = self._current_track
            if track is None:
                return
            logger.error(f"Playback of {track.id} failed: {message}")
            self._cancel_save_timer()
            self._is_playing = False
            self._notify_state()

    # ----------------------------
    # Helpers (called with the lock held)
    # ----------------------------

    def _switch_to(self, track: Track) -> bool:
        """Make ``track`` current after queue navigation, keeping transport state."""
        self._cancel_save_timer()
        self._current_track = track
        self._resume_position = 0.0
        self._pending_resume = None
        if not self._load_current():
            return False
        self._apply_playing()
        return True

    def _load_current(self) -> bool:
        """Load the current track into the sink. Returns False if the sink refused."""
        self._current_time = 0.0
        self._duration = 0.0
        self._metadata_loaded = False
        self._position_generation += 1
        try:
            self.sink.load(self._current_track.media_url)
        except Exception as e:
            logger.error(f"Could not load {self._current_track.id}: {e}")
            self._is_playing = False
            return False
        return True

    def _set_playing(self, playing: bool) -> None:
        self._is_playing = playing
        self._apply_playing()

    def _apply_playing(self) -> None:
        """Bring the sink in line with ``is_playing``."""
        if self._current_track is None:
            return
        if self._is_playing:
            try:
                self.sink.play()
            except Exception as e:
                # e.g. blocked by an autoplay policy
                logger.warning(f"Play error: {e}")
                self._is_playing = False
        else:
            self.sink.pause()

    def _user_positioned(self) -> None:
        """An explicit seek or restart wins over any resume not yet applied."""
        self._pending_resume = None
        self._position_generation += 1

    def _apply_resume(self, position: float) -> None:
        self._pending_resume = None
        self.sink.seek(position)
        self._current_time = position

    def _notify_state(self) -> None:
        if not self._state_callbacks:
            return
        snapshot = self.state
        for callback in list(self._state_callbacks):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Error in state listener %r", callback)

    # ----------------------------
    # History
    # ----------------------------

    def _lookup_resume(self, track: Track, generation: int) -> None:
        """Runs on the executor."""
        try:
            position = self.history.get_resume_position(track)
        except Exception as e:
            logger.warning(f"Error fetching resume position for {track.id}: {e}")
            return
        if not position or position <= 0:
            return

        with self._lock:
            if self._current_track is None or self._current_track.id != track.id:
                logger.debug(f"Dropping resume position for {track.id}, no longer current")
                return
            if generation != self._position_generation:
                logger.debug(f"Dropping resume position for {track.id}, already repositioned")
                return
            self._resume_position = position
            if self._metadata_loaded:
                self._apply_resume(position)
            else:
                self._pending_resume = (track.id, position)
            self._notify_state()

    def _restart_save_timer(self, track: Track, position: float) -> None:
        self._cancel_save_timer()
        timer = self._timer_factory(
            self._save_delay, self._save_due, args=(self._save_generation, track, position)
        )
        timer.daemon = True
        self._save_timer = timer
        timer.start()

    def _cancel_save_timer(self) -> None:
        # A timer thread that already fired may still be waiting on the lock
        self._save_generation += 1
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None

    def _save_due(self, generation: int, track: Track, position: float) -> None:
        """Debounce timer fired: no time update for ``save_delay`` seconds."""
        with self._lock:
            if generation != self._save_generation:
                return
            if self._current_track is None or self._current_track.id != track.id:
                return
            self._save_timer = None
            self._save_position(track, position)

    def _save_position(self, track: Track, position: float) -> None:
        self._submit(self._write_position, track, position)

    def _write_position(self, track: Track, position: float) -> None:
        """Runs on the executor."""
        try:
            self.history.save_position(track, position)
        except Exception as e:
            logger.warning(f"Error saving playback position for {track.id}: {e}")

    def _submit(self, fn: Callable, *args) -> None:
        try:
            self._executor.submit(fn, *args)
        except RuntimeError as e:
            # Executor already shut down (session ending)
            logger.debug(f"Dropped background task {fn.__name__}: {e}")
