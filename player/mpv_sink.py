"""
Media sink using python-mpv.
Translates mpv property changes into the engine's sink notifications.
"""

import logging
from typing import Optional

import mpv

from .errors import SinkError
from .sink import MediaSink

logger = logging.getLogger(__name__)


class MpvSink(MediaSink):
    """Audio-only sink on top of libmpv."""

    def __init__(self, player: Optional["mpv.MPV"] = None):
        super().__init__()
        # Set by load() until the media ends or mpv gives up on it
        self._media_expected = False
        self._idle_seen = False

        # vo='null' because we are audio-only; keep_open so eof-reached is reported
        self.player = player or mpv.MPV(
            vo='null',
            ytdl=False,
            keep_open='yes',
            idle='yes',
        )

        self.player.observe_property('time-pos', self._handle_time_update)
        self.player.observe_property('duration', self._handle_duration)
        self.player.observe_property('eof-reached', self._handle_eof)
        self.player.observe_property('idle-active', self._handle_idle)

    def load(self, url: str) -> None:
        self._media_expected = True
        try:
            self.player.loadfile(url, 'replace')
        except Exception as e:
            self._media_expected = False
            raise SinkError(f"Could not load {url}: {e}") from e

    def play(self) -> None:
        try:
            self.player.pause = False
        except Exception as e:
            raise SinkError(f"Could not start playback: {e}") from e

    def pause(self) -> None:
        self.player.pause = True

    def seek(self, position: float) -> None:
        try:
            self.player.seek(max(0.0, float(position)), reference='absolute')
        except Exception as e:
            # mpv refuses to seek before the file is loaded
            logger.warning(f"Error seeking to {position}: {e}")

    def set_volume(self, volume: float) -> None:
        # mpv volume is 0..100
        self.player.volume = max(0.0, min(1.0, float(volume))) * 100.0

    @property
    def current_time(self) -> float:
        return self.player.time_pos or 0.0

    @property
    def duration(self) -> float:
        return self.player.duration or 0.0

    def close(self) -> None:
        self.player.terminate()

    # Event handlers (called on mpv's event thread)
    def _handle_time_update(self, name, value):
        if value is not None:
            self._emit_time_update(float(value))

    def _handle_duration(self, name, value):
        if value:
            self._emit_metadata_loaded(float(value))

    def _handle_eof(self, name, value):
        logger.debug(f"mpv eof-reached: {value}")
        if value:
            self._media_expected = False
            self._emit_ended()

    def _handle_idle(self, name, value):
        logger.debug(f"mpv idle-active: {value}")
        # The first call only reports mpv's startup state
        initial = not self._idle_seen
        self._idle_seen = True
        if value and not initial and self._media_expected:
            # keep_open holds finished files, so idle here means the load failed
            self._media_expected = False
            self._emit_error("mpv went idle without playing the media")
