"""Fakes shared by the player tests: a recording sink, manual timers and executors."""

from concurrent.futures import Future

import pytest

from player.engine import PlaybackEngine
from player.errors import HistoryError, SinkError
from player.history import HistoryStore
from player.sink import MediaSink
from shared.models import Track, TrackKind


class FakeSink(MediaSink):
    """Records every command; notifications are fired by the test."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.fail_play = False
        self.fail_load = False
        self._time = 0.0
        self._duration = 0.0

    def load(self, url):
        self.calls.append(("load", url))
        if self.fail_load:
            raise SinkError("unsupported media")

    def play(self):
        self.calls.append(("play",))
        if self.fail_play:
            raise SinkError("autoplay blocked")

    def pause(self):
        self.calls.append(("pause",))

    def seek(self, position):
        self.calls.append(("seek", position))
        self._time = position

    def set_volume(self, volume):
        self.calls.append(("volume", volume))

    @property
    def current_time(self):
        return self._time

    @property
    def duration(self):
        return self._duration

    def names(self):
        return [c[0] for c in self.calls]

    # Notifications
    def progress(self, position):
        self._time = position
        self._emit_time_update(position)

    def loaded(self, duration):
        self._duration = duration
        self._emit_metadata_loaded(duration)

    def end(self):
        self._emit_ended()

    def error(self, message="decoder failed"):
        self._emit_error(message)


class FakeTimer:
    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.kwargs = dict(kwargs or {})
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled:
            self.function(*self.args, **self.kwargs)


class FakeTimers:
    """Timer factory handing out FakeTimers that only fire when told to."""

    def __init__(self):
        self.created = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.created.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.created if t.started and not t.cancelled]

    def fire_all(self):
        for timer in self.active:
            timer.fire()


class InlineExecutor:
    """Runs submitted work immediately on the caller's thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class DeferredExecutor:
    """Holds submitted work until ``run_all`` so responses can arrive late."""

    def __init__(self):
        self.tasks = []

    def submit(self, fn, *args, **kwargs):
        self.tasks.append((fn, args, kwargs))
        return Future()

    def run_all(self):
        tasks, self.tasks = self.tasks, []
        for fn, args, kwargs in tasks:
            fn(*args, **kwargs)

    def shutdown(self, wait=True):
        pass


class FakeHistory(HistoryStore):
    def __init__(self, positions=None):
        self.positions = dict(positions or {})
        self.saves = []
        self.lookups = []
        self.fail_lookup = False
        self.fail_save = False

    def get_resume_position(self, track):
        self.lookups.append(track.id)
        if self.fail_lookup:
            raise HistoryError("401 Unauthorized")
        return self.positions.get(track.id)

    def save_position(self, track, position):
        if self.fail_save:
            raise HistoryError("history store offline")
        self.saves.append((track.id, position))


def make_track(track_id, **kwargs):
    kwargs.setdefault("title", f"Track {track_id.upper()}")
    kwargs.setdefault("artist", "Artist")
    kwargs.setdefault("media_url", f"https://cdn.example.com/{track_id}.mp3")
    return Track(id=track_id, **kwargs)


@pytest.fixture
def tracks():
    return [make_track("a"), make_track("b"), make_track("c")]


@pytest.fixture
def episode():
    return make_track("ep1", title="Pilot", artist="Host", kind=TrackKind.EPISODE)


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def history():
    return FakeHistory()


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def engine(sink, history, timers):
    eng = PlaybackEngine(sink, history, timer_factory=timers, executor=InlineExecutor())
    yield eng
    eng.close()
