from player.queue_manager import PlaybackQueue

from conftest import make_track


def test_replace_points_at_track():
    a, b, c = make_track("a"), make_track("b"), make_track("c")
    queue = PlaybackQueue()

    assert queue.replace(c, [a, b, c]) == 2
    assert queue.index == 2
    assert queue.tracks == (a, b, c)


def test_replace_without_sequence_queues_track_alone():
    a = make_track("a")
    queue = PlaybackQueue()
    queue.replace(a, [])
    assert queue.tracks == (a,)
    assert queue.index == 0


def test_replace_matches_by_id():
    a = make_track("a")
    same_id = make_track("a", title="Other edition")
    queue = PlaybackQueue()
    assert queue.replace(same_id, [make_track("x"), a]) == 1


def test_navigation_stops_at_both_ends():
    a, b = make_track("a"), make_track("b")
    queue = PlaybackQueue()
    queue.replace(a, [a, b])

    assert queue.step_back() is None
    assert queue.advance() == b
    assert queue.advance() is None
    assert queue.index == 1
    assert queue.step_back() == a


def test_empty_queue():
    queue = PlaybackQueue()
    assert queue.tracks == ()
    assert not queue.has_next()
    assert not queue.has_previous()
    assert queue.advance() is None
