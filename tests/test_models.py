import pytest

from shared.models import HistoryEntry, PlaybackState, Track, TrackKind, tracks_from_records

from conftest import make_track


def test_from_record_relational_shape():
    track = Track.from_record({
        "id": 17,
        "title": "Numb",
        "artist": "Linkin Park",
        "audio_url": "https://cdn.example.com/numb.mp3",
        "cover_image": "https://cdn.example.com/meteora.jpg",
        "duration": "185",
        "created_at": "2026-01-01",
    })

    assert track.id == "17"
    assert track.media_url == "https://cdn.example.com/numb.mp3"
    assert track.cover_url == "https://cdn.example.com/meteora.jpg"
    assert track.duration == 185.0
    assert track.kind is TrackKind.TRACK


def test_from_record_document_shape_episode():
    track = Track.from_record({
        "_id": "65f0c0ffee",
        "name": "Episode 1",
        "host": "Jo",
        "audioUrl": "https://cdn.example.com/ep1.mp3",
        "coverImage": "https://cdn.example.com/show.jpg",
    })

    assert track.id == "65f0c0ffee"
    assert track.title == "Episode 1"
    assert track.artist == "Jo"
    assert track.is_episode
    assert track.cover_url == "https://cdn.example.com/show.jpg"


def test_from_record_requires_identity():
    with pytest.raises(ValueError):
        Track.from_record({"title": "No id"})


def test_from_record_tolerates_bad_duration():
    track = Track.from_record({"id": "a", "title": "A", "duration": "n/a"})
    assert track.duration == 0.0


def test_tracks_from_records_skips_unidentified():
    tracks = tracks_from_records([{"id": "a", "title": "A"}, {"title": "?"}, {"_id": "b"}])
    assert [t.id for t in tracks] == ["a", "b"]


def test_dict_round_trip_keeps_kind():
    track = make_track("ep", kind=TrackKind.EPISODE)
    data = track.to_dict()

    assert data["kind"] == "podcast"
    assert Track.from_dict({**data, "unknown": 1}) == track


def test_playback_state_navigation_flags():
    a, b = make_track("a"), make_track("b")
    assert PlaybackState(current_track=a, queue=(a, b), current_index=0).has_next
    assert not PlaybackState(current_track=b, queue=(a, b), current_index=1).has_next
    assert PlaybackState(current_track=b, queue=(a, b), current_index=1).has_previous
    assert not PlaybackState().has_next


def test_history_entry_without_content():
    entry = HistoryEntry.from_dict({"id": 3, "content": None, "lastPosition": None, "type": "track"})
    assert entry.id == "3"
    assert entry.content is None
    assert entry.last_position == 0.0
    assert entry.kind is TrackKind.TRACK
