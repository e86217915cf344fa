"""
Data models for tracks, playback state and listening history.

This module defines the core data structures shared by the playback engine,
the history collaborators and the command line front end.
"""

from dataclasses import dataclass, asdict, field
from typing import List, Dict, Optional, Any, Tuple
from enum import Enum
import dataclasses


class TrackKind(Enum):
    """What a playable item is; history is stored per kind."""
    TRACK = "track"
    EPISODE = "podcast"


@dataclass(frozen=True)
class Track:
    """
    Represents a single playable item (song or podcast episode).

    Attributes:
        id: Canonical unique identifier
        title: Song or episode title
        artist: Artist name, or podcast host for episodes
        media_url: Playable audio URL
        cover_url: Optional cover art URL
        duration: Advisory duration in seconds; the media sink is authoritative
        kind: Track or podcast episode
    """
    id: str
    title: str
    artist: str = ""
    media_url: str = ""
    cover_url: Optional[str] = None
    duration: float = 0.0
    kind: TrackKind = TrackKind.TRACK

    @property
    def is_episode(self) -> bool:
        return self.kind is TrackKind.EPISODE

    def to_dict(self) -> Dict[str, Any]:
        """Convert track to dictionary."""
        data = asdict(self)
        data['kind'] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Track':
        """Create Track from dictionary, filtering unknown keys."""
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}
        if 'kind' in filtered_data:
            filtered_data['kind'] = TrackKind(filtered_data['kind'])
        return cls(**filtered_data)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Track':
        """
        Create Track from a backend record.

        The API serves two record shapes: document-store records keyed by
        ``_id`` with camelCase fields, and relational records keyed by ``id``
        with snake_case fields. Podcast episodes carry ``host`` instead of
        ``artist``.

        Raises:
            ValueError: If the record has no identity.
        """
        raw_id = record.get('id') or record.get('_id')
        if raw_id is None or raw_id == "":
            raise ValueError("Record has no id or _id")

        is_episode = record.get('host') is not None
        artist = record.get('host') if is_episode else record.get('artist')

        try:
            duration = float(record.get('duration') or 0)
        except (ValueError, TypeError):
            duration = 0.0

        return cls(
            id=str(raw_id),
            title=record.get('title') or record.get('name') or "",
            artist=artist or "",
            media_url=record.get('audio_url') or record.get('audioUrl') or record.get('media_url') or "",
            cover_url=record.get('cover_image') or record.get('coverImage') or record.get('cover_url'),
            duration=duration,
            kind=TrackKind.EPISODE if is_episode else TrackKind.TRACK,
        )


@dataclass(frozen=True)
class PlaybackState:
    """
    Read-only snapshot of the engine's playback state.

    ``queue[current_index].id == current_track.id`` whenever a track is
    loaded, unless the track was not part of the queue it was started with
    (``current_index`` then falls back to 0).
    """
    current_track: Optional[Track] = None
    queue: Tuple[Track, ...] = ()
    current_index: int = 0
    is_playing: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    volume: float = 1.0
    resume_position: float = 0.0

    @property
    def has_next(self) -> bool:
        return self.current_index < len(self.queue) - 1

    @property
    def has_previous(self) -> bool:
        return self.current_index > 0


@dataclass
class HistoryEntry:
    """One row of the listening history ("recently played")."""
    id: str
    content: Optional[Track]
    last_position: float = 0.0
    play_count: int = 0
    last_played_at: Optional[str] = None
    kind: TrackKind = TrackKind.TRACK

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HistoryEntry':
        """Parse an entry as served by ``GET /api/history``."""
        content = data.get('content')
        kind = TrackKind.EPISODE if data.get('type') == TrackKind.EPISODE.value else TrackKind.TRACK
        track = None
        if isinstance(content, dict):
            try:
                track = Track.from_record(content)
            except ValueError:
                track = None
        return cls(
            id=str(data.get('id', "")),
            content=track,
            last_position=float(data.get('lastPosition') or 0),
            play_count=int(data.get('playCount') or 0),
            last_played_at=data.get('lastPlayedAt'),
            kind=kind,
        )


def tracks_from_records(records: List[Dict[str, Any]]) -> List[Track]:
    """Map a list of backend records, skipping ones without an identity."""
    tracks: List[Track] = []
    for record in records:
        try:
            tracks.append(Track.from_record(record))
        except ValueError:
            continue
    return tracks


@dataclass
class SavedPosition:
    """A locally persisted history record."""
    track_id: str
    kind: TrackKind
    last_position: int = 0
    play_count: int = 0
    last_played_at: Optional[str] = None
    content: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['kind'] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedPosition':
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}
        filtered_data['kind'] = TrackKind(filtered_data.get('kind', TrackKind.TRACK.value))
        return cls(**filtered_data)
