"""
Listening history collaborators.

The engine only needs two calls: look up a resume position and save a
position. ``ApiHistory`` talks to the application's ``/api/history`` routes;
``LocalHistory`` keeps the same records in a JSON file for offline sessions.
"""

import json
import logging
import math
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from shared.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_HISTORY_PATH,
    DEFAULT_HTTP_RETRIES,
    DEFAULT_NETWORK_TIMEOUT,
    HISTORY_ENDPOINT,
    RESUME_ENDPOINT,
)
from shared.models import HistoryEntry, SavedPosition, Track, TrackKind

from .errors import HistoryError

logger = logging.getLogger(__name__)


class HistoryStore(ABC):
    """Where playback positions are remembered between sessions."""

    @abstractmethod
    def get_resume_position(self, track: Track) -> Optional[float]:
        """Return the saved position in seconds, or None if there is none."""
        pass

    @abstractmethod
    def save_position(self, track: Track, position: float) -> None:
        pass

    def list_recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> List[HistoryEntry]:
        """Most recently played first."""
        return []

    def delete_entry(self, entry_id: str) -> bool:
        return False


class NullHistory(HistoryStore):
    """History for anonymous sessions: nothing is looked up or saved."""

    def get_resume_position(self, track: Track) -> Optional[float]:
        return None

    def save_position(self, track: Track, position: float) -> None:
        pass


class ApiHistory(HistoryStore):
    """
    HTTP client for the history API.

    Every route requires a bearer token. Without one the client behaves like
    an anonymous session: lookups return nothing and saves are skipped.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_NETWORK_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = (base_url or "").rstrip("/")
        self._token = (token or "").strip()
        self._timeout = timeout

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=DEFAULT_HTTP_RETRIES)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = self._base_url + path
        try:
            response = self._session.request(
                method, url, headers=self._headers(), timeout=self._timeout, **kwargs
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise HistoryError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise HistoryError(f"{method} {path} returned invalid JSON") from e

        if not isinstance(data, dict) or not data.get("success", False):
            message = data.get("message") if isinstance(data, dict) else None
            raise HistoryError(f"{method} {path} was rejected: {message or 'unknown error'}")
        return data

    def get_resume_position(self, track: Track) -> Optional[float]:
        if not self.is_authenticated:
            return None
        data = self._request("GET", RESUME_ENDPOINT.format(track_id=track.id))
        try:
            position = float(data.get("position") or 0)
        except (ValueError, TypeError):
            return None
        return position if position > 0 else None

    def save_position(self, track: Track, position: float) -> None:
        if not self.is_authenticated:
            return
        payload = {
            "trackId": None if track.is_episode else track.id,
            "podcastId": track.id if track.is_episode else None,
            "position": position,
        }
        self._request("POST", HISTORY_ENDPOINT, json=payload)

    def list_recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> List[HistoryEntry]:
        if not self.is_authenticated:
            return []
        data = self._request("GET", HISTORY_ENDPOINT, params={"limit": limit})
        return [HistoryEntry.from_dict(item) for item in data.get("history") or []]

    def delete_entry(self, entry_id: str) -> bool:
        if not self.is_authenticated:
            return False
        self._request("DELETE", f"{HISTORY_ENDPOINT}/{entry_id}")
        return True


class LocalHistory(HistoryStore):
    """
    History kept in a JSON file, one record per track or episode.

    Positions are floored to whole seconds and every save counts as a play,
    matching what the history API stores.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path or DEFAULT_HISTORY_PATH).expanduser()
        self._lock = threading.Lock()
        self._records: Dict[str, SavedPosition] = {}
        self._load()

    @staticmethod
    def _key(track_id: str, kind: TrackKind) -> str:
        return f"{kind.value}:{track_id}"

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not read history file {self._path}: {e}")
            return
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring history file {self._path}: unexpected format")
            return
        for key, data in raw.items():
            try:
                self._records[key] = SavedPosition.from_dict(data)
            except (AttributeError, TypeError, ValueError):
                logger.warning(f"Skipping malformed history record {key!r}")

    def _save(self) -> None:
        data = {key: record.to_dict() for key, record in self._records.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            raise HistoryError(f"Could not write history file {self._path}: {e}") from e

    def get_resume_position(self, track: Track) -> Optional[float]:
        with self._lock:
            record = self._records.get(self._key(track.id, track.kind))
        if record is None or record.last_position <= 0:
            return None
        return float(record.last_position)

    def save_position(self, track: Track, position: float) -> None:
        key = self._key(track.id, track.kind)
        with self._lock:
            # Records are kept oldest to newest, so the saved one moves to the end
            record = self._records.pop(key, None) or SavedPosition(track_id=track.id, kind=track.kind)
            record.last_position = max(0, math.floor(position))
            record.play_count += 1
            record.last_played_at = datetime.now(timezone.utc).isoformat()
            record.content = track.to_dict()
            self._records[key] = record
            self._save()

    def list_recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> List[HistoryEntry]:
        with self._lock:
            items = list(reversed(self._records.items()))[:limit]
        entries = []
        for key, record in items:
            content = Track.from_dict(record.content) if record.content else None
            entries.append(HistoryEntry(
                id=key,
                content=content,
                last_position=float(record.last_position),
                play_count=record.play_count,
                last_played_at=record.last_played_at,
                kind=record.kind,
            ))
        return entries

    def delete_entry(self, entry_id: str) -> bool:
        with self._lock:
            if self._records.pop(entry_id, None) is None:
                return False
            self._save()
            return True
