"""Snapshot schema, initial state and JSON I/O.

A snapshot is the normalized client-side store as plain JSON-compatible
dicts: ``entities`` (posts, files, channels, teams, users, ...), ``views``
(drafts, last-visited indices) plus a few top-level odds and ends
(``app``, ``websocket``, ``errors``). The TypedDicts below document the
parts the compaction pass reads; everything else is carried opaquely.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, TypedDict


class Post(TypedDict, total=False):
    """A single post entity, keyed by ``id`` in ``entities.posts.posts``."""
    id: str
    channel_id: str
    root_id: str
    create_at: int
    failed: bool


class PostBlock(TypedDict, total=False):
    """An ordered run of post IDs for one channel (newest first)."""
    order: list[str]
    recent: bool


class RetentionPolicy(TypedDict, total=False):
    """Server data-retention settings under ``entities.general``."""
    message_deletion_enabled: bool
    message_retention_cutoff: int


Snapshot = dict[str, Any]

# Shape of a store that has never been populated. Absent sub-structures in
# an incoming snapshot fall back to the matching piece of this.
INITIAL_STATE: Snapshot = {
    "app": {},
    "entities": {
        "general": {},
        "teams": {"currentTeamId": "", "teams": {}, "myMembers": {}},
        "users": {"currentUserId": "", "profiles": {}},
        "preferences": {"myPreferences": {}},
        "roles": {"roles": {}},
        "search": {"recent": {}, "results": [], "flagged": []},
        "channels": {"currentChannelId": "", "channels": {}, "myMembers": {}},
        "posts": {
            "posts": {},
            "postsInChannel": {},
            "postsInThread": {},
            "reactions": {},
            "openGraph": {},
            "pendingPostIds": [],
            "selectedPostId": "",
            "currentFocusedPostId": "",
        },
        "files": {"files": {}, "fileIdsByPostId": {}},
        "emojis": {"customEmoji": {}},
    },
    "views": {
        "channel": {"drafts": {}},
        "i18n": {"locale": ""},
        "team": {"lastTeamId": "", "lastChannelForTeam": {}},
        "thread": {"drafts": {}},
        "selectServer": {"serverUrl": ""},
        "recentEmojis": [],
    },
    "websocket": {"lastConnectAt": 0, "lastDisconnectAt": 0},
}


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read or is not a JSON object."""


def initial_state() -> Snapshot:
    """Return a fresh copy of the empty store."""
    return copy.deepcopy(INITIAL_STATE)


def initial(*path: str) -> Any:
    """Return a fresh copy of one piece of the empty store.

    ``initial("views", "team", "lastTeamId")`` -> ``""``.
    """
    node: Any = INITIAL_STATE
    for key in path:
        node = node[key]
    return copy.deepcopy(node)


def _section(snapshot: Snapshot, group: str, name: str) -> dict[str, Any] | None:
    container = snapshot.get(group)
    if not isinstance(container, dict):
        return None
    value = container.get(name)
    return value if isinstance(value, dict) else None


def entity(snapshot: Snapshot, name: str) -> dict[str, Any] | None:
    """Return ``snapshot["entities"][name]`` or None when absent."""
    return _section(snapshot, "entities", name)


def view(snapshot: Snapshot, name: str) -> dict[str, Any] | None:
    """Return ``snapshot["views"][name]`` or None when absent."""
    return _section(snapshot, "views", name)


def mapping(container: dict[str, Any] | None, key: str) -> dict[str, Any]:
    """Return ``container[key]`` if it is a dict, else an empty dict."""
    if container is None:
        return {}
    value = container.get(key)
    return value if isinstance(value, dict) else {}


def sequence(container: dict[str, Any] | None, key: str) -> list[Any]:
    """Return ``container[key]`` if it is a list, else an empty list."""
    if container is None:
        return []
    value = container.get(key)
    return value if isinstance(value, list) else []


def load_snapshot(path: Path) -> Snapshot:
    """Read a snapshot from a JSON file."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except OSError as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Snapshot {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise SnapshotError(f"Snapshot must be a JSON object, got {type(raw).__name__}")
    return raw


def save_snapshot(snapshot: Snapshot, path: Path) -> None:
    """Write a snapshot as JSON, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(snapshot, indent=2, sort_keys=True) + "\n")
