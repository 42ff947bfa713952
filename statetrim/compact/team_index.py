"""Normalize the "last channel per team" view index.

Older clients stored a single channel ID per team; current ones store a
list of channel IDs, most recently visited first. Everything downstream
expects the list shape.
"""

from __future__ import annotations

import logging
from typing import Any

from statetrim.snapshot import Snapshot, view

log = logging.getLogger(__name__)


def normalize_last_channel_for_team(raw: dict[str, Any] | None) -> dict[str, list[str]]:
    """Return a copy of ``raw`` where every value is a list of channel IDs.

    Bare scalar values are wrapped in a one-element list, ``None`` becomes
    an empty list and lists are copied. Team order is preserved.
    Normalizing an already normalized mapping returns an equal mapping.
    """
    if not raw:
        return {}

    normalized: dict[str, list[str]] = {}
    for team_id, value in raw.items():
        if isinstance(value, (list, tuple)):
            normalized[team_id] = list(value)
        elif value is None:
            normalized[team_id] = []
        else:
            log.debug("Upgrading legacy lastChannelForTeam entry for team %s", team_id)
            normalized[team_id] = [value]
    return normalized


def get_last_channel_for_team(snapshot: Snapshot) -> dict[str, list[str]]:
    """Read and normalize ``views.team.lastChannelForTeam`` from a snapshot."""
    team_view = view(snapshot, "team")
    if team_view is None:
        return {}
    raw = team_view.get("lastChannelForTeam")
    return normalize_last_channel_for_team(raw if isinstance(raw, dict) else None)


def current_channel_for_team(index: dict[str, list[str]], team_id: str) -> str:
    """Return the most recently visited channel of ``team_id``, or ``""``."""
    channel_ids = index.get(team_id) if team_id else None
    return channel_ids[0] if channel_ids else ""
