"""Assemble compacted snapshots.

``reset_state_for_new_version`` builds the minimal snapshot a freshly
upgraded client starts from. ``clean_up_state`` runs the full
compaction pass on top of it: normalize the team index, reduce channel
blocks, compact the post graph, reconcile pending posts, then merge the
result with the categories that are never compacted.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from statetrim.compact.graph import build_keep_set, compact_entity_graph
from statetrim.compact.pending import reconcile_pending_posts
from statetrim.compact.retention import resolve_retention_cutoff
from statetrim.compact.team_index import current_channel_for_team, get_last_channel_for_team
from statetrim.compact.window import (
    DEFAULT_RECENT_POST_COUNT,
    clean_up_posts_in_channel,
    get_all_from_posts_in_channel,
)
from statetrim.snapshot import Snapshot, entity, initial, mapping, sequence, view

log = logging.getLogger(__name__)


def _or_initial(value: Any, *path: str) -> Any:
    return value if value else initial(*path)


def _websocket(snapshot: Snapshot) -> dict[str, Any]:
    websocket = snapshot.get("websocket")
    websocket = websocket if isinstance(websocket, dict) else {}
    return {
        "lastConnectAt": websocket.get("lastConnectAt"),
        "lastDisconnectAt": websocket.get("lastDisconnectAt"),
    }


def reset_state_for_new_version(snapshot: Snapshot) -> Snapshot:
    """Return the minimal snapshot kept across a client version upgrade.

    Keeps settings, team membership, the current user's own profile,
    preferences, roles, recent searches, drafts, locale and the current
    channel of the last visited team. Everything else starts from the
    initial state. ``snapshot`` is not modified and the result shares no
    objects with it.
    """
    last_channel_for_team = get_last_channel_for_team(snapshot)

    general = _or_initial(entity(snapshot, "general"), "entities", "general")

    teams = initial("entities", "teams")
    teams_entity = entity(snapshot, "teams")
    if teams_entity is not None:
        teams = {
            "currentTeamId": teams_entity.get("currentTeamId", ""),
            "teams": mapping(teams_entity, "teams"),
            "myMembers": mapping(teams_entity, "myMembers"),
        }

    users = initial("entities", "users")
    users_entity = entity(snapshot, "users")
    current_user_id = users_entity.get("currentUserId") if users_entity else None
    if current_user_id:
        profiles = mapping(users_entity, "profiles")
        users = {
            "currentUserId": current_user_id,
            "profiles": {current_user_id: profiles[current_user_id]} if current_user_id in profiles else {},
        }

    preferences = _or_initial(entity(snapshot, "preferences"), "entities", "preferences")
    roles = _or_initial(entity(snapshot, "roles"), "entities", "roles")

    search = initial("entities", "search")
    search_entity = entity(snapshot, "search")
    if search_entity and search_entity.get("recent"):
        search = {"recent": search_entity["recent"]}

    channel_view = view(snapshot, "channel")
    channel_drafts = _or_initial(mapping(channel_view, "drafts"), "views", "channel", "drafts")

    thread_view = view(snapshot, "thread")
    thread_drafts = _or_initial(mapping(thread_view, "drafts"), "views", "thread", "drafts")

    i18n = _or_initial(view(snapshot, "i18n"), "views", "i18n")
    select_server = _or_initial(view(snapshot, "selectServer"), "views", "selectServer")

    views = snapshot.get("views") if isinstance(snapshot.get("views"), dict) else {}
    recent_emojis = _or_initial(views.get("recentEmojis"), "views", "recentEmojis")

    team_view = view(snapshot, "team")
    last_team_id = _or_initial(team_view.get("lastTeamId") if team_view else None, "views", "team", "lastTeamId")

    current_channel_id = current_channel_for_team(last_channel_for_team, last_team_id)
    channels = initial("entities", "channels")
    channels_entity = entity(snapshot, "channels")
    if channels_entity is not None and current_channel_id:
        known = mapping(channels_entity, "channels")
        members = mapping(channels_entity, "myMembers")
        channels = {
            "currentChannelId": current_channel_id,
            "channels": {current_channel_id: known[current_channel_id]} if current_channel_id in known else {},
            "myMembers": {current_channel_id: members[current_channel_id]} if current_channel_id in members else {},
        }

    app = snapshot.get("app")

    return copy.deepcopy({
        "_persist": {"rehydrated": True},
        "app": app if isinstance(app, dict) else {},
        "entities": {
            "channels": channels,
            "general": general,
            "teams": teams,
            "users": users,
            "preferences": preferences,
            "search": search,
            "roles": roles,
        },
        "views": {
            "channel": {"drafts": channel_drafts},
            "i18n": i18n,
            "team": {
                "lastTeamId": last_team_id,
                "lastChannelForTeam": last_channel_for_team,
            },
            "thread": {"drafts": thread_drafts},
            "selectServer": select_server,
            "recentEmojis": recent_emojis,
        },
        "websocket": _websocket(snapshot),
    })


def clean_up_state(
    snapshot: Snapshot,
    keep_current: bool = False,
    recent_post_count: int = DEFAULT_RECENT_POST_COUNT,
    current_channel_id: str | None = None,
) -> Snapshot:
    """Run a full compaction pass and return the bounded snapshot.

    Parameters
    ----------
    snapshot:
        The resident snapshot. Treated as immutable.
    keep_current:
        Keep every block of the active channel instead of a recent window.
    recent_post_count:
        Number of post IDs kept per recently visited channel.
    current_channel_id:
        Active channel override. Defaults to
        ``entities.channels.currentChannelId`` of ``snapshot``.

    Returns
    -------
    Snapshot
        A new snapshot. Channels, emojis and users are the input's own
        collections, passed through uncompacted.
    """
    reset = reset_state_for_new_version(snapshot)
    last_channel_for_team = reset["views"]["team"]["lastChannelForTeam"]

    channels_entity = entity(snapshot, "channels")
    if current_channel_id is None:
        current_channel_id = channels_entity.get("currentChannelId", "") if channels_entity else ""

    posts_entity = entity(snapshot, "posts")
    files_entity = entity(snapshot, "files")
    posts = mapping(posts_entity, "posts")

    cutoff = resolve_retention_cutoff(reset["entities"]["general"])

    posts_in_channel = clean_up_posts_in_channel(
        mapping(posts_entity, "postsInChannel"),
        last_channel_for_team,
        current_channel_id if keep_current else "",
        recent_post_count,
    )

    search_entity = entity(snapshot, "search")
    search_results = list(sequence(search_entity, "results"))
    flagged_posts = list(sequence(search_entity, "flagged"))
    pending_post_ids = sequence(posts_entity, "pendingPostIds")

    keep_ids = build_keep_set(
        get_all_from_posts_in_channel(posts_in_channel),
        search_results,
        flagged_posts,
        pending_post_ids,
        posts,
    )

    graph = compact_entity_graph(
        keep_ids,
        posts,
        mapping(posts_entity, "reactions"),
        mapping(posts_entity, "postsInThread"),
        mapping(files_entity, "files"),
        mapping(files_entity, "fileIdsByPostId"),
        posts_in_channel,
        cutoff,
    )

    reconciled = reconcile_pending_posts(pending_post_ids, posts, graph)
    graph = reconciled.graph

    log.info(
        "Compacted posts %d -> %d across %d channel(s), %d pending kept",
        len(posts), len(graph.posts), len(graph.posts_in_channel),
        len(reconciled.pending_post_ids),
    )

    posts_defaults = initial("entities", "posts")
    next_entities = {
        "posts": {
            "posts": graph.posts,
            "postsInChannel": graph.posts_in_channel,
            "postsInThread": graph.posts_in_thread,
            "reactions": graph.reactions,
            "openGraph": copy.deepcopy((posts_entity or posts_defaults).get("openGraph", posts_defaults["openGraph"])),
            "pendingPostIds": reconciled.pending_post_ids,
            "selectedPostId": (posts_entity or posts_defaults).get("selectedPostId", ""),
            "currentFocusedPostId": (posts_entity or posts_defaults).get("currentFocusedPostId", ""),
        },
        "files": {
            "files": graph.files,
            "fileIdsByPostId": graph.file_ids_by_post_id,
        },
    }

    views: dict[str, Any] = {}
    original_views = snapshot.get("views") if isinstance(snapshot.get("views"), dict) else {}
    if "announcement" in original_views:
        views["announcement"] = copy.deepcopy(original_views["announcement"])
    views.update(reset["views"])
    views["channel"] = {**reset["views"]["channel"], **copy.deepcopy(view(snapshot, "channel") or {})}

    next_state: Snapshot = {
        "app": reset["app"],
        "entities": {
            **next_entities,
            "channels": channels_entity if channels_entity is not None else initial("entities", "channels"),
            "emojis": _or_initial(entity(snapshot, "emojis"), "entities", "emojis"),
            "general": reset["entities"]["general"],
            "preferences": reset["entities"]["preferences"],
            "search": {
                **reset["entities"]["search"],
                "results": search_results,
                "flagged": flagged_posts,
            },
            "teams": reset["entities"]["teams"],
            "users": _or_initial(entity(snapshot, "users"), "entities", "users"),
            "roles": reset["entities"]["roles"],
        },
        "views": views,
        "websocket": reset["websocket"],
    }
    if "errors" in snapshot:
        next_state["errors"] = copy.deepcopy(snapshot["errors"])

    return next_state
