"""Compact the post entity graph down to a keep-set.

Walks post -> reactions, post -> files and post -> thread relations for
every kept post ID and copies the reachable entities into fresh
collections. Posts older than the retention cutoff are dropped and
unlinked from their channel's blocks.
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable

from statetrim.compact.retention import NO_CUTOFF
from statetrim.compact.window import remove_from_posts_in_channel
from statetrim.snapshot import Post, PostBlock

log = logging.getLogger(__name__)


@dataclass
class CompactedGraph:
    """Entity collections that survived a compaction pass."""

    posts: dict[str, Post] = field(default_factory=dict)
    reactions: dict[str, Any] = field(default_factory=dict)
    posts_in_thread: dict[str, list[str]] = field(default_factory=dict)
    files: dict[str, Any] = field(default_factory=dict)
    file_ids_by_post_id: dict[str, list[str]] = field(default_factory=dict)
    posts_in_channel: dict[str, list[PostBlock]] = field(default_factory=dict)
    dropped_by_retention: list[str] = field(default_factory=list)


def build_keep_set(
    window_ids: Iterable[str],
    search_results: Iterable[str] = (),
    flagged: Iterable[str] = (),
    pending_post_ids: Iterable[str] = (),
    posts: dict[str, Post] | None = None,
) -> list[str]:
    """Return the de-duplicated list of post IDs a compaction pass keeps.

    Union of the window IDs, search results, flagged posts and every
    pending post whose entry in ``posts`` is marked ``failed``. First
    occurrence order is preserved so each ID is visited exactly once.
    """
    posts = posts or {}
    failed_pending = [
        pid for pid in pending_post_ids
        if isinstance(posts.get(pid), dict) and posts[pid].get("failed")
    ]
    keep: dict[str, None] = {}
    for source in (window_ids, search_results, flagged, failed_pending):
        for post_id in source:
            keep.setdefault(post_id, None)
    return list(keep)


def compact_entity_graph(
    keep_ids: Iterable[str],
    posts: dict[str, Post],
    reactions: dict[str, Any],
    posts_in_thread: dict[str, list[str]],
    files: dict[str, Any],
    file_ids_by_post_id: dict[str, list[str]],
    posts_in_channel: dict[str, list[PostBlock]],
    cutoff: int = NO_CUTOFF,
) -> CompactedGraph:
    """Copy the subgraph reachable from ``keep_ids`` into a ``CompactedGraph``.

    Parameters
    ----------
    keep_ids:
        Post IDs to retain. IDs without a backing post are skipped.
    posts, reactions, posts_in_thread, files, file_ids_by_post_id:
        The uncompacted collections. They are read, never modified.
    posts_in_channel:
        Already reduced channel blocks (output of
        ``clean_up_posts_in_channel``). Posts dropped by retention are
        removed from a copy of these.
    cutoff:
        Retention cutoff timestamp; posts created strictly before it are
        dropped. ``NO_CUTOFF`` disables the check.
    """
    graph = CompactedGraph()
    expired: dict[str, list[str]] = defaultdict(list)

    for post_id in keep_ids:
        post = posts.get(post_id)
        if not isinstance(post, dict):
            log.debug("Keep-set post %s not found, skipping", post_id)
            continue

        if cutoff and post.get("create_at", 0) < cutoff:
            expired[post.get("channel_id", "")].append(post_id)
            graph.dropped_by_retention.append(post_id)
            continue

        graph.posts[post_id] = copy.deepcopy(post)

        reaction = reactions.get(post_id)
        if reaction:
            graph.reactions[post_id] = copy.deepcopy(reaction)

        file_ids = file_ids_by_post_id.get(post_id)
        if file_ids:
            graph.file_ids_by_post_id[post_id] = list(file_ids)
            for file_id in file_ids:
                if file_id in files:
                    graph.files[file_id] = copy.deepcopy(files[file_id])

        thread = posts_in_thread.get(post_id)
        if thread:
            graph.posts_in_thread[post_id] = list(thread)

    reduced = posts_in_channel
    for channel_id, post_ids in expired.items():
        reduced = remove_from_posts_in_channel(reduced, channel_id, post_ids)
    graph.posts_in_channel = reduced

    if graph.dropped_by_retention:
        log.info("Retention cutoff %d dropped %d post(s)", cutoff, len(graph.dropped_by_retention))
    return graph
