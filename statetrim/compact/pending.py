"""Reconcile locally pending posts against a compacted graph.

A pending post that has not failed is a stand-in for a post the server
either confirmed or will resend; it is removed together with everything
hanging off it. A failed pending post is kept so it can be retried.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Iterable

from statetrim.compact.graph import CompactedGraph
from statetrim.compact.window import remove_from_posts_in_channel
from statetrim.snapshot import Post

log = logging.getLogger(__name__)


@dataclass
class ReconciledPending:
    """Pending IDs that survive plus the graph they were reconciled against."""

    pending_post_ids: list[str]
    graph: CompactedGraph


def _drop_posts(graph: CompactedGraph, by_channel: dict[str, set[str]]) -> CompactedGraph:
    """Return a copy of ``graph`` without the given posts and their dependents.

    Each collection is filtered once, whatever the number of dropped posts.
    """
    drop = set().union(*by_channel.values())
    if not drop:
        return graph

    file_ids_by_post_id = {
        pid: ids for pid, ids in graph.file_ids_by_post_id.items() if pid not in drop
    }
    still_linked = {fid for ids in file_ids_by_post_id.values() for fid in ids}
    unlinked = {
        fid for pid in drop for fid in graph.file_ids_by_post_id.get(pid, [])
    } - still_linked

    posts_in_channel = graph.posts_in_channel
    for channel_id, post_ids in by_channel.items():
        posts_in_channel = remove_from_posts_in_channel(posts_in_channel, channel_id, post_ids)

    return replace(
        graph,
        posts={pid: p for pid, p in graph.posts.items() if pid not in drop},
        reactions={pid: r for pid, r in graph.reactions.items() if pid not in drop},
        posts_in_thread={pid: t for pid, t in graph.posts_in_thread.items() if pid not in drop},
        files={fid: f for fid, f in graph.files.items() if fid not in unlinked},
        file_ids_by_post_id=file_ids_by_post_id,
        posts_in_channel=posts_in_channel,
    )


def reconcile_pending_posts(
    pending_post_ids: Iterable[str],
    original_posts: dict[str, Post],
    graph: CompactedGraph,
) -> ReconciledPending:
    """Decide which pending posts survive compaction.

    The ``failed`` flag is read from ``original_posts`` (the uncompacted
    collection), falling back to the compacted copy.

    - Not failed: removed from the graph's posts, reactions, files,
      thread entries and channel blocks, and dropped from pending.
    - Failed and present in the compacted graph: kept in both.
    - Failed but absent from the compacted graph (e.g. expired by
      retention), or unknown altogether: dropped from pending only.

    Neither ``original_posts`` nor ``graph`` is modified.
    """
    next_pending: list[str] = []
    confirmed: dict[str, set[str]] = defaultdict(set)

    for post_id in pending_post_ids:
        post = original_posts.get(post_id)
        if not isinstance(post, dict):
            post = graph.posts.get(post_id)
        if not isinstance(post, dict):
            log.debug("Pending post %s has no backing post, dropping", post_id)
            continue

        if not post.get("failed"):
            log.debug("Pending post %s was not failed, dropping local copy", post_id)
            confirmed[post.get("channel_id", "")].add(post_id)
            continue

        if post_id in graph.posts:
            next_pending.append(post_id)
        else:
            log.debug("Failed pending post %s did not survive compaction", post_id)

    return ReconciledPending(pending_post_ids=next_pending, graph=_drop_posts(graph, confirmed))
