"""Compaction pass: bound a resident snapshot to its working set.

Pipeline, leaf first: resolve the retention cutoff, normalize the team
index, reduce channel blocks to a recent window, compact the post graph
to the keep-set, reconcile pending posts, assemble the new snapshot.
"""

from statetrim.compact.assemble import clean_up_state, reset_state_for_new_version
from statetrim.compact.graph import CompactedGraph, build_keep_set, compact_entity_graph
from statetrim.compact.pending import ReconciledPending, reconcile_pending_posts
from statetrim.compact.retention import NO_CUTOFF, resolve_retention_cutoff
from statetrim.compact.team_index import (
    current_channel_for_team,
    get_last_channel_for_team,
    normalize_last_channel_for_team,
)
from statetrim.compact.window import (
    DEFAULT_RECENT_POST_COUNT,
    clean_up_posts_in_channel,
    get_all_from_posts_in_channel,
    remove_from_posts_in_channel,
)

__all__ = [
    "DEFAULT_RECENT_POST_COUNT",
    "NO_CUTOFF",
    "CompactedGraph",
    "ReconciledPending",
    "build_keep_set",
    "clean_up_posts_in_channel",
    "clean_up_state",
    "compact_entity_graph",
    "current_channel_for_team",
    "get_all_from_posts_in_channel",
    "get_last_channel_for_team",
    "normalize_last_channel_for_team",
    "reconcile_pending_posts",
    "remove_from_posts_in_channel",
    "reset_state_for_new_version",
    "resolve_retention_cutoff",
]
