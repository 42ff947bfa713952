"""Entity counts for reporting what a compaction pass removed."""

from __future__ import annotations

from statetrim.snapshot import Snapshot, entity, mapping, sequence

# Display order for stats output
STAT_KEYS = (
    "posts",
    "reactions",
    "threads",
    "files",
    "channels_with_posts",
    "post_ids_in_channels",
    "pending",
    "users",
    "channels",
)


def snapshot_stats(snapshot: Snapshot) -> dict[str, int]:
    """Count the entities held by ``snapshot``."""
    posts_entity = entity(snapshot, "posts")
    files_entity = entity(snapshot, "files")
    posts_in_channel = mapping(posts_entity, "postsInChannel")

    return {
        "posts": len(mapping(posts_entity, "posts")),
        "reactions": len(mapping(posts_entity, "reactions")),
        "threads": len(mapping(posts_entity, "postsInThread")),
        "files": len(mapping(files_entity, "files")),
        "channels_with_posts": len(posts_in_channel),
        "post_ids_in_channels": sum(
            len(block.get("order", []))
            for blocks in posts_in_channel.values()
            for block in blocks or []
            if isinstance(block, dict)
        ),
        "pending": len(sequence(posts_entity, "pendingPostIds")),
        "users": len(mapping(entity(snapshot, "users"), "profiles")),
        "channels": len(mapping(entity(snapshot, "channels"), "channels")),
    }


def diff_stats(before: dict[str, int], after: dict[str, int]) -> dict[str, int]:
    """Return ``after - before`` per key (negative means removed)."""
    return {key: after.get(key, 0) - before.get(key, 0) for key in STAT_KEYS}
