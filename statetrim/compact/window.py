"""Reduce per-channel post blocks to a bounded recent window.

Only channels that are the last visited channel of some team survive.
The active channel keeps its whole block list; every other channel keeps
the first ``recent_post_count`` IDs of its ``recent`` block.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from statetrim.snapshot import PostBlock

log = logging.getLogger(__name__)

# Number of posts kept per recently visited channel
DEFAULT_RECENT_POST_COUNT = 60


def _copy_block(block: dict[str, Any], limit: int | None = None) -> PostBlock:
    order = block.get("order")
    order = list(order) if isinstance(order, list) else []
    if limit is not None:
        order = order[:max(limit, 0)]
    return {**block, "order": order}  # type: ignore[typeddict-item]


def clean_up_posts_in_channel(
    posts_in_channel: dict[str, list[PostBlock]] | None,
    last_channel_for_team: dict[str, list[str]],
    current_channel_id: str = "",
    recent_post_count: int = DEFAULT_RECENT_POST_COUNT,
) -> dict[str, list[PostBlock]]:
    """Return a new ``postsInChannel`` holding only recent posts.

    Channels are visited in team order, then in per-team recency order.
    A channel seen under an earlier team (a DM or GM channel) is not
    processed again. Channels without stored blocks are skipped, as are
    non-active channels without a block flagged ``recent``.

    Parameters
    ----------
    posts_in_channel:
        Mapping of channel ID to its list of post blocks.
    last_channel_for_team:
        Normalized team index (see ``normalize_last_channel_for_team``).
    current_channel_id:
        Channel whose full block list is kept. Empty string for none.
    recent_post_count:
        Window size for non-active channels. Values <= 0 keep no IDs.

    Returns
    -------
    dict[str, list[PostBlock]]
        Freshly allocated blocks; nothing is shared with the input.
    """
    posts_in_channel = posts_in_channel or {}
    next_posts_in_channel: dict[str, list[PostBlock]] = {}
    seen: set[str] = set()

    for channel_ids in last_channel_for_team.values():
        for channel_id in channel_ids:
            if channel_id in seen:
                log.debug("Channel %s already kept for another team", channel_id)
                continue
            seen.add(channel_id)

            blocks = posts_in_channel.get(channel_id)
            if not blocks:
                continue

            if current_channel_id and channel_id == current_channel_id:
                next_posts_in_channel[channel_id] = [
                    _copy_block(block) for block in blocks if isinstance(block, dict)
                ]
                continue

            recent_block = next(
                (b for b in blocks if isinstance(b, dict) and b.get("recent")),
                None,
            )
            if recent_block is None:
                log.debug("No recent block for channel %s, dropping its history", channel_id)
                continue

            next_posts_in_channel[channel_id] = [_copy_block(recent_block, recent_post_count)]

    return next_posts_in_channel


def get_all_from_posts_in_channel(posts_in_channel: dict[str, list[PostBlock]]) -> list[str]:
    """Return every post ID referenced by any block, in block order."""
    post_ids: list[str] = []
    for blocks in posts_in_channel.values():
        for block in blocks:
            post_ids.extend(block.get("order", []))
    return post_ids


def remove_from_posts_in_channel(
    posts_in_channel: dict[str, list[PostBlock]],
    channel_id: str,
    post_ids: Iterable[str],
) -> dict[str, list[PostBlock]]:
    """Return a copy of ``posts_in_channel`` with ``post_ids`` unlinked from one channel.

    Every block of the channel is rebuilt without the given IDs; other
    channels are carried over as-is. Unknown channels are a no-op.
    """
    blocks = posts_in_channel.get(channel_id)
    drop = set(post_ids)
    if not blocks or not drop:
        return posts_in_channel

    result = dict(posts_in_channel)
    result[channel_id] = [
        {**block, "order": [pid for pid in block.get("order", []) if pid not in drop]}  # type: ignore[typeddict-item]
        for block in blocks
    ]
    return result
