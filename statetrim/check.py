"""Integrity checks for compacted snapshots.

Main entry point: ``check_snapshot()`` validates the invariants a
compaction pass guarantees and returns a ``CheckResult`` with pass/fail
and a list of violations. Running it on an uncompacted snapshot is
allowed; it simply reports whatever does not hold yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from statetrim.compact.retention import resolve_retention_cutoff
from statetrim.snapshot import Snapshot, entity, mapping, sequence


class Violation:
    """A single invariant violation."""

    __slots__ = ("collection", "entry_id", "message")

    def __init__(self, collection: str, entry_id: str | None, message: str) -> None:
        self.collection = collection
        self.entry_id = entry_id
        self.message = message

    def __repr__(self) -> str:
        loc = f"{self.collection}"
        if self.entry_id:
            loc += f"/{self.entry_id}"
        return f"Violation({loc}: {self.message})"


@dataclass
class CheckResult:
    """Result of checking a snapshot."""

    passed: bool
    violations: list[Violation] = field(default_factory=list)

    def __repr__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return f"CheckResult({status}, {len(self.violations)} violations)"


def check_references(snapshot: Snapshot) -> list[Violation]:
    """Every reaction, file link, thread entry and file must hang off a present post."""
    violations: list[Violation] = []
    posts_entity = entity(snapshot, "posts")
    files_entity = entity(snapshot, "files")
    posts = mapping(posts_entity, "posts")

    for collection in ("reactions", "postsInThread"):
        for post_id in mapping(posts_entity, collection):
            if post_id not in posts:
                violations.append(Violation(
                    collection, post_id, f"References missing post '{post_id}'",
                ))

    files = mapping(files_entity, "files")
    linked: set[str] = set()
    for post_id, file_ids in mapping(files_entity, "fileIdsByPostId").items():
        if post_id not in posts:
            violations.append(Violation(
                "fileIdsByPostId", post_id, f"References missing post '{post_id}'",
            ))
        for file_id in file_ids or []:
            linked.add(file_id)
            if file_id not in files:
                violations.append(Violation(
                    "fileIdsByPostId", post_id, f"Links missing file '{file_id}'",
                ))

    for file_id in files:
        if file_id not in linked:
            violations.append(Violation(
                "files", file_id, "File is not linked to any post",
            ))

    return violations


def check_retention(snapshot: Snapshot, cutoff: int | None = None) -> list[Violation]:
    """No post may be older than the retention cutoff.

    ``cutoff`` defaults to the policy found in the snapshot's general settings.
    """
    if cutoff is None:
        cutoff = resolve_retention_cutoff(entity(snapshot, "general"))
    if not cutoff:
        return []

    violations: list[Violation] = []
    for post_id, post in mapping(entity(snapshot, "posts"), "posts").items():
        create_at = post.get("create_at", 0) if isinstance(post, dict) else 0
        if create_at < cutoff:
            violations.append(Violation(
                "posts", post_id,
                f"Created at {create_at}, before retention cutoff {cutoff}",
            ))
    return violations


def check_pending(snapshot: Snapshot) -> list[Violation]:
    """Every pending post ID must resolve to a post."""
    posts_entity = entity(snapshot, "posts")
    posts = mapping(posts_entity, "posts")
    return [
        Violation("pendingPostIds", post_id, "Pending post has no backing post")
        for post_id in sequence(posts_entity, "pendingPostIds")
        if post_id not in posts
    ]


def check_channel_blocks(snapshot: Snapshot, current_channel_id: str | None = None) -> list[Violation]:
    """Blocks hold unique IDs; only the active channel may keep several blocks.

    ``current_channel_id`` defaults to ``entities.channels.currentChannelId``.
    """
    violations: list[Violation] = []
    if current_channel_id is None:
        channels_entity = entity(snapshot, "channels")
        current_channel_id = channels_entity.get("currentChannelId", "") if channels_entity else ""

    for channel_id, blocks in mapping(entity(snapshot, "posts"), "postsInChannel").items():
        blocks = blocks or []
        if len(blocks) > 1 and channel_id != current_channel_id:
            violations.append(Violation(
                "postsInChannel", channel_id,
                f"{len(blocks)} blocks kept for a non-active channel",
            ))
        for block in blocks:
            order = block.get("order", []) if isinstance(block, dict) else []
            if len(order) != len(set(order)):
                violations.append(Violation(
                    "postsInChannel", channel_id, "Block contains duplicate post IDs",
                ))
    return violations


def check_snapshot(
    snapshot: Snapshot,
    cutoff: int | None = None,
    current_channel_id: str | None = None,
) -> CheckResult:
    """Run every integrity check on ``snapshot``.

    Parameters
    ----------
    snapshot:
        Snapshot to check, typically the output of ``clean_up_state``.
    cutoff:
        Retention cutoff override. Defaults to the snapshot's own policy.
    current_channel_id:
        Channel allowed to keep several blocks, e.g. the override passed to
        ``clean_up_state``. Defaults to the snapshot's current channel.

    Returns
    -------
    CheckResult
        ``.passed`` is True if no violations, False otherwise.
    """
    violations: list[Violation] = []
    violations.extend(check_references(snapshot))
    violations.extend(check_retention(snapshot, cutoff))
    violations.extend(check_pending(snapshot))
    violations.extend(check_channel_blocks(snapshot, current_channel_id))
    return CheckResult(passed=len(violations) == 0, violations=violations)
