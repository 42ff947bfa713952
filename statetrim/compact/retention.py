"""Resolve the effective data-retention cutoff from general settings."""

from __future__ import annotations

from typing import Any

# Cutoff value meaning "retention disabled, keep everything"
NO_CUTOFF = 0


def resolve_retention_cutoff(general: dict[str, Any] | None) -> int:
    """Return the message retention cutoff timestamp, or ``NO_CUTOFF``.

    The cutoff applies only when ``general["dataRetentionPolicy"]`` exists,
    has ``message_deletion_enabled`` set, and carries an integer
    ``message_retention_cutoff``. Anything else degrades to ``NO_CUTOFF``.
    """
    if not isinstance(general, dict):
        return NO_CUTOFF

    policy = general.get("dataRetentionPolicy")
    if not isinstance(policy, dict) or not policy.get("message_deletion_enabled"):
        return NO_CUTOFF

    cutoff = policy.get("message_retention_cutoff")
    if isinstance(cutoff, bool) or not isinstance(cutoff, int) or cutoff < 0:
        return NO_CUTOFF
    return cutoff
