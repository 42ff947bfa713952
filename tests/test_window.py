"""Tests for statetrim.compact.window."""

from __future__ import annotations

import copy

from statetrim.compact.window import (
    DEFAULT_RECENT_POST_COUNT,
    clean_up_posts_in_channel,
    get_all_from_posts_in_channel,
    remove_from_posts_in_channel,
)


def _ids(count: int, prefix: str = "p") -> list[str]:
    """Post IDs newest first: p<count> ... p1."""
    return [f"{prefix}{i}" for i in range(count, 0, -1)]


class TestCleanUpPostsInChannel:
    def test_recent_block_truncated_to_window(self) -> None:
        order = _ids(70)
        result = clean_up_posts_in_channel(
            {"c1": [{"order": order, "recent": True}]},
            {"t1": ["c1"]},
        )
        assert DEFAULT_RECENT_POST_COUNT == 60
        assert result["c1"] == [{"order": order[:60], "recent": True}]
        assert result["c1"][0]["order"][0] == "p70"
        assert result["c1"][0]["order"][-1] == "p11"

    def test_short_block_kept_whole(self) -> None:
        order = _ids(5)
        result = clean_up_posts_in_channel({"c1": [{"order": order, "recent": True}]}, {"t1": ["c1"]})
        assert result["c1"][0]["order"] == order

    def test_only_recent_block_survives(self) -> None:
        blocks = [
            {"order": _ids(3, "old"), "recent": False},
            {"order": _ids(3), "recent": True, "oldest": False},
        ]
        result = clean_up_posts_in_channel({"c1": blocks}, {"t1": ["c1"]})
        assert result == {"c1": [{"order": _ids(3), "recent": True, "oldest": False}]}

    def test_active_channel_keeps_all_blocks(self) -> None:
        blocks = [
            {"order": _ids(100), "recent": True},
            {"order": _ids(40, "old"), "recent": False},
        ]
        result = clean_up_posts_in_channel({"c1": blocks}, {"t1": ["c1"]}, "c1", recent_post_count=10)
        assert result["c1"] == blocks
        assert result["c1"] is not blocks
        assert result["c1"][0]["order"] is not blocks[0]["order"]

    def test_channel_without_recent_block_dropped(self) -> None:
        result = clean_up_posts_in_channel(
            {"c1": [{"order": _ids(3), "recent": False}]},
            {"t1": ["c1"]},
        )
        assert result == {}

    def test_channel_without_blocks_skipped(self) -> None:
        result = clean_up_posts_in_channel({"c1": []}, {"t1": ["c1", "c2"]})
        assert result == {}

    def test_channels_not_in_team_index_dropped(self) -> None:
        result = clean_up_posts_in_channel(
            {"c1": [{"order": ["a"], "recent": True}], "c9": [{"order": ["b"], "recent": True}]},
            {"t1": ["c1"]},
        )
        assert list(result) == ["c1"]

    def test_shared_channel_first_team_wins(self) -> None:
        posts_in_channel = {"dm": [{"order": _ids(80), "recent": True}]}
        result = clean_up_posts_in_channel(
            posts_in_channel,
            {"t1": ["c1", "dm"], "t2": ["dm"]},
            recent_post_count=20,
        )
        assert len(result["dm"]) == 1
        assert len(result["dm"][0]["order"]) == 20

    def test_zero_and_negative_window(self) -> None:
        posts_in_channel = {"c1": [{"order": _ids(5), "recent": True}]}
        for window in (0, -3):
            result = clean_up_posts_in_channel(posts_in_channel, {"t1": ["c1"]}, recent_post_count=window)
            assert result["c1"][0]["order"] == []

    def test_active_channel_ignores_zero_window(self) -> None:
        posts_in_channel = {"c1": [{"order": _ids(5), "recent": True}]}
        result = clean_up_posts_in_channel(posts_in_channel, {"t1": ["c1"]}, "c1", recent_post_count=0)
        assert result["c1"][0]["order"] == _ids(5)

    def test_does_not_mutate_input(self) -> None:
        posts_in_channel = {
            "c1": [{"order": _ids(70), "recent": True}],
            "c2": [{"order": _ids(70, "q"), "recent": True}],
        }
        before = copy.deepcopy(posts_in_channel)
        result = clean_up_posts_in_channel(posts_in_channel, {"t1": ["c1", "c2"]}, "c1")
        result["c1"][0]["order"].clear()
        result["c2"][0]["order"].clear()
        assert posts_in_channel == before

    def test_absent_posts_in_channel(self) -> None:
        assert clean_up_posts_in_channel(None, {"t1": ["c1"]}) == {}


class TestGetAllFromPostsInChannel:
    def test_collects_every_block(self) -> None:
        posts_in_channel = {
            "c1": [{"order": ["a", "b"], "recent": True}, {"order": ["c"], "recent": False}],
            "c2": [{"order": ["d"], "recent": True}],
        }
        assert get_all_from_posts_in_channel(posts_in_channel) == ["a", "b", "c", "d"]

    def test_empty(self) -> None:
        assert get_all_from_posts_in_channel({}) == []


class TestRemoveFromPostsInChannel:
    def test_removes_from_every_block_of_channel(self) -> None:
        posts_in_channel = {
            "c1": [{"order": ["a", "b"], "recent": True}, {"order": ["b", "c"], "recent": False}],
            "c2": [{"order": ["b"], "recent": True}],
        }
        result = remove_from_posts_in_channel(posts_in_channel, "c1", ["b"])
        assert result["c1"] == [
            {"order": ["a"], "recent": True},
            {"order": ["c"], "recent": False},
        ]
        assert result["c2"] == [{"order": ["b"], "recent": True}]

    def test_returns_copy(self) -> None:
        posts_in_channel = {"c1": [{"order": ["a", "b"], "recent": True}]}
        remove_from_posts_in_channel(posts_in_channel, "c1", ["a"])
        assert posts_in_channel == {"c1": [{"order": ["a", "b"], "recent": True}]}

    def test_unknown_channel_is_noop(self) -> None:
        posts_in_channel = {"c1": [{"order": ["a"], "recent": True}]}
        assert remove_from_posts_in_channel(posts_in_channel, "zz", ["a"]) == posts_in_channel
