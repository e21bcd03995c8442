"""Tests for tag handling."""

from rolesync.lifecycle.tags import TagFilter, diff_tags, tags_from_api, tags_to_api


class TestTagFilter:
    def test_reserved_tags_always_ignored(self):
        tag_filter = TagFilter()
        assert tag_filter.apply({"aws:cloudformation:stack-id": "x", "Team": "a"}) == {"Team": "a"}

    def test_ignored_keys_and_prefixes(self):
        tag_filter = TagFilter(keys=["Owner"], key_prefixes=["kubernetes.io/"])
        tags = {"Owner": "me", "kubernetes.io/cluster": "c", "Team": "a"}
        assert tag_filter.apply(tags) == {"Team": "a"}
        assert tag_filter.is_ignored("Owner")
        assert not tag_filter.is_ignored("OwnerEmail")


class TestTagConversion:
    def test_from_api(self):
        assert tags_from_api([{"Key": "a", "Value": "1"}, {"Key": "b"}]) == {"a": "1", "b": ""}
        assert tags_from_api(None) == {}

    def test_to_api_sorted(self):
        assert tags_to_api({"b": "2", "a": "1"}) == [
            {"Key": "a", "Value": "1"},
            {"Key": "b", "Value": "2"},
        ]


class TestDiffTags:
    def test_remove_and_upsert(self):
        remove, upsert = diff_tags({"a": "1", "b": "2", "c": "3"}, {"a": "1", "b": "x", "d": "4"})
        assert remove == ["c"]
        assert upsert == {"b": "x", "d": "4"}

    def test_no_changes(self):
        assert diff_tags({"a": "1"}, {"a": "1"}) == ([], {})
