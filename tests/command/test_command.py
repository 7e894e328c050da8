"""Tests for Command construction and immutability."""

import pytest

from dataapi.command.command import Command


class TestCommand:
    """Building wire commands."""

    def test_create_empty(self):
        cmd = Command.create("findCollections")
        assert cmd.name == "findCollections"
        assert cmd.to_dict() == {"findCollections": {}}

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            Command.create("")

    def test_builders_fill_payload(self):
        cmd = (
            Command.create("findOneAndUpdate")
            .with_filter({"_id": "1"})
            .with_sort({"year": -1})
            .with_projection({"title": 1})
            .with_update({"$set": {"seen": True}})
        )
        assert cmd.to_dict() == {
            "findOneAndUpdate": {
                "filter": {"_id": "1"},
                "sort": {"year": -1},
                "projection": {"title": 1},
                "update": {"$set": {"seen": True}},
            }
        }

    def test_documents(self):
        cmd = Command.create("insertMany").with_documents([{"a": 1}, {"a": 2}])
        assert cmd.payload["documents"] == [{"a": 1}, {"a": 2}]

    def test_none_leaves_payload_unchanged(self):
        cmd = Command.create("find").with_filter({"a": 1})
        assert cmd.with_sort(None) is cmd
        assert cmd.with_filter(None).payload["filter"] == {"a": 1}

    def test_append_returns_new_command(self):
        base = Command.create("find")
        extended = base.append("filter", {"a": 1})
        assert base.payload == {}
        assert extended.payload == {"filter": {"a": 1}}

    def test_payload_is_read_only(self):
        cmd = Command.create("find").with_filter({"a": 1})
        with pytest.raises(TypeError):
            cmd.payload["sort"] = {}

    def test_caller_changes_do_not_leak_in(self):
        filter = {"tags": {"$in": ["a"]}}
        cmd = Command.create("find").with_filter(filter)
        filter["tags"]["$in"].append("b")
        cmd.to_dict()["find"]["filter"]["tags"]["$in"].append("c")
        assert cmd.payload["filter"] == {"tags": {"$in": ["a"]}}

    def test_options_are_merged(self):
        cmd = (
            Command.create("find")
            .with_options({"limit": 10})
            .with_options({"includeSimilarity": True})
        )
        assert cmd.payload["options"] == {"limit": 10, "includeSimilarity": True}
        assert cmd.with_options({}) is cmd

    def test_equality(self):
        a = Command.create("find").with_filter({"tags": ["x"]})
        b = Command.create("find").with_filter({"tags": ["x"]})
        assert a == b
        assert hash(a) == hash(b)
        assert a != Command.create("find")
        assert a != "find"
