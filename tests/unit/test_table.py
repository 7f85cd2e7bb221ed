"""
Unit tests for the entity table and unique index.

Tests cover:
- Stub creation and removal
- One-sided link editing for single and collection fields
- Sorted insertion, re-sorting and read-only comparator views
- Unique claims, collisions and releases
"""

import pytest

from lidgraph import UniqueConstraintViolation
from lidgraph.schema import Schema, collection, reference, scalar
from lidgraph.store import EntityTable, UniqueIndex

from tests.conftest import by_name


@pytest.fixture
def schema():
    return Schema.build(
        {
            "name": scalar(),
            "tickets": collection("owner"),
            "owner": reference("tickets"),
            "watchers": collection("watching", sort=by_name),
            "watching": collection("watchers"),
        }
    )


class TestEntityTable:
    """Tests for EntityTable."""

    def test_ensure_creates_stub_once(self):
        """ensure() creates a stub and then returns the same entity."""
        table = EntityTable()
        first = table.ensure("a")
        assert first.lid == "a"
        assert first.values == {}
        assert table.ensure("a") is first
        assert len(table) == 1
        assert "a" in table

    def test_discard(self):
        """discard() removes and returns the entity."""
        table = EntityTable()
        entity = table.ensure("a")
        assert table.discard("a") is entity
        assert table.discard("a") is None
        assert "a" not in table

    def test_attach_single_overwrites(self, schema):
        """Single fields hold one lid."""
        table = EntityTable()
        owner = schema.get_field("owner")
        t = table.ensure("t1")

        assert table.attach(t, owner, "u1") is True
        assert table.attach(t, owner, "u1") is False
        assert t.values["owner"] == "u1"
        assert t.targets(owner) == ["u1"]

    def test_attach_collection_keeps_insertion_order(self, schema):
        """Unsorted collections keep insertion order without duplicates."""
        table = EntityTable()
        tickets = schema.get_field("tickets")
        u = table.ensure("u1")

        for lid in ("t2", "t1", "t2", "t3"):
            table.attach(u, tickets, lid)
        assert u.values["tickets"] == ["t2", "t1", "t3"]

    def test_detach_drops_empty_collection(self, schema):
        """Removing the last member removes the field."""
        table = EntityTable()
        tickets = schema.get_field("tickets")
        u = table.ensure("u1")
        table.attach(u, tickets, "t1")

        assert table.detach(u, tickets, "t1") is True
        assert table.detach(u, tickets, "t1") is False
        assert "tickets" not in u.values

    def test_targets_is_a_copy(self, schema):
        """Mutating targets() does not touch the entity."""
        table = EntityTable()
        tickets = schema.get_field("tickets")
        u = table.ensure("u1")
        table.attach(u, tickets, "t1")

        table_view = u.targets(tickets)
        table_view.append("t9")
        assert u.values["tickets"] == ["t1"]

    def test_sorted_insertion(self, schema):
        """Sorted collections insert at the comparator's position."""
        table = EntityTable()
        watchers = schema.get_field("watchers")
        for lid, name in (("w1", "mia"), ("w2", "amy"), ("w3", "zed"), ("w4", "bob")):
            table.ensure(lid).values["name"] = name

        x = table.ensure("x")
        for lid in ("w1", "w2", "w3", "w4"):
            table.attach(x, watchers, lid)
        assert x.values["watchers"] == ["w2", "w4", "w1", "w3"]

    def test_sorted_insertion_ties_keep_insertion_order(self, schema):
        """Equal keys are appended after existing equals."""
        table = EntityTable()
        watchers = schema.get_field("watchers")
        x = table.ensure("x")
        for lid in ("s1", "s2", "s3"):
            table.ensure(lid)
            table.attach(x, watchers, lid)
        assert x.values["watchers"] == ["s1", "s2", "s3"]

    def test_resort_restores_order_after_key_change(self, schema):
        """resort() moves a member whose sort key changed, stably."""
        table = EntityTable()
        watchers = schema.get_field("watchers")
        x = table.ensure("x")
        for lid, name in (("a", "amy"), ("b", "bob"), ("c", "bob")):
            table.ensure(lid).values["name"] = name
            table.attach(x, watchers, lid)
        assert x.values["watchers"] == ["a", "b", "c"]

        table.get("a").values["name"] = "zed"
        assert table.resort(x, watchers) is True
        assert x.values["watchers"] == ["b", "c", "a"]
        assert table.resort(x, watchers) is False

    def test_view_is_read_only(self):
        """view() exposes lid and values without allowing writes."""
        table = EntityTable()
        table.ensure("a").values["name"] = "amy"

        view = table.view("a")
        assert view["lid"] == "a"
        assert view["name"] == "amy"
        with pytest.raises(TypeError):
            view["name"] = "bob"
        assert table.view("missing") == {"lid": "missing"}

    def test_sorted_insertion_views_few_members(self, schema):
        """A sorted insert only views the members its binary search probes."""
        table = EntityTable()
        watchers = schema.get_field("watchers")
        x = table.ensure("x")
        viewed = []
        original = table.view
        table.view = lambda lid: viewed.append(lid) or original(lid)

        for i in range(20):
            table.ensure(f"w{i}").values["name"] = f"n{i:02d}"
            table.attach(x, watchers, f"w{i}")

        assert x.values["watchers"] == [f"w{i}" for i in range(20)]
        assert len(viewed) <= 20 * 6


class TestUniqueIndex:
    """Tests for UniqueIndex."""

    def test_claim_and_holder(self):
        """Claimed values resolve to their holder."""
        index = UniqueIndex(["email"])
        index.claim("email", "a@x.com", "u1")
        assert index.holder("email", "a@x.com") == "u1"
        assert index.holder("email", "b@x.com") is None
        assert len(index) == 1

    def test_collision_raises_without_change(self):
        """A value held by another lid is rejected."""
        index = UniqueIndex(["email"])
        index.claim("email", "a@x.com", "u1")
        index.claim("email", "b@x.com", "u2")

        with pytest.raises(UniqueConstraintViolation) as exc_info:
            index.claim("email", "a@x.com", "u2", previous="b@x.com")

        assert exc_info.value.holder == "u1"
        assert exc_info.value.code == "UNIQUE_VIOLATION"
        assert index.holder("email", "b@x.com") == "u2"

    def test_claim_moves_previous_value(self):
        """Claiming a new value releases the old one."""
        index = UniqueIndex(["email"])
        index.claim("email", "a@x.com", "u1")
        index.claim("email", "b@x.com", "u1", previous="a@x.com")
        assert index.holder("email", "a@x.com") is None
        assert index.holder("email", "b@x.com") == "u1"

    def test_reclaim_same_value(self):
        """Claiming the value already held is a no-op."""
        index = UniqueIndex(["email"])
        index.claim("email", "a@x.com", "u1")
        index.claim("email", "a@x.com", "u1", previous="a@x.com")
        assert index.holder("email", "a@x.com") == "u1"

    def test_release_only_by_holder(self):
        """Only the holder can release an entry."""
        index = UniqueIndex(["email"])
        index.claim("email", "a@x.com", "u1")
        index.release("email", "a@x.com", "u2")
        assert index.holder("email", "a@x.com") == "u1"
        index.release("email", "a@x.com", "u1")
        assert index.holder("email", "a@x.com") is None

    def test_drop_entity(self):
        """drop_entity() releases every field the entity holds."""
        table = EntityTable()
        index = UniqueIndex(["email", "handle"])
        entity = table.ensure("u1")
        entity.values.update({"email": "a@x.com", "handle": "ada"})
        index.claim("email", "a@x.com", "u1")
        index.claim("handle", "ada", "u1")

        index.drop_entity(entity)
        assert len(index) == 0
