"""
Integration tests for the whole store.

Drives long, seeded random sequences of put/remove/destroy and checks the
store invariants after every step, plus an end-to-end ticketing scenario.
"""

import random

import pytest

from lidgraph import Database, Settings

from tests.conftest import lids, schema_config

REFERENCE_FIELDS = [
    "tickets",
    "owner",
    "next",
    "prev",
    "friends",
    "spouse",
    "watchers",
    "watching",
    "reports",
    "manager",
]


def random_tree(rng, pool, depth=0):
    """A random entity tree over a small lid pool."""
    tree = {"lid": rng.choice(pool)}
    for _ in range(rng.randint(0, 3)):
        name = rng.choice(REFERENCE_FIELDS + ["name", "handle", "tags"])
        if name == "name":
            tree[name] = rng.choice([None, "amy", "bob", "zed"])
        elif name == "handle":
            tree[name] = rng.choice([None, "h1", "h2"])
        elif name == "tags":
            tree[name] = [rng.randint(0, 9)]
        elif rng.random() < 0.15:
            tree[name] = None
        else:
            child = random_tree(rng, pool, depth + 1) if depth < 2 else rng.choice(pool)
            collection = name in ("tickets", "friends", "watchers", "watching", "reports")
            tree[name] = [child] if collection else child
    return tree


class TestRandomSequences:
    """Referential symmetry under arbitrary operation sequences."""

    @pytest.mark.parametrize("seed", range(8))
    def test_invariants_hold(self, seed):
        """check_integrity() stays empty after every operation."""
        rng = random.Random(seed)
        pool = [f"e{i}" for i in range(12)]
        db = Database(schema_config())

        for step in range(300):
            roll = rng.random()
            if roll < 0.7:
                db.put(random_tree(rng, pool))
            elif roll < 0.9:
                db.remove(rng.choice(pool), rng.choice(REFERENCE_FIELDS), rng.choice(pool))
            else:
                db.destroy(rng.choice(pool))

            problems = db.check_integrity()
            assert problems == [], f"seed {seed} step {step}: {problems}"


class TestScenario:
    """End-to-end ticket tracker usage."""

    def test_ticket_tracker(self):
        """Users, tickets and watchers through a typical lifecycle."""
        reported = []
        db = Database(schema_config(), settings=Settings(unknown_fields="reject"), on_error=reported.append)

        db.put({"lid": "ada", "name": "Ada", "email": "Ada@Example.com"})
        db.put(
            {
                "lid": "bug-1",
                "name": "Crash on save",
                "owner": {"lid": "ada"},
                "watchers": [{"lid": "bob", "name": "Bob"}, {"lid": "amy", "name": "Amy"}],
            }
        )
        db.put({"lid": "ada", "tickets": [{"lid": "bug-2", "name": "Typo", "priority": 1}]})

        assert reported[0].field_name == "priority"
        assert "priority" not in db.get("bug-2")

        ada = db.lookup("email", "ada@example.com")
        assert lids(ada, "tickets") == ["bug-1", "bug-2"]
        assert lids(ada["tickets"][0], "watchers") == ["amy", "bob"]

        db.put({"lid": "bug-1", "owner": {"lid": "bob"}})
        assert lids(db.get("ada"), "tickets") == ["bug-2"]
        assert lids(db.get("bob"), "tickets") == ["bug-1"]

        db.destroy("bob")
        assert "bug-1" not in db
        assert "watching" not in db.get("amy")
        assert lids(db.get("ada"), "tickets") == ["bug-2"]

        db.destroy("ada")
        assert sorted(db.lids()) == ["amy"]
        assert db.lookup("email", "ada@example.com") is None
        assert db.check_integrity() == []

    def test_independent_instances(self):
        """Two databases never share state."""
        first = Database(schema_config())
        second = Database(schema_config())
        first.put({"lid": "u1", "handle": "ada"})

        assert "u1" not in second
        assert second.lookup("handle", "ada") is None
        second.put({"lid": "u2", "handle": "ada"})
        assert first.lookup("handle", "ada")["lid"] == "u1"

    def test_clear(self):
        """clear() empties entities and the index."""
        db = Database(schema_config())
        db.put({"lid": "u1", "handle": "ada", "tickets": ["t1"]})
        db.clear()
        assert len(db) == 0
        assert db.lookup("handle", "ada") is None

    def test_integrity_check_detects_corruption(self):
        """check_integrity() reports a broken mirror and stale index."""
        db = Database(schema_config())
        db.put({"lid": "u1", "handle": "ada", "tickets": ["t1"]})

        db._table.get("t1").values.pop("owner")
        db._table.get("u1").values["handle"] = "bob"

        problems = db.check_integrity()
        assert any("has no mirror" in p for p in problems)
        assert any("is not indexed" in p for p in problems)
        assert any("is stale" in p for p in problems)

    def test_integrity_check_detects_sort_order(self):
        """check_integrity() reports a sorted collection out of order."""
        db = Database(schema_config())
        db.put({"lid": "x", "watchers": [{"lid": "a", "name": "amy"}, {"lid": "b", "name": "bob"}]})
        assert db.check_integrity() == []

        db._table.get("x").values["watchers"].reverse()
        problems = db.check_integrity()
        assert problems == ["'x'.watchers is not in sort order: 'b' comes before 'a'"]
