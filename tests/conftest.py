"""
Shared fixtures for lidgraph tests.

The schema below covers every relationship shape the store supports:
- tickets/owner: collection <-> single, cascading from the owner side
- next/prev: single <-> single chain, usable for cycles
- friends, spouse: fields that are their own reverse
- watchers/watching: sorted collection <-> collection
- reports/manager: collection <-> single without cascade
"""

import pytest

from lidgraph import Database, collection, reference, scalar


def _email(value):
    if not isinstance(value, str) or "@" not in value:
        raise ValueError(f"not an email address: {value!r}")
    return value.lower()


def by_name(a, b):
    """Order entities by name, unnamed first."""
    left, right = a.get("name", ""), b.get("name", "")
    return (left > right) - (left < right)


def schema_config():
    return {
        "name": scalar(),
        "tags": scalar(),
        "email": scalar(unique=True, validate=_email),
        "handle": scalar(unique=True),
        "tickets": collection("owner", destroy=True),
        "owner": reference("tickets"),
        "next": reference("prev"),
        "prev": reference("next"),
        "friends": collection("friends"),
        "spouse": reference("spouse"),
        "watchers": collection("watching", sort=by_name),
        "watching": collection("watchers"),
        "reports": collection("manager"),
        "manager": reference("reports"),
    }


@pytest.fixture
def errors():
    """Collects every error reported by the store."""
    return []


@pytest.fixture
def db(errors):
    """Database over the shared schema, recording reported errors."""
    return Database(schema_config(), on_error=errors.append)


def lids(tree, field_name):
    """lids of the nodes under a collection field of a projected tree."""
    return [node["lid"] for node in tree.get(field_name, [])]
