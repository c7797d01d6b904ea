"""Tests de l'index (champ, valeur) -> identité."""

import pytest

from lappel.matching.identities import normalize_identities
from lappel.matching.index import AMBIGUOUS, FieldIndex, Owned


@pytest.fixture
def index() -> FieldIndex:
    return FieldIndex.build(
        normalize_identities(
            [
                {"id": 1, "name": "Alex Kim", "login_id": "akim1"},
                {"id": 2, "name": "Alex Kim", "login_id": "akim2"},
                {"id": 3, "name": "Sam Lee", "login_id": "slee"},
                {"id": 4, "name": "Alex Kim", "login_id": "akim4"},
            ]
        )
    )


def test_unique_value_owned(index: FieldIndex) -> None:
    slot = index.lookup("login_id", "slee")
    assert isinstance(slot, Owned)
    assert slot.identity.id == 3
    assert index.owner("name", "Sam Lee").id == 3


def test_shared_value_ambiguous(index: FieldIndex) -> None:
    """Trois propriétaires : reste ambigu, jamais de match."""
    assert index.lookup("name", "alex kim") is AMBIGUOUS
    assert index.owner("name", "alex kim") is None


def test_unknown_value_unset(index: FieldIndex) -> None:
    assert index.lookup("name", "nobody") is None
    assert index.lookup("email", "x@y.z") is None  # champ vide partout


def test_lookup_normalizes_value(index: FieldIndex) -> None:
    assert index.owner("login_id", "  AKIM2 ").id == 2


def test_identifier_is_indexed(index: FieldIndex) -> None:
    assert index.owner("id", "4").id == 4


def test_fields_in_declaration_order(index: FieldIndex) -> None:
    assert index.fields == ["id", "name", "login_id"]


def test_empty_index() -> None:
    empty = FieldIndex.build([])
    assert len(empty) == 0
    assert empty.fields == []
    assert empty.owner("name", "x") is None
