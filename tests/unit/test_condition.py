"""Tests for grant condition builders."""

from parcel_sdk import (
    condition_and,
    condition_not,
    condition_or,
    document_id_in,
    document_owner_is,
    tag_in,
)


def test_document_id_in_accepts_any_iterable() -> None:
    assert document_id_in(d for d in ("D1", "D2")) == {"document.id": {"$in": ["D1", "D2"]}}


def test_tag_operators() -> None:
    assert tag_in(["a"]) == {"document.details.tags": {"$any": ["a"]}}
    assert tag_in(["a", "b"], all_of=True) == {"document.details.tags": {"$all": ["a", "b"]}}


def test_combinators_nest() -> None:
    owned = document_owner_is("I1")
    tagged = tag_in(["public"])

    condition = condition_or(condition_and(owned, tagged), condition_not(tagged))

    assert condition == {
        "$or": [
            {"$and": [{"document.owner": {"$eq": "I1"}}, tagged]},
            {"$not": tagged},
        ]
    }
