from __future__ import annotations

import pytest

from tablebase.db.matching import MISSING, compile_predicate, get_path, sort_key
from tablebase.exceptions import ValidationError

LAPTOP = {
    "name": "Laptop",
    "price": 1500,
    "category": "electronics",
    "inStock": True,
    "tags": ["computer", "sale"],
    "metadata": {"color": "silver", "dims": {"w": 30}},
}


def matches(query, doc=LAPTOP):
    return compile_predicate(query)(doc)


def test_get_path_nested_and_missing():
    assert get_path(LAPTOP, "metadata.dims.w") == 30
    assert get_path(LAPTOP, "tags.1") == "sale"
    assert get_path(LAPTOP, "metadata.weight") is MISSING
    assert get_path(LAPTOP, "name.first") is MISSING


def test_empty_filter_matches_everything():
    assert matches({})
    assert matches(None)


def test_equality_coerces_query_string_values():
    assert matches({"price": "1500"})
    assert matches({"inStock": "true"})
    assert not matches({"inStock": "false"})
    assert not matches({"price": "abc"})


def test_large_integer_strings_compare_exactly():
    doc = {"sku": 9007199254740993}
    assert matches({"sku": "9007199254740993"}, doc)
    assert not matches({"sku": "9007199254740992"}, doc)
    assert matches({"sku": {"$gt": "9007199254740992"}}, doc)
    assert matches({"price": "1500.0"})
    assert matches({"price": {"$lt": "1500.5"}})


def test_bool_and_int_stay_distinct():
    assert not matches({"inStock": 1})
    assert not matches({"price": True}, {"price": 1})


def test_array_field_matches_any_element():
    assert matches({"tags": "sale"})
    assert not matches({"tags": "books"})
    assert matches({"tags": ["computer", "sale"]})


def test_range_operators_combine():
    assert matches({"price": {"$gte": "1000", "$lte": "2000"}})
    assert not matches({"price": {"$gte": 1600}})
    assert matches({"price": {"$gt": 1499, "$lt": 1501}})


def test_ordered_comparison_across_types_is_false():
    assert not matches({"name": {"$gte": 5}})
    assert not matches({"price": {"$gte": "cheap"}})


def test_ne_and_missing_fields():
    assert matches({"category": {"$ne": "books"}})
    assert not matches({"category": {"$ne": "electronics"}})
    assert matches({"discount": None})
    assert matches({"discount": {"$ne": 5}})


def test_in_nin_exists_regex():
    assert matches({"category": {"$in": ["books", "electronics"]}})
    assert matches({"category": {"$nin": ["books"]}})
    assert matches({"metadata.color": {"$exists": True}})
    assert matches({"discount": {"$exists": "false"}})
    assert matches({"name": {"$regex": "^Lap"}})


def test_logical_operators():
    assert matches({"$or": [{"category": "books"}, {"tags": "sale"}]})
    assert not matches({"$and": [{"category": "books"}, {"tags": "sale"}]})
    assert matches({"$not": {"category": "books"}})


@pytest.mark.parametrize(
    "query",
    [
        {"price": {"$between": [1, 2]}},
        {"$where": "1"},
        {"price": {"$gte": 1, "plain": 2}},
        {"category": {"$in": "books"}},
        {"name": {"$regex": "("}},
        {"$or": []},
    ],
)
def test_invalid_filters_raise(query):
    with pytest.raises(ValidationError):
        compile_predicate(query)


def test_sort_key_orders_across_types():
    values = ["b", 2, None, MISSING, True, "a", 1.5, [1], {"a": 1}]
    ordered = sorted(values, key=sort_key)
    assert ordered[:2] == [MISSING, None]
    assert ordered[2:4] == [1.5, 2]
    assert ordered[4:6] == ["a", "b"]
    assert ordered[6] is True
    assert ordered[7:] == [[1], {"a": 1}]
