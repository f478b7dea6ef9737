"""Tests for record filter expressions."""

from __future__ import annotations

import pytest

from inspx.filters import (
    FilterCondition,
    FilterOperator,
    FilterSyntaxError,
    apply_filter,
    known_keys,
    parse_filter_string,
)
from inspx.records import Function, Module, Range, Thread


def test_parse_single_contains_condition():
    conditions = parse_filter_string("name:libc")
    assert conditions == [FilterCondition("name", FilterOperator.CONTAINS, "libc")]


def test_parse_joiners_and_numeric_values():
    conditions = parse_filter_string("address>=0x2000 and size<16 && name!=main")
    assert [c.operator for c in conditions] == [
        FilterOperator.GREATER_EQUAL,
        FilterOperator.LESS_THAN,
        FilterOperator.NOT_EQUALS,
    ]
    assert conditions[0].value == 0x2000
    assert conditions[1].value == 16


def test_parse_quoted_value():
    (condition,) = parse_filter_string('name="my lib"')
    assert condition.value == "my lib"


def test_parse_empty_expression():
    assert parse_filter_string("   ") == []


@pytest.mark.parametrize("text", ["name:a or name:b", "and name:a", "name:a and", "name", "name:a ||"])
def test_parse_rejects_bad_expressions(text):
    with pytest.raises(FilterSyntaxError):
        parse_filter_string(text)


def test_contains_is_case_insensitive():
    module = Module(name="LibCrypto.so", address=0x1000, size=0x100)
    assert FilterCondition("name", FilterOperator.CONTAINS, "crypto").matches(module)
    assert not FilterCondition("name", FilterOperator.NOT_CONTAINS, "CRYPTO").matches(module)


def test_equality_compares_numbers_numerically():
    rng = Range(address=0x1000, size=0x20, protection="rw-")
    assert FilterCondition("size", FilterOperator.EQUALS, 32).matches(rng)
    assert FilterCondition("size", FilterOperator.EQUALS, "0x20").matches(rng)
    assert FilterCondition("prot", FilterOperator.EQUALS, "RW-").matches(rng)


def test_missing_field_never_matches():
    thread = Thread(id=7)
    assert not FilterCondition("address", FilterOperator.GREATER_THAN, 0).matches(thread)
    assert not FilterCondition("bogus", FilterOperator.EQUALS, "x").matches(thread)
    assert FilterCondition("id", FilterOperator.EQUALS, 7).matches(thread)


def test_ordering_needs_numbers():
    func = Function(name="main", address=0x80)
    assert not FilterCondition("name", FilterOperator.GREATER_THAN, 3).matches(func)


def test_apply_filter_requires_every_condition():
    records = [
        Function(name="test_a", address=0x1000),
        Function(name="test_b", address=0x3000),
        Function(name="other", address=0x4000),
    ]
    kept = apply_filter(records, parse_filter_string("name:test address>=0x2000"))
    assert [rec.name for rec in kept] == ["test_b"]


def test_known_keys_lists_aliases():
    keys = known_keys()
    assert "addr" in keys and "address" in keys
    assert keys == sorted(keys)
