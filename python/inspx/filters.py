"""Filter expressions over catalog records."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .records import Record

LOGGER = logging.getLogger("inspx.filters")

FilterValue = Union[str, int]


class FilterSyntaxError(ValueError):
    """Raised when a filter expression cannot be parsed."""


class FilterOperator(str, Enum):
    EQUALS = "="
    NOT_EQUALS = "!="
    CONTAINS = ":"
    NOT_CONTAINS = "!:"
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    LESS_EQUAL = "<="


_OPERATOR_TOKENS = {
    "==": FilterOperator.EQUALS,
    "=": FilterOperator.EQUALS,
    "!=": FilterOperator.NOT_EQUALS,
    ":": FilterOperator.CONTAINS,
    "!:": FilterOperator.NOT_CONTAINS,
    ">=": FilterOperator.GREATER_EQUAL,
    ">": FilterOperator.GREATER_THAN,
    "<=": FilterOperator.LESS_EQUAL,
    "<": FilterOperator.LESS_THAN,
}

# longest operators first so ">=" is not read as ">" followed by "="
_CONDITION_RE = re.compile(
    r"""\s*(?P<key>[A-Za-z_][\w.]*)\s*
        (?P<op>==|!=|!:|>=|<=|=|:|>|<)\s*
        (?P<value>"[^"]*"|'[^']*'|[^\s"']+)""",
    re.VERBOSE,
)
_JOINER_RE = re.compile(r"\s*(and|&&)(?=\s|$)", re.IGNORECASE)
_OR_RE = re.compile(r"\s*(or|\|\|)(?=\s|$)", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^(0[xX][0-9a-fA-F]+|\d+)$")


def _field_name(record: Record) -> Optional[str]:
    return getattr(record, "name", None)


def _field_class(record: Record) -> Optional[str]:
    return getattr(record, "class_name", None)


def _field_target(record: Record) -> Optional[str]:
    return getattr(record, "target_name", None) or getattr(record, "name", None)


_FIELDS: Dict[str, Callable[[Record], Any]] = {
    "address": lambda rec: rec.address_of(),
    "addr": lambda rec: rec.address_of(),
    "name": _field_name,
    "size": lambda rec: getattr(rec, "size", None),
    "protection": lambda rec: getattr(rec, "protection", None),
    "prot": lambda rec: getattr(rec, "protection", None),
    "module": lambda rec: getattr(rec, "module", None),
    "class": _field_class,
    "kind": lambda rec: rec.kind.value,
    "type": lambda rec: rec.kind.value,
    "id": lambda rec: getattr(rec, "id", None),
    "value": lambda rec: getattr(rec, "value", None),
    "pattern": lambda rec: getattr(rec, "pattern", None),
    "mnemonic": lambda rec: getattr(rec, "mnemonic", None),
    "op_str": lambda rec: getattr(rec, "op_str", None),
    "symbol_type": lambda rec: getattr(rec, "symbol_type", None),
    "import_type": lambda rec: getattr(rec, "import_type", None),
    "section": lambda rec: getattr(rec, "section", None),
    "target": _field_target,
}


def known_keys() -> List[str]:
    return sorted(_FIELDS)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _NUMBER_RE.match(value.strip()):
        return int(value.strip(), 0)
    return None


def _as_text(value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:#x}"
    return str(value)


@dataclass
class FilterCondition:
    key: str
    operator: FilterOperator
    value: FilterValue

    def matches(self, record: Record) -> bool:
        getter = _FIELDS.get(self.key.lower())
        if getter is None:
            return False
        actual = getter(record)
        if actual is None:
            return False
        op = self.operator
        if op in (FilterOperator.CONTAINS, FilterOperator.NOT_CONTAINS):
            found = _as_text(self.value).lower() in _as_text(actual).lower()
            return found if op is FilterOperator.CONTAINS else not found
        if op in (FilterOperator.EQUALS, FilterOperator.NOT_EQUALS):
            left, right = _as_int(actual), _as_int(self.value)
            if left is not None and right is not None:
                equal = left == right
            else:
                equal = _as_text(actual).lower() == _as_text(self.value).lower()
            return equal if op is FilterOperator.EQUALS else not equal
        left, right = _as_int(actual), _as_int(self.value)
        if left is None or right is None:
            return False
        if op is FilterOperator.GREATER_THAN:
            return left > right
        if op is FilterOperator.GREATER_EQUAL:
            return left >= right
        if op is FilterOperator.LESS_THAN:
            return left < right
        return left <= right

    def __str__(self) -> str:
        value = f"{self.value:#x}" if isinstance(self.value, int) else repr(self.value)
        return f"{self.key}{self.operator.value}{value}"


def _parse_value(token: str) -> FilterValue:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    if _NUMBER_RE.match(token):
        return int(token, 0)
    return token


def parse_filter_string(text: str) -> List[FilterCondition]:
    """
    Parse ``key<op>value`` conditions joined by whitespace, ``and`` or ``&&``.

    Only AND is supported; ``or`` raises :class:`FilterSyntaxError`.
    """
    conditions: List[FilterCondition] = []
    pos = 0
    length = len(text)
    expect_condition = True
    while pos < length:
        if not text[pos:].strip():
            break
        if _OR_RE.match(text, pos):
            raise FilterSyntaxError("OR conditions are not supported")
        joiner = _JOINER_RE.match(text, pos)
        if joiner:
            if expect_condition:
                raise FilterSyntaxError(f"unexpected '{joiner.group(1)}' at position {joiner.start(1)}")
            pos = joiner.end()
            expect_condition = True
            continue
        match = _CONDITION_RE.match(text, pos)
        if not match:
            raise FilterSyntaxError(f"invalid filter condition near: {text[pos:].strip()!r}")
        conditions.append(
            FilterCondition(
                key=match.group("key").lower(),
                operator=_OPERATOR_TOKENS[match.group("op")],
                value=_parse_value(match.group("value")),
            )
        )
        pos = match.end()
        expect_condition = False
    if conditions and expect_condition:
        raise FilterSyntaxError("dangling 'and' at end of filter")
    LOGGER.debug("parsed filter %r -> %s", text, [str(cond) for cond in conditions])
    return conditions


def matches_all(record: Record, conditions: Iterable[FilterCondition]) -> bool:
    return all(condition.matches(record) for condition in conditions)


def apply_filter(records: Iterable[Record], conditions: List[FilterCondition]) -> List[Record]:
    return [record for record in records if matches_all(record, conditions)]


__all__ = [
    "FilterCondition",
    "FilterOperator",
    "FilterSyntaxError",
    "FilterValue",
    "apply_filter",
    "known_keys",
    "matches_all",
    "parse_filter_string",
]
