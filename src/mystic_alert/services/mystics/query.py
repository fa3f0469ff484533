"""
Filter Query Compiler.

Compiles the compact filter query language into a predicate over items.

A query is a comma-separated list of clauses, all of which must match:

    tokens5+          at least 5 tokens
    lives3-           at most 3 lives
    color2            nonce % 5 == 2
    mirror2           a Mirror enchant at exactly level 2
    damage3+          any enchant in the "damage" class at level 3 or more
    sword / bow       item type
    gemmed            a flag on the item
    uuid<owner>       owned by a player
    !clause           inverts the clause

Clauses are resolved once at compile time into a Clause with a fixed
ClauseKind, so evaluation never re-parses strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Item
    from .reference import ReferenceIndex

# Trailing numeric comparison, e.g. "tokens5+", "lives-1", "mirror3"
_NUMERIC_SUFFIX = re.compile(r"-?[0-9]+([+-])?\Z")

OWNER_PREFIX = "uuid"
NEGATION_PREFIX = "!"

ITEM_TYPES: dict[str, int] = {
    "bow": 261,
    "sword": 283,
    "pants": 300,
}


class ClauseKind(str, Enum):
    """What a compiled clause tests."""

    OWNER = "owner"
    ATTRIBUTE = "attribute"
    CLASS_ENCHANT = "class_enchant"
    ENCHANT = "enchant"
    ITEM_TYPE = "item_type"
    FLAG = "flag"


class Comparator(str, Enum):
    """Numeric comparison selected by the clause's trailing sign."""

    AT_LEAST = "+"
    AT_MOST = "-"
    EQUAL = ""

    def compare(self, observed: int, target: int) -> bool:
        if self is Comparator.AT_LEAST:
            return observed >= target
        if self is Comparator.AT_MOST:
            return observed <= target
        return observed == target


class Attribute(str, Enum):
    """Numeric item attributes addressable by name."""

    TOKENS = "tokens"
    ENCHANTS = "enchants"
    LIVES = "lives"
    MAX_LIVES = "maxlives"
    COLOR = "color"
    NONCE = "nonce"

    def value_of(self, item: Item) -> int | None:
        if self is Attribute.TOKENS:
            return item.tokens
        if self is Attribute.ENCHANTS:
            return len(item.enchants)
        if self is Attribute.LIVES:
            return item.lives
        if self is Attribute.MAX_LIVES:
            return item.max_lives
        if self is Attribute.COLOR:
            return item.color
        return item.nonce


_ATTRIBUTES = {a.value: a for a in Attribute}


@dataclass(frozen=True)
class Clause:
    """
    One compiled clause.

    Only the payload fields relevant to ``kind`` are set:
    - OWNER, FLAG, ENCHANT: ``key``
    - ATTRIBUTE: ``attribute``
    - CLASS_ENCHANT: ``key`` (class name) and ``enchant_keys``
    - ITEM_TYPE: ``type_id``
    Numeric kinds (ATTRIBUTE, CLASS_ENCHANT, ENCHANT) also carry
    ``comparator`` and ``target``.
    """

    kind: ClauseKind
    negated: bool = False
    key: str = ""
    attribute: Attribute | None = None
    comparator: Comparator = Comparator.EQUAL
    target: int = 0
    enchant_keys: frozenset[str] = frozenset()
    type_id: int = 0

    def matches(self, item: Item) -> bool:
        return self.negated != self._raw_match(item)

    def _raw_match(self, item: Item) -> bool:
        kind = self.kind
        if kind is ClauseKind.OWNER:
            return item.owner == self.key
        if kind is ClauseKind.ATTRIBUTE:
            assert self.attribute is not None
            observed = self.attribute.value_of(item)
            if observed is None:
                return False
            return self.comparator.compare(observed, self.target)
        if kind is ClauseKind.CLASS_ENCHANT:
            return any(
                e.key in self.enchant_keys and self.comparator.compare(e.level, self.target)
                for e in item.enchants
            )
        if kind is ClauseKind.ENCHANT:
            return any(
                e.key == self.key and self.comparator.compare(e.level, self.target)
                for e in item.enchants
            )
        if kind is ClauseKind.ITEM_TYPE:
            return item.type_id == self.type_id
        return self.key in item.flags


@dataclass(frozen=True)
class FilterQuery:
    """A compiled query: the conjunction of its clauses."""

    source: str
    clauses: tuple[Clause, ...] = ()

    def matches(self, item: Item) -> bool:
        return all(clause.matches(item) for clause in self.clauses)

    def __call__(self, item: Item) -> bool:
        return self.matches(item)


def compile_clause(text: str, index: ReferenceIndex) -> Clause:
    """
    Compile a single lower-cased clause.

    Never fails: every string is an owner, numeric, type or flag clause.
    """
    negated = False
    while text.startswith(NEGATION_PREFIX):
        negated = not negated
        text = text[len(NEGATION_PREFIX) :]

    if text.startswith(OWNER_PREFIX):
        return Clause(ClauseKind.OWNER, negated, key=text[len(OWNER_PREFIX) :])

    suffix = _NUMERIC_SUFFIX.search(text)
    if suffix:
        key = text[: suffix.start()]
        comparator = Comparator(suffix.group(1) or "")
        digits = suffix.group(0)
        if comparator is not Comparator.EQUAL:
            digits = digits[:-1]
        target = int(digits)

        attribute = _ATTRIBUTES.get(key)
        if attribute is not None:
            return Clause(
                ClauseKind.ATTRIBUTE,
                negated,
                key=key,
                attribute=attribute,
                comparator=comparator,
                target=target,
            )
        if index.has_class(key):
            return Clause(
                ClauseKind.CLASS_ENCHANT,
                negated,
                key=key,
                comparator=comparator,
                target=target,
                enchant_keys=index.enchants_in(key),
            )
        return Clause(
            ClauseKind.ENCHANT, negated, key=key, comparator=comparator, target=target
        )

    if text in ITEM_TYPES:
        return Clause(ClauseKind.ITEM_TYPE, negated, key=text, type_id=ITEM_TYPES[text])

    return Clause(ClauseKind.FLAG, negated, key=text)


def compile_query(query: str, index: ReferenceIndex) -> FilterQuery:
    """
    Compile a filter query into a predicate.

    Matching is case-insensitive. The empty query has no clauses and
    matches every item; a blank clause inside a longer query is a flag
    clause for the empty flag and never matches.

    Args:
        query: Comma-separated clauses
        index: Enchantment reference for class clauses

    Returns:
        FilterQuery, callable on an Item
    """
    if not query:
        return FilterQuery(source=query)
    clauses = tuple(compile_clause(part, index) for part in query.lower().split(","))
    return FilterQuery(source=query, clauses=clauses)
