"""
Semantic type categorization.

Maps a (declared type tag, field name, context) triple onto one member of a
closed target-type vocabulary. The mapping is data driven: ``RULES`` is a
static tuple of ``CategoryRule`` entries, ordered once at import by tier and
then by pattern length (longest first), and ``categorize`` returns the
category of the first rule that matches.

Tiers:
    1. type tag + name pattern (domain vocabulary)
    2. name pattern only, for scalar-ish tags
    3. type tag only
    4. unconditional ``Unknown``

Field names are normalized by lowercasing and stripping ``_``, ``-`` and
spaces before matching, so ``fee_rate``, ``feeRate`` and ``fee-rate`` all
read as ``feerate``.

The rule list is read-only and results are cached; identical inputs always
produce the identical category, which cross-version diffing relies on.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Callable, FrozenSet, Optional, Tuple

from .ir import OBJECT_TYPES, ArgumentSpec, ResultSpec


class SemanticCategory(str, Enum):
    """Closed target-type vocabulary."""

    STRING = "String"
    BOOLEAN = "Boolean"
    NULL = "Null"
    FLOAT = "Float"
    PORT = "Port"
    SMALL_INTEGER = "SmallInteger"
    LARGE_INTEGER = "LargeInteger"
    EXTRA_LARGE_INTEGER = "ExtraLargeInteger"
    MONETARY_AMOUNT = "MonetaryAmount"
    TRANSACTION_ID = "TransactionId"
    BLOCK_HASH = "BlockHash"
    ADDRESS = "Address"
    SCRIPT = "Script"
    PUBLIC_KEY = "PublicKey"
    STRING_ARRAY = "StringArray"
    TYPED_ARRAY = "TypedArray"
    GENERIC_ARRAY = "GenericArray"
    GENERIC_OBJECT = "GenericObject"
    TYPED_OBJECT = "TypedObject"
    DUMMY = "Dummy"
    UNKNOWN = "Unknown"

    @property
    def is_array(self) -> bool:
        return self in _ARRAY_CATEGORIES

    @property
    def is_object(self) -> bool:
        return self in (SemanticCategory.GENERIC_OBJECT, SemanticCategory.TYPED_OBJECT)


_ARRAY_CATEGORIES = frozenset(
    {
        SemanticCategory.STRING_ARRAY,
        SemanticCategory.TYPED_ARRAY,
        SemanticCategory.GENERIC_ARRAY,
    }
)

PORT_MAX = 65535
SMALL_INTEGER_MAX = 2**32 - 1


@dataclass(frozen=True)
class CategoryContext:
    """
    Extra facts about the field being categorized.

    ``maximum`` marks a numeric field as bounded; ``item_categories`` holds
    the categories of an array's element alternatives; ``has_fields`` is set
    for objects that declare named members.
    """

    role: str = "field"
    maximum: Optional[float] = None
    item_categories: Tuple[SemanticCategory, ...] = ()
    has_fields: bool = False


DEFAULT_CONTEXT = CategoryContext()


def normalize_name(name: str) -> str:
    """Lowercase and strip ``_``, ``-`` and spaces."""
    return "".join(ch for ch in name.lower() if ch not in "_- ")


@dataclass(frozen=True)
class CategoryRule:
    """
    One entry of the rule chain.

    ``types`` empty means any tag; ``excluded_types`` narrows that.
    ``pattern`` is matched by substring unless ``exact`` is set.
    """

    tier: int
    category: SemanticCategory
    types: FrozenSet[str] = frozenset()
    pattern: Optional[str] = None
    exact: bool = False
    predicate: Optional[Callable[[CategoryContext], bool]] = None
    excluded_types: FrozenSet[str] = frozenset()

    def __post_init__(self):
        if self.pattern is not None:
            object.__setattr__(self, "pattern", normalize_name(self.pattern))

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.tier, -len(self.pattern or ""))

    def matches(self, type_tag: str, name: str, context: CategoryContext) -> bool:
        if self.types and type_tag not in self.types:
            return False
        if type_tag in self.excluded_types:
            return False
        if self.pattern is not None:
            if self.exact and name != self.pattern:
                return False
            if not self.exact and self.pattern not in name:
                return False
        if self.predicate is not None and not self.predicate(context):
            return False
        return True


def _rules(
    tier: int,
    types: FrozenSet[str],
    category: SemanticCategory,
    *patterns: str,
    exact: bool = False,
) -> Tuple[CategoryRule, ...]:
    return tuple(
        CategoryRule(tier=tier, category=category, types=types, pattern=p, exact=exact)
        for p in patterns
    )


_NUMBER = frozenset({"number"})
_AMOUNT = frozenset({"amount"})
_STRINGISH = frozenset({"string", "hex"})
_ARRAY = frozenset({"array"})
_OBJECT = frozenset(OBJECT_TYPES)
_STRUCTURED = frozenset({"array", "boolean", "none", "null"}) | _OBJECT

_C = SemanticCategory


def _is_port(context: CategoryContext) -> bool:
    return context.maximum is not None and context.maximum <= PORT_MAX


def _is_small(context: CategoryContext) -> bool:
    return context.maximum is not None and context.maximum <= SMALL_INTEGER_MAX


def _all_strings(context: CategoryContext) -> bool:
    return bool(context.item_categories) and all(
        item == _C.STRING for item in context.item_categories
    )


def _typed_items(context: CategoryContext) -> bool:
    return bool(context.item_categories) and all(
        item != _C.UNKNOWN for item in context.item_categories
    )


def _has_fields(context: CategoryContext) -> bool:
    return context.has_fields


_TIER_ONE = (
    # Identifiers
    _rules(1, _STRINGISH, _C.TRANSACTION_ID, "txid")
    + _rules(1, _STRINGISH, _C.BLOCK_HASH, "blockhash")
    + _rules(1, _STRINGISH, _C.PUBLIC_KEY, "pubkey")
    + _rules(
        1,
        _STRINGISH,
        _C.SCRIPT,
        "script",
        "scriptpubkey",
        "redeemscript",
        "witnessscript",
        "scriptsig",
    )
    + _rules(1, frozenset({"string"}), _C.ADDRESS, "address")
    # Money: the generic numeric tag keeps its floating wire representation.
    + _rules(1, _NUMBER, _C.MONETARY_AMOUNT, "amount", "fee", "balance")
    + _rules(
        1,
        _NUMBER | _AMOUNT,
        _C.FLOAT,
        "rate",
        "feerate",
        "estimatedfeerate",
        "maxfeerate",
        "relayfee",
        "incrementalfee",
        "incrementalrelayfee",
        "maxburnamount",
        "difficulty",
        "probability",
        "percentage",
        "verificationprogress",
        "networkhashps",
    )
    + _rules(1, _NUMBER, _C.PORT, "port")
    + _rules(
        1,
        _NUMBER,
        _C.SMALL_INTEGER,
        "nrequired",
        "minconf",
        "maxconf",
        "locktime",
        "version",
        "verbosity",
        "checklevel",
    )
    + _rules(1, _NUMBER, _C.SMALL_INTEGER, "n", exact=True)
    + _rules(
        1,
        _NUMBER,
        _C.LARGE_INTEGER,
        "blocks",
        "nblocks",
        "maxtries",
        "height",
        "count",
        "index",
        "size",
        "time",
        "conftarget",
        "skip",
        "nodeid",
        "peerid",
        "wait",
    )
    + _rules(
        1,
        _NUMBER,
        _C.EXTRA_LARGE_INTEGER,
        "totalbytesrecv",
        "totalbytessent",
        "bytesrecv",
        "bytessent",
        "sizeondisk",
    )
    + _rules(1, _ARRAY, _C.STRING_ARRAY, "keys", "addresses", "wallets", "txids")
    + _rules(1, frozenset({"string", "number"}), _C.DUMMY, "dummy")
)

# Naming variants across versions, for tags that are not structured.
_TIER_TWO = tuple(
    CategoryRule(tier=2, category=category, pattern=pattern, excluded_types=_STRUCTURED)
    for pattern, category in (
        ("txid", _C.TRANSACTION_ID),
        ("blockhash", _C.BLOCK_HASH),
        ("pubkey", _C.PUBLIC_KEY),
        ("address", _C.ADDRESS),
        ("amount", _C.MONETARY_AMOUNT),
        ("feerate", _C.FLOAT),
        ("dummy", _C.DUMMY),
    )
)

_TIER_THREE = (
    CategoryRule(tier=3, category=_C.STRING, types=_STRINGISH),
    CategoryRule(tier=3, category=_C.BOOLEAN, types=frozenset({"boolean"})),
    CategoryRule(tier=3, category=_C.NULL, types=frozenset({"none", "null"})),
    CategoryRule(tier=3, category=_C.MONETARY_AMOUNT, types=_AMOUNT),
    CategoryRule(tier=3, category=_C.PORT, types=_NUMBER, predicate=_is_port),
    CategoryRule(tier=3, category=_C.SMALL_INTEGER, types=_NUMBER, predicate=_is_small),
    CategoryRule(tier=3, category=_C.LARGE_INTEGER, types=_NUMBER),
    CategoryRule(tier=3, category=_C.STRING_ARRAY, types=_ARRAY, predicate=_all_strings),
    CategoryRule(tier=3, category=_C.TYPED_ARRAY, types=_ARRAY, predicate=_typed_items),
    CategoryRule(tier=3, category=_C.GENERIC_ARRAY, types=_ARRAY),
    CategoryRule(tier=3, category=_C.TYPED_OBJECT, types=_OBJECT, predicate=_has_fields),
    CategoryRule(tier=3, category=_C.GENERIC_OBJECT, types=_OBJECT),
)

_TIER_FOUR = (CategoryRule(tier=4, category=_C.UNKNOWN),)

# sorted() is stable, so rules of equal tier and pattern length keep their
# declaration order (predicate rules before their plain fallback).
RULES: Tuple[CategoryRule, ...] = tuple(
    sorted(_TIER_ONE + _TIER_TWO + _TIER_THREE + _TIER_FOUR, key=lambda r: r.sort_key)
)


@lru_cache(maxsize=4096)
def categorize(
    type_tag: str,
    field_name: str,
    context: Optional[CategoryContext] = None,
) -> SemanticCategory:
    """
    Categorize one field. Total: falls back to ``Unknown``, never raises.

    Args:
        type_tag: Declared schema type tag
        field_name: Field or argument name (any casing/separators)
        context: Optional extra facts (bounds, array items, object fields)
    """
    tag = type_tag.strip().lower()
    name = normalize_name(field_name)
    ctx = context or DEFAULT_CONTEXT
    for rule in RULES:
        if rule.matches(tag, name, ctx):
            return rule.category
    return _C.UNKNOWN


def explain(
    type_tag: str,
    field_name: str,
    context: Optional[CategoryContext] = None,
) -> Optional[CategoryRule]:
    """Return the rule that decides ``categorize`` for these inputs."""
    tag = type_tag.strip().lower()
    name = normalize_name(field_name)
    ctx = context or DEFAULT_CONTEXT
    for rule in RULES:
        if rule.matches(tag, name, ctx):
            return rule
    return None


def argument_context(arg: ArgumentSpec) -> CategoryContext:
    items: Tuple[SemanticCategory, ...] = ()
    if arg.type_tag == "array" and arg.inner:
        items = tuple(categorize_argument(child) for child in arg.inner)
    return CategoryContext(
        role="argument",
        maximum=arg.maximum,
        item_categories=items,
        has_fields=arg.type_tag in OBJECT_TYPES and bool(arg.inner),
    )


def categorize_argument(arg: ArgumentSpec) -> SemanticCategory:
    """Categorize an argument by its canonical (first) name."""
    return categorize(arg.type_tag, arg.name, argument_context(arg))


def result_context(result: ResultSpec) -> CategoryContext:
    items: Tuple[SemanticCategory, ...] = ()
    if result.type_tag == "array" and result.inner:
        items = tuple(categorize_result(child) for child in result.inner)
    return CategoryContext(
        role="result",
        maximum=result.maximum,
        item_categories=items,
        has_fields=result.type_tag in OBJECT_TYPES
        and any(child.key_name for child in result.inner),
    )


def categorize_result(result: ResultSpec) -> SemanticCategory:
    """Categorize a result by its key name; unkeyed results go by type alone."""
    return categorize(result.type_tag, result.key_name, result_context(result))
