"""Identifier and type-name derivation shared by the emitter and renderers."""

import keyword
import re
from typing import Set

# Names that would clash with generated scaffolding or pydantic internals.
RESERVED = frozenset(
    {
        "self",
        "transport",
        "model_config",
        "model_fields",
        "model_computed_fields",
        "model_extra",
        "copy",
        "dict",
        "json",
        "schema",
        "schema_json",
        "construct",
        "validate",
        "parse_obj",
        "parse_raw",
        "parse_file",
        "from_orm",
        "update_forward_refs",
    }
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"[^0-9a-zA-Z]+")


def to_identifier(name: str) -> str:
    """
    Convert a schema name to a snake_case Python identifier.

    ``scriptPubKey`` -> ``script_pub_key``, ``from`` -> ``from_``,
    ``24h`` -> ``n24h``.
    """
    text = _CAMEL_BOUNDARY.sub("_", name.strip())
    text = _NON_WORD.sub("_", text).strip("_").lower()
    if not text:
        return "value"
    if text[0].isdigit():
        text = f"n{text}"
    if keyword.iskeyword(text) or text in RESERVED:
        text = f"{text}_"
    return text


def to_class_name(name: str) -> str:
    """Convert name to PascalCase class name."""
    parts = _NON_WORD.sub("_", name).split("_")
    result = "".join(p[0].upper() + p[1:] for p in parts if p)
    if not result:
        return "Value"
    if result[0].isdigit():
        result = f"N{result}"
    return result


def variant_suffix(condition: str, index: int, used: Set[str]) -> str:
    """
    Type-name suffix for one alternative of a union.

    Built from the words of the condition label (``"for verbosity = 0"`` ->
    ``ForVerbosity0``); falls back to ``Alt<n>`` and is made unique within
    ``used``, which is updated in place.
    """
    words = re.findall(r"[0-9a-zA-Z]+", condition)[:6]
    suffix = "".join(w[0].upper() + w[1:] for w in words) or f"Alt{index + 1}"
    if suffix in used:
        suffix = f"{suffix}{index + 1}"
    used.add(suffix)
    return suffix
