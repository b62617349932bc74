"""
Schema loading: raw JSON-like documents to an ordered tuple of MethodSpec.

The raw document is a mapping from method name to a definition object::

    {
        "getblockcount": {
            "name": "getblockcount",
            "category": "blockchain",
            "description": "Returns the height of the most-work fully-validated chain.",
            "arguments": [],
            "results": [{"type": "number", "description": "The current block count"}]
        }
    }

The ``{"rpcs": {...}}`` wrapper produced by upstream API dumps, and a plain
list of definition objects, are accepted as well. Shape checking is done with
pydantic; any violation is surfaced as ``MalformedSchema`` with the path of
the offending node.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import DuplicateMethod, MalformedSchema, SchemaSourceError, UnknownType
from .ir import (
    ALWAYS,
    ARGUMENT_TYPES,
    ArgumentSpec,
    MethodSpec,
    ProtocolVersion,
    ResultSpec,
    VersionRange,
)
from .observability import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 32


class RawArgument(BaseModel):
    """Argument object as it appears in the raw schema."""

    model_config = ConfigDict(extra="ignore")

    names: List[str] = Field(min_length=1)
    type: str
    optional: bool = False
    required: Optional[bool] = None
    default: Any = None
    description: str = ""
    inner: List["RawArgument"] = Field(default_factory=list)
    hidden: bool = False
    skip_type_check: bool = False
    also_positional: bool = False
    maximum: Optional[float] = None

    def is_optional(self) -> bool:
        # Upstream dumps carry ``required``; ``optional`` wins when both are given.
        if "optional" in self.model_fields_set:
            return self.optional
        return self.required is False


class RawResult(BaseModel):
    """Result object as it appears in the raw schema."""

    model_config = ConfigDict(extra="ignore")

    type: str
    optional: bool = False
    description: str = ""
    condition: str = ""
    key_name: str = ""
    inner: List["RawResult"] = Field(default_factory=list)
    since: Optional[str] = None
    until: Optional[str] = None
    maximum: Optional[float] = None
    skip_type_check: bool = False


class RawMethod(BaseModel):
    """Method definition object as it appears in the raw schema."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    category: str = ""
    description: str = ""
    arguments: List[RawArgument] = Field(default_factory=list)
    results: List[RawResult] = Field(default_factory=list)
    since: Optional[str] = None
    until: Optional[str] = None
    examples: str = ""


RawArgument.model_rebuild()
RawResult.model_rebuild()


def parse(raw: Any) -> Tuple[MethodSpec, ...]:
    """
    Parse a raw schema document into method specs sorted by name.

    Args:
        raw: Decoded schema document (mapping or list)

    Returns:
        Tuple of MethodSpec, ordered by method name

    Raises:
        MalformedSchema: Structural violation (with schema path)
        UnknownType: Argument type tag outside the fixed enumeration
        DuplicateMethod: Two definitions share a method name
    """
    methods: Dict[str, MethodSpec] = {}
    for path, key, definition in _iter_definitions(raw):
        _check_depth(definition, path, 0)
        method = _parse_method(path, key, definition)
        if method.name in methods:
            raise DuplicateMethod(method.name, path=path)
        methods[method.name] = method

    logger.debug("Parsed %d method definitions", len(methods))
    return tuple(methods[name] for name in sorted(methods))


def _iter_definitions(raw: Any) -> Iterator[Tuple[str, str, Any]]:
    if isinstance(raw, Mapping):
        wrapped = raw.get("rpcs")
        if set(raw) == {"rpcs"} and isinstance(wrapped, Mapping):
            raw = wrapped
        for key, definition in raw.items():
            if not isinstance(key, str):
                raise MalformedSchema("Method names must be strings", path=f"[{key!r}]")
            yield key, key, definition
    elif isinstance(raw, (list, tuple)):
        for index, definition in enumerate(raw):
            yield f"[{index}]", "", definition
    else:
        raise MalformedSchema(
            f"Schema root must be an object or a list, got {type(raw).__name__}",
            path="$",
        )


def _check_depth(node: Any, path: str, depth: int) -> None:
    if depth > MAX_DEPTH:
        raise MalformedSchema(f"Nesting deeper than {MAX_DEPTH} levels", path=path)
    if not isinstance(node, Mapping):
        return
    for section in ("arguments", "results", "inner"):
        children = node.get(section)
        if not isinstance(children, list):
            continue
        for index, child in enumerate(children):
            child_depth = depth + 1 if section == "inner" else depth
            _check_depth(child, f"{path}.{section}[{index}]", child_depth)


def _format_location(prefix: str, loc: Tuple[Union[str, int], ...]) -> str:
    path = prefix
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}"
    return path


def _parse_method(path: str, key: str, definition: Any) -> MethodSpec:
    if not isinstance(definition, Mapping):
        raise MalformedSchema("Method definition must be an object", path=path)
    try:
        model = RawMethod.model_validate(definition)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        raise MalformedSchema(
            first["msg"], path=_format_location(path, tuple(first["loc"]))
        ) from exc

    name = model.name if model.name is not None else key
    arguments = tuple(
        _to_argument(name, index, f"{path}.arguments[{index}]", raw)
        for index, raw in enumerate(model.arguments)
    )
    results = tuple(
        _to_result(f"{path}.results[{index}]", raw)
        for index, raw in enumerate(model.results)
    )
    return MethodSpec(
        name=name,
        category=model.category,
        description=model.description,
        arguments=arguments,
        results=results,
        versions=_to_range(path, model.since, model.until),
        examples=model.examples,
    )


def _to_argument(method: str, index: int, path: str, raw: RawArgument) -> ArgumentSpec:
    if raw.type not in ARGUMENT_TYPES:
        raise UnknownType(method, index, raw.type, path=f"{path}.type")
    return ArgumentSpec(
        names=tuple(raw.names),
        type_tag=raw.type,
        optional=raw.is_optional(),
        default=_freeze(raw.default),
        description=raw.description,
        inner=tuple(
            _to_argument(method, index, f"{path}.inner[{i}]", child)
            for i, child in enumerate(raw.inner)
        ),
        hidden=raw.hidden,
        skip_type_check=raw.skip_type_check,
        also_positional=raw.also_positional,
        maximum=raw.maximum,
    )


def _to_result(path: str, raw: RawResult) -> ResultSpec:
    versions = _to_range(path, raw.since, raw.until)
    return ResultSpec(
        type_tag=raw.type,
        optional=raw.optional,
        description=raw.description,
        condition=raw.condition,
        key_name=raw.key_name,
        inner=tuple(
            _to_result(f"{path}.inner[{i}]", child) for i, child in enumerate(raw.inner)
        ),
        since=versions.since,
        until=versions.until,
        maximum=raw.maximum,
        skip_type_check=raw.skip_type_check,
    )


def _to_range(path: str, since: Optional[str], until: Optional[str]) -> VersionRange:
    if since is None and until is None:
        return ALWAYS
    return VersionRange(
        since=_parse_bound(path, "since", since),
        until=_parse_bound(path, "until", until),
    )


def _parse_bound(path: str, key: str, value: Optional[str]) -> Optional[ProtocolVersion]:
    if value is None:
        return None
    try:
        return ProtocolVersion.parse(value)
    except ValueError as exc:
        raise MalformedSchema(str(exc), path=f"{path}.{key}") from exc


def _freeze(value: Any) -> Any:
    """Turn JSON containers into tuples so specs stay immutable."""
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, dict):
        return tuple((k, _freeze(v)) for k, v in sorted(value.items()))
    return value


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def load_schema_file(path: Union[str, Path]) -> Any:
    """Read and decode a JSON schema document from disk."""
    schema_path = Path(path)
    try:
        text = schema_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaSourceError(f"Cannot read schema: {exc}", source=str(schema_path)) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaSourceError(
            f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}",
            source=str(schema_path),
        ) from exc


def load_schema_url(
    url: str,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
) -> Any:
    """
    Fetch a schema document over HTTP.

    Args:
        url: Location of the JSON schema dump
        client: Optional preconfigured httpx client (not closed here)
        timeout: Request timeout when a client is created internally
    """
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        response = http.get(url)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError as exc:
        raise SchemaSourceError(f"Failed to fetch schema: {exc}", source=url) from exc
    except ValueError as exc:
        raise SchemaSourceError(f"Schema response is not JSON: {exc}", source=url) from exc
    finally:
        if owns_client:
            http.close()


def load_schema(source: Union[str, Path], *, client: Optional[httpx.Client] = None) -> Any:
    """Load a raw schema from a file path or an http(s) URL."""
    text = str(source)
    if text.startswith(("http://", "https://")):
        return load_schema_url(text, client=client)
    return load_schema_file(source)
