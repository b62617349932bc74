"""
Intermediate Representation (IR) for binding generation.

Language-agnostic, immutable description of one protocol version's remote
method surface. The loader builds these objects once per pass; every later
stage (validation, categorization, emission) reads them without mutation.

Example:
    ```python
    method = MethodSpec(
        name="getblock",
        category="blockchain",
        arguments=(
            ArgumentSpec(names=("blockhash",), type_tag="hex"),
            ArgumentSpec(names=("verbosity",), type_tag="number", optional=True),
        ),
        results=(ResultSpec(type_tag="string", condition="for verbosity = 0"),),
    )
    ```
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple
import re


# Type tags an argument may declare.
ARGUMENT_TYPES = frozenset(
    {"string", "hex", "boolean", "number", "array", "object", "object-named-parameters"}
)

# Extra tags that only ever appear on results.
RESULT_ONLY_TYPES = frozenset({"none", "null", "amount"})

OBJECT_TYPES = frozenset({"object", "object-named-parameters"})

_VERSION_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?$")


@dataclass(frozen=True, order=True)
class ProtocolVersion:
    """
    A labeled protocol snapshot such as ``v29.1``.

    Ordered by (major, minor) so that outcomes and ranges compare naturally.
    """

    major: int
    minor: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    @property
    def label(self) -> str:
        return f"v{self.major}.{self.minor}"

    @property
    def module_name(self) -> str:
        """Python package name used for the version's generated tree."""
        return f"v{self.major}_{self.minor}"

    @classmethod
    def parse(cls, version_str: str) -> "ProtocolVersion":
        """Parse version from strings like 'v29.1', '29.1' or '29'."""
        match = _VERSION_RE.match(version_str.strip().lower())
        if not match:
            raise ValueError(f"Invalid protocol version: {version_str!r}")
        return cls(major=int(match.group(1)), minor=int(match.group(2) or 0))

    @classmethod
    def coerce(cls, value: "ProtocolVersion | str") -> "ProtocolVersion":
        if isinstance(value, ProtocolVersion):
            return value
        return cls.parse(str(value))


@dataclass(frozen=True)
class VersionRange:
    """Half-open availability window ``[since, until)``; ``None`` is unbounded."""

    since: Optional[ProtocolVersion] = None
    until: Optional[ProtocolVersion] = None

    def contains(self, version: ProtocolVersion) -> bool:
        if self.since is not None and version < self.since:
            return False
        if self.until is not None and version >= self.until:
            return False
        return True

    @property
    def unbounded(self) -> bool:
        return self.since is None and self.until is None


ALWAYS = VersionRange()


@dataclass(frozen=True)
class ArgumentSpec:
    """One positional argument of a method."""

    names: Tuple[str, ...]
    type_tag: str
    optional: bool = False
    default: Any = None
    description: str = ""
    inner: Tuple["ArgumentSpec", ...] = ()
    hidden: bool = False
    skip_type_check: bool = False
    also_positional: bool = False
    maximum: Optional[float] = None

    @property
    def name(self) -> str:
        """Canonical name (first alias)."""
        return self.names[0] if self.names else ""


@dataclass(frozen=True)
class ResultSpec:
    """
    One result alternative or keyed field.

    ``condition`` is an opaque label distinguishing mutually exclusive
    alternatives; it is never interpreted.
    """

    type_tag: str
    optional: bool = False
    description: str = ""
    condition: str = ""
    key_name: str = ""
    inner: Tuple["ResultSpec", ...] = ()
    since: Optional[ProtocolVersion] = None
    until: Optional[ProtocolVersion] = None
    maximum: Optional[float] = None
    skip_type_check: bool = False

    @property
    def versions(self) -> VersionRange:
        if self.since is None and self.until is None:
            return ALWAYS
        return VersionRange(self.since, self.until)


@dataclass(frozen=True)
class MethodSpec:
    """A remote method as described by one protocol version's schema."""

    name: str
    category: str = ""
    description: str = ""
    arguments: Tuple[ArgumentSpec, ...] = ()
    results: Tuple[ResultSpec, ...] = ()
    versions: VersionRange = field(default=ALWAYS)
    examples: str = ""

    @property
    def required_arguments(self) -> Tuple[ArgumentSpec, ...]:
        return tuple(arg for arg in self.arguments if not arg.optional)

    @property
    def optional_arguments(self) -> Tuple[ArgumentSpec, ...]:
        return tuple(arg for arg in self.arguments if arg.optional)


@dataclass(frozen=True)
class VersionedSchema:
    """A method set scoped to one protocol version."""

    version: ProtocolVersion
    methods: Tuple[MethodSpec, ...]

    def method(self, name: str) -> Optional[MethodSpec]:
        for method in self.methods:
            if method.name == name:
                return method
        return None

    def available(self) -> Tuple[MethodSpec, ...]:
        """Methods whose availability window contains this version."""
        return tuple(m for m in self.methods if m.versions.contains(self.version))


def normalize_condition(text: str) -> str:
    """Canonical form of a condition label used for exclusivity checks."""
    return " ".join(text.split()).casefold()
