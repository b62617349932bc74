"""
Abstract description of what to emit.

The emitter core reduces a categorized method to a ``BindingSignature``:
parameter shapes, a result shape tree and the named type definitions that
tree needs. Renderers turn these into target-language text; nothing here
knows about Python syntax.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple, Union

from ..categories import SemanticCategory
from ..ir import ProtocolVersion


@dataclass(frozen=True)
class ScalarShape:
    """A leaf value typed by its semantic category."""

    category: SemanticCategory


@dataclass(frozen=True)
class ArrayShape:
    item: "Shape"


@dataclass(frozen=True)
class FieldShape:
    """A named member of an object type."""

    name: str
    key: str
    shape: "Shape"
    optional: bool = False
    description: str = ""


@dataclass(frozen=True)
class ObjectShape:
    type_name: str
    fields: Tuple[FieldShape, ...]
    description: str = ""


@dataclass(frozen=True)
class VariantShape:
    """One alternative of a union, labeled by its opaque condition text."""

    label: str
    shape: "Shape"


@dataclass(frozen=True)
class UnionShape:
    type_name: str
    variants: Tuple[VariantShape, ...]
    description: str = ""


Shape = Union[ScalarShape, ArrayShape, ObjectShape, UnionShape]
NamedShape = Union[ObjectShape, UnionShape]


@dataclass(frozen=True)
class ParamShape:
    """
    One parameter of a binding.

    ``position`` is the wire position; ``name`` is the sanitized identifier.
    """

    name: str
    wire_name: str
    position: int
    shape: Shape
    optional: bool = False
    default: Any = None
    description: str = ""


@dataclass(frozen=True)
class BindingSignature:
    method: str
    group: str
    identifier: str
    params: Tuple[ParamShape, ...]
    returns: Shape
    result_type_name: str
    types: Tuple[NamedShape, ...] = ()
    description: str = ""

    @property
    def required_params(self) -> Tuple[ParamShape, ...]:
        return tuple(p for p in self.params if not p.optional)


@dataclass(frozen=True)
class GeneratedArtifact:
    """
    One emitted unit addressed by (version, group, method).

    ``source`` and ``path`` are filled in by a renderer.
    """

    version: ProtocolVersion
    group: str
    method: str
    signature: BindingSignature
    path: str = ""
    source: str = ""

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.version.label, self.group, self.method)

    def with_source(self, path: str, source: str) -> "GeneratedArtifact":
        return replace(self, path=path, source=source)


def iter_shapes(shape: Shape):
    """Depth-first walk over a shape tree (the shape itself included)."""
    yield shape
    if isinstance(shape, ArrayShape):
        yield from iter_shapes(shape.item)
    elif isinstance(shape, ObjectShape):
        for member in shape.fields:
            yield from iter_shapes(member.shape)
    elif isinstance(shape, UnionShape):
        for variant in shape.variants:
            yield from iter_shapes(variant.shape)


def categories_used(signature: BindingSignature) -> Tuple[SemanticCategory, ...]:
    """Sorted categories referenced by a signature's params and result."""
    found = set()
    roots = [p.shape for p in signature.params] + [signature.returns]
    for root in roots:
        for shape in iter_shapes(root):
            if isinstance(shape, ScalarShape):
                found.add(shape.category)
    return tuple(sorted(found, key=lambda c: c.value))


def describe(shape: Optional[Shape]) -> str:
    """Short, stable text form of a shape (used for diffs and logs)."""
    if shape is None:
        return "-"
    if isinstance(shape, ScalarShape):
        return shape.category.value
    if isinstance(shape, ArrayShape):
        return f"Array[{describe(shape.item)}]"
    if isinstance(shape, ObjectShape):
        inner = ", ".join(
            f"{f.key}{'?' if f.optional else ''}: {describe(f.shape)}" for f in shape.fields
        )
        return f"{{{inner}}}"
    labels = " | ".join(describe(v.shape) for v in shape.variants)
    return f"Union[{labels}]"
