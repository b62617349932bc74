"""Code emission: abstract binding signatures and their renderers."""

from .core import CodeEmitter, emit
from .python import PythonRenderer
from .shapes import (
    ArrayShape,
    BindingSignature,
    FieldShape,
    GeneratedArtifact,
    ObjectShape,
    ParamShape,
    ScalarShape,
    UnionShape,
    VariantShape,
    describe,
)

__all__ = [
    "CodeEmitter",
    "emit",
    "PythonRenderer",
    "ArrayShape",
    "BindingSignature",
    "FieldShape",
    "GeneratedArtifact",
    "ObjectShape",
    "ParamShape",
    "ScalarShape",
    "UnionShape",
    "VariantShape",
    "describe",
]
