"""
Python renderer - typed binding modules from abstract signatures.

Generates, per artifact, one module containing:
    1. Pydantic v2 models for object-shaped results
    2. Union aliases plus a ``<Type>Variants`` map from condition label to type
    3. A ``<Method>Mixin`` class holding the typed binding method

and, per version, package ``__init__`` files that combine every mixin into a
single ``Client`` class.

Example:
    ```python
    renderer = PythonRenderer()
    files = renderer.render_version(version, artifacts)
    # {"v29_1/__init__.py": "...", "v29_1/blockchain/getblock.py": "...", ...}
    ```

Output is deterministic: no timestamps, sorted imports, and the only
version-specific text is the version tag itself.
"""

from typing import Any, Dict, List, Sequence, Set, Tuple

from ..categories import SemanticCategory
from ..errors import NameCollision
from ..ir import ProtocolVersion
from .naming import to_class_name
from .shapes import (
    ArrayShape,
    BindingSignature,
    GeneratedArtifact,
    ObjectShape,
    ParamShape,
    ScalarShape,
    Shape,
    UnionShape,
)

RUNTIME_MODULE = "rpc_bindgen.runtime"

_C = SemanticCategory

SCALAR_ANNOTATIONS: Dict[SemanticCategory, str] = {
    _C.STRING: "str",
    _C.BOOLEAN: "bool",
    _C.NULL: "None",
    _C.FLOAT: "float",
    _C.PORT: "Port",
    _C.SMALL_INTEGER: "SmallInteger",
    _C.LARGE_INTEGER: "LargeInteger",
    _C.EXTRA_LARGE_INTEGER: "ExtraLargeInteger",
    _C.MONETARY_AMOUNT: "MonetaryAmount",
    _C.TRANSACTION_ID: "TransactionId",
    _C.BLOCK_HASH: "BlockHash",
    _C.ADDRESS: "Address",
    _C.SCRIPT: "Script",
    _C.PUBLIC_KEY: "PublicKey",
    _C.STRING_ARRAY: "List[str]",
    _C.TYPED_ARRAY: "List[Any]",
    _C.GENERIC_ARRAY: "List[Any]",
    _C.GENERIC_OBJECT: "Dict[str, Any]",
    _C.TYPED_OBJECT: "Dict[str, Any]",
    _C.DUMMY: "str",
    _C.UNKNOWN: "Any",
}

RUNTIME_ALIASES = frozenset(
    {
        "Port",
        "SmallInteger",
        "LargeInteger",
        "ExtraLargeInteger",
        "MonetaryAmount",
        "TransactionId",
        "BlockHash",
        "Address",
        "Script",
        "PublicKey",
    }
)

# Outgoing values of these categories are range-checked before the call.
CHECKED_CATEGORIES = (_C.PORT, _C.SMALL_INTEGER, _C.MONETARY_AMOUNT)

TYPING_IMPORT = "from typing import Any, Dict, List, Optional, Union"


def _doc_lines(text: str) -> List[str]:
    """Split description text into docstring-safe lines."""
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    lines = [line.rstrip() for line in text.strip().splitlines()]
    # A quote right before the closing delimiter would end the literal early.
    if lines and lines[-1].endswith('"'):
        lines[-1] = lines[-1][:-1] + '\\"'
    return lines


class PythonModelGenerator:
    """
    Generates Pydantic v2 models and union aliases from named shapes.

    Tracks the runtime aliases referenced so the module can import exactly
    what it uses.
    """

    def __init__(self, indent: str = "    "):
        self.indent = indent
        self.runtime_names: Set[str] = set()
        self.pydantic_names: Set[str] = set()

    def reset(self) -> None:
        self.runtime_names = set()
        self.pydantic_names = set()

    def annotation(self, shape: Shape) -> str:
        """Python annotation text for a shape."""
        if isinstance(shape, ScalarShape):
            text = SCALAR_ANNOTATIONS[shape.category]
            if text in RUNTIME_ALIASES:
                self.runtime_names.add(text)
            return text
        if isinstance(shape, ArrayShape):
            return f"List[{self.annotation(shape.item)}]"
        return shape.type_name

    def generate_model(self, model: ObjectShape) -> str:
        self.pydantic_names.update({"BaseModel", "ConfigDict"})
        lines = [f"class {model.type_name}(BaseModel):"]

        doc = _doc_lines(model.description)
        if len(doc) == 1:
            lines.append(f'{self.indent}"""{doc[0]}"""')
        elif doc:
            lines.append(f'{self.indent}"""')
            lines.extend(f"{self.indent}{line}" if line else "" for line in doc)
            lines.append(f'{self.indent}"""')
        else:
            lines.append(f'{self.indent}"""Model: {model.type_name}"""')
        lines.append("")
        lines.append(
            f"{self.indent}model_config = ConfigDict("
            'extra="allow", populate_by_name=True, protected_namespaces=())'
        )
        lines.append("")

        for member in model.fields:
            type_annotation = self.annotation(member.shape)
            kwargs: List[str] = []
            if member.optional:
                type_annotation = f"Optional[{type_annotation}]"
                kwargs.append("default=None")
            if member.name != member.key:
                kwargs.append(f"alias={member.key!r}")
            if member.description:
                kwargs.append(f"description={member.description!r}")

            if kwargs == ["default=None"]:
                lines.append(f"{self.indent}{member.name}: {type_annotation} = None")
            elif kwargs:
                self.pydantic_names.add("Field")
                lines.append(
                    f"{self.indent}{member.name}: {type_annotation} = Field({', '.join(kwargs)})"
                )
            else:
                lines.append(f"{self.indent}{member.name}: {type_annotation}")

        return "\n".join(lines)

    def generate_union(self, union: UnionShape) -> str:
        members: List[str] = []
        for variant in union.variants:
            text = self.annotation(variant.shape)
            if text not in members:
                members.append(text)
        if len(members) == 1:
            alias = members[0]
        else:
            alias = f"Union[{', '.join(members)}]"

        lines = [f"{union.type_name} = {alias}", ""]
        lines.append(f"{union.type_name}Variants: Dict[str, Any] = {{")
        for label, variant in _variant_keys(union):
            lines.append(f"{self.indent}{label!r}: {self.annotation(variant.shape)},")
        lines.append("}")
        return "\n".join(lines)


def _variant_keys(union: UnionShape) -> List[Tuple[str, Any]]:
    keys: List[Tuple[str, Any]] = []
    seen: Set[str] = set()
    for index, variant in enumerate(union.variants):
        label = variant.label.strip()
        if not label or label in seen:
            label = f"{label or 'alternative'} #{index + 1}"
        seen.add(label)
        keys.append((label, variant))
    return keys


class PythonBindingGenerator:
    """Generates the ``<Method>Mixin`` class carrying one typed binding."""

    def __init__(self, models: PythonModelGenerator, indent: str = "    "):
        self.models = models
        self.indent = indent
        self.needs_checks = False

    def mixin_name(self, signature: BindingSignature) -> str:
        return f"{to_class_name(signature.method)}Mixin"

    def generate_binding(self, signature: BindingSignature) -> str:
        i1 = self.indent
        i2 = self.indent * 2
        lines = [f"class {self.mixin_name(signature)}:"]
        lines.append(f'{i1}"""Binding for ``{signature.method}``."""')
        lines.append("")

        params = ["self"]
        for param in signature.params:
            text = self.models.annotation(param.shape)
            if param.optional:
                params.append(f"{param.name}: Optional[{text}] = None")
            else:
                params.append(f"{param.name}: {text}")
        header = f"{i1}def {signature.identifier}({', '.join(params)}) -> {signature.result_type_name}:"
        if len(header) <= 88:
            lines.append(header)
        else:
            lines.append(f"{i1}def {signature.identifier}(")
            lines.extend(f"{i2}{p}," for p in params)
            lines.append(f"{i1}) -> {signature.result_type_name}:")

        lines.extend(self._docstring(signature))

        for param in signature.params:
            if isinstance(param.shape, ScalarShape) and param.shape.category in CHECKED_CATEGORIES:
                self.needs_checks = True
                lines.append(
                    f"{i2}validate_numeric_value({param.name}, {param.shape.category.value!r})"
                )

        wire_order = sorted(signature.params, key=lambda p: p.position)
        call_args = ", ".join(p.name for p in wire_order)
        lines.append(
            f"{i2}return self._call({signature.method!r}, [{call_args}], "
            f"{signature.result_type_name})"
        )
        return "\n".join(lines)

    def _docstring(self, signature: BindingSignature) -> List[str]:
        i2 = self.indent * 2
        i3 = self.indent * 3
        body = _doc_lines(signature.description) or [f"Call ``{signature.method}``."]
        lines = [f'{i2}"""']
        lines.extend(f"{i2}{line}" if line else "" for line in body)
        if signature.params:
            lines.append("")
            lines.append(f"{i2}Args:")
            for param in signature.params:
                lines.append(f"{i3}{param.name}: {self._param_doc(param)}")
        lines.append(f'{i2}"""')
        return lines

    @staticmethod
    def _param_doc(param: ParamShape) -> str:
        text = " ".join(_doc_lines(param.description)) or param.wire_name
        if param.default is not None:
            text = f"{text} (server default: {param.default!r})"
        return text


class PythonRenderer:
    """
    Renders artifacts into a Python package tree, one package per version.

    Layout::

        <version.module_name>/__init__.py          combined Client
        <version.module_name>/<group>/__init__.py  group mixins
        <version.module_name>/<group>/<method>.py  one artifact
    """

    def __init__(self, indent: str = "    "):
        self.indent = indent

    def module_path(self, artifact: GeneratedArtifact) -> str:
        signature = artifact.signature
        return f"{artifact.version.module_name}/{artifact.group}/{signature.identifier}.py"

    def render(self, artifact: GeneratedArtifact) -> GeneratedArtifact:
        """Return ``artifact`` with its module source and path filled in."""
        return artifact.with_source(self.module_path(artifact), self.render_module(artifact))

    def render_module(self, artifact: GeneratedArtifact) -> str:
        signature = artifact.signature
        models = PythonModelGenerator(self.indent)
        bindings = PythonBindingGenerator(models, self.indent)

        blocks: List[str] = []
        for named in signature.types:
            if isinstance(named, ObjectShape):
                blocks.append(models.generate_model(named))
            else:
                blocks.append(models.generate_union(named))

        returns = signature.returns
        is_named = isinstance(returns, (ObjectShape, UnionShape))
        if not (is_named and returns.type_name == signature.result_type_name):
            blocks.append(f"{signature.result_type_name} = {models.annotation(returns)}")

        blocks.append(bindings.generate_binding(signature))

        runtime_names = set(models.runtime_names)
        if bindings.needs_checks:
            runtime_names.add("validate_numeric_value")

        lines = [
            '"""',
            f"Binding for the ``{signature.method}`` RPC.",
            "",
            f"Protocol version: {artifact.version.label}",
            "",
            "DO NOT EDIT: This file is auto-generated.",
            '"""',
            "",
            TYPING_IMPORT,
        ]
        if models.pydantic_names:
            lines.append("")
            lines.append(f"from pydantic import {', '.join(sorted(models.pydantic_names))}")
        if runtime_names:
            if not models.pydantic_names:
                lines.append("")
            lines.append(f"from {RUNTIME_MODULE} import {', '.join(sorted(runtime_names))}")

        for block in blocks:
            lines.append("")
            lines.append("")
            lines.append(block)
        lines.append("")
        return "\n".join(lines)

    def render_version(
        self,
        version: ProtocolVersion,
        artifacts: Sequence[GeneratedArtifact],
    ) -> Tuple[Tuple[GeneratedArtifact, ...], Dict[str, str]]:
        """
        Render every artifact of one version plus its package files.

        Returns:
            (rendered artifacts, mapping of relative path to file text)

        Raises:
            NameCollision: two methods map to the same module or mixin
        """
        rendered: List[GeneratedArtifact] = []
        files: Dict[str, str] = {}
        groups: Dict[str, List[Tuple[str, str]]] = {}
        mixins: Dict[str, str] = {}

        for artifact in sorted(artifacts, key=lambda a: (a.group, a.method)):
            result = self.render(artifact)
            mixin = f"{to_class_name(artifact.method)}Mixin"
            if result.path in files or mixin in mixins:
                other = mixins.get(mixin) or result.path
                raise NameCollision(
                    artifact.method,
                    mixin,
                    f"method '{other}'",
                    f"method '{artifact.method}'",
                    version.label,
                )
            mixins[mixin] = artifact.method
            files[result.path] = result.source
            rendered.append(result)
            groups.setdefault(artifact.group, []).append((artifact.signature.identifier, mixin))

        root = version.module_name
        for group, members in sorted(groups.items()):
            files[f"{root}/{group}/__init__.py"] = self._group_init(version, group, members)
        files[f"{root}/__init__.py"] = self._version_init(version, groups)
        return tuple(rendered), dict(sorted(files.items()))

    def _group_init(
        self, version: ProtocolVersion, group: str, members: List[Tuple[str, str]]
    ) -> str:
        lines = [
            f'"""Bindings of the ``{group}`` group for protocol version {version.label}.',
            "",
            "DO NOT EDIT: This file is auto-generated.",
            '"""',
            "",
        ]
        for module, mixin in members:
            lines.append(f"from .{module} import {mixin}")
        lines.append("")
        lines.append("__all__ = [")
        lines.extend(f'{self.indent}"{mixin}",' for _, mixin in members)
        lines.append("]")
        lines.append("")
        return "\n".join(lines)

    def _version_init(
        self, version: ProtocolVersion, groups: Dict[str, List[Tuple[str, str]]]
    ) -> str:
        i1 = self.indent
        lines = [
            '"""',
            f"Typed client for protocol version {version.label}.",
            "",
            "DO NOT EDIT: This file is auto-generated.",
            '"""',
            "",
            f"from {RUNTIME_MODULE} import BaseClient",
        ]
        all_mixins: List[str] = []
        if groups:
            lines.append("")
        for group, members in sorted(groups.items()):
            names = [mixin for _, mixin in members]
            all_mixins.extend(names)
            lines.append(f"from .{group} import {', '.join(names)}")
        lines.append("")
        lines.append(f'PROTOCOL_VERSION = "{version.label}"')
        lines.append("")
        lines.append("")
        if all_mixins:
            lines.append("class Client(")
            lines.extend(f"{i1}{name}," for name in all_mixins)
            lines.append(f"{i1}BaseClient,")
            lines.append("):")
        else:
            lines.append("class Client(BaseClient):")
        lines.append(f'{i1}"""Client exposing every binding of protocol version {version.label}."""')
        lines.append("")
        lines.append(f"{i1}protocol_version = PROTOCOL_VERSION")
        lines.append("")
        lines.append("")
        lines.append('__all__ = ["Client", "PROTOCOL_VERSION"]')
        lines.append("")
        return "\n".join(lines)
