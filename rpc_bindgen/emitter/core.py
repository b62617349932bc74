"""
Code emission core: categorized methods to abstract binding signatures.

Example:
    ```python
    emitter = CodeEmitter()
    artifacts = emitter.emit(ProtocolVersion.parse("v29.1"), methods)
    for artifact in artifacts:
        print(artifact.key, describe(artifact.signature.returns))
    ```

Rules applied per method:
    - parameters: required first, then the optional suffix; trailing hidden
      arguments are omitted
    - results: only alternatives available in the version are considered;
      one alternative gives a direct type, several give a union labeled by
      condition text, keyed members give an object type
    - nested type names are qualified by method and field path, so inner and
      outer definitions never share a name
"""

from typing import Dict, List, Optional, Sequence, Tuple

from ..categories import SemanticCategory, categorize_argument, categorize_result
from ..errors import EmitError, NameCollision, UnmappableMethod
from ..ir import ArgumentSpec, MethodSpec, ProtocolVersion, ResultSpec
from ..observability import get_logger
from .naming import to_class_name, to_identifier, variant_suffix
from .shapes import (
    ArrayShape,
    BindingSignature,
    FieldShape,
    GeneratedArtifact,
    NamedShape,
    ObjectShape,
    ParamShape,
    ScalarShape,
    Shape,
    UnionShape,
    VariantShape,
    categories_used,
)

DEFAULT_GROUP = "misc"


class CodeEmitter:
    """
    Turns categorized methods into per-version artifacts.

    Holds no per-run state; every ``emit`` call is independent, so versions
    can be emitted in any order or concurrently with identical results.
    """

    def __init__(self, default_group: str = DEFAULT_GROUP):
        self.default_group = default_group
        self.logger = get_logger(__name__)

    def emit(
        self, version: ProtocolVersion, methods: Sequence[MethodSpec]
    ) -> Tuple[GeneratedArtifact, ...]:
        """
        Emit every method available in ``version``.

        Raises:
            EmitError: First emission failure, if any
        """
        artifacts, errors = self.emit_each(version, methods)
        if errors:
            raise errors[0]
        return artifacts

    def emit_each(
        self, version: ProtocolVersion, methods: Sequence[MethodSpec]
    ) -> Tuple[Tuple[GeneratedArtifact, ...], List[EmitError]]:
        """Emit all methods, collecting failures instead of raising."""
        artifacts: List[GeneratedArtifact] = []
        errors: List[EmitError] = []
        for method in methods:
            if not method.versions.contains(version):
                self.logger.debug("Skipping %s: not available in %s", method.name, version.label)
                continue
            try:
                artifacts.append(self.emit_method(version, method))
            except EmitError as exc:
                self.logger.debug("Emission failed for %s: %s", method.name, exc.message)
                errors.append(exc)
        artifacts.sort(key=lambda a: (a.group, a.method))
        return tuple(artifacts), errors

    def emit_method(self, version: ProtocolVersion, method: MethodSpec) -> GeneratedArtifact:
        group = self.group_for(method)
        signature = _MethodBuilder(version, method).build(group)
        self.logger.debug(
            "Emitted %s.%s using %s",
            group,
            method.name,
            ", ".join(c.value for c in categories_used(signature)) or "no categories",
        )
        return GeneratedArtifact(
            version=version,
            group=group,
            method=method.name,
            signature=signature,
        )

    def group_for(self, method: MethodSpec) -> str:
        if not method.category.strip():
            return self.default_group
        return to_identifier(method.category)


class _MethodBuilder:
    """Per-method working state: the named types discovered so far."""

    def __init__(self, version: ProtocolVersion, method: MethodSpec):
        self.version = version
        self.method = method
        self.base = to_class_name(method.name)
        self.types: Dict[str, NamedShape] = {}
        self.origins: Dict[str, str] = {}

    def build(self, group: str) -> BindingSignature:
        params = self._params()
        result_type_name = f"{self.base}Result"
        returns = self._returns(result_type_name)
        return BindingSignature(
            method=self.method.name,
            group=group,
            identifier=to_identifier(self.method.name),
            params=params,
            returns=returns,
            result_type_name=result_type_name,
            types=tuple(self.types.values()),
            description=self.method.description,
        )

    # -- parameters -------------------------------------------------------

    def _params(self) -> Tuple[ParamShape, ...]:
        arguments = list(self.method.arguments)
        while arguments and arguments[-1].hidden:
            arguments.pop()

        # Stable sort keeps declaration order inside each half.
        ordered = sorted(enumerate(arguments), key=lambda item: item[1].optional)
        params: List[ParamShape] = []
        seen: Dict[str, str] = {}
        for position, arg in ordered:
            name = to_identifier(arg.name)
            if name in seen:
                raise NameCollision(
                    self.method.name,
                    name,
                    f"argument '{seen[name]}'",
                    f"argument '{arg.name}'",
                    self.version.label,
                )
            seen[name] = arg.name
            params.append(
                ParamShape(
                    name=name,
                    wire_name=arg.name,
                    position=position,
                    shape=self._argument_shape(arg),
                    optional=arg.optional,
                    default=arg.default,
                    description=arg.description,
                )
            )
        return tuple(params)

    def _argument_shape(self, arg: ArgumentSpec) -> Shape:
        category = categorize_argument(arg)
        if category == SemanticCategory.STRING_ARRAY:
            return ArrayShape(ScalarShape(SemanticCategory.STRING))
        if category == SemanticCategory.TYPED_ARRAY and arg.inner:
            return ArrayShape(self._argument_shape(arg.inner[0]))
        return ScalarShape(category)

    # -- results ----------------------------------------------------------

    def _reachable(self, results: Sequence[ResultSpec]) -> List[ResultSpec]:
        return [r for r in results if r.versions.contains(self.version)]

    def _returns(self, type_name: str) -> Shape:
        if not self.method.results:
            return ScalarShape(SemanticCategory.NULL)
        reachable = self._reachable(self.method.results)
        if not reachable:
            raise UnmappableMethod(self.method.name, self.version.label)
        return self._alternatives(reachable, type_name, "results")

    def _alternatives(self, results: List[ResultSpec], type_name: str, origin: str) -> Shape:
        unkeyed = [r for r in results if not r.key_name]
        keyed = [r for r in results if r.key_name]
        if not unkeyed:
            return self._object(keyed, type_name, origin)
        if len(unkeyed) == 1 and not keyed:
            return self._result_shape(unkeyed[0], type_name, origin)
        # Keyed members mixed in with alternatives form one more object variant.
        return self._union(unkeyed, type_name, origin, extra_fields=keyed)

    def _union(
        self,
        results: List[ResultSpec],
        type_name: str,
        origin: str,
        extra_fields: Sequence[ResultSpec] = (),
    ) -> UnionShape:
        variants: List[VariantShape] = []
        used: set = set()
        for index, result in enumerate(results):
            suffix = variant_suffix(result.condition, index, used)
            shape = self._result_shape(result, type_name + suffix, f"{origin}[{index}]")
            variants.append(VariantShape(label=result.condition, shape=shape))
        if extra_fields:
            suffix = variant_suffix("", len(results), used)
            shape = self._object(list(extra_fields), type_name + suffix, origin)
            variants.append(VariantShape(label="", shape=shape))
        description = next((r.description for r in results if r.description), "")
        return self._register(UnionShape(type_name, tuple(variants), description), origin)

    def _result_shape(self, result: ResultSpec, type_name: str, origin: str) -> Shape:
        category = categorize_result(result)
        inner = self._reachable(result.inner)

        if category.is_array or result.type_tag == "array":
            if inner:
                item = self._alternatives(inner, f"{type_name}Item", f"{origin}.inner")
                return ArrayShape(item)
            if category == SemanticCategory.STRING_ARRAY:
                return ArrayShape(ScalarShape(SemanticCategory.STRING))
            return ArrayShape(ScalarShape(SemanticCategory.UNKNOWN))

        if category == SemanticCategory.TYPED_OBJECT:
            keyed = [r for r in inner if r.key_name]
            if keyed:
                return self._object(keyed, type_name, origin, result.description)
            return ScalarShape(SemanticCategory.GENERIC_OBJECT)

        return ScalarShape(category)

    def _object(
        self,
        members: List[ResultSpec],
        type_name: str,
        origin: str,
        description: str = "",
    ) -> ObjectShape:
        groups: Dict[str, List[ResultSpec]] = {}
        for member in members:
            groups.setdefault(member.key_name, []).append(member)

        fields: List[FieldShape] = []
        seen: Dict[str, str] = {}
        for key, group in groups.items():
            attr = to_identifier(key)
            if attr in seen:
                raise NameCollision(
                    self.method.name,
                    attr,
                    f"field '{seen[attr]}'",
                    f"field '{key}'",
                    self.version.label,
                )
            seen[attr] = key
            field_type = type_name + to_class_name(key)
            field_origin = f"{origin}.{key}"
            if len(group) == 1:
                shape = self._result_shape(group[0], field_type, field_origin)
            else:
                # Alternatives sharing a key become one union-typed field.
                shape = self._union(group, field_type, field_origin)
            fields.append(
                FieldShape(
                    name=attr,
                    key=key,
                    shape=shape,
                    optional=any(r.optional for r in group),
                    description=next((r.description for r in group if r.description), ""),
                )
            )
        return self._register(ObjectShape(type_name, tuple(fields), description), origin)

    def _register(self, shape: NamedShape, origin: str) -> NamedShape:
        name = shape.type_name
        if name in self.types:
            raise NameCollision(
                self.method.name, name, self.origins[name], origin, self.version.label
            )
        self.types[name] = shape
        self.origins[name] = origin
        return shape


def emit(
    version: ProtocolVersion,
    methods: Sequence[MethodSpec],
    *,
    default_group: Optional[str] = None,
) -> Tuple[GeneratedArtifact, ...]:
    """Module-level shortcut for ``CodeEmitter().emit``."""
    return CodeEmitter(default_group or DEFAULT_GROUP).emit(version, methods)
