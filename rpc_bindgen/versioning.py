"""
Cross-version signature diffing.

Compares the emitted signatures of two protocol versions and reports what
changed, flagging changes that break callers of the older bindings.

Example:
    Diff two versions:
    ```python
    differ = SignatureDiffer()
    compatible, changes = differ.check_compatibility(old_artifacts, new_artifacts)
    for change in changes:
        print(change.description)
    ```

Because categorization is deterministic, an unchanged method always yields
an identical signature, so any reported change reflects the schema itself.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .emitter.core import CodeEmitter
from .emitter.shapes import BindingSignature, GeneratedArtifact, ParamShape, describe
from .ir import MethodSpec, ProtocolVersion


class ChangeType(str, Enum):
    """Types of signature changes."""

    METHOD_ADDED = "method_added"
    METHOD_REMOVED = "method_removed"
    PARAM_ADDED = "param_added"
    PARAM_REMOVED = "param_removed"
    PARAM_TYPE_CHANGED = "param_type_changed"
    PARAM_REQUIRED_CHANGED = "param_required_changed"
    PARAM_MOVED = "param_moved"
    RETURN_CHANGED = "return_changed"


@dataclass
class SignatureChange:
    """Represents a single signature change."""

    type: ChangeType
    method: str
    param: Optional[str]
    old_value: Any
    new_value: Any
    breaking: bool
    description: str


class SignatureDiffer:
    """
    Detects binding signature changes between two versions.

    Breaking:
    - method removed
    - parameter removed, retyped, moved, or newly required
    - return type changed
    """

    def check_compatibility(
        self,
        old: Sequence[GeneratedArtifact],
        new: Sequence[GeneratedArtifact],
    ) -> Tuple[bool, List[SignatureChange]]:
        """
        Check whether bindings generated for ``new`` can replace ``old``.

        Returns:
            (is_compatible, list_of_changes)
        """
        changes = self.diff(old, new)
        return all(not c.breaking for c in changes), changes

    def diff(
        self,
        old: Sequence[GeneratedArtifact],
        new: Sequence[GeneratedArtifact],
    ) -> List[SignatureChange]:
        """All changes, ordered by method name."""
        old_map = {a.method: a.signature for a in old}
        new_map = {a.method: a.signature for a in new}
        changes: List[SignatureChange] = []

        for name in sorted(set(old_map) | set(new_map)):
            if name not in new_map:
                changes.append(
                    SignatureChange(
                        type=ChangeType.METHOD_REMOVED,
                        method=name,
                        param=None,
                        old_value=name,
                        new_value=None,
                        breaking=True,
                        description=f"Method '{name}' removed",
                    )
                )
            elif name not in old_map:
                changes.append(
                    SignatureChange(
                        type=ChangeType.METHOD_ADDED,
                        method=name,
                        param=None,
                        old_value=None,
                        new_value=name,
                        breaking=False,
                        description=f"Method '{name}' added",
                    )
                )
            else:
                changes.extend(self._diff_signature(old_map[name], new_map[name]))
        return changes

    def _diff_signature(
        self, old: BindingSignature, new: BindingSignature
    ) -> List[SignatureChange]:
        changes: List[SignatureChange] = []
        method = old.method
        old_params = {p.wire_name: p for p in old.params}
        new_params = {p.wire_name: p for p in new.params}

        for name, param in old_params.items():
            if name not in new_params:
                changes.append(
                    self._param_change(
                        ChangeType.PARAM_REMOVED, method, name, param, None, True,
                        f"Parameter '{name}' of '{method}' removed",
                    )
                )

        for name, param in new_params.items():
            if name not in old_params:
                changes.append(
                    self._param_change(
                        ChangeType.PARAM_ADDED, method, name, None, param, not param.optional,
                        f"Parameter '{name}' of '{method}' added",
                    )
                )

        for name in sorted(set(old_params) & set(new_params)):
            changes.extend(self._diff_param(method, old_params[name], new_params[name]))

        old_return = describe(old.returns)
        new_return = describe(new.returns)
        if old_return != new_return:
            changes.append(
                SignatureChange(
                    type=ChangeType.RETURN_CHANGED,
                    method=method,
                    param=None,
                    old_value=old_return,
                    new_value=new_return,
                    breaking=True,
                    description=f"Return type of '{method}' changed from {old_return} to {new_return}",
                )
            )
        return changes

    def _diff_param(
        self, method: str, old: ParamShape, new: ParamShape
    ) -> List[SignatureChange]:
        changes: List[SignatureChange] = []
        name = old.wire_name

        old_type = describe(old.shape)
        new_type = describe(new.shape)
        if old_type != new_type:
            changes.append(
                self._param_change(
                    ChangeType.PARAM_TYPE_CHANGED, method, name, old_type, new_type, True,
                    f"Parameter '{name}' of '{method}' type changed from {old_type} to {new_type}",
                )
            )

        if old.optional != new.optional:
            # Making a parameter required is breaking
            changes.append(
                self._param_change(
                    ChangeType.PARAM_REQUIRED_CHANGED, method, name,
                    not old.optional, not new.optional, not new.optional,
                    f"Parameter '{name}' of '{method}' required changed: "
                    f"{not old.optional} -> {not new.optional}",
                )
            )

        if old.position != new.position:
            changes.append(
                self._param_change(
                    ChangeType.PARAM_MOVED, method, name, old.position, new.position, True,
                    f"Parameter '{name}' of '{method}' moved from position "
                    f"{old.position} to {new.position}",
                )
            )
        return changes

    @staticmethod
    def _param_change(
        change_type: ChangeType,
        method: str,
        param: str,
        old_value: Any,
        new_value: Any,
        breaking: bool,
        description: str,
    ) -> SignatureChange:
        return SignatureChange(
            type=change_type,
            method=method,
            param=param,
            old_value=old_value,
            new_value=new_value,
            breaking=breaking,
            description=description,
        )


def diff_versions(
    old_version: ProtocolVersion,
    old_methods: Sequence[MethodSpec],
    new_version: ProtocolVersion,
    new_methods: Sequence[MethodSpec],
    emitter: Optional[CodeEmitter] = None,
) -> List[SignatureChange]:
    """Emit both method sets and diff the resulting signatures."""
    emitter = emitter or CodeEmitter()
    return SignatureDiffer().diff(
        emitter.emit(old_version, old_methods),
        emitter.emit(new_version, new_methods),
    )


def summarize(changes: Sequence[SignatureChange]) -> Dict[str, int]:
    """Counts of changes per type, plus the number of breaking ones."""
    counts: Dict[str, int] = {}
    for change in changes:
        counts[change.type.value] = counts.get(change.type.value, 0) + 1
    counts["breaking"] = sum(1 for c in changes if c.breaking)
    return counts
