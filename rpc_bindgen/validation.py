"""
Structural and ordering checks over the normalized method model.

The validator never stops at the first defect: one pass over a version's
methods collects every finding, so a single run surfaces all schema problems.

Example:
    ```python
    report = Validator().validate(methods)
    if not report.success():
        for finding in report.errors:
            print(finding.format())
    ```
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from .errors import (
    AmbiguousResultAlternatives,
    BadOptionalOrdering,
    DuplicateArgumentAlias,
    EmptyMethodName,
    Severity,
    UnknownTypeTag,
    ValidationError,
)
from .ir import (
    ARGUMENT_TYPES,
    RESULT_ONLY_TYPES,
    ArgumentSpec,
    MethodSpec,
    ResultSpec,
    normalize_condition,
)
from .observability import get_logger


@dataclass
class ValidationReport:
    """All findings of one validation pass."""

    findings: List[ValidationError] = field(default_factory=list)

    @property
    def errors(self) -> List[ValidationError]:
        return [f for f in self.findings if f.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationError]:
        return [f for f in self.findings if f.severity == Severity.WARNING]

    def success(self, strict: bool = False) -> bool:
        """True when no errors were found (and no warnings, if strict)."""
        if strict:
            return not self.findings
        return not self.errors

    def error_count(self) -> int:
        return len(self.errors)

    def warning_count(self) -> int:
        return len(self.warnings)


class Validator:
    """
    Checks a version's methods for semantic defects.

    Errors (block emission):
    - unknown argument type tags
    - required argument after an optional one
    - duplicate argument aliases
    - empty method names

    Warnings:
    - unknown result type tags (they categorize as Unknown)
    - alternatives sharing a key name without exclusive conditions
    """

    def __init__(self):
        self.logger = get_logger(__name__)

    def validate(self, methods: Sequence[MethodSpec]) -> ValidationReport:
        report = ValidationReport()
        for index, method in enumerate(methods):
            if not method.name.strip():
                report.findings.append(EmptyMethodName(index))
            name = method.name or f"[{index}]"
            self._check_arguments(name, method.arguments, report.findings)
            self._check_results(name, f"{name}.results", method.results, report.findings)

        self.logger.debug(
            "Validated %d methods: %d errors, %d warnings",
            len(methods),
            report.error_count(),
            report.warning_count(),
        )
        return report

    def _check_arguments(
        self,
        method: str,
        arguments: Sequence[ArgumentSpec],
        findings: List[ValidationError],
    ) -> None:
        first_optional = None
        aliases: Dict[str, int] = {}
        for index, arg in enumerate(arguments):
            path = f"{method}.arguments[{index}]"
            self._check_argument_types(method, path, arg, findings)

            if arg.optional:
                if first_optional is None:
                    first_optional = arg
            elif first_optional is not None:
                findings.append(
                    BadOptionalOrdering(method, index, arg.name, first_optional.name)
                )

            for alias in arg.names:
                if alias in aliases and aliases[alias] != index:
                    findings.append(DuplicateArgumentAlias(method, alias, index, aliases[alias]))
                else:
                    aliases.setdefault(alias, index)

    def _check_argument_types(
        self,
        method: str,
        path: str,
        arg: ArgumentSpec,
        findings: List[ValidationError],
    ) -> None:
        if arg.type_tag not in ARGUMENT_TYPES:
            findings.append(UnknownTypeTag(method, arg.type_tag, f"{path}.type"))
        for index, child in enumerate(arg.inner):
            self._check_argument_types(method, f"{path}.inner[{index}]", child, findings)

    def _check_results(
        self,
        method: str,
        path: str,
        results: Sequence[ResultSpec],
        findings: List[ValidationError],
    ) -> None:
        groups: Dict[str, List[Tuple[int, ResultSpec]]] = {}
        for index, result in enumerate(results):
            result_path = f"{path}[{index}]"
            if result.type_tag not in ARGUMENT_TYPES and result.type_tag not in RESULT_ONLY_TYPES:
                findings.append(
                    UnknownTypeTag(
                        method, result.type_tag, f"{result_path}.type", severity=Severity.WARNING
                    )
                )
            groups.setdefault(result.key_name, []).append((index, result))
            if result.inner:
                self._check_results(method, f"{result_path}.inner", result.inner, findings)

        for key_name, members in groups.items():
            if len(members) < 2:
                continue
            seen: Dict[str, int] = {}
            for index, result in members:
                label = normalize_condition(result.condition)
                if not label:
                    findings.append(
                        AmbiguousResultAlternatives(
                            method,
                            key_name,
                            f"{path}[{index}].condition",
                            "missing condition",
                        )
                    )
                elif label in seen:
                    findings.append(
                        AmbiguousResultAlternatives(
                            method,
                            key_name,
                            f"{path}[{index}].condition",
                            f"condition overlaps alternative {seen[label]}",
                        )
                    )
                else:
                    seen[label] = index


def validate(methods: Sequence[MethodSpec]) -> List[ValidationError]:
    """Return the error-level findings for ``methods``; empty means valid."""
    return Validator().validate(methods).errors
