"""
Per-version orchestration: load, validate, categorize, emit, render.

Each protocol version is processed independently and produces a
``VersionOutcome``; the ``PipelineReport`` keys outcomes by version, so the
aggregate is identical whether versions run sequentially or concurrently.

Example:
    ```python
    pipeline = Pipeline(BindgenDefaults(out_dir=Path("bindings")))
    report = pipeline.run({"v29.1": raw_v29, "v30.0": raw_v30})
    pipeline.write(report)
    ```
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import BindgenDefaults
from .emitter.core import CodeEmitter
from .emitter.python import PythonRenderer
from .emitter.shapes import GeneratedArtifact
from .errors import (
    BindgenError,
    ConfigError,
    EmitError,
    ParseError,
    PipelineError,
    ValidationError,
)
from .ir import ProtocolVersion
from .loader import parse
from .observability import get_logger, log_event
from .validation import Validator

VersionKey = Union[str, ProtocolVersion]


class OutcomeStatus(str, Enum):
    """Result of one version's pass."""

    OK = "ok"
    PARSE_FAILED = "parse_failed"
    INVALID = "invalid"
    EMIT_FAILED = "emit_failed"


@dataclass
class VersionOutcome:
    """Everything one version's pass produced."""

    version: ProtocolVersion
    status: OutcomeStatus
    errors: List[BindgenError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)
    artifacts: Tuple[GeneratedArtifact, ...] = ()
    files: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version.label,
            "status": self.status.value,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "artifacts": len(self.artifacts),
        }


@dataclass
class PipelineReport:
    """Outcomes of a run, ordered by version."""

    outcomes: Dict[ProtocolVersion, VersionOutcome] = field(default_factory=dict)

    def __post_init__(self):
        self.outcomes = dict(sorted(self.outcomes.items()))

    def __getitem__(self, version: VersionKey) -> VersionOutcome:
        return self.outcomes[ProtocolVersion.coerce(version)]

    @property
    def failed(self) -> List[VersionOutcome]:
        return [o for o in self.outcomes.values() if not o.ok]

    def succeeded(self, strict: bool = False) -> bool:
        """True when every version passed (and raised no warnings, if strict)."""
        for outcome in self.outcomes.values():
            if not outcome.ok:
                return False
            if strict and outcome.warnings:
                return False
        return True

    def raise_for_failures(self, strict: bool = False) -> None:
        if self.succeeded(strict):
            return
        bad = [
            o for o in self.outcomes.values() if not o.ok or (strict and o.warnings)
        ]
        labels = ", ".join(o.version.label for o in bad)
        raise PipelineError(f"Generation failed for {labels}", outcomes=bad)

    def files(self) -> Dict[str, str]:
        """Rendered files of every successful version."""
        merged: Dict[str, str] = {}
        for outcome in self.outcomes.values():
            if outcome.ok:
                merged.update(outcome.files)
        return dict(sorted(merged.items()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded(),
            "versions": [o.to_dict() for o in self.outcomes.values()],
        }


class Pipeline:
    """
    Runs the compiler stages once per protocol version.

    A failure in one version never affects another: parse errors,
    validation errors and emission errors are recorded on that version's
    outcome. Whether the overall run counts as failed is decided when the
    report is aggregated (``succeeded`` / ``raise_for_failures``) and when
    writing (``fail_on_error``).
    """

    def __init__(
        self,
        defaults: Optional[BindgenDefaults] = None,
        *,
        emitter: Optional[CodeEmitter] = None,
        renderer: Optional[PythonRenderer] = None,
    ):
        self.defaults = defaults or BindgenDefaults()
        self.emitter = emitter or CodeEmitter()
        self.renderer = renderer or PythonRenderer()
        self.logger = get_logger(__name__)

    def run(self, inputs: Mapping[VersionKey, Any]) -> PipelineReport:
        """
        Process every (version, raw schema) pair.

        Args:
            inputs: Mapping of version label (or ProtocolVersion) to raw schema
        """
        versions = self._versions(inputs)
        if self.defaults.parallel:
            return asyncio.run(self._gather(versions))
        outcomes = {version: self.run_version(version, raw) for version, raw in versions}
        return self._report(outcomes)

    async def run_async(self, inputs: Mapping[VersionKey, Any]) -> PipelineReport:
        """Process versions concurrently in worker threads."""
        return await self._gather(self._versions(inputs))

    async def _gather(self, versions: List[Tuple[ProtocolVersion, Any]]) -> PipelineReport:
        results = await asyncio.gather(
            *(asyncio.to_thread(self.run_version, version, raw) for version, raw in versions)
        )
        return self._report({outcome.version: outcome for outcome in results})

    def _versions(self, inputs: Mapping[VersionKey, Any]) -> List[Tuple[ProtocolVersion, Any]]:
        seen: Dict[ProtocolVersion, VersionKey] = {}
        versions: List[Tuple[ProtocolVersion, Any]] = []
        for key, raw in inputs.items():
            try:
                version = ProtocolVersion.coerce(key)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
            if version in seen:
                raise ConfigError(
                    f"Protocol version {version.label} given twice ({seen[version]!r}, {key!r})"
                )
            seen[version] = key
            versions.append((version, raw))
        return versions

    def _report(self, outcomes: Dict[ProtocolVersion, VersionOutcome]) -> PipelineReport:
        report = PipelineReport(outcomes)
        log_event(
            "Pipeline finished",
            event="pipeline_finished",
            data={
                "versions": len(report.outcomes),
                "failed": [o.version.label for o in report.failed],
            },
            logger=self.logger,
        )
        return report

    def run_version(self, version: ProtocolVersion, raw: Any) -> VersionOutcome:
        """Run all stages for one version; never raises for schema defects."""
        self.logger.debug("Processing %s", version.label)

        try:
            methods = parse(raw)
        except ParseError as exc:
            return self._finish(VersionOutcome(version, OutcomeStatus.PARSE_FAILED, [exc]))

        report = Validator().validate(methods)
        if report.errors:
            return self._finish(
                VersionOutcome(
                    version, OutcomeStatus.INVALID, list(report.errors), report.warnings
                )
            )

        artifacts, emit_errors = self.emitter.emit_each(version, methods)
        if emit_errors:
            return self._finish(
                VersionOutcome(
                    version, OutcomeStatus.EMIT_FAILED, list(emit_errors), report.warnings
                )
            )

        try:
            rendered, files = self.renderer.render_version(version, artifacts)
        except EmitError as exc:
            return self._finish(
                VersionOutcome(version, OutcomeStatus.EMIT_FAILED, [exc], report.warnings)
            )

        return self._finish(
            VersionOutcome(
                version,
                OutcomeStatus.OK,
                warnings=report.warnings,
                artifacts=rendered,
                files=files,
            )
        )

    def _finish(self, outcome: VersionOutcome) -> VersionOutcome:
        level = logging.INFO if outcome.ok else logging.WARNING
        log_event(
            f"{outcome.version.label}: {outcome.status.value}",
            event="version_processed",
            data={
                "version": outcome.version.label,
                "status": outcome.status.value,
                "errors": len(outcome.errors),
                "warnings": len(outcome.warnings),
                "artifacts": len(outcome.artifacts),
            },
            level=level,
            logger=self.logger,
        )
        return outcome

    def write(self, report: PipelineReport, out_dir: Optional[Path] = None) -> List[Path]:
        """
        Write rendered files of successful versions under ``out_dir``.

        With ``fail_on_error`` set, any failed version aborts before a single
        file is written.

        Raises:
            PipelineError: a version failed and ``fail_on_error`` is set
        """
        if self.defaults.fail_on_error:
            report.raise_for_failures(self.defaults.strict)

        target_root = Path(out_dir or self.defaults.out_dir)
        written: List[Path] = []
        for relative, source in report.files().items():
            target = target_root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(source.encode("utf-8"))
            written.append(target)

        self.logger.info("Wrote %d files to %s", len(written), target_root)
        return written


def run(
    inputs: Mapping[VersionKey, Any],
    defaults: Optional[BindgenDefaults] = None,
) -> PipelineReport:
    """Module-level shortcut for ``Pipeline(defaults).run(inputs)``."""
    return Pipeline(defaults).run(inputs)
