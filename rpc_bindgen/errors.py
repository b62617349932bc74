"""
Error types for rpc-bindgen.

Provides structured exceptions for every stage of the compiler:

    1. ``ParseError``       - raw schema does not have the expected shape
    2. ``ValidationError``  - semantic schema defects, collected in batch
    3. ``EmitError``        - defects discovered while emitting bindings
    4. ``PipelineError``    - aggregate of per-version outcomes

Every error carries a stable ``code`` plus a ``details`` mapping naming the
method, argument/result index and schema path, so a report can point back at
the defect in the source schema.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class BindgenError(Exception):
    """Base exception for all rpc-bindgen errors."""

    code: str = "BG001"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *,
        path: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        self.path = path
        self.hint = hint

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to structured dictionary."""
        data = {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }
        if self.path:
            data["path"] = self.path
        return data

    def format(self) -> str:
        meta = [part for part in (self.path, self.code) if part]
        text = self.message
        if meta:
            text = f"{text} ({'; '.join(meta)})"
        if self.hint:
            text = f"{text} Hint: {self.hint}"
        return text


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class ParseError(BindgenError):
    """Raw schema input does not conform to the expected shape."""

    code = "BG100"


class MalformedSchema(ParseError):
    """Structural violation at a schema path."""

    code = "BG101"

    def __init__(self, message: str, path: str = "$"):
        super().__init__(message, details={"path": path}, path=path)


class UnknownType(ParseError):
    """Argument type tag outside the fixed enumeration."""

    code = "BG102"

    def __init__(
        self,
        method: str,
        arg_index: int,
        type_tag: str,
        path: Optional[str] = None,
    ):
        super().__init__(
            f"Method '{method}' argument {arg_index} has unknown type '{type_tag}'",
            details={"method": method, "arg_index": arg_index, "type_tag": type_tag},
            path=path or f"{method}.arguments[{arg_index}].type",
        )
        self.method = method
        self.arg_index = arg_index
        self.type_tag = type_tag


class DuplicateMethod(ParseError):
    """Two definitions resolve to the same method name."""

    code = "BG103"

    def __init__(self, method: str, path: Optional[str] = None):
        super().__init__(
            f"Method '{method}' is defined more than once",
            details={"method": method},
            path=path or method,
        )
        self.method = method


class SchemaSourceError(BindgenError):
    """Schema input could not be read from its source."""

    code = "BG401"

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message, details={"source": source}, path=source)
        self.source = source


class ConfigError(BindgenError):
    """Invalid or inconsistent configuration."""

    code = "BG402"


# ---------------------------------------------------------------------------
# Validation findings
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """Severity of a validation finding."""

    ERROR = "error"
    WARNING = "warning"


class ValidationError(BindgenError):
    """A semantic schema defect reported by the validator."""

    code = "BG200"
    default_severity = Severity.ERROR

    def __init__(
        self,
        message: str,
        *,
        method: str,
        path: str,
        severity: Optional[Severity] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        payload = {"method": method}
        payload.update(details or {})
        super().__init__(message, details=payload, path=path)
        self.method = method
        self.severity = severity or self.default_severity

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["severity"] = self.severity.value
        return data


class BadOptionalOrdering(ValidationError):
    """A required argument follows an optional one."""

    code = "BG201"

    def __init__(self, method: str, arg_index: int, argument: str, after: str):
        super().__init__(
            f"Required argument '{argument}' of '{method}' follows optional argument '{after}'",
            method=method,
            path=f"{method}.arguments[{arg_index}]",
            details={"arg_index": arg_index, "argument": argument, "after": after},
        )
        self.arg_index = arg_index


class AmbiguousResultAlternatives(ValidationError):
    """Alternatives sharing a key name are not clearly exclusive."""

    code = "BG202"
    default_severity = Severity.WARNING

    def __init__(self, method: str, key_name: str, path: str, reason: str):
        label = f"key '{key_name}'" if key_name else "unkeyed results"
        super().__init__(
            f"Result alternatives for {label} of '{method}' are ambiguous: {reason}",
            method=method,
            path=path,
            details={"key_name": key_name, "reason": reason},
        )
        self.key_name = key_name


class UnknownTypeTag(ValidationError):
    """Declared type tag outside the known enumeration."""

    code = "BG203"

    def __init__(
        self,
        method: str,
        type_tag: str,
        path: str,
        severity: Severity = Severity.ERROR,
    ):
        super().__init__(
            f"Unknown type tag '{type_tag}' in '{method}'",
            method=method,
            path=path,
            severity=severity,
            details={"type_tag": type_tag},
        )
        self.type_tag = type_tag


class DuplicateArgumentAlias(ValidationError):
    """The same alias names two arguments of one method."""

    code = "BG204"

    def __init__(self, method: str, alias: str, arg_index: int, first_index: int):
        super().__init__(
            f"Alias '{alias}' of '{method}' is used by arguments {first_index} and {arg_index}",
            method=method,
            path=f"{method}.arguments[{arg_index}].names",
            details={"alias": alias, "arg_index": arg_index, "first_index": first_index},
        )


class EmptyMethodName(ValidationError):
    code = "BG205"

    def __init__(self, index: int):
        super().__init__(
            f"Method at position {index} has an empty name",
            method="",
            path=f"[{index}].name",
            details={"index": index},
        )


# ---------------------------------------------------------------------------
# Emission errors
# ---------------------------------------------------------------------------


class EmitError(BindgenError):
    """Emission of a method failed."""

    code = "BG300"

    def __init__(
        self,
        message: str,
        method: str,
        version: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        payload = {"method": method, "version": version}
        payload.update(details or {})
        super().__init__(message, details=payload, path=method)
        self.method = method
        self.version = version


class UnmappableMethod(EmitError):
    """Every result alternative of a method is unusable for the version."""

    code = "BG301"

    def __init__(self, method: str, version: Optional[str] = None):
        super().__init__(
            f"No result alternative of '{method}' is available in {version or 'this version'}",
            method,
            version,
        )


class NameCollision(EmitError):
    """Two distinct generated definitions resolve to the same name."""

    code = "BG302"

    def __init__(
        self,
        method: str,
        name: str,
        first: str,
        second: str,
        version: Optional[str] = None,
    ):
        super().__init__(
            f"Generated name '{name}' in '{method}' is produced by both {first} and {second}",
            method,
            version,
            details={"name": name, "first": first, "second": second},
        )
        self.name = name


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class PipelineError(BindgenError):
    """Aggregate failure of one or more protocol versions."""

    code = "BG400"

    def __init__(self, message: str, outcomes: Optional[List[Any]] = None):
        outcomes = list(outcomes or [])
        super().__init__(
            message,
            details={"outcomes": [outcome.to_dict() for outcome in outcomes]},
        )
        self.outcomes = outcomes
