"""
rpc-bindgen - compile versioned RPC schemas into typed Python client bindings.

Stages:
    1. ``loader``      raw schema -> MethodSpec tuple
    2. ``validation``  batch semantic checks
    3. ``categories``  (type tag, name, context) -> SemanticCategory
    4. ``emitter``     abstract binding signatures + Python renderer
    5. ``pipeline``    per-version orchestration and reporting
"""

from .categories import CategoryContext, SemanticCategory, categorize
from .emitter import CodeEmitter, GeneratedArtifact, PythonRenderer
from .errors import (
    BindgenError,
    EmitError,
    ParseError,
    PipelineError,
    ValidationError,
)
from .ir import ArgumentSpec, MethodSpec, ProtocolVersion, ResultSpec, VersionRange
from .loader import parse
from .pipeline import Pipeline, PipelineReport, VersionOutcome
from .validation import Validator, validate

__version__ = "0.1.0"

__all__ = [
    "ArgumentSpec",
    "BindgenError",
    "CategoryContext",
    "CodeEmitter",
    "EmitError",
    "GeneratedArtifact",
    "MethodSpec",
    "ParseError",
    "Pipeline",
    "PipelineError",
    "PipelineReport",
    "ProtocolVersion",
    "PythonRenderer",
    "ResultSpec",
    "SemanticCategory",
    "ValidationError",
    "Validator",
    "VersionOutcome",
    "VersionRange",
    "categorize",
    "parse",
    "validate",
]
