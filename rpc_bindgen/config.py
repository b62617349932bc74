"""Project configuration support for rpc-bindgen."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    tomllib = None  # type: ignore

CONFIG_FILENAMES = ("bindgen.toml", ".bindgenrc", "bindgen.json")


@dataclass
class BindgenDefaults:
    """Generation flags applied when not overridden on the command line."""

    out_dir: Path = Path("bindings")
    fail_on_error: bool = True
    strict: bool = False
    parallel: bool = False


@dataclass
class BindgenConfig:
    """Resolved project configuration."""

    root: Path
    defaults: BindgenDefaults = field(default_factory=BindgenDefaults)
    versions: Dict[str, str] = field(default_factory=dict)
    path: Optional[Path] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.versions

    def schema_sources(self) -> Dict[str, str]:
        """Version label to schema location, file paths made absolute."""
        sources: Dict[str, str] = {}
        for label, location in self.versions.items():
            if location.startswith(("http://", "https://")):
                sources[label] = location
                continue
            schema_path = Path(location)
            if not schema_path.is_absolute():
                schema_path = (self.root / schema_path).resolve()
            sources[label] = str(schema_path)
        return sources


def _read_json_config(path: Path) -> Dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    return json.loads(content)


def _read_toml_config(path: Path) -> Dict[str, Any]:
    if tomllib is None:
        raise RuntimeError("TOML parsing requires Python 3.11 or later.")
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _parse_defaults(data: Dict[str, Any], root: Path) -> BindgenDefaults:
    section = data.get("defaults") or {}
    if not isinstance(section, dict):
        raise ConfigError("[defaults] must be a table")
    out_dir = Path(section.get("out_dir") or BindgenDefaults.out_dir)
    if not out_dir.is_absolute():
        out_dir = (root / out_dir).resolve()
    return BindgenDefaults(
        out_dir=out_dir,
        fail_on_error=_as_bool(section.get("fail_on_error"), BindgenDefaults.fail_on_error),
        strict=_as_bool(section.get("strict"), BindgenDefaults.strict),
        parallel=_as_bool(section.get("parallel"), BindgenDefaults.parallel),
    )


def _parse_versions(data: Dict[str, Any]) -> Dict[str, str]:
    section = data.get("versions") or {}
    if not isinstance(section, dict):
        raise ConfigError("[versions] must map version labels to schema paths")
    versions: Dict[str, str] = {}
    for label, location in section.items():
        if isinstance(location, dict):
            location = location.get("schema")
        if not isinstance(location, str) or not location:
            raise ConfigError(f"Version '{label}' has no schema location")
        versions[str(label)] = location
    return versions


def locate_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start`` looking for a known config file name."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def load_config(path: Optional[Path] = None, *, start: Optional[Path] = None) -> BindgenConfig:
    """
    Load configuration from ``path`` or the nearest config file.

    A missing file yields defaults rooted at the working directory.
    """
    config_path = path or locate_config_file(start)
    if config_path is None:
        root = (start or Path.cwd()).resolve()
        return BindgenConfig(root=root, defaults=_parse_defaults({}, root))

    config_path = Path(config_path).resolve()
    try:
        if config_path.suffix == ".toml":
            data = _read_toml_config(config_path)
        else:
            data = _read_json_config(config_path)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read {config_path.name}: {exc}", path=str(config_path)) from exc

    root = config_path.parent
    return BindgenConfig(
        root=root,
        defaults=_parse_defaults(data, root),
        versions=_parse_versions(data),
        path=config_path,
        raw=data,
    )
