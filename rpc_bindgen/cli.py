"""
Command-line interface for rpc-bindgen.

Usage:
    rpc-bindgen generate --schema v29.1=schemas/v29.json --out ./bindings
    rpc-bindgen generate                      # versions from bindgen.toml
    rpc-bindgen diff schemas/v29.json schemas/v30.json
    rpc-bindgen categorize number fee_rate

Example:
    Generate bindings for two versions, failing on warnings:
    ```bash
    rpc-bindgen generate \\
        --schema v29.1=schemas/v29.json \\
        --schema v30.0=schemas/v30.json \\
        --out ./bindings \\
        --strict
    ```
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from .categories import CategoryContext, categorize, explain
from .config import BindgenConfig, load_config
from .errors import BindgenError, ConfigError
from .ir import ProtocolVersion
from .loader import load_schema, parse
from .observability import configure_logging
from .pipeline import Pipeline
from .versioning import diff_versions, summarize


def _parse_schema_pairs(values: List[str]) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    for value in values:
        label, sep, location = value.partition("=")
        if not sep or not label or not location:
            raise BindgenError(
                f"Expected VERSION=PATH, got {value!r}", code="BG403"
            )
        pairs[label] = location
    return pairs


def generate_command(args: argparse.Namespace) -> int:
    """Run the pipeline and write bindings."""
    config: BindgenConfig = load_config(Path(args.config) if args.config else None)
    sources = _parse_schema_pairs(args.schema) if args.schema else config.schema_sources()
    if not sources:
        print("Error: no schemas given (use --schema or a [versions] table in bindgen.toml)")
        return 2

    defaults = config.defaults
    if args.out:
        defaults = replace(defaults, out_dir=Path(args.out))
    if args.strict:
        defaults = replace(defaults, strict=True)
    if args.parallel:
        defaults = replace(defaults, parallel=True)
    if args.keep_going:
        defaults = replace(defaults, fail_on_error=False)

    print(f"Step 1/3: Loading {len(sources)} schema(s)...")
    inputs = {}
    for label, location in sources.items():
        inputs[label] = load_schema(location)
        print(f"   ✓ {label}: {location}")
    print()

    print("Step 2/3: Generating bindings...")
    pipeline = Pipeline(defaults)
    report = pipeline.run(inputs)
    for outcome in report.outcomes.values():
        mark = "✓" if outcome.ok else "✗"
        print(
            f"   {mark} {outcome.version.label}: {outcome.status.value} "
            f"({len(outcome.artifacts)} methods, {len(outcome.errors)} errors, "
            f"{len(outcome.warnings)} warnings)"
        )
        for error in outcome.errors:
            print(f"      error: {error.format()}")
        if args.verbose:
            for warning in outcome.warnings:
                print(f"      warning: {warning.format()}")
    print()

    if args.dry_run:
        print(f"Step 3/3: Dry run, {len(report.files())} files not written")
        return 0 if report.succeeded(defaults.strict) else 1

    print("Step 3/3: Writing files...")
    written = pipeline.write(report)
    print(f"   ✓ Wrote {len(written)} files to {defaults.out_dir}")
    return 0 if report.succeeded(defaults.strict) else 1


def diff_command(args: argparse.Namespace) -> int:
    """Print signature changes between two schema versions."""
    try:
        old_version = ProtocolVersion.parse(args.old_version)
        new_version = ProtocolVersion.parse(args.new_version)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    changes = diff_versions(
        old_version,
        parse(load_schema(args.old)),
        new_version,
        parse(load_schema(args.new)),
    )
    for change in changes:
        marker = "!" if change.breaking else "+"
        print(f"{marker} {change.description}")
    counts = summarize(changes)
    print(f"{len(changes)} changes, {counts['breaking']} breaking")
    return 1 if counts["breaking"] and args.fail_on_breaking else 0


def categorize_command(args: argparse.Namespace) -> int:
    """Print the category (and deciding rule) for a type tag and name."""
    context = CategoryContext(maximum=args.maximum) if args.maximum is not None else None
    category = categorize(args.type_tag, args.name, context)
    rule = explain(args.type_tag, args.name, context)
    print(category.value)
    if args.verbose and rule is not None:
        print(f"   tier {rule.tier}, pattern={rule.pattern!r}, exact={rule.exact}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpc-bindgen",
        description="Compile versioned RPC schemas into typed Python client bindings",
    )
    parser.add_argument("--log-level", help="debug, info, warning or error")
    parser.add_argument("--config", help="Path to bindgen.toml / .bindgenrc")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show warnings and details")
    subparsers = parser.add_subparsers(dest="command")

    gen_parser = subparsers.add_parser("generate", help="Generate bindings")
    gen_parser.add_argument(
        "--schema",
        action="append",
        metavar="VERSION=PATH",
        help="Schema file or URL for a protocol version (repeatable)",
    )
    gen_parser.add_argument("--out", "-o", help="Output directory (default from config)")
    gen_parser.add_argument("--strict", action="store_true", help="Treat warnings as failures")
    gen_parser.add_argument("--parallel", action="store_true", help="Process versions concurrently")
    gen_parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Write successful versions even if others fail",
    )
    gen_parser.add_argument("--dry-run", action="store_true", help="Do not write files")
    gen_parser.set_defaults(func=generate_command)

    diff_parser = subparsers.add_parser("diff", help="Diff signatures between two schemas")
    diff_parser.add_argument("old", help="Older schema file or URL")
    diff_parser.add_argument("new", help="Newer schema file or URL")
    diff_parser.add_argument("--old-version", default="0.0", help="Label of the older version")
    diff_parser.add_argument("--new-version", default="0.1", help="Label of the newer version")
    diff_parser.add_argument(
        "--fail-on-breaking", action="store_true", help="Exit 1 on breaking changes"
    )
    diff_parser.set_defaults(func=diff_command)

    cat_parser = subparsers.add_parser("categorize", help="Show the category of a field")
    cat_parser.add_argument("type_tag", help="Declared type tag, e.g. number")
    cat_parser.add_argument("name", help="Field or argument name")
    cat_parser.add_argument("--maximum", type=float, help="Upper bound of a numeric field")
    cat_parser.set_defaults(func=categorize_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if not hasattr(args, "func"):
        parser.print_help()
        return 2

    try:
        return args.func(args)
    except BindgenError as exc:
        print(f"Error: {exc.format()}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
