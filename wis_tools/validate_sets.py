#!/usr/bin/env python3
"""Validate the published sets.json documents of every API version.

Checks, per version (rules come from schemas/sets_v<N>.yaml):
  1. The document parses as a JSON array
  2. The number of sets is within the version's bounds
  3. Every set satisfies the version's field contract
  4. Cross-record rules (block continuity) hold
  5. Symbol URLs point at image files that exist

A version whose document cannot be read is reported as unavailable; the
other versions are still validated.

Usage:
  python -m wis_tools.validate_sets \\
    [--api-root api] \\
    [--artifact-root .] \\
    [--schemas-dir schemas] \\
    [--versions v3 v4] \\
    [--report output/validation_report.json] \\
    [--failures-only] [--quiet]

Exit code: 0 all checks passed, 1 some check failed, 2 a version was
unavailable or the rule tables could not be loaded.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from wis_tools.artifacts import ArtifactResolver
from wis_tools.collection_schema import malformed_result, validate_collection
from wis_tools.results import BANNER, VersionReport, exit_code, render_tree, summary, to_json
from wis_tools.version_registry import SCHEMAS_DIR, RuleTableError, VersionRegistry, load_registry

DEFAULT_API_ROOT = "api"


def validate_version(
    registry: VersionRegistry,
    version: str,
    api_root: str | Path = DEFAULT_API_ROOT,
    resolver: ArtifactResolver | None = None,
) -> VersionReport:
    """Load one version's document and run its collection schema over it."""
    schema = registry.get(version)
    report = VersionReport(version=version, document=schema.document)
    path = Path(api_root) / schema.document

    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        report.results = [malformed_result(schema, f"not UTF-8 text: {e}")]
        return report
    except OSError as e:
        report.error = f"cannot read {path}: {e.strerror or e}"
        return report

    try:
        payload = json.loads(text)
    except (ValueError, RecursionError) as e:
        report.results = [malformed_result(schema, f"not valid JSON: {e}")]
        return report

    report.results = validate_collection(schema, payload, resolver)
    return report


def validate_all(
    registry: VersionRegistry,
    versions: list[str] | None = None,
    api_root: str | Path = DEFAULT_API_ROOT,
    resolver: ArtifactResolver | None = None,
) -> list[VersionReport]:
    if resolver is None:
        resolver = ArtifactResolver(".")
    return [validate_version(registry, v, api_root, resolver) for v in (versions or registry.versions())]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Validate the versioned sets.json API documents.")
    parser.add_argument("--api-root", default=DEFAULT_API_ROOT,
                        help="Directory holding <n>/sets.json for each version (default: api)")
    parser.add_argument("--artifact-root", default=".",
                        help="Local root that symbol URLs resolve against (default: .)")
    parser.add_argument("--schemas-dir", default=str(SCHEMAS_DIR),
                        help="Directory containing sets_v*.yaml rule tables")
    parser.add_argument("--versions", nargs="+", default=None,
                        help="Only validate these versions (default: all registered)")
    parser.add_argument("--report", help="Write validation report JSON to this path")
    parser.add_argument("--failures-only", action="store_true",
                        help="Only list failing checks in the tree view")
    parser.add_argument("--quiet", action="store_true",
                        help="Print the summary only")
    args = parser.parse_args(argv)

    print(f"\n{BANNER}")
    print("-" * 70)

    try:
        registry = load_registry(args.schemas_dir)
    except RuleTableError as e:
        print(f"ERROR: {e}")
        return 2

    versions = args.versions or registry.versions()
    unknown = [v for v in versions if v not in registry]
    if unknown:
        print(f"ERROR: unknown version(s): {', '.join(unknown)} (known: {', '.join(registry.versions())})")
        return 2

    print(f"Validating: {', '.join(versions)} under {args.api_root}")
    resolver = ArtifactResolver(args.artifact_root)
    reports = validate_all(registry, versions, args.api_root, resolver)

    if not args.quiet:
        for report in reports:
            print()
            print("\n".join(render_tree(report, failures_only=args.failures_only)))
    print()
    print("\n".join(summary(reports)))

    if args.report:
        Path(args.report).parent.mkdir(parents=True, exist_ok=True)
        with open(args.report, "w", encoding="utf-8") as f:
            json.dump(to_json(reports), f, ensure_ascii=False, indent=2)
        print(f"\nReport written to {args.report}")

    return exit_code(reports)


if __name__ == "__main__":
    sys.exit(main())
