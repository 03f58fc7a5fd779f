#!/usr/bin/env python3
"""Environment sanity-check for the sets.json validator.

Checks:
- Python version (>= 3.11, needed for datetime.fromisoformat with a trailing Z)
- PyYAML and jsonschema importable, and (best-effort) matching requirements.txt pins
- Repository root discovery (run from anywhere)
"""

from __future__ import annotations

import argparse
import importlib
import platform
import sys
from importlib import metadata
from pathlib import Path


MIN_PY = (3, 11)

REQUIRED = [
    ("yaml", "PyYAML"),
    ("jsonschema", "jsonschema"),
]


def find_repo_root(start: Path) -> Path | None:
    """Walk parents until a folder holding both schemas/ and wis_tools/ is found."""
    cur = start.resolve()
    for _ in range(8):
        if (cur / "schemas").is_dir() and (cur / "wis_tools").is_dir():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    return None


def parse_pinned_requirements(req_path: Path) -> dict[str, str]:
    pinned: dict[str, str] = {}
    if not req_path.exists():
        return pinned
    for raw in req_path.read_text(encoding="utf-8").splitlines():
        line = raw.split("#", 1)[0].strip()
        # exact pins only
        if "==" in line and ">" not in line and "<" not in line:
            name, ver = line.split("==", 1)
            pinned[name.strip().lower()] = ver.strip()
    return pinned


def get_installed_version(dist_name: str) -> str | None:
    try:
        return metadata.version(dist_name)
    except metadata.PackageNotFoundError:
        return None


def check_python_version(version_info=sys.version_info) -> list[str]:
    if tuple(version_info[:2]) < MIN_PY:
        return [f"Python >= {MIN_PY[0]}.{MIN_PY[1]} required; found {version_info[0]}.{version_info[1]}."]
    return []


def check_import(module: str, pip_name: str) -> str | None:
    try:
        importlib.import_module(module)
        return None
    except ImportError as e:
        return f"Missing module '{module}'. Install '{pip_name}' (python -m pip install -e .). ({e})"


def check_pins(pinned: dict[str, str]) -> tuple[list[str], list[str]]:
    """Compare pins with installed versions. Returns (issues, warnings)."""
    issues: list[str] = []
    warnings: list[str] = []
    for name, ver in pinned.items():
        installed = get_installed_version(name)
        if installed is None:
            issues.append(f"Dependency not installed: {name}=={ver}")
        elif installed != ver:
            warnings.append(f"Version mismatch for {name}: pinned {ver}, installed {installed}")
    return issues, warnings


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Check the validator's runtime environment.")
    ap.add_argument("--repo-root", default=None, help="Repository root (contains schemas/ and wis_tools/)")
    args = ap.parse_args(argv)

    start = Path(args.repo_root) if args.repo_root else Path.cwd()
    repo = find_repo_root(start)

    print("Environment check")
    print("-" * 72)
    print(f"Repo root: {repo or 'NOT FOUND'}")
    print(f"Python: {sys.executable} ({platform.python_version()})")
    print(f"OS: {platform.system()} {platform.release()}")

    issues = check_python_version()
    if repo is None:
        issues.append(f"Could not find the repository root from {start}; pass --repo-root.")
    for mod, pip_name in REQUIRED:
        msg = check_import(mod, pip_name)
        if msg:
            issues.append(msg)

    warnings: list[str] = []
    if repo is not None:
        pin_issues, warnings = check_pins(parse_pinned_requirements(repo / "requirements.txt"))
        issues.extend(pin_issues)

    print("\nResult:")
    if issues:
        print("ENV CHECK: FAIL")
        for i in issues:
            print(f"- {i}")
        return 2
    if warnings:
        print("ENV CHECK: PASS (WARNINGS)")
        for w in warnings:
            print(f"- {w}")
    else:
        print("ENV CHECK: PASS")
    print("Next:")
    print("  python -m wis_tools.validate_sets")
    return 0


if __name__ == "__main__":
    sys.exit(main())
