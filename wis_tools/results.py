"""Validation results and report rendering.

A run produces one VersionReport per API version. Each report holds a flat
list of RuleResult rows; the tree view (version → document → record →
field → rule) is derived from those rows when printing.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

BANNER = "What's in Standard API Validator"

STATUS_PASSED = "passed"
STATUS_FAILED = "failed"
STATUS_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class RuleResult:
    version: str
    document: str
    index: int | None       # None for collection-level rules
    label: str | None       # record label (set name, or #index)
    field: str | None       # None for collection-level rules
    rule: str               # rule kind, or "array" / "length"
    description: str
    passed: bool
    message: str

    @property
    def location(self) -> str:
        loc = f"{self.version}/{self.document}"
        if self.index is not None:
            loc += f"[{self.index}]"
            if self.label:
                loc += f" {self.label}"
        if self.field:
            loc += f".{self.field}"
        return loc


@dataclass
class VersionReport:
    version: str
    document: str
    results: list[RuleResult] = field(default_factory=list)
    error: str | None = None  # set when the document could not be read at all

    @property
    def status(self) -> str:
        if self.error is not None:
            return STATUS_UNAVAILABLE
        if any(not r.passed for r in self.results):
            return STATUS_FAILED
        return STATUS_PASSED

    @property
    def failures(self) -> list[RuleResult]:
        return [r for r in self.results if not r.passed]


def exit_code(reports: list[VersionReport]) -> int:
    """0 when everything passed, 2 if any version was unavailable, else 1."""
    statuses = {r.status for r in reports}
    if STATUS_UNAVAILABLE in statuses:
        return 2
    if STATUS_FAILED in statuses:
        return 1
    return 0


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_tree(report: VersionReport, failures_only: bool = False) -> list[str]:
    lines = [report.version, f"  {report.document}"]
    if report.error is not None:
        lines.append(f"    ! unavailable: {report.error}")
        return lines

    last_record = object()
    last_field = object()
    for r in report.results:
        if failures_only and r.passed:
            continue
        indent = "    "
        if r.index is not None:
            if r.index != last_record:
                lines.append(f"    {r.label or f'#{r.index}'}")
                last_record = r.index
                last_field = object()
            if r.field != last_field:
                lines.append(f"      {r.field}")
                last_field = r.field
            indent = "        "
        mark = "✓" if r.passed else "✗"
        line = f"{indent}{mark} {r.description}"
        if not r.passed:
            line += f" — {r.message}"
        lines.append(line)
    return lines


def summary(reports: list[VersionReport]) -> list[str]:
    lines = ["=" * 70, f"  {BANNER} — VALIDATION REPORT", "=" * 70]
    total = sum(len(r.results) for r in reports)
    failures = [f for r in reports for f in r.failures]
    unavailable = [r for r in reports if r.status == STATUS_UNAVAILABLE]

    for r in reports:
        lines.append(f"  {r.version}: {r.status} ({len(r.results)} checks, {len(r.failures)} failed)")
    if unavailable:
        lines.append(f"\n❌ UNAVAILABLE ({len(unavailable)}):")
        for r in unavailable:
            lines.append(f"  • {r.version}/{r.document}: {r.error}")
    if failures:
        lines.append(f"\n❌ FAILURES ({len(failures)}):")
        for f in failures:
            lines.append(f"  • {f.location}: {f.description} — {f.message}")
    if not failures and not unavailable:
        lines.append(f"\n✅ ALL CHECKS PASSED ({total} checks)")
    else:
        lines.append(f"\n🛑 {len(failures)} FAILURE(S), {len(unavailable)} UNAVAILABLE")
    lines.append("=" * 70)
    return lines


def to_json(reports: list[VersionReport]) -> dict:
    return {
        "valid": exit_code(reports) == 0,
        "versions": [
            {
                "version": r.version,
                "document": r.document,
                "status": r.status,
                "error": r.error,
                "check_count": len(r.results),
                "failure_count": len(r.failures),
                "failures": [dict(asdict(f), location=f.location) for f in r.failures],
            }
            for r in reports
        ],
    }
