"""
Field Rules
===========
Data-valued rules over a single field value, plus the one evaluator that
interprets them.

A rule is a small frozen value (kind + params + description) so that a
version's rule table can be written in YAML and inspected in tests. Every
evaluation returns a RuleOutcome; bad data never raises.

Cross-record rules (membership against the previous record) receive the
full collection snapshot and the index through RuleContext instead of
keeping iteration state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Callable
from urllib.parse import urlsplit


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MISSING = object()  # field key not present in the record

MIDNIGHT_MARKER = "00:00:00.00"

RULE_KINDS = {
    "type-string",
    "type-string-or-null",
    "nonempty",
    "fixed-length",
    "uppercase-equal",
    "regex-match",
    "date-parseable",
    "midnight-time",
    "membership",
    "absence",
    "contains-field",
    "artifact-exists",
}


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldRule:
    kind: str
    description: str
    params: tuple[tuple[str, Any], ...] = ()

    def param(self, name: str, default: Any = None) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return default


@dataclass(frozen=True)
class RuleOutcome:
    passed: bool
    message: str


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at besides its own value."""
    record: Any = None
    records: tuple = ()
    index: int = 0
    resolver: Any = None  # ArtifactResolver; only artifact-exists uses it


def make_rule(kind: str, description: str = "", **params) -> FieldRule:
    if kind not in RULE_KINDS:
        raise ValueError(f"Unknown rule kind '{kind}'")
    frozen = []
    for key in sorted(params):
        value = params[key]
        if isinstance(value, list):
            value = tuple(value)
        frozen.append((key, value))
    return FieldRule(kind=kind, description=description or kind, params=tuple(frozen))


def field_value(record: Any, name: str) -> Any:
    """Field value, or MISSING when the key is absent (or the record is not an object)."""
    if isinstance(record, dict) and name in record:
        return record[name]
    return MISSING


def _present(value: Any) -> Any:
    return None if value is MISSING else value


def _describe(value: Any) -> str:
    if value is MISSING:
        return "absent"
    return repr(value)


def _with_placeholder(rule: FieldRule, value: Any) -> Any:
    placeholder = rule.param("placeholder")
    if placeholder is not None and (value is MISSING or value is None):
        return placeholder
    return value


def _ok(message: str = "ok") -> RuleOutcome:
    return RuleOutcome(True, message)


def _fail(message: str) -> RuleOutcome:
    return RuleOutcome(False, message)


# ---------------------------------------------------------------------------
# Rule kinds
# ---------------------------------------------------------------------------

def _type_string(rule, value, ctx):
    if isinstance(value, str):
        return _ok()
    return _fail(f"expected a string, got {_describe(value)}")


def _type_string_or_null(rule, value, ctx):
    if value is MISSING or value is None or isinstance(value, str):
        return _ok()
    return _fail(f"expected a string or null, got {_describe(value)}")


def _nonempty(rule, value, ctx):
    value = _with_placeholder(rule, value)
    if not isinstance(value, str):
        return _fail(f"expected a non-empty string, got {_describe(value)}")
    if len(value) == 0:
        return _fail("expected a nonzero length, got an empty string")
    return _ok()


def _fixed_length(rule, value, ctx):
    length = rule.param("length")
    if not isinstance(value, str):
        return _fail(f"expected a string of length {length}, got {_describe(value)}")
    if len(value) != length:
        return _fail(f"expected length {length}, got {len(value)} ({value!r})")
    return _ok()


def _uppercase_equal(rule, value, ctx):
    if not isinstance(value, str):
        return _fail(f"expected an uppercase string, got {_describe(value)}")
    if value != value.upper():
        return _fail(f"{value!r} != {value.upper()!r}")
    return _ok()


def _regex_match(rule, value, ctx):
    pattern = rule.param("pattern")
    if not isinstance(value, str):
        return _fail(f"expected a string matching /{pattern}/, got {_describe(value)}")
    if re.search(pattern, value) is None:
        return _fail(f"{value!r} does not match /{pattern}/")
    return _ok()


def parse_iso_datetime(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _date_parseable(rule, value, ctx):
    value = _with_placeholder(rule, value)
    if not isinstance(value, str):
        return _fail(f"expected an ISO 8601 string, got {_describe(value)}")
    if parse_iso_datetime(value) is None:
        return _fail(f"{value!r} is not an ISO 8601 datetime")
    return _ok()


def _midnight_time(rule, value, ctx):
    value = _with_placeholder(rule, value)
    marker = rule.param("marker", MIDNIGHT_MARKER)
    if not isinstance(value, str):
        return _fail(f"expected a datetime string, got {_describe(value)}")
    parsed = parse_iso_datetime(value)
    # Unparseable text is date-parseable's failure, not this rule's.
    if parsed is None:
        return _ok("not a datetime")
    if parsed.time() != time(0):
        return _fail(f"{value!r} is not at midnight (got {parsed.time().isoformat()})")
    if marker not in value:
        return _fail(f"{value!r} does not contain {marker!r}")
    return _ok()


def candidate_values(rule: FieldRule, ctx: RuleContext) -> list[Any]:
    """Resolve `record.<field>` / `previous.<field>` references in table order.

    Absent and null fields contribute no candidate, so a missing value can
    never match another missing value.
    """
    out: list[Any] = []
    for ref in rule.param("candidates", ()):
        scope, _, name = ref.partition(".")
        if scope == "record":
            value = field_value(ctx.record, name)
        elif scope == "previous":
            if ctx.index == 0:
                continue
            value = field_value(ctx.records[ctx.index - 1], name)
        else:
            raise ValueError(f"Bad candidate reference '{ref}'")
        if _present(value) is not None and value not in out:
            out.append(value)
    return out


def _membership(rule, value, ctx):
    candidates = candidate_values(rule, ctx)
    value = _present(value)
    if value in candidates:
        return _ok()
    return _fail(f"{value!r} is not one of {candidates!r}")


def _absence(rule, value, ctx):
    if value is MISSING:
        return _ok()
    return _fail(f"expected the field to be absent, got {value!r}")


def _contains_field(rule, value, ctx):
    name = rule.param("field")
    sibling = field_value(ctx.record, name)
    if not isinstance(value, str):
        return _fail(f"expected a string, got {_describe(value)}")
    if not isinstance(sibling, str) or not sibling:
        return _fail(f"sibling field '{name}' is {_describe(sibling)}")
    needle = sibling.lower() if rule.param("lowercase", False) else sibling
    haystack = urlsplit(value).path if rule.param("part", "whole") == "url-path" else value
    if needle not in haystack:
        return _fail(f"{haystack!r} does not contain {needle!r}")
    return _ok()


def _artifact_exists(rule, value, ctx):
    if ctx.resolver is None:
        return _fail("no artifact resolver configured")
    if not isinstance(value, str):
        return _fail(f"expected a URL string, got {_describe(value)}")
    path = ctx.resolver.resolve(value)
    if path is None:
        return _fail(f"{value!r} is not under {', '.join(ctx.resolver.base_urls)}")
    if not ctx.resolver.exists(path):
        return _fail(f"file not found: {path}")
    return _ok(str(path))


_EVALUATORS: dict[str, Callable[[FieldRule, Any, RuleContext], RuleOutcome]] = {
    "type-string": _type_string,
    "type-string-or-null": _type_string_or_null,
    "nonempty": _nonempty,
    "fixed-length": _fixed_length,
    "uppercase-equal": _uppercase_equal,
    "regex-match": _regex_match,
    "date-parseable": _date_parseable,
    "midnight-time": _midnight_time,
    "membership": _membership,
    "absence": _absence,
    "contains-field": _contains_field,
    "artifact-exists": _artifact_exists,
}


def evaluate_rule(rule: FieldRule, value: Any, context: RuleContext | None = None) -> RuleOutcome:
    """Evaluate one rule against one field value.

    `value` is the raw field value, or MISSING when the record lacks the key.
    """
    return _EVALUATORS[rule.kind](rule, value, context or RuleContext())
