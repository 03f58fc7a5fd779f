"""Record Schema: the ordered field rules one API version applies to each set."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from wis_tools.field_rules import FieldRule, RuleContext, evaluate_rule, field_value
from wis_tools.results import RuleResult


@dataclass(frozen=True)
class FieldSpec:
    name: str
    rules: tuple[FieldRule, ...]


@dataclass(frozen=True)
class RecordSchema:
    version: str
    fields: tuple[FieldSpec, ...] = ()

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


def record_label(record: Any, index: int) -> str:
    name = record.get("name") if isinstance(record, dict) else None
    if isinstance(name, str) and name:
        return name
    return f"#{index}"


def validate_record(
    schema: RecordSchema,
    records: list | tuple,
    index: int,
    resolver=None,
    document: str = "",
) -> list[RuleResult]:
    """Run every field rule of `schema` against records[index].

    All rules run; a failure never stops the remaining checks.
    """
    record = records[index]
    ctx = RuleContext(record=record, records=tuple(records), index=index, resolver=resolver)
    label = record_label(record, index)
    results = []
    for spec in schema.fields:
        value = field_value(record, spec.name)
        for rule in spec.rules:
            outcome = evaluate_rule(rule, value, ctx)
            results.append(RuleResult(
                version=schema.version,
                document=document,
                index=index,
                label=label,
                field=spec.name,
                rule=rule.kind,
                description=rule.description,
                passed=outcome.passed,
                message=outcome.message,
            ))
    return results
