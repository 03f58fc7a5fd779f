"""Collection Schema: version-level rules over the whole sets array.

Order of checks:
  1. the document is an array (if not, nothing else runs)
  2. cardinality bounds
  3. the record schema against every element, with (snapshot, index)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from wis_tools.record_schema import RecordSchema, validate_record
from wis_tools.results import RuleResult

ARRAY_DESCRIPTION = "should be an array"


@dataclass(frozen=True)
class CollectionSchema:
    version: str
    document: str
    record_schema: RecordSchema
    min_length: int | None = None
    max_length: int | None = None
    length_description: str = "should have an allowed number of sets"

    def length_allows(self, n: int) -> bool:
        if self.min_length is not None and n < self.min_length:
            return False
        if self.max_length is not None and n > self.max_length:
            return False
        return True

    def length_bounds(self) -> str:
        lo, hi = self.min_length, self.max_length
        if lo is not None and lo == hi:
            return f"exactly {lo}"
        if lo is not None and hi is not None:
            return f"between {lo} and {hi}"
        if hi is not None:
            return f"at most {hi}"
        if lo is not None:
            return f"at least {lo}"
        return "any number"


def _collection_result(schema: CollectionSchema, rule: str, description: str,
                       passed: bool, message: str) -> RuleResult:
    return RuleResult(
        version=schema.version,
        document=schema.document,
        index=None,
        label=None,
        field=None,
        rule=rule,
        description=description,
        passed=passed,
        message=message,
    )


def malformed_result(schema: CollectionSchema, message: str) -> RuleResult:
    """The single failure reported when the document is not a JSON array."""
    return _collection_result(schema, "array", ARRAY_DESCRIPTION, False, message)


def validate_collection(schema: CollectionSchema, payload: Any, resolver=None) -> list[RuleResult]:
    if not isinstance(payload, list):
        return [malformed_result(schema, f"expected a JSON array, got {type(payload).__name__}")]

    results = [_collection_result(schema, "array", ARRAY_DESCRIPTION, True, "ok")]

    n = len(payload)
    if schema.length_allows(n):
        results.append(_collection_result(schema, "length", schema.length_description, True, f"{n} sets"))
    else:
        results.append(_collection_result(
            schema, "length", schema.length_description, False,
            f"{n} sets, expected {schema.length_bounds()}",
        ))

    snapshot = tuple(payload)
    for i in range(n):
        results.extend(validate_record(schema.record_schema, snapshot, i,
                                       resolver=resolver, document=schema.document))
    return results
