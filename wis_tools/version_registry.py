"""
Version Registry
================
Maps an API version id (v1, v2, ...) to its Collection Schema.

Each version is authored once, in its own YAML rule table
(schemas/sets_v<N>.yaml). Tables are checked against
schemas/rule_table.schema.json before they are frozen into schema values,
and no two versions share schema objects. Publishing a new API version
means adding a new table; existing versions are never touched.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import jsonschema
import yaml

from wis_tools.collection_schema import CollectionSchema
from wis_tools.field_rules import make_rule
from wis_tools.record_schema import FieldSpec, RecordSchema

SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"
TABLE_SCHEMA_FILE = "rule_table.schema.json"
TABLE_GLOB = "sets_v*.yaml"

_VERSION_NUM = re.compile(r"^v(\d+)$")


class RuleTableError(ValueError):
    """A rule table is unreadable, malformed, or conflicts with the registry."""


def version_sort_key(version: str) -> tuple[int, str]:
    m = _VERSION_NUM.match(version)
    return (int(m.group(1)) if m else 1 << 30, version)


class VersionRegistry:
    def __init__(self):
        self._schemas: dict[str, CollectionSchema] = {}

    def register(self, schema: CollectionSchema) -> None:
        if schema.version in self._schemas:
            raise RuleTableError(f"Version {schema.version} is already registered")
        for other in self._schemas.values():
            if other.record_schema is schema.record_schema:
                raise RuleTableError(
                    f"Version {schema.version} shares its record schema with {other.version}"
                )
        self._schemas[schema.version] = schema

    def get(self, version: str) -> CollectionSchema:
        try:
            return self._schemas[version]
        except KeyError:
            raise KeyError(f"Unknown API version '{version}' (known: {', '.join(self.versions())})") from None

    def versions(self) -> list[str]:
        return sorted(self._schemas, key=version_sort_key)

    def __contains__(self, version: str) -> bool:
        return version in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)


# ---------------------------------------------------------------------------
# Rule table loading
# ---------------------------------------------------------------------------

def load_table_schema(schemas_dir: str | Path = SCHEMAS_DIR) -> dict:
    p = Path(schemas_dir) / TABLE_SCHEMA_FILE
    with open(p, encoding="utf-8") as f:
        return json.load(f)


def build_collection_schema(table: dict) -> CollectionSchema:
    """Freeze an already-validated rule table into a CollectionSchema."""
    version = table["version"]
    fields = []
    seen = set()
    for fdef in table["fields"]:
        name = fdef["name"]
        if name in seen:
            raise RuleTableError(f"{version}: field '{name}' is declared twice")
        seen.add(name)
        rules = []
        for rdef in fdef["rules"]:
            params = {k: v for k, v in rdef.items() if k not in ("kind", "description")}
            if rdef["kind"] == "regex-match":
                try:
                    re.compile(params["pattern"])
                except re.error as e:
                    raise RuleTableError(
                        f"{version}: field '{name}' has a bad pattern {params['pattern']!r}: {e}"
                    ) from e
            rules.append(make_rule(rdef["kind"], rdef.get("description", ""), **params))
        fields.append(FieldSpec(name=name, rules=tuple(rules)))

    length = table["length"]
    lo, hi = length.get("min"), length.get("max")
    if lo is not None and hi is not None and lo > hi:
        raise RuleTableError(f"{version}: length.min ({lo}) > length.max ({hi})")

    return CollectionSchema(
        version=version,
        document=table["document"],
        record_schema=RecordSchema(version=version, fields=tuple(fields)),
        min_length=lo,
        max_length=hi,
        length_description=length["description"],
    )


def load_rule_table(path: str | Path, table_schema: dict) -> CollectionSchema:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            table = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise RuleTableError(f"Cannot read rule table {path}: {e}") from e
    try:
        jsonschema.validate(table, table_schema)
    except jsonschema.ValidationError as e:
        raise RuleTableError(f"Rule table {path} is invalid: {e.message}") from e

    expected = path.stem.replace("sets_", "", 1)
    if table["version"] != expected:
        raise RuleTableError(f"Rule table {path.name} declares version {table['version']}, expected {expected}")
    return build_collection_schema(table)


def load_registry(schemas_dir: str | Path = SCHEMAS_DIR) -> VersionRegistry:
    schemas_dir = Path(schemas_dir)
    try:
        table_schema = load_table_schema(schemas_dir)
    except (OSError, json.JSONDecodeError) as e:
        raise RuleTableError(f"Cannot read {TABLE_SCHEMA_FILE} in {schemas_dir}: {e}") from e

    paths = sorted(schemas_dir.glob(TABLE_GLOB), key=lambda p: version_sort_key(p.stem.replace("sets_", "", 1)))
    if not paths:
        raise RuleTableError(f"No {TABLE_GLOB} rule tables found in {schemas_dir}")

    registry = VersionRegistry()
    for p in paths:
        registry.register(load_rule_table(p, table_schema))
    return registry
