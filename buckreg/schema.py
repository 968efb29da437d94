# buckreg/schema.py
"""
Validation of operator-authored registry tables.

This is the boundary where a raw table (parsed YAML/TOML/JSON, or a dict
handed over by a caller) becomes typed OverrideRecords. Everything downstream
assumes well-typed input.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from buckreg.recipe import OverrideRecord


class RegistryError(Exception):
    """Registry table could not be read or parsed."""


class RegistrySchemaError(RegistryError):
    """Registry table is not a valid package -> override mapping."""

    def __init__(self, issues: List[str], source: Optional[str] = None):
        self.issues = list(issues)
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"invalid patch registry{where}: " + "; ".join(self.issues))


class OverrideRecordModel(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    patches: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None
    extra_configure_args: Optional[str] = None
    pre_configure: Optional[str] = None
    src_prepare: Optional[str] = None

    def to_record(self) -> OverrideRecord:
        # unset and explicit null fields both come out absent
        return OverrideRecord(**self.model_dump(exclude_unset=True, exclude_none=True))


def _format_error(name: str, err: Dict[str, Any]) -> str:
    loc = ".".join(str(p) for p in err.get("loc", ()))
    where = f"{name}.{loc}" if loc else name
    return f"{where}: {err.get('msg')}"


def validate_table(table: Any, source: Optional[str] = None) -> Dict[str, OverrideRecord]:
    """
    Validate a raw table and return package name -> OverrideRecord.
    Collects every issue before raising RegistrySchemaError.
    """
    if table is None:
        return {}
    if not isinstance(table, Mapping):
        raise RegistrySchemaError([f"top level must be a mapping, got {type(table).__name__}"], source)

    issues: List[str] = []
    records: Dict[str, OverrideRecord] = {}
    for name, entry in table.items():
        if not isinstance(name, str) or not name:
            issues.append(f"{name!r}: package name must be a non-empty string")
            continue
        if entry is None:
            entry = {}
        if not isinstance(entry, Mapping):
            issues.append(f"{name}: override must be a mapping, got {type(entry).__name__}")
            continue
        try:
            model = OverrideRecordModel.model_validate(dict(entry))
        except ValidationError as e:
            issues.extend(_format_error(name, err) for err in e.errors())
            continue
        records[name] = model.to_record()

    if issues:
        raise RegistrySchemaError(issues, source)
    return records
