from dataclasses import fields
from pathlib import Path
from typing import Dict, Any, List, Optional
import json

import pandas as pd
import yaml

from partwise.errors import ConfigError, RuleLoadError
from partwise.schemas import ConfigRule, RunConfig
from partwise.state.store import InMemoryModelStore, Item


# ============================================================================
# MODEL SNAPSHOTS
# ============================================================================

def load_snapshot(path: Path) -> InMemoryModelStore:
    """
    Load a model snapshot JSON file into an InMemoryModelStore.

    Format:

    {
      "title": "CMPP64_Model",
      "workshared": true,
      "partitions": ["DX_HWS", "DX_QC"],
      "types": [{"id": 900, "category": "duct_curves", "name": "Round",
                 "family_name": "Round Duct", "attributes": {"Workset": "HVAC"}}],
      "items": [{"id": 1, "category": "duct_curves", "type_id": 900,
                 "partition": "Workset1", "attributes": {"system_classification": "HWS-014"}}],
      "transfer_failures": {"17": "rooms"}
    }
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Snapshot must be a JSON object; got {type(data).__name__}")

    store = InMemoryModelStore(
        title=data.get("title") or path.stem,
        path=str(path),
        workshared=bool(data.get("workshared", True)),
        partitions=data.get("partitions") or [],
    )

    for raw in data.get("types") or []:
        store.add_item(_item_from_dict(raw, is_type=True))
    for raw in data.get("items") or []:
        store.add_item(_item_from_dict(raw, is_type=False))

    for key, category in (data.get("transfer_failures") or {}).items():
        store.transfer_failures[int(key)] = category

    return store


def _item_from_dict(raw: Dict[str, Any], is_type: bool) -> Item:
    if "id" not in raw:
        raise ValueError(f"Snapshot entry without id: {raw!r}")
    return Item(
        id=int(raw["id"]),
        category=raw.get("category") or None,
        attributes={k: str(v) for k, v in (raw.get("attributes") or {}).items() if v is not None},
        type_id=int(raw["type_id"]) if raw.get("type_id") is not None else None,
        partition=raw.get("partition") or None,
        name=raw.get("name") or "",
        family_name=raw.get("family_name") or "",
        is_type=is_type,
        view_specific=bool(raw.get("view_specific", False)),
        partition_read_only=bool(raw.get("partition_read_only", False)),
    )


def _item_to_dict(item: Item) -> Dict[str, Any]:
    row: Dict[str, Any] = {"id": item.id, "category": item.category}
    if item.name:
        row["name"] = item.name
    if item.family_name:
        row["family_name"] = item.family_name
    if not item.is_type:
        row["type_id"] = item.type_id
        row["partition"] = item.partition
        if item.view_specific:
            row["view_specific"] = True
        if item.partition_read_only:
            row["partition_read_only"] = True
    row["attributes"] = dict(item.attributes)
    return row


def write_snapshot(store: InMemoryModelStore, path: Path) -> Path:
    """Write a store back out in the snapshot format read by load_snapshot."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "title": store.title,
        "workshared": store.workshared,
        "partitions": store.partition_names(),
        "types": [_item_to_dict(i) for i in store.items if i.is_type],
        "items": [_item_to_dict(i) for i in store.items if not i.is_type],
    }
    if store.transfer_failures:
        data["transfer_failures"] = {str(k): v for k, v in store.transfer_failures.items()}

    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    return path


# ============================================================================
# RULES
# ============================================================================

RULE_COLUMNS = {
    "target_partition": ("Target Partition", "Workset Name"),
    "source_pattern": ("Source Pattern", "System Name in Model File"),
    "description": ("Description", "System Description"),
    "export_code": ("Export Code", "Model iFLS/Package Code"),
}


def _read_rule_table(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path, dtype=str, keep_default_na=False)

    if suffix in (".xlsx", ".xlsm"):
        workbook = pd.ExcelFile(path)
        if not workbook.sheet_names:
            raise RuleLoadError(f"Workbook contains no worksheets: {path}")
        sheet = next(
            (name for name in workbook.sheet_names if name.strip().lower() == "mapping"),
            workbook.sheet_names[0],
        )
        return pd.read_excel(workbook, sheet_name=sheet, dtype=str).fillna("")

    raise RuleLoadError(f"Unsupported rule file type '{path.suffix}' (use .csv or .xlsx)")


def _resolve_columns(columns: List[str]) -> Dict[str, str]:
    by_lower = {str(c).strip().lower(): c for c in columns}
    resolved: Dict[str, str] = {}
    missing: List[str] = []

    for key, names in RULE_COLUMNS.items():
        match = next((by_lower[n.lower()] for n in names if n.lower() in by_lower), None)
        if match is None:
            missing.append(names[0])
        else:
            resolved[key] = match

    if missing:
        available = ", ".join(str(c).strip() for c in columns)
        raise RuleLoadError(
            f"Required columns not found: {', '.join(missing)}. Available columns: {available}"
        )
    return resolved


def load_rules(path: Path) -> List[ConfigRule]:
    """
    Load mapping rules from a CSV or Excel file.

    Rows without a target partition, or without a pattern unless the export
    code is NO EXPORT, are dropped. Raises RuleLoadError when the file is
    missing, unreadable, lacks a mandatory column, or yields no usable rule.
    """
    path = Path(path)
    if not path.exists():
        raise RuleLoadError(f"Rule file not found: {path}")

    try:
        df = _read_rule_table(path)
    except RuleLoadError:
        raise
    except (OSError, ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise RuleLoadError(f"Could not read rule file {path}: {e}") from e

    if df.empty and len(df.columns) == 0:
        raise RuleLoadError(f"Rule file is empty: {path}")

    columns = _resolve_columns(list(df.columns))

    rules: List[ConfigRule] = []
    for _, row in df.iterrows():
        rule = ConfigRule(
            target_partition=str(row[columns["target_partition"]]).strip(),
            source_pattern=str(row[columns["source_pattern"]]).strip(),
            description=str(row[columns["description"]]).strip(),
            export_code=str(row[columns["export_code"]]).strip(),
        )
        if rule.is_usable:
            rules.append(rule)

    if not rules:
        raise RuleLoadError(f"No valid mapping rules found in {path}")

    return rules


# ============================================================================
# RUN SETTINGS
# ============================================================================

def load_config(path: Optional[Path]) -> RunConfig:
    """
    Load run settings from a YAML file.

    Returns defaults when path is None. Unknown keys and wrongly typed values
    raise ConfigError.
    """
    if path is None:
        return RunConfig()

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    if raw is None:
        return RunConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    config = RunConfig()
    known = {f.name: f for f in fields(RunConfig)}

    for key, value in raw.items():
        if key not in known:
            raise ConfigError(f"{path}: unknown setting '{key}'")
        current = getattr(config, key)

        if isinstance(current, dict):
            if not isinstance(value, dict):
                raise ConfigError(f"{path}: '{key}' must be a mapping")
            merged = dict(current)
            merged.update({str(k): str(v) for k, v in value.items()})
            value = merged
        elif isinstance(current, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"{path}: '{key}' must be true or false")
        elif isinstance(current, int):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{path}: '{key}' must be a positive integer")
        elif value is not None and not isinstance(value, str):
            raise ConfigError(f"{path}: '{key}' must be a string")

        setattr(config, key, value)

    unknown_kinds = set(config.special_partitions) - {"electrical", "structural", "cleanroom", "foundation"}
    if unknown_kinds:
        raise ConfigError(f"{path}: unknown special partition kinds: {', '.join(sorted(unknown_kinds))}")

    return config


# ============================================================================
# REPORTS
# ============================================================================

def write_preview(out_dir: Path, counts: Dict[str, Any]) -> Path:
    """
    Write per-partition counts of a classification dry run.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "PreviewCounts.json"
    with path.open("w", encoding="utf-8") as f:
        json.dump(counts, f, indent=2)
    print(f"[partwise] wrote PreviewCounts.json -> {path}")
    return path


def write_run_summary(out_dir: Path, summary: Dict[str, Any]) -> Path:
    """
    Write the run summary JSON next to the run log.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "RunSummary.json"
    with path.open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)
    print(f"[partwise] wrote RunSummary.json -> {path}")
    return path
