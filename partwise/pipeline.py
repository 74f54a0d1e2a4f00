"""
Run drivers.

run_organize    preserve/apply/orphan inside one store transaction, then
                export one artifact per package group.
run_extraction  export every partition of the model as its own artifact.

Both write the run log, ExportReport.csv and RunSummary.json into the
destination directory and return a RunResult.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from partwise.analyze.categories import RELEVANT_CATEGORIES
from partwise.errors import ArtifactError, ConfigError, RuleLoadError
from partwise.execute.executor import execute_exports
from partwise.execute.journaling import RunLog, get_journal
from partwise.schemas import (
    EXPORTED,
    FAILED,
    ConfigRule,
    RunConfig,
    RunError,
    RunResult,
    TransferResult,
)
from partwise.state.io import load_config, load_rules, load_snapshot, write_run_summary
from partwise.state.store import ModelStore
from partwise.strategy.assignment import AssignmentRun
from partwise.strategy.naming import plan_package_exports, plan_partition_exports, resolve_prefix
from partwise.strategy.rules_engine import validate_rules, with_builtin_rules

ORGANIZE_LOG_NAME = "PartitionRunLog.txt"
EXTRACTION_LOG_NAME = "PartitionExtractionLog.txt"


def _synchronize(store: ModelStore, log: RunLog) -> None:
    """Synchronize failures are warnings, never fatal."""
    try:
        if store.synchronize():
            log("Synchronized model and relinquished partitions")
        else:
            log("Model is not shared, synchronize skipped")
    except Exception as e:
        log(f"Warning: synchronize failed: {e}")


def _export_outcome(exports: List[TransferResult], log: RunLog) -> RunResult:
    """
    Existing outputs skipped with overwrite off are not errors. The run fails
    when nothing was planned, or when nothing exported and some group failed.
    """
    exported = [r for r in exports if r.status == EXPORTED]
    failed = [r for r in exports if r.status == FAILED]

    if not exports:
        log("Error: no group to export")
        return RunResult(success=False, last_error=RunError("export", "No group to export"))

    if not exported and failed:
        log("Error: no group was exported successfully")
        last = failed[-1]
        return RunResult(
            success=False,
            last_error=RunError("export", f"No group was exported successfully; {last.package}: {last.error}"),
            exports=exports,
        )

    if not exported:
        log(f"All {len(exports)} outputs already exist, nothing exported")
        return RunResult(success=True, exports=exports)

    result = RunResult(success=True, exports=exports)
    if failed:
        last = failed[-1]
        result.last_error = RunError("export", f"{last.package}: {last.error}")
        log(f"Completed with errors: {len(failed)} of {len(exports)} groups failed")
    return result


def _summary(mode: str, store: Optional[ModelStore], result: RunResult) -> Dict[str, Any]:
    partition_counts: Dict[str, int] = {}
    for partition in result.partition_map.values():
        partition_counts[partition] = partition_counts.get(partition, 0) + 1

    return {
        "mode": mode,
        "model": store.title if store is not None else None,
        "success": result.success,
        "completed_with_errors": result.completed_with_errors,
        "last_error": (
            {"kind": result.last_error.kind, "message": result.last_error.message}
            if result.last_error else None
        ),
        "partitions": dict(sorted(partition_counts.items(), key=lambda kv: kv[0].lower())),
        "packages": {k: len(v) for k, v in result.package_groups.items()},
        "exports": [r.to_csv_row() for r in result.exports],
    }


def _finish(
        mode: str,
        store: Optional[ModelStore],
        result: RunResult,
        dest_dir: Path,
        log: RunLog,
        log_name: str,
) -> RunResult:
    dest_dir = Path(dest_dir)
    status = "successfully" if result.success else "with failure"
    log(f"{mode.capitalize()} run finished {status}")
    result.log_path = str(log.write(dest_dir / log_name))
    write_run_summary(dest_dir, _summary(mode, store, result))
    return result


def _configuration_failure(message: str, dest_dir: Path, log: RunLog, log_name: str, mode: str) -> RunResult:
    log(f"Configuration error: {message}")
    result = RunResult(success=False, last_error=RunError("configuration", message))
    return _finish(mode, None, result, dest_dir, log, log_name)


# ============================================================================
# ORGANIZE
# ============================================================================

def run_organize(
        store: ModelStore,
        rules: List[ConfigRule],
        dest_dir: Path,
        config: Optional[RunConfig] = None,
        log: Optional[RunLog] = None,
) -> RunResult:
    """
    Assign partitions, synchronize, and export one artifact per package group.
    """
    config = config or RunConfig()
    log = log if log is not None else RunLog()
    dest_dir = Path(dest_dir)

    log(f"Organize run on '{store.title}' with {len(rules)} rules")
    if not store.supports_partitions:
        return _configuration_failure(
            f"Model '{store.title}' does not support partitions", dest_dir, log, ORGANIZE_LOG_NAME, "organize"
        )

    rules = with_builtin_rules(rules, config, log)
    for issue in validate_rules(rules, config):
        log(f"Warning: {issue}")

    try:
        with store.transaction("Organize partitions"):
            assignment = AssignmentRun(store, rules, config, log).run()
    except Exception as e:
        log(f"Error: organize transaction failed and was rolled back: {e}")
        result = RunResult(success=False, last_error=RunError("organize", str(e)))
        return _finish("organize", store, result, dest_dir, log, ORGANIZE_LOG_NAME)

    log(
        f"Assignment done: {len(assignment.preserved)} preserved, {len(assignment.assigned)} assigned, "
        f"{len(assignment.orphaned)} orphaned, {len(assignment.unsettled)} unsettled"
    )

    _synchronize(store, log)

    jobs = plan_package_exports(assignment.package_groups, store, config, log)
    log(f"Planned {len(jobs)} exports into {dest_dir}")
    journal = get_journal(dest_dir)
    exports = execute_exports(store, jobs, dest_dir, config, journal, log)

    result = _export_outcome(exports, log)
    result.partition_map = dict(assignment.partition_map)
    result.package_groups = {k: list(v) for k, v in assignment.package_groups.items()}
    result.report_path = str(journal.path)
    return _finish("organize", store, result, dest_dir, log, ORGANIZE_LOG_NAME)


# ============================================================================
# EXTRACTION
# ============================================================================

def collect_partition_groups(store: ModelStore, log: RunLog) -> Dict[str, List[int]]:
    """Relevant items per partition. Items without category are kept and logged."""
    groups = {}
    for partition in store.partition_names():
        relevant = []
        uncategorized = 0
        for item in store.items_in_partition(partition):
            if not item.has_category:
                uncategorized += 1
                relevant.append(item.id)
            elif item.category in RELEVANT_CATEGORIES:
                relevant.append(item.id)
        if uncategorized:
            log(f"Partition {partition}: {uncategorized} items without category included")
        log(f"Partition {partition}: {len(relevant)} relevant items")
        groups[partition] = relevant
    return groups


def run_extraction(
        store: ModelStore,
        dest_dir: Path,
        config: Optional[RunConfig] = None,
        log: Optional[RunLog] = None,
) -> RunResult:
    """Export each partition to its own artifact, shared codes numbered 001, 002, ..."""
    config = config or RunConfig()
    log = log if log is not None else RunLog()
    dest_dir = Path(dest_dir)

    log(f"Extraction run on '{store.title}'")
    if not store.supports_partitions:
        return _configuration_failure(
            f"Model '{store.title}' does not support partitions", dest_dir, log, EXTRACTION_LOG_NAME, "extraction"
        )

    _synchronize(store, log)

    groups = collect_partition_groups(store, log)
    jobs = plan_partition_exports(groups, resolve_prefix(store, config), config, store.artifact_extension, log)
    log(f"Planned {len(jobs)} exports into {dest_dir}")
    journal = get_journal(dest_dir)
    exports = execute_exports(store, jobs, dest_dir, config, journal, log)

    result = _export_outcome(exports, log)
    result.package_groups = {j.package: list(j.item_ids) for j in jobs}
    result.report_path = str(journal.path)
    return _finish("extraction", store, result, dest_dir, log, EXTRACTION_LOG_NAME)


# ============================================================================
# FILE ENTRY POINTS
# ============================================================================

def load_run_config(config_path: Optional[Path], rules_path: Optional[Path]) -> RunConfig:
    """Explicit config file, else partwise.yaml next to the rules file, else defaults."""
    if config_path is not None:
        return load_config(config_path)
    if rules_path is not None:
        candidate = Path(rules_path).parent / "partwise.yaml"
        if candidate.exists():
            return load_config(candidate)
    return RunConfig()


def organize_files(
        model_path: Path,
        rules_path: Path,
        dest_dir: Path,
        config_path: Optional[Path] = None,
        log: Optional[RunLog] = None,
        overrides: Optional[Dict[str, Any]] = None,
) -> RunResult:
    """Load snapshot, rules and settings, then run_organize. Load errors fail the run before any change."""
    log = log if log is not None else RunLog()
    try:
        config = load_run_config(config_path, rules_path)
        for key, value in (overrides or {}).items():
            setattr(config, key, value)
        rules = load_rules(rules_path)
        store = load_snapshot(Path(model_path))
    except (RuleLoadError, ConfigError) as e:
        return _configuration_failure(str(e), dest_dir, log, ORGANIZE_LOG_NAME, "organize")
    except (OSError, ValueError) as e:
        return _configuration_failure(
            f"Could not load model {model_path}: {e}", dest_dir, log, ORGANIZE_LOG_NAME, "organize"
        )

    log(f"Loaded {len(rules)} rules from {Path(rules_path).name}")
    return run_organize(store, rules, dest_dir, config, log)


def extract_files(
        model_path: Path,
        dest_dir: Path,
        config_path: Optional[Path] = None,
        log: Optional[RunLog] = None,
        overrides: Optional[Dict[str, Any]] = None,
) -> RunResult:
    log = log if log is not None else RunLog()
    try:
        config = load_run_config(config_path, None)
        for key, value in (overrides or {}).items():
            setattr(config, key, value)
        store = load_snapshot(Path(model_path))
    except ConfigError as e:
        return _configuration_failure(str(e), dest_dir, log, EXTRACTION_LOG_NAME, "extraction")
    except (OSError, ValueError, ArtifactError) as e:
        return _configuration_failure(
            f"Could not load model {model_path}: {e}", dest_dir, log, EXTRACTION_LOG_NAME, "extraction"
        )

    return run_extraction(store, dest_dir, config, log)
