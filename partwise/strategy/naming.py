"""
Export grouping and naming.

Turns package groups (organize run) or partition groups (extraction run)
into an ordered list of ExportJobs with deterministic file names:

    {prefix}_{code}_{suffix}_Part_{part:03d}_{tag}{extension}
    e.g. CMPP64_HWS_MO_Part_001_DX.json
"""

import re
from collections import Counter
from pathlib import Path
from typing import Callable, Dict, List, Optional

from partwise.schemas import NO_EXPORT, ExportJob, RunConfig, normalize_export_code
from partwise.state.store import ModelStore

DEFAULT_PROJECT_PREFIX = "Project"


def _quiet(message: str) -> None:
    pass


def _lookup(table: Dict[str, str], key: str) -> Optional[str]:
    """Exact key first, then case-insensitive."""
    if key in table:
        return table[key]
    wanted = key.lower()
    for name, value in table.items():
        if name.lower() == wanted:
            return value
    return None


# ============================================================================
# CODES
# ============================================================================

def derive_partition_code(partition: str, config: Optional[RunConfig] = None) -> str:
    """
    Export code of a partition: the partition-code table, else the first
    three characters of the name with the partition prefix removed.
    """
    config = config or RunConfig()
    mapped = _lookup(config.partition_codes, partition)
    if mapped:
        return mapped

    bare = partition
    if config.partition_prefix:
        bare = re.sub(re.escape(config.partition_prefix), "", partition, flags=re.IGNORECASE)
    bare = bare.strip()
    return bare[:3] if bare else partition


def resolve_package_code(package: str, config: Optional[RunConfig] = None) -> str:
    """Code used in the file name of a package group."""
    config = config or RunConfig()
    if package.lower() == config.orphan_export_code.lower():
        return config.orphan_export_code

    mapped = _lookup(config.package_codes, package)
    if mapped:
        return mapped

    return package.replace("4xx", "").replace("xxx", "").strip()


# ============================================================================
# FILE NAMES
# ============================================================================

def project_prefix(title: Optional[str]) -> str:
    """First "_"-separated token of the model title (or path stem)."""
    stem = Path(title or "").stem
    token = stem.split("_")[0].strip()
    return token or DEFAULT_PROJECT_PREFIX


def build_file_name(
        prefix: str,
        code: str,
        part: int,
        suffix: str = "MO",
        tag: str = "DX",
        extension: str = "",
) -> str:
    return f"{prefix}_{code}_{suffix}_Part_{part:03d}_{tag}{extension}"


def resolve_prefix(store: ModelStore, config: RunConfig) -> str:
    if config.project_prefix:
        return config.project_prefix
    return project_prefix(store.path or store.title)


# ============================================================================
# PLANNING
# ============================================================================

def plan_package_exports(
        groups: Dict[str, List[int]],
        store: ModelStore,
        config: RunConfig,
        log: Callable[[str], None] = _quiet,
) -> List[ExportJob]:
    """
    One job per non-empty package group, in group order.

    NO EXPORT groups are never planned. With export_orphans the orphan
    partition's current members are read from the store and planned under
    the orphan export code, replacing any automatically collected group.
    Part numbers stay at 001 unless two groups resolve to the same file name.
    """
    groups = dict(groups)
    if config.export_orphans:
        orphan_items = store.items_in_partition(config.orphan_partition)
        groups[config.orphan_export_code] = [i.id for i in orphan_items]
        log(f"Orphan export requested: {len(orphan_items)} items in {config.orphan_partition}")

    prefix = resolve_prefix(store, config)
    planned_names = set()
    jobs = []

    for package, item_ids in groups.items():
        if package == NO_EXPORT:
            log(f"Skipping package '{NO_EXPORT}' ({len(item_ids)} items organized only)")
            continue
        if not item_ids:
            log(f"Skipping empty package group '{package}'")
            continue

        code = resolve_package_code(package, config)
        part = 1
        file_name = build_file_name(prefix, code, part, config.file_suffix, config.file_tag,
                                    store.artifact_extension)
        while file_name in planned_names:
            part += 1
            file_name = build_file_name(prefix, code, part, config.file_suffix, config.file_tag,
                                        store.artifact_extension)
        if part > 1:
            log(f"Package '{package}' shares code '{code}' with an earlier group, using part {part:03d}")

        planned_names.add(file_name)
        jobs.append(ExportJob(
            package=package,
            export_code=code,
            part_number=part,
            file_name=file_name,
            item_ids=list(item_ids),
        ))

    return jobs


def plan_partition_exports(
        partition_groups: Dict[str, List[int]],
        prefix: str,
        config: RunConfig,
        extension: str = "",
        log: Callable[[str], None] = _quiet,
) -> List[ExportJob]:
    """
    One job per non-empty partition, partitions sorted case-insensitively.
    Partitions sharing an export code get part numbers 001, 002, ...
    """
    parts: Counter = Counter()
    jobs = []

    for partition in sorted(partition_groups, key=str.lower):
        item_ids = partition_groups[partition]
        if not item_ids:
            log(f"Skipping empty partition '{partition}'")
            continue

        code = derive_partition_code(partition, config)
        parts[code] += 1
        part = parts[code]
        jobs.append(ExportJob(
            package=partition,
            export_code=code,
            part_number=part,
            file_name=build_file_name(prefix, code, part, config.file_suffix, config.file_tag, extension),
            item_ids=list(item_ids),
            partition=partition,
        ))

    return jobs


__all__ = [
    "build_file_name",
    "derive_partition_code",
    "normalize_export_code",
    "plan_package_exports",
    "plan_partition_exports",
    "project_prefix",
    "resolve_package_code",
    "resolve_prefix",
]
