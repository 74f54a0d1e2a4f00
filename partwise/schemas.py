"""
partwise data schemas

Rules, run settings, export jobs and run results shared by the strategy,
execute and state layers.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, List, Dict


# ============================================================================
# CONSTANTS
# ============================================================================

# Export code that marks a rule as "organize, never export"
NO_EXPORT = "NO EXPORT"

# Placeholder tokens, longest first
PLACEHOLDER_TOKENS = ("xxx", "xx", "x")

# Default special partitions (category/keyword classified, not pattern matched)
ELECTRICAL = "electrical"
STRUCTURAL = "structural"
CLEANROOM = "cleanroom"
FOUNDATION = "foundation"

DEFAULT_SPECIAL_PARTITIONS = {
    ELECTRICAL: "DX_ELT",
    STRUCTURAL: "DX_STB",
    CLEANROOM: "DX_RR",
    FOUNDATION: "DX_FND",
}

DEFAULT_ORPHAN_PARTITION = "DX_QC"
DEFAULT_ORPHAN_EXPORT_CODE = "QC"

# Partition name -> export code used when no rule references a partition
DEFAULT_PARTITION_CODES = {
    "DX_BDA": "B-D",
    "DX_CDA": "D-D",
    "DX_CHM": "C-S",
    "DX_CKE": "C-L",
    "DX_ELT": "E-S",
    "DX_EXH": "A-X",
    "DX_PAW": "S-D",
    "DX_PG": "G-B",
    "DX_PKW": "P-D",
    "DX_PS": "G-S",
    "DX_PWI": "U-D",
    "DX_VAC": "V-D",
    "DX_SLUR": "M-S",
    "DX_STB": "STB",
    "DX_UPW": "U-D",
    "DX_PVAC": "V-V",
    "DX_RR": "RR",
    "DX_FND": "FND",
    "DX_Sub-tool": "S-BT",
    "DX_Tool": "T-L",
}

# Normalized package code -> export code used in file names
DEFAULT_PACKAGE_CODES = {
    "B-D": "B-D",
    "D-D": "D-D",
    "C-S": "C-S",
    "C-L": "C-L",
    "E-S": "E-S",
    "ELT": "E-S",
    "A-X": "A-X",
    "S-D": "S-D",
    "G-B": "G-B",
    "P-D": "P-D",
    "G-S": "G-S",
    "U-D": "U-D",
    "V-D": "V-D",
    "M-S": "M-S",
    "V-V": "V-V",
    "STB": "STB",
}

# Export report field order (ExportReport.csv)
EXPORT_REPORT_FIELDS = [
    "Timestamp",
    "Package",
    "ExportCode",
    "Part",
    "FileName",
    "Status",
    "Requested",
    "Transferred",
    "Skipped",
    "Failed",
    "Details",
]

EXPORTED = "Exported"
FAILED = "Failed"
SKIPPED = "Skipped"


def normalize_export_code(code: Optional[str]) -> str:
    """Remove digits, the placeholder "x" and whitespace. NO EXPORT passes through."""
    if code == NO_EXPORT:
        return NO_EXPORT
    return re.sub(r"[\dx\s]+", "", code or "")


# ============================================================================
# INPUT (Configuration Loader -> Strategy Layer)
# ============================================================================

@dataclass(frozen=True)
class ConfigRule:
    """
    One row of the mapping table.

    Rules are read once per run, kept in file order and never mutated.

    Used by: state.io.load_rules -> strategy.assignment
    """
    target_partition: str
    source_pattern: str = ""
    description: str = ""
    export_code: str = ""

    @property
    def is_no_export(self) -> bool:
        return self.export_code == NO_EXPORT

    @property
    def is_usable(self) -> bool:
        """A rule needs a partition and either a pattern or the NO EXPORT sentinel."""
        if not (self.target_partition or "").strip():
            return False
        return bool((self.source_pattern or "").strip()) or self.is_no_export

    @property
    def has_pattern(self) -> bool:
        pattern = (self.source_pattern or "").strip()
        return bool(pattern) and pattern != "-"

    @property
    def normalized_export_code(self) -> str:
        return normalize_export_code(self.export_code)

    def __str__(self) -> str:
        return (
            f"Pattern: '{self.source_pattern}' -> Partition: '{self.target_partition}' "
            f"-> Package: '{self.export_code}'"
        )


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class RunConfig:
    """
    Settings for one organize or extraction run.

    Used by: commands -> pipeline -> strategy/execute layers
    """
    project_prefix: Optional[str] = None
    file_suffix: str = "MO"
    file_tag: str = "DX"
    chunk_size: int = 50
    partition_prefix: str = "DX_"
    orphan_partition: str = DEFAULT_ORPHAN_PARTITION
    orphan_export_code: str = DEFAULT_ORPHAN_EXPORT_CODE
    special_partitions: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_SPECIAL_PARTITIONS)
    )
    overwrite: bool = False
    export_orphans: bool = False
    auto_export_orphans: bool = False
    add_default_electrical_rule: bool = True
    partition_codes: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_PARTITION_CODES)
    )
    package_codes: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_PACKAGE_CODES)
    )

    def special_partition_names(self) -> List[str]:
        return list(self.special_partitions.values())


# ============================================================================
# EXPORT (Strategy Layer -> Execution)
# ============================================================================

@dataclass
class ExportJob:
    """
    One planned output artifact.

    Used by: strategy.naming -> execute.executor
    """
    package: str  # Package group key (normalized export code or partition name)
    export_code: str  # Code used in the file name
    part_number: int
    file_name: str
    item_ids: List[int]
    partition: Optional[str] = None  # Originating partition (extraction mode)


@dataclass
class TransferResult:
    """
    Outcome of exporting one package group.

    Used by: execute.transfer -> execute.executor -> journaling
    """
    package: str
    requested: int = 0
    transferred: int = 0
    skipped: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, int] = field(default_factory=dict)
    output_path: Optional[str] = None
    error: Optional[str] = None
    status: str = FAILED
    export_code: str = ""
    part_number: int = 1
    file_name: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == EXPORTED

    def to_csv_row(self) -> dict:
        """Convert to CSV row dict for ExportReport.csv."""
        details = self.error or ""
        if self.failed:
            failed_text = ", ".join(f"{k}={v}" for k, v in sorted(self.failed.items()))
            details = f"{details}; failed by category: {failed_text}" if details else (
                f"failed by category: {failed_text}"
            )
        return {
            "Package": self.package,
            "ExportCode": self.export_code,
            "Part": f"{self.part_number:03d}",
            "FileName": self.file_name,
            "Status": self.status,
            "Requested": str(self.requested),
            "Transferred": str(self.transferred),
            "Skipped": str(sum(self.skipped.values())),
            "Failed": str(sum(self.failed.values())),
            "Details": details,
        }


# ============================================================================
# RUN OUTPUT
# ============================================================================

@dataclass
class RunError:
    """Structured last error of a run."""
    kind: str  # configuration | organize | export
    message: str


@dataclass
class RunResult:
    """
    Overall result of a run.

    success is False only for configuration errors, a failed organize
    transaction, an empty export plan, or when no group exported and at
    least one failed. Outputs skipped because they already exist are not
    failures.
    """
    success: bool
    last_error: Optional[RunError] = None
    partition_map: Dict[int, str] = field(default_factory=dict)
    package_groups: Dict[str, List[int]] = field(default_factory=dict)
    exports: List[TransferResult] = field(default_factory=list)
    log_path: Optional[str] = None
    report_path: Optional[str] = None

    @property
    def exported_count(self) -> int:
        return sum(1 for r in self.exports if r.succeeded)

    @property
    def completed_with_errors(self) -> bool:
        return self.success and any(r.status == FAILED for r in self.exports)
