"""
partwise strategy layer - partition assignment and export planning.

This package sits between analyze and execute, providing:
- Rule matching (pattern, classifier and partition-name routes)
- The preserve/apply/orphan assignment run
- Export grouping, part numbering and file naming

Main entry point: assignment.assign_partitions()
"""

from .assignment import (
    AssignmentResult,
    AssignmentRun,
    Phase,
    assign_partitions,
)

from .rules_engine import (
    find_matching_items,
    get_builtin_rules,
    matches_rule,
    validate_rules,
    with_builtin_rules,
)

from .naming import (
    build_file_name,
    derive_partition_code,
    normalize_export_code,
    plan_package_exports,
    plan_partition_exports,
    project_prefix,
    resolve_package_code,
)

__all__ = [
    # Assignment
    'AssignmentResult',
    'AssignmentRun',
    'Phase',
    'assign_partitions',

    # Rules engine
    'find_matching_items',
    'get_builtin_rules',
    'matches_rule',
    'validate_rules',
    'with_builtin_rules',

    # Naming
    'build_file_name',
    'derive_partition_code',
    'normalize_export_code',
    'plan_package_exports',
    'plan_partition_exports',
    'project_prefix',
    'resolve_package_code',
]
