"""
Rule matching for partwise.

Decides whether one item belongs to the partition a mapping rule targets.
A rule is routed one of three ways:

- special partition (electrical, structural, ...) -> category classifier
- empty or "-" pattern -> partition name / description words found in the
  item's Workset attribute
- otherwise -> placeholder pattern against the item's system values
"""

import re
from typing import Callable, Dict, List, Optional

from partwise.analyze import categories as cat
from partwise.analyze.classifier import (
    Predicate,
    classifier_for,
    is_electrical,
    workset_values,
)
from partwise.analyze.patterns import matches_pattern, simplify_pattern
from partwise.schemas import ELECTRICAL, NO_EXPORT, STRUCTURAL, ConfigRule, RunConfig
from partwise.state.store import Item, ModelStore

# Attribute names read from items
SYSTEM_NAME = "system_name"
SYSTEM_CLASSIFICATION = "system_classification"
SYSTEM_ABBREVIATION = "system_abbreviation"
TYPE_NAME = "type_name"

ELECTRICAL_PATTERN_KEYWORDS = ("ELT", "ELECTRICAL", "CABLE", "BUSBAR", "POWER", "LIGHTING")

DESCRIPTION_SPLIT = re.compile(r"[ ,;]+")


def _quiet(message: str) -> None:
    pass


def candidate_values(item: Item, store: ModelStore) -> List[str]:
    """
    System values a pattern is matched against, de-duplicated in order:
    classification, abbreviation, type name and, for duct/pipe-like items,
    the declared system name.
    """
    values: List[str] = [
        store.read_attribute(item, SYSTEM_CLASSIFICATION),
        store.read_attribute(item, SYSTEM_ABBREVIATION),
        store.read_attribute(item, TYPE_NAME) or store.type_display_names(item)[1],
    ]
    if item.category in cat.SYSTEM_NAME_CATEGORIES:
        values.append(store.read_attribute(item, SYSTEM_NAME))

    seen = set()
    unique = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def is_electrical_pattern(pattern: Optional[str]) -> bool:
    if not pattern:
        return False
    upper = pattern.upper()
    return any(k in upper for k in ELECTRICAL_PATTERN_KEYWORDS)


def description_words(description: Optional[str]) -> List[str]:
    """Words of a description long enough to be meaningful (more than 3 chars)."""
    return [w for w in DESCRIPTION_SPLIT.split(description or "") if len(w) > 3]


def strip_partition_prefix(partition: str, prefix: str) -> str:
    if prefix:
        return re.sub(re.escape(prefix), "", partition, flags=re.IGNORECASE)
    return partition


# ============================================================================
# MATCHING STRATEGIES
# ============================================================================

def matches_by_partition_name(
        item: Item,
        rule: ConfigRule,
        store: ModelStore,
        prefix: str = "DX_",
        log: Callable[[str], None] = _quiet,
) -> bool:
    """
    Fallback for rules without a pattern: the item's Workset attribute
    contains the partition name (prefix removed) or a description word.
    """
    bare_name = strip_partition_prefix(rule.target_partition, prefix).strip()
    words = description_words(rule.description)

    try:
        values = workset_values(item, store)
    except Exception as e:
        log(f"Warning: Error checking Workset attribute for item {item.id}: {e}")
        return False

    for value in values:
        lowered = value.lower()
        if bare_name and bare_name.lower() in lowered:
            log(f"  Item {item.id} matched by Workset attribute: '{value}' contains '{bare_name}'")
            return True
        for word in words:
            if word.lower() in lowered:
                log(f"  Item {item.id} matched by description word '{word}' in Workset attribute: '{value}'")
                return True
    return False


def matches_by_pattern(
        item: Item,
        rule: ConfigRule,
        store: ModelStore,
        log: Callable[[str], None] = _quiet,
) -> bool:
    """Placeholder pattern (or the full description) against the item's system values."""
    pattern = rule.source_pattern.strip()

    try:
        if is_electrical_pattern(pattern) and is_electrical(item, store, log):
            log(f"  MATCH (Electrical): item {item.id} is electrical")
            return True

        values = candidate_values(item, store)
    except Exception as e:
        log(f"Warning: Error checking item {item.id}: {e}")
        return False

    if not values:
        return False

    for value in values:
        if matches_pattern(value, pattern, log):
            log(f"  MATCH: item {item.id} value '{value}' matched pattern '{pattern}'")
            return True

    description = (rule.description or "").strip()
    if description:
        for value in values:
            if description.lower() in value.lower():
                log(f"  MATCH (Description): item {item.id} value '{value}' contains description")
                return True

    return False


def matches_rule(
        item: Item,
        rule: ConfigRule,
        store: ModelStore,
        classifiers: Dict[str, Predicate],
        config: RunConfig,
        log: Callable[[str], None] = _quiet,
) -> bool:
    predicate = classifier_for(rule.target_partition, classifiers)
    if predicate is not None:
        try:
            return bool(predicate(item, store, log))
        except Exception as e:
            log(f"Warning: Error classifying item {item.id} for '{rule.target_partition}': {e}")
            return False

    if not rule.has_pattern:
        return matches_by_partition_name(item, rule, store, config.partition_prefix, log)

    return matches_by_pattern(item, rule, store, log)


def find_matching_items(
        items: List[Item],
        rule: ConfigRule,
        store: ModelStore,
        classifiers: Dict[str, Predicate],
        config: RunConfig,
        log: Callable[[str], None] = _quiet,
) -> List[Item]:
    """Items matching a rule, in input order."""
    log(
        f"Searching for items matching partition '{rule.target_partition}' "
        f"with pattern '{rule.source_pattern}' in {len(items)} items..."
    )
    matched = [i for i in items if matches_rule(i, rule, store, classifiers, config, log)]
    log(f"Found {len(matched)} items for '{rule.target_partition}'")
    return matched


# ============================================================================
# RULE SET HELPERS
# ============================================================================

def get_builtin_rules(config: RunConfig) -> List[ConfigRule]:
    """Rules every run gets unless the mapping already covers them."""
    electrical = config.special_partitions.get(ELECTRICAL)
    if not electrical:
        return []
    return [ConfigRule(
        target_partition=electrical,
        source_pattern="ELT",
        description="Electrical Elements",
        export_code="ELT",
    )]


def with_builtin_rules(
        rules: List[ConfigRule],
        config: RunConfig,
        log: Callable[[str], None] = _quiet,
) -> List[ConfigRule]:
    if not config.add_default_electrical_rule:
        return list(rules)

    result = list(rules)
    targets = {r.target_partition.lower() for r in rules}
    for builtin in get_builtin_rules(config):
        if builtin.target_partition.lower() not in targets:
            result.append(builtin)
            log(f"Added default {builtin.target_partition} mapping rule")
    return result


def validate_rules(rules: List[ConfigRule], config: RunConfig) -> List[str]:
    """
    Return warnings about a rule set. Warnings never stop a run.
    """
    issues = []
    codes_by_partition: Dict[str, str] = {}

    for i, rule in enumerate(rules):
        label = f"Rule #{i + 1} ({rule.target_partition})"
        partition = rule.target_partition.lower()

        if partition == config.orphan_partition.lower():
            issues.append(f"{label}: targets the orphan partition '{config.orphan_partition}'")

        if rule.has_pattern and not simplify_pattern(rule.source_pattern) and rule.source_pattern.strip() != "*":
            issues.append(f"{label}: pattern '{rule.source_pattern}' has no literal part")

        if not rule.is_no_export and not rule.normalized_export_code:
            issues.append(f"{label}: export code '{rule.export_code}' normalizes to nothing")

        code = rule.normalized_export_code
        previous = codes_by_partition.get(partition)
        if previous is not None and previous != code and NO_EXPORT not in (previous, code):
            issues.append(
                f"{label}: partition already exported as '{previous}', "
                f"preserved items keep the first rule's code"
            )
        codes_by_partition.setdefault(partition, code)

    structural = config.special_partitions.get(STRUCTURAL)
    if structural and not any(r.target_partition.lower() == structural.lower() for r in rules):
        issues.append(f"No rule targets '{structural}'; structural items are only preserved, not sorted")

    return issues


__all__ = [
    "candidate_values",
    "description_words",
    "find_matching_items",
    "get_builtin_rules",
    "is_electrical_pattern",
    "matches_by_partition_name",
    "matches_by_pattern",
    "matches_rule",
    "validate_rules",
    "with_builtin_rules",
]
