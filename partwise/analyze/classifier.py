"""
Category and keyword classification for the special partitions.

Electrical, structural, cleanroom-partition and foundation items are not
recognised by their system name but by category plus keywords in the free
text "Workset" attribute. Each special partition has one predicate
(item, store, log) -> bool, registered in SPECIAL_CLASSIFIERS under its
kind. build_classifier_table() turns the kinds into a lookup keyed by the
configured partition names.
"""

from typing import Callable, Dict, Iterable, List, Optional

from partwise.analyze import categories as cat
from partwise.schemas import CLEANROOM, ELECTRICAL, FOUNDATION, STRUCTURAL, RunConfig
from partwise.state.store import Item, ModelStore

WORKSET_ATTRIBUTE = "Workset"

NON_ELECTRICAL_KEYWORDS = ("Fire", "HVAC", "Plumbing", "NOT ELECTRICAL")
STRUCTURAL_KEYWORDS = ("Steel", "Structure", "Structural", "STB", "Frame", "Column", "Beam", "Foundation")
CLEANROOM_KEYWORDS = ("Cleanroom", "Partition", "RR", "Clean Room", "Wall")
FOUNDATION_KEYWORDS = ("Foundation", "Pedestal", "FND", "Tool", "Base")

Predicate = Callable[[Item, ModelStore, Callable[[str], None]], bool]

SPECIAL_CLASSIFIERS: Dict[str, Predicate] = {}


def _quiet(message: str) -> None:
    pass


def register_classifier(kind: str):
    """Register a predicate for a special partition kind."""
    def decorator(fn: Predicate) -> Predicate:
        SPECIAL_CLASSIFIERS[kind] = fn
        return fn
    return decorator


def contains_keyword(value: Optional[str], keywords: Iterable[str]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return any(k.lower() in lowered for k in keywords)


def workset_values(item: Item, store: ModelStore, type_first: bool = False) -> List[str]:
    """Non-empty Workset attribute values of the item and its type."""
    readers = [store.read_attribute, store.read_type_attribute]
    if type_first:
        readers.reverse()
    values = []
    for read in readers:
        value = read(item, WORKSET_ATTRIBUTE)
        if value:
            values.append(value)
    return values


# ============================================================================
# ELECTRICAL
# ============================================================================

@register_classifier(ELECTRICAL)
def is_electrical(item: Item, store: ModelStore, log: Callable[[str], None] = _quiet) -> bool:
    if item.category not in cat.ELECTRICAL_CATEGORIES:
        return False
    if item.category in cat.CABLE_TRAY_CATEGORIES:
        return _cable_tray_is_electrical(item, store, log)
    return True


def _cable_tray_is_electrical(item: Item, store: ModelStore, log: Callable[[str], None]) -> bool:
    try:
        value = store.read_type_attribute(item, WORKSET_ATTRIBUTE)
    except Exception as e:
        log(f"Warning: Error checking cable tray workset attribute for item {item.id}: {e}")
        return True

    if not value:
        log(f"  Cable tray {item.id} - no Workset attribute found, defaulting to electrical")
        return True

    log(f"  Cable tray {item.id} has Workset attribute: '{value}'")
    return not contains_keyword(value, NON_ELECTRICAL_KEYWORDS)


# ============================================================================
# STRUCTURAL
# ============================================================================

@register_classifier(STRUCTURAL)
def is_structural(item: Item, store: ModelStore, log: Callable[[str], None] = _quiet) -> bool:
    """
    Pure structural categories are structural unless a Workset attribute
    says otherwise. Generic models need a keyword (is_generic_structural).
    """
    if item.category == cat.GENERIC_MODEL:
        return is_generic_structural(item, store, log)
    if item.category not in cat.PURE_STRUCTURAL_CATEGORIES:
        return False

    try:
        values = workset_values(item, store)
    except Exception as e:
        log(f"Warning: Error checking structural workset attribute for item {item.id}: {e}")
        return False

    if not values:
        log(f"    Pure structural category, defaulting to true: {item.category}")
        return True

    if any(contains_keyword(v, STRUCTURAL_KEYWORDS) for v in values):
        log(f"    MATCH: structural keyword in Workset attribute of item {item.id}")
        return True

    log(f"    No structural keyword for item {item.id} (Workset: {', '.join(values)})")
    return False


def is_generic_structural(item: Item, store: ModelStore, log: Callable[[str], None] = _quiet) -> bool:
    """Generic model counts as structural by Workset keyword or family/type name."""
    if item.category != cat.GENERIC_MODEL:
        return False

    try:
        for value in workset_values(item, store):
            if contains_keyword(value, STRUCTURAL_KEYWORDS):
                log(f"  Generic model {item.id} is structural by Workset attribute: '{value}'")
                return True

        family_name, type_name = store.type_display_names(item)
        if contains_keyword(family_name, STRUCTURAL_KEYWORDS) or contains_keyword(type_name, STRUCTURAL_KEYWORDS):
            log(f"  Generic model {item.id} is structural by family/type name: '{family_name}' / '{type_name}'")
            return True
    except Exception as e:
        log(f"Warning: Error checking if generic model {item.id} is structural: {e}")

    return False


# ============================================================================
# CLEANROOM / FOUNDATION
# ============================================================================

def _has_workset_keyword(item: Item, store: ModelStore, keywords, log: Callable[[str], None]) -> bool:
    try:
        for value in workset_values(item, store):
            if contains_keyword(value, keywords):
                log(f"  Item {item.id} matched Workset attribute: '{value}'")
                return True
    except Exception as e:
        log(f"Warning: Error checking Workset attribute for item {item.id}: {e}")
    return False


@register_classifier(CLEANROOM)
def is_cleanroom_partition(item: Item, store: ModelStore, log: Callable[[str], None] = _quiet) -> bool:
    if item.category not in cat.CLEANROOM_CATEGORIES:
        return False
    return _has_workset_keyword(item, store, CLEANROOM_KEYWORDS, log)


@register_classifier(FOUNDATION)
def is_foundation(item: Item, store: ModelStore, log: Callable[[str], None] = _quiet) -> bool:
    if item.category not in cat.FOUNDATION_CATEGORIES:
        return False
    return _has_workset_keyword(item, store, FOUNDATION_KEYWORDS, log)


# ============================================================================
# LOOKUP
# ============================================================================

def build_classifier_table(config: RunConfig) -> Dict[str, Predicate]:
    """{lowercase partition name: predicate} for the configured special partitions."""
    table = {}
    for kind, partition in config.special_partitions.items():
        predicate = SPECIAL_CLASSIFIERS.get(kind)
        if predicate is not None:
            table[partition.lower()] = predicate
    return table


def classifier_for(partition: str, table: Dict[str, Predicate]) -> Optional[Predicate]:
    return table.get((partition or "").strip().lower())
