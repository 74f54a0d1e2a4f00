"""
Three-phase partition assignment.

    PRESERVE -> APPLY -> ORPHAN -> DONE

PRESERVE  items already sitting in a known partition keep it and join the
          package group of that partition (idempotent re-runs).
APPLY     rules in file order claim the remaining items and rewrite their
          partition field.
ORPHAN    whatever is still unclaimed goes to the orphan partition.

Each phase is entered exactly once, in order. The caller owns the store
transaction around run().
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

from partwise.analyze.categories import MONITORED_CATEGORIES
from partwise.analyze.classifier import build_classifier_table
from partwise.errors import PartitionError, PartitionReadOnlyError, PhaseOrderError
from partwise.schemas import NO_EXPORT, ConfigRule, RunConfig
from partwise.state.store import Item, ModelStore
from partwise.strategy.naming import derive_partition_code
from partwise.strategy.rules_engine import find_matching_items


class Phase(Enum):
    PRESERVE = "preserve"
    APPLY = "apply"
    ORPHAN = "orphan"
    DONE = "done"


NEXT_PHASE = {
    Phase.PRESERVE: Phase.APPLY,
    Phase.APPLY: Phase.ORPHAN,
    Phase.ORPHAN: Phase.DONE,
}


def _quiet(message: str) -> None:
    pass


@dataclass
class AssignmentResult:
    """What an assignment run decided."""
    partition_map: Dict[int, str] = field(default_factory=dict)
    package_groups: Dict[str, List[int]] = field(default_factory=dict)
    preserved: List[int] = field(default_factory=list)
    assigned: List[int] = field(default_factory=list)
    orphaned: List[int] = field(default_factory=list)
    unsettled: List[int] = field(default_factory=list)
    skipped_rules: List[str] = field(default_factory=list)

    def partition_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for partition in self.partition_map.values():
            counts[partition] = counts.get(partition, 0) + 1
        return dict(sorted(counts.items(), key=lambda kv: kv[0].lower()))


class AssignmentRun:
    """
    One pass of the preserve/apply/orphan algorithm over a store.

    Usage:
        run = AssignmentRun(store, rules, config, log)
        result = run.run()

    or phase by phase: preserve(), apply(), orphan().
    """

    def __init__(
            self,
            store: ModelStore,
            rules: List[ConfigRule],
            config: Optional[RunConfig] = None,
            log: Callable[[str], None] = _quiet,
            categories: Iterable[str] = MONITORED_CATEGORIES,
    ):
        self.store = store
        self.rules = list(rules)
        self.config = config or RunConfig()
        self.log = log
        self.categories = tuple(categories)
        self.classifiers = build_classifier_table(self.config)

        self.phase = Phase.PRESERVE
        self.history: List[Phase] = []

        self.items: List[Item] = store.monitored_items(self.categories)
        self.settled: Set[int] = set()
        self.result = AssignmentResult()
        self._group_members: Dict[str, Set[int]] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _enter(self, phase: Phase) -> None:
        if self.phase != phase:
            raise PhaseOrderError(
                f"Cannot enter phase {phase.value}: run is in phase {self.phase.value}"
            )
        self.history.append(phase)
        self.log(f"--- Phase {phase.value.upper()} ---")

    def _advance(self) -> Phase:
        self.phase = NEXT_PHASE[self.phase]
        return self.phase

    @property
    def package_groups(self) -> Dict[str, List[int]]:
        return self.result.package_groups

    @property
    def partition_map(self) -> Dict[int, str]:
        return self.result.partition_map

    def add_to_group(self, code: str, item_id: int) -> None:
        members = self._group_members.setdefault(code, set())
        if item_id in members:
            return
        members.add(item_id)
        self.result.package_groups.setdefault(code, []).append(item_id)

    def _settle(self, item: Item, partition: str, code: Optional[str]) -> None:
        self.settled.add(item.id)
        self.result.partition_map[item.id] = partition
        if code is not None:
            self.add_to_group(code, item.id)

    # ------------------------------------------------------------------
    # Phase P
    # ------------------------------------------------------------------

    def _known_partitions(self) -> List[str]:
        names = [r.target_partition for r in self.rules]
        names += self.config.special_partition_names()
        names.append(self.config.orphan_partition)

        seen = set()
        unique = []
        for name in names:
            key = name.strip().lower()
            if key and key not in seen:
                seen.add(key)
                unique.append(name.strip())
        return unique

    def _preserve_code(self, partition: str) -> Optional[str]:
        if partition.lower() == self.config.orphan_partition.lower():
            return self.config.orphan_export_code if self.config.auto_export_orphans else None

        for rule in self.rules:
            if rule.target_partition.strip().lower() == partition.lower():
                return rule.normalized_export_code
        return derive_partition_code(partition, self.config)

    def preserve(self) -> Phase:
        self._enter(Phase.PRESERVE)
        monitored = {i.id for i in self.items}

        for name in self._known_partitions():
            partition = self.store.find_partition(name)
            if partition is None:
                continue

            code = self._preserve_code(partition)
            count = 0
            for item in self.store.items_in_partition(partition, self.categories):
                if item.id in self.settled or item.id not in monitored:
                    continue
                self._settle(item, partition, code)
                self.result.preserved.append(item.id)
                count += 1

            if count:
                target = f"package '{code}'" if code else "no package"
                self.log(f"Preserved {count} items already in {partition} -> {target}")

        self.log(f"Phase PRESERVE settled {len(self.result.preserved)} of {len(self.items)} items")
        return self._advance()

    # ------------------------------------------------------------------
    # Phase A
    # ------------------------------------------------------------------

    def _assign(self, item: Item, partition: str, code: str) -> bool:
        try:
            self.store.set_partition(item, partition)
        except PartitionReadOnlyError:
            self.log(f"Warning: partition of item {item.id} is read-only, left unassigned")
            return False
        except PartitionError as e:
            self.log(f"Warning: could not set partition of item {item.id}: {e}")
            return False

        self._settle(item, partition, code)
        self.result.assigned.append(item.id)
        return True

    def apply(self) -> Phase:
        self._enter(Phase.APPLY)

        for rule in self.rules:
            try:
                partition = self.store.ensure_partition(rule.target_partition)
            except PartitionError as e:
                self.log(f"Error: could not create partition '{rule.target_partition}': {e}; rule skipped")
                self.result.skipped_rules.append(rule.target_partition)
                continue

            if rule.is_no_export:
                self.log(f"Partition {partition} ensured, export code is {NO_EXPORT}")
                continue

            candidates = [i for i in self.items if i.id not in self.settled]
            if not candidates:
                self.log(f"Partition {partition} ensured, all monitored items are settled")
                continue

            matched = find_matching_items(
                candidates, rule, self.store, self.classifiers, self.config, self.log
            )
            code = rule.normalized_export_code
            assigned = sum(1 for item in matched if self._assign(item, partition, code))
            if matched:
                self.log(f"Assigned {assigned} of {len(matched)} items to {partition} (package '{code}')")

        self.log(f"Phase APPLY assigned {len(self.result.assigned)} items")
        return self._advance()

    # ------------------------------------------------------------------
    # Phase O
    # ------------------------------------------------------------------

    def orphan(self) -> Phase:
        self._enter(Phase.ORPHAN)
        remaining = [i for i in self.items if i.id not in self.settled]

        if remaining:
            try:
                partition = self.store.ensure_partition(self.config.orphan_partition)
            except PartitionError as e:
                self.log(f"Error: could not create orphan partition '{self.config.orphan_partition}': {e}")
                partition = None

            code = self.config.orphan_export_code if self.config.auto_export_orphans else None
            for item in remaining:
                if partition is None:
                    break
                current = self.store.get_partition(item)
                try:
                    if not current or current.lower() != partition.lower():
                        self.store.set_partition(item, partition)
                except PartitionError as e:
                    self.log(f"Warning: could not move item {item.id} to {partition}: {e}")
                    continue
                self._settle(item, partition, code)
                self.result.orphaned.append(item.id)

            self.log(f"Moved {len(self.result.orphaned)} unassigned items to {self.config.orphan_partition}")

        self.result.unsettled = [i.id for i in self.items if i.id not in self.settled]
        if self.result.unsettled:
            self.log(f"Warning: {len(self.result.unsettled)} items could not be assigned any partition")
        return self._advance()

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self) -> AssignmentResult:
        steps = {
            Phase.PRESERVE: self.preserve,
            Phase.APPLY: self.apply,
            Phase.ORPHAN: self.orphan,
        }
        while self.phase != Phase.DONE:
            steps[self.phase]()
        return self.result


def assign_partitions(
        store: ModelStore,
        rules: List[ConfigRule],
        config: Optional[RunConfig] = None,
        log: Callable[[str], None] = _quiet,
) -> AssignmentResult:
    """Run all three phases over the store's monitored items."""
    return AssignmentRun(store, rules, config, log).run()
