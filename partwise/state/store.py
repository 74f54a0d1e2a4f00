"""
Model store interface and the in-memory snapshot store.

The engine never talks to a host application directly. Everything it needs
(enumerating items, reading attributes, rewriting the partition field,
copying items into an independent artifact) goes through a ModelStore.

InMemoryModelStore is the implementation shipped with partwise. It holds a
JSON snapshot of a model (see state.io) and writes artifacts in the same
format.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from partwise.errors import (
    ArtifactError,
    PartitionError,
    PartitionReadOnlyError,
    TransferError,
)


@dataclass
class Item:
    """
    One element of the model.

    Type definitions are items too (is_type=True); instances point at their
    type through type_id.
    """
    id: int
    category: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    type_id: Optional[int] = None
    partition: Optional[str] = None
    name: str = ""
    family_name: str = ""
    is_type: bool = False
    view_specific: bool = False
    partition_read_only: bool = False

    @property
    def has_category(self) -> bool:
        return bool(self.category)


class ModelStore(Protocol):
    """What the engine requires from a model store."""

    title: str
    path: Optional[str]
    artifact_extension: str

    @property
    def supports_partitions(self) -> bool: ...

    def monitored_items(self, categories: Iterable[str]) -> List[Item]: ...

    def get_item(self, item_id: int) -> Optional[Item]: ...

    def get_type(self, item: Item) -> Optional[Item]: ...

    def read_attribute(self, item: Item, name: str) -> Optional[str]: ...

    def read_type_attribute(self, item: Item, name: str) -> Optional[str]: ...

    def type_display_names(self, item: Item) -> Tuple[str, str]: ...

    def get_partition(self, item: Item) -> Optional[str]: ...

    def set_partition(self, item: Item, partition: str) -> None: ...

    def items_in_partition(self, partition: str, categories: Optional[Iterable[str]] = None) -> List[Item]: ...

    def partition_names(self) -> List[str]: ...

    def find_partition(self, name: str) -> Optional[str]: ...

    def ensure_partition(self, name: str) -> str: ...

    def copy_items(self, item_ids: List[int], target: "ModelStore") -> Dict[int, int]: ...

    def create_artifact(self) -> "ModelStore": ...

    def open_artifact(self, path: Path) -> "ModelStore": ...

    def save_as(self, path: Path, overwrite: bool = False) -> None: ...

    def close(self) -> None: ...

    def synchronize(self) -> bool: ...

    def transaction(self, name: str): ...


class InMemoryModelStore:
    """
    Dictionary-backed model store.

    transfer_failures maps item ids that refuse to be copied to the category
    reported in the resulting TransferError (None when the store cannot tell).
    """

    artifact_extension = ".json"

    def __init__(
            self,
            title: str = "Untitled",
            path: Optional[str] = None,
            workshared: bool = True,
            partitions: Optional[Iterable[str]] = None,
            items: Optional[Iterable[Item]] = None,
    ):
        self.title = title
        self.path = path
        self.workshared = workshared
        self.closed = False
        self.transfer_failures: Dict[int, Optional[str]] = {}
        self._items: Dict[int, Item] = {}
        self._last_id = 0
        self._types_by_name: Dict[Tuple[str, str], int] = {}
        self._partitions: Dict[str, str] = {}
        self._undo: Optional[List[Tuple[str, object, object]]] = None
        for name in partitions or []:
            self._partitions[name.lower()] = name
        for item in items or []:
            self.add_item(item)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_item(self, item: Item) -> Item:
        replaced = self._items.get(item.id)
        if replaced is not None and replaced.is_type:
            key = (replaced.family_name, replaced.name)
            if self._types_by_name.get(key) == item.id:
                del self._types_by_name[key]
        self._items[item.id] = item
        self._last_id = max(self._last_id, item.id)
        if item.is_type:
            self._types_by_name.setdefault((item.family_name, item.name), item.id)
        if item.partition and item.partition.lower() not in self._partitions:
            self._partitions[item.partition.lower()] = item.partition
        return item

    def _next_id(self) -> int:
        return self._last_id + 1

    @property
    def items(self) -> List[Item]:
        return [self._items[k] for k in sorted(self._items)]

    @property
    def supports_partitions(self) -> bool:
        return self.workshared

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def monitored_items(self, categories: Iterable[str]) -> List[Item]:
        wanted = set(categories)
        return [i for i in self.items if not i.is_type and i.category in wanted]

    def get_item(self, item_id: int) -> Optional[Item]:
        if item_id is None:
            return None
        return self._items.get(item_id)

    def get_type(self, item: Item) -> Optional[Item]:
        if item.type_id is None:
            return None
        candidate = self._items.get(item.type_id)
        return candidate if candidate is not None and candidate.is_type else None

    def read_attribute(self, item: Item, name: str) -> Optional[str]:
        value = item.attributes.get(name)
        return None if value is None else str(value)

    def read_type_attribute(self, item: Item, name: str) -> Optional[str]:
        item_type = self.get_type(item)
        if item_type is None:
            return None
        return self.read_attribute(item_type, name)

    def type_display_names(self, item: Item) -> Tuple[str, str]:
        item_type = self.get_type(item)
        if item_type is None:
            return "", ""
        return item_type.family_name or "", item_type.name or ""

    # ------------------------------------------------------------------
    # Partitions
    # ------------------------------------------------------------------

    def partition_names(self) -> List[str]:
        return list(self._partitions.values())

    def find_partition(self, name: str) -> Optional[str]:
        if not name:
            return None
        return self._partitions.get(name.strip().lower())

    def ensure_partition(self, name: str) -> str:
        if not self.workshared:
            raise PartitionError(f"Store '{self.title}' does not support partitions; cannot create '{name}'")
        if not name or not name.strip():
            raise PartitionError("Partition name is empty")
        existing = self.find_partition(name)
        if existing:
            return existing
        canonical = name.strip()
        self._partitions[canonical.lower()] = canonical
        self._record("partition", canonical.lower(), None)
        return canonical

    def get_partition(self, item: Item) -> Optional[str]:
        return item.partition

    def set_partition(self, item: Item, partition: str) -> None:
        if not self.workshared:
            raise PartitionError(f"Store '{self.title}' does not support partitions")
        if item.partition_read_only:
            raise PartitionReadOnlyError(f"Partition of item {item.id} is read-only")
        canonical = self.find_partition(partition)
        if canonical is None:
            raise PartitionError(f"Partition '{partition}' does not exist")
        self._record("item", item, item.partition)
        item.partition = canonical

    def items_in_partition(self, partition: str, categories: Optional[Iterable[str]] = None) -> List[Item]:
        wanted = (partition or "").strip().lower()
        allowed = set(categories) if categories is not None else None
        found = []
        for item in self.items:
            if item.is_type or not item.partition or item.partition.lower() != wanted:
                continue
            if allowed is not None and item.category not in allowed:
                continue
            found.append(item)
        return found

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _record(self, kind: str, subject, previous) -> None:
        if self._undo is not None:
            self._undo.append((kind, subject, previous))

    @contextmanager
    def transaction(self, name: str) -> Iterator["InMemoryModelStore"]:
        """
        Group partition writes. If the block raises, every write made inside
        it is undone and the exception propagates.
        """
        if self._undo is not None:
            raise PartitionError(f"Transaction '{name}' started while another is open")
        self._undo = []
        try:
            yield self
        except BaseException:
            for kind, subject, previous in reversed(self._undo):
                if kind == "item":
                    subject.partition = previous
                else:
                    self._partitions.pop(subject, None)
            raise
        finally:
            self._undo = None

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def copy_items(self, item_ids: List[int], target: "InMemoryModelStore") -> Dict[int, int]:
        """
        Copy items into target. All or nothing: one bad id fails the batch.

        Returns {source_id: new_id}. Types travel with their instances.
        """
        for item_id in item_ids:
            if item_id not in self._items:
                raise TransferError(f"Item {item_id} not found", item_id=item_id)
            if item_id in self.transfer_failures:
                category = self.transfer_failures[item_id]
                raise TransferError(
                    f"Item {item_id} could not be copied",
                    category=category,
                    item_id=item_id,
                )

        copied: Dict[int, int] = {}
        for item_id in item_ids:
            source = self._items[item_id]
            new_type_id = None
            source_type = self.get_type(source)
            if source_type is not None:
                new_type_id = target._adopt_type(source_type)
            new_id = target._next_id()
            target.add_item(Item(
                id=new_id,
                category=source.category,
                attributes=dict(source.attributes),
                type_id=new_type_id,
                name=source.name,
                family_name=source.family_name,
            ))
            copied[item_id] = new_id
        return copied

    def _adopt_type(self, source_type: Item) -> int:
        existing = self._types_by_name.get((source_type.family_name, source_type.name))
        if existing is not None:
            return existing
        new_id = self._next_id()
        self.add_item(Item(
            id=new_id,
            category=source_type.category,
            attributes=dict(source_type.attributes),
            name=source_type.name,
            family_name=source_type.family_name,
            is_type=True,
        ))
        return new_id

    def create_artifact(self) -> "InMemoryModelStore":
        return InMemoryModelStore(title="Untitled", workshared=self.workshared)

    def open_artifact(self, path: Path) -> "InMemoryModelStore":
        from partwise.state.io import load_snapshot
        try:
            return load_snapshot(Path(path))
        except (OSError, ValueError) as e:
            raise ArtifactError(f"Could not open artifact {path}: {e}") from e

    def save_as(self, path: Path, overwrite: bool = False) -> None:
        from partwise.state.io import write_snapshot
        path = Path(path)
        if path.exists() and not overwrite:
            raise ArtifactError(f"File exists and overwrite is off: {path}")
        previous = (self.path, self.title)
        self.path = str(path)
        if self.title == "Untitled":
            self.title = path.stem
        try:
            write_snapshot(self, path)
        except OSError as e:
            self.path, self.title = previous
            raise ArtifactError(f"Could not save {path}: {e}") from e

    def close(self) -> None:
        self.closed = True

    def synchronize(self) -> bool:
        """Write partition changes back to the snapshot this store came from."""
        if not self.workshared:
            return False
        if not self.path:
            raise ArtifactError(f"Store '{self.title}' has no source path to synchronize with")
        self.save_as(Path(self.path), overwrite=True)
        return True
