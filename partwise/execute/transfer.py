"""
Resilient bulk transfer of one export group into a fresh artifact.

1. Pre-filter ids that cannot or must not be copied directly.
2. Copy everything in one batch.
3. On failure, copy in chunks; inside a failed chunk, copy one by one.
4. Put copied items back into partitions named like their source partition.
5. Save the artifact.

Untransferable items never abort the group; they are counted by category in
the TransferResult.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from partwise.analyze import categories as cat
from partwise.errors import ArtifactError, PartitionError
from partwise.schemas import EXPORTED, FAILED, ExportJob, TransferResult
from partwise.state.store import ModelStore

DEFAULT_CHUNK_SIZE = 50
UNKNOWN_CATEGORY = "Unknown"

# Skip reasons that are not a category of their own
SKIP_INVALID = "invalid id"
SKIP_TYPE = "type definition"
SKIP_VIEW_SPECIFIC = "view specific"
SKIP_NO_CATEGORY = "no category"


def _quiet(message: str) -> None:
    pass


def _count(counts: Dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def chunked(ids: List[int], size: int) -> List[List[int]]:
    size = max(1, int(size))
    return [ids[i:i + size] for i in range(0, len(ids), size)]


# ============================================================================
# PRE-FILTER
# ============================================================================

def prefilter(
        item_ids: List[Optional[int]],
        store: ModelStore,
        log: Callable[[str], None] = _quiet,
) -> Tuple[List[int], Dict[str, int]]:
    """
    Split ids into (transferable ids, skip counts by reason).

    Non-transferable and aggregate categories are counted under the category
    tag itself. Duplicates are dropped silently, keeping the first occurrence.
    """
    valid: List[int] = []
    skipped: Dict[str, int] = {}
    seen = set()

    for item_id in item_ids:
        if item_id in seen:
            continue
        seen.add(item_id)

        item = store.get_item(item_id) if isinstance(item_id, int) and item_id > 0 else None
        if item is None:
            _count(skipped, SKIP_INVALID)
        elif item.is_type:
            _count(skipped, SKIP_TYPE)
        elif item.view_specific:
            _count(skipped, SKIP_VIEW_SPECIFIC)
        elif not item.has_category:
            _count(skipped, SKIP_NO_CATEGORY)
        elif item.category in cat.NON_TRANSFERABLE_CATEGORIES or item.category in cat.AGGREGATE_CATEGORIES:
            _count(skipped, item.category)
        else:
            valid.append(item_id)

    if skipped:
        log(f"Pre-filter kept {len(valid)} of {len(seen)} items")
        for reason, count in sorted(skipped.items()):
            log(f"  Skipped {count} ({reason})")

    return valid, skipped


# ============================================================================
# COPY
# ============================================================================

def failure_category(error: Exception, item_id: int, source: ModelStore) -> str:
    """Category of a failed id: from the exception, else the source item, else Unknown."""
    category = getattr(error, "category", None)
    if category:
        return category
    try:
        item = source.get_item(item_id)
    except Exception:
        item = None
    if item is not None and item.category:
        return item.category
    return UNKNOWN_CATEGORY


def transfer_items(
        source: ModelStore,
        item_ids: List[int],
        target: ModelStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        log: Callable[[str], None] = _quiet,
) -> Tuple[Dict[int, int], Dict[str, int]]:
    """
    Copy item_ids from source into target.

    Returns ({source_id: new_id}, {category: failed count}). Never raises for
    items that refuse to transfer.
    """
    if not item_ids:
        return {}, {}

    try:
        copied = source.copy_items(item_ids, target)
        log(f"Batch transfer copied {len(copied)} items")
        return dict(copied), {}
    except Exception as e:
        log(f"Batch transfer failed ({e}), retrying in chunks of {chunk_size}")

    copied: Dict[int, int] = {}
    failed: Dict[str, int] = {}
    chunks = chunked(item_ids, chunk_size)

    for n, chunk in enumerate(chunks, start=1):
        try:
            copied.update(source.copy_items(chunk, target))
            continue
        except Exception as e:
            log(f"  Chunk {n}/{len(chunks)} failed ({e}), copying {len(chunk)} items one by one")

        chunk_failures = 0
        for item_id in chunk:
            try:
                copied.update(source.copy_items([item_id], target))
            except Exception as e:
                _count(failed, failure_category(e, item_id, source))
                chunk_failures += 1
        log(f"  Chunk {n}: {len(chunk) - chunk_failures} copied, {chunk_failures} failed")

    if failed:
        summary = ", ".join(f"{k}={v}" for k, v in sorted(failed.items()))
        log(f"Transfer failures by category: {summary}")

    return copied, failed


def reassign_partitions(
        source: ModelStore,
        copied: Dict[int, int],
        target: ModelStore,
        log: Callable[[str], None] = _quiet,
) -> int:
    """Best effort: put each copy into a partition named like its source partition."""
    moved = 0
    for source_id, new_id in copied.items():
        source_item = source.get_item(source_id)
        new_item = target.get_item(new_id)
        if source_item is None or new_item is None:
            continue
        partition = source.get_partition(source_item)
        if not partition:
            continue
        try:
            target.set_partition(new_item, target.ensure_partition(partition))
            moved += 1
        except PartitionError as e:
            log(f"Warning: could not set partition '{partition}' on copied item {new_id}: {e}")
    return moved


# ============================================================================
# ONE GROUP
# ============================================================================

def export_group(
        source: ModelStore,
        job: ExportJob,
        dest_dir: Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overwrite: bool = False,
        log: Callable[[str], None] = _quiet,
) -> TransferResult:
    """
    Create an artifact for one job, fill it and save it to dest_dir/file_name.

    Success means the artifact was saved, whether or not every id transferred.
    """
    result = TransferResult(
        package=job.package,
        export_code=job.export_code,
        part_number=job.part_number,
        file_name=job.file_name,
        requested=len(job.item_ids),
    )

    valid, result.skipped = prefilter(job.item_ids, source, log)
    if not valid:
        result.error = "No transferable items"
        log(f"Package '{job.package}': no transferable items, nothing exported")
        return result

    output_path = Path(dest_dir) / job.file_name
    target = source.create_artifact()
    try:
        copied, result.failed = transfer_items(source, valid, target, chunk_size, log)
        result.transferred = len(copied)
        if not copied:
            result.error = "No items transferred"
            log(f"Package '{job.package}': none of {len(valid)} items transferred")
            return result

        if target.supports_partitions:
            moved = reassign_partitions(source, copied, target, log)
            log(f"Reassigned {moved} of {len(copied)} copied items to their partitions")

        target.save_as(output_path, overwrite=overwrite)
        result.output_path = str(output_path)
        result.status = EXPORTED
        log(f"Exported {result.transferred}/{result.requested} items -> {output_path.name}")
    except ArtifactError as e:
        result.status = FAILED
        result.error = str(e)
        log(f"Error: export of package '{job.package}' failed: {e}")
    finally:
        target.close()

    return result
