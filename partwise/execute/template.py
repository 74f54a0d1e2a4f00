"""
Template integration: copy the contents of exported artifacts into copies
of a template artifact, saved under "<dest>/In Template/".
"""

import shutil
import uuid
from pathlib import Path
from typing import Callable, List, Optional

from partwise.analyze.categories import RELEVANT_CATEGORIES
from partwise.errors import ArtifactError, PartitionError, PartwiseError
from partwise.execute.transfer import DEFAULT_CHUNK_SIZE, reassign_partitions, transfer_items
from partwise.schemas import RunConfig
from partwise.state.store import InMemoryModelStore, ModelStore

TEMPLATE_DIR_NAME = "In Template"


def _quiet(message: str) -> None:
    pass


def partition_from_file_name(file_name: str, config: Optional[RunConfig] = None) -> str:
    """
    Partition an exported file came from, read back from the export code in
    its name ({prefix}_{code}_...). Unknown codes give "<prefix>Unknown".
    """
    config = config or RunConfig()
    parts = Path(file_name).stem.split("_")
    if len(parts) >= 2:
        code = parts[1].lower()
        for partition, mapped in config.partition_codes.items():
            if mapped.lower() == code:
                return partition
    return f"{config.partition_prefix}Unknown"


def _fill_unassigned(target: ModelStore, new_ids: List[int], partition: str,
                     log: Callable[[str], None]) -> None:
    try:
        name = target.ensure_partition(partition)
    except PartitionError as e:
        log(f"Warning: could not create partition '{partition}' in template copy: {e}")
        return
    for new_id in new_ids:
        item = target.get_item(new_id)
        if item is None or target.get_partition(item):
            continue
        try:
            target.set_partition(item, name)
        except PartitionError as e:
            log(f"Warning: could not set partition of item {new_id}: {e}")


def integrate_file(
        opener: ModelStore,
        artifact_path: Path,
        template_path: Path,
        out_dir: Path,
        index: int,
        config: RunConfig,
        log: Callable[[str], None] = _quiet,
) -> Optional[Path]:
    """Integrate one exported artifact. Returns the saved path, or None when skipped."""
    temp_path = template_path.parent / f"temp_template_{index:03d}_{uuid.uuid4().hex}{template_path.suffix}"
    template_store = None
    extracted = None

    try:
        shutil.copy2(template_path, temp_path)
        log(f"Created temporary template copy: {temp_path.name}")

        template_store = opener.open_artifact(temp_path)
        extracted = opener.open_artifact(artifact_path)

        ids = [i.id for i in extracted.monitored_items(RELEVANT_CATEGORIES)]
        log(f"Found {len(ids)} relevant items in {artifact_path.name}")
        if not ids:
            log("No relevant items, skipping file")
            return None

        copied, failed = transfer_items(
            extracted, ids, template_store, config.chunk_size or DEFAULT_CHUNK_SIZE, log
        )
        if not copied:
            log(f"Error: nothing could be copied from {artifact_path.name}")
            return None

        if template_store.supports_partitions:
            reassign_partitions(extracted, copied, template_store, log)
            fallback = partition_from_file_name(artifact_path.name, config)
            _fill_unassigned(template_store, list(copied.values()), fallback, log)

        output_path = out_dir / artifact_path.name
        template_store.save_as(output_path, overwrite=True)
        log(f"Saved integrated file: {output_path}")
        return output_path
    except (PartwiseError, OSError) as e:
        log(f"Error: processing '{artifact_path.name}' failed: {e}")
        return None
    finally:
        for store in (extracted, template_store):
            if store is not None:
                store.close()
        if temp_path.exists():
            temp_path.unlink()
            log(f"Deleted temporary template copy: {temp_path.name}")


def integrate_into_template(
        artifact_paths: List[Path],
        template_path: Path,
        dest_root: Path,
        config: Optional[RunConfig] = None,
        opener: Optional[ModelStore] = None,
        log: Callable[[str], None] = _quiet,
) -> List[Path]:
    """
    Integrate every artifact into its own copy of the template.

    Missing artifacts and per-file failures are logged and skipped. Raises
    ArtifactError when the template itself does not exist.
    """
    config = config or RunConfig()
    opener = opener or InMemoryModelStore()
    template_path = Path(template_path)

    if not template_path.exists():
        raise ArtifactError(f"Template file not found: {template_path}")

    out_dir = Path(dest_root) / TEMPLATE_DIR_NAME
    out_dir.mkdir(parents=True, exist_ok=True)
    log(f"Starting template integration with {len(artifact_paths)} files, template {template_path.name}")

    saved = []
    for n, artifact_path in enumerate(artifact_paths):
        artifact_path = Path(artifact_path)
        log(f"=== Processing file {n + 1}/{len(artifact_paths)}: {artifact_path.name} ===")
        if not artifact_path.exists():
            log(f"Error: exported file not found: {artifact_path}, skipping")
            continue
        output = integrate_file(opener, artifact_path, template_path, out_dir, n, config, log)
        if output is not None:
            saved.append(output)

    log(f"Template integration finished: {len(saved)} of {len(artifact_paths)} files -> {out_dir}")
    return saved
