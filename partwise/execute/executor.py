from pathlib import Path
from typing import Callable, List, Optional

from partwise.execute.journaling import ExportJournal
from partwise.execute.transfer import export_group
from partwise.schemas import EXPORTED, FAILED, SKIPPED, ExportJob, RunConfig, TransferResult
from partwise.state.store import ModelStore


def _quiet(message: str) -> None:
    pass


def _skipped_existing(job: ExportJob, output_path: Path) -> TransferResult:
    return TransferResult(
        package=job.package,
        export_code=job.export_code,
        part_number=job.part_number,
        file_name=job.file_name,
        requested=len(job.item_ids),
        output_path=str(output_path),
        error="File exists and overwrite is off",
        status=SKIPPED,
    )


def execute_exports(
        source: ModelStore,
        jobs: List[ExportJob],
        dest_dir: Path,
        config: Optional[RunConfig] = None,
        journal: Optional[ExportJournal] = None,
        log: Callable[[str], None] = _quiet,
) -> List[TransferResult]:
    """
    Run export jobs one after another, one artifact per job.

    A job whose output already exists is skipped unless overwrite is on.
    A failing job is recorded and the next one proceeds. Every outcome is
    appended to the journal when one is given.
    """
    config = config or RunConfig()
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)

    results = []
    for n, job in enumerate(jobs, start=1):
        output_path = dest_dir / job.file_name
        log(f"[{n}/{len(jobs)}] Package '{job.package}' ({len(job.item_ids)} items) -> {job.file_name}")

        if output_path.exists() and not config.overwrite:
            log(f"Skipping {job.file_name}: file exists and overwrite is off")
            result = _skipped_existing(job, output_path)
        else:
            try:
                result = export_group(
                    source,
                    job,
                    dest_dir,
                    chunk_size=config.chunk_size,
                    overwrite=config.overwrite,
                    log=log,
                )
            except Exception as e:
                log(f"Error: unexpected failure exporting package '{job.package}': {e}")
                result = TransferResult(
                    package=job.package,
                    export_code=job.export_code,
                    part_number=job.part_number,
                    file_name=job.file_name,
                    requested=len(job.item_ids),
                    error=str(e),
                    status=FAILED,
                )

        results.append(result)
        if journal is not None:
            journal.record(result)

    exported = sum(1 for r in results if r.status == EXPORTED)
    skipped = sum(1 for r in results if r.status == SKIPPED)
    failed = sum(1 for r in results if r.status == FAILED)
    log(f"Export summary: {exported} exported, {skipped} skipped, {failed} failed")
    return results
