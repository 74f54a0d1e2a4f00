from pathlib import Path

from ..execute.journaling import RunLog
from ..pipeline import organize_files
from ..schemas import RunResult


def overrides_from_args(args) -> dict:
    """Settings given on the command line win over the config file."""
    overrides = {}
    if getattr(args, "prefix", None):
        overrides["project_prefix"] = args.prefix
    if getattr(args, "chunk_size", None):
        overrides["chunk_size"] = args.chunk_size
    if getattr(args, "overwrite", False):
        overrides["overwrite"] = True
    if getattr(args, "export_orphans", False):
        overrides["export_orphans"] = True
    return overrides


def report(result: RunResult) -> int:
    """Print the outcome and return the process exit code."""
    print(f"\n{'=' * 60}")
    if result.success:
        state = "completed with errors" if result.completed_with_errors else "completed"
        print(f"Run {state}: {result.exported_count} of {len(result.exports)} groups exported")
    else:
        print("❌ Run failed")
    if result.last_error:
        print(f"  Last error ({result.last_error.kind}): {result.last_error.message}")
    if result.log_path:
        print(f"  Log:    {result.log_path}")
    if result.report_path:
        print(f"  Report: {result.report_path}")
    print(f"{'=' * 60}")
    return 0 if result.success else 1


def run(args) -> int:
    """
    Organize command entry point.

    Args:
        args: argparse namespace with model, rules, dest and the common
              run options (config, prefix, chunk_size, overwrite, quiet)
    """
    dest = Path(args.dest).resolve()
    log = RunLog(echo=not args.quiet)

    result = organize_files(
        Path(args.model),
        Path(args.rules),
        dest,
        config_path=Path(args.config) if args.config else None,
        log=log,
        overrides=overrides_from_args(args),
    )
    return report(result)
