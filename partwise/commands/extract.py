from pathlib import Path

from ..execute.journaling import RunLog
from ..pipeline import extract_files
from .organize import overrides_from_args, report


def run(args) -> int:
    """Extract command entry point: one file per partition."""
    dest = Path(args.dest).resolve()
    log = RunLog(echo=not args.quiet)

    result = extract_files(
        Path(args.model),
        dest,
        config_path=Path(args.config) if args.config else None,
        log=log,
        overrides=overrides_from_args(args),
    )
    return report(result)
