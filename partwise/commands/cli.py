import argparse
import sys


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help="Run settings YAML (defaults to partwise.yaml next to the rules file)")
    p.add_argument("--prefix", help="Project prefix for file names (defaults to the model name)")
    p.add_argument("--chunk-size", type=int, help="Items per chunk when a batch transfer fails (default 50)")
    p.add_argument("--overwrite", action="store_true", help="Overwrite existing output files")
    p.add_argument("--quiet", action="store_true", help="Only write the run log, do not echo it")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="partwise", description="partwise CLI - Model Partition Organizer")
    sub = p.add_subparsers(dest="cmd", required=True)

    # ORGANIZE
    p_org = sub.add_parser("organize", help="Assign partitions from mapping rules and export package groups")
    p_org.add_argument("--model", required=True, help="Model snapshot (JSON)")
    p_org.add_argument("--rules", required=True, help="Mapping rules (.csv or .xlsx)")
    p_org.add_argument("--dest", required=True, help="Destination directory for artifacts and logs")
    p_org.add_argument("--export-orphans", action="store_true", help="Also export the orphan partition (QC)")
    _add_common(p_org)

    # EXTRACT
    p_ext = sub.add_parser("extract", help="Export every partition of the model to its own file")
    p_ext.add_argument("--model", required=True, help="Model snapshot (JSON)")
    p_ext.add_argument("--dest", required=True, help="Destination directory for artifacts and logs")
    _add_common(p_ext)

    # INTEGRATE
    p_int = sub.add_parser("integrate", help="Copy exported files into copies of a template model")
    p_int.add_argument("--template", required=True, help="Template model snapshot")
    p_int.add_argument("--dest", required=True, help="Destination root (output goes to '<dest>/In Template')")
    p_int.add_argument("files", nargs="+", help="Exported files to integrate")
    p_int.add_argument("--config", help="Run settings YAML")
    p_int.add_argument("--quiet", action="store_true", help="Do not echo progress")

    # PREVIEW
    p_pre = sub.add_parser("preview", help="Dry run: show where items would go, change nothing on disk")
    p_pre.add_argument("--model", required=True, help="Model snapshot (JSON)")
    p_pre.add_argument("--rules", required=True, help="Mapping rules (.csv or .xlsx)")
    p_pre.add_argument("--out", help="Directory for PreviewCounts.json (defaults to the model's directory)")
    p_pre.add_argument("--config", help="Run settings YAML")

    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # Route to appropriate module
    if args.cmd == "organize":
        from .organize import run as organize_run
        return organize_run(args)
    elif args.cmd == "extract":
        from .extract import run as extract_run
        return extract_run(args)
    elif args.cmd == "integrate":
        from .integrate import run as integrate_run
        return integrate_run(args)
    elif args.cmd == "preview":
        from .preview import run as preview_run
        return preview_run(args)
    return 1


if __name__ == "__main__":
    sys.exit(main())
