from pathlib import Path

from ..errors import ConfigError, RuleLoadError
from ..execute.journaling import console_log
from ..pipeline import load_run_config
from ..state.io import load_rules, load_snapshot, write_preview
from ..strategy.assignment import AssignmentRun
from ..strategy.rules_engine import validate_rules, with_builtin_rules


def run(args) -> int:
    """
    Classification dry run. The snapshot is assigned in memory only and
    never written back; counts go to PreviewCounts.json.
    """
    model_path = Path(args.model).resolve()
    rules_path = Path(args.rules).resolve()
    out_dir = Path(args.out).resolve() if args.out else model_path.parent

    try:
        config = load_run_config(Path(args.config) if args.config else None, rules_path)
        rules = with_builtin_rules(load_rules(rules_path), config)
        store = load_snapshot(model_path)
    except (RuleLoadError, ConfigError) as e:
        print(f"❌ Error: {e}")
        return 1
    except (OSError, ValueError) as e:
        print(f"❌ Error: could not load model {model_path}: {e}")
        return 1

    for issue in validate_rules(rules, config):
        console_log(f"Warning: {issue}")

    result = AssignmentRun(store, rules, config).run()

    print(f"\n{'=' * 60}")
    print(f"Preview for {store.title} ({len(rules)} rules)")
    print(f"{'=' * 60}")
    for partition, count in result.partition_counts().items():
        print(f"  {partition:<30} {count:>6}")
    print(f"\n  Preserved: {len(result.preserved)}")
    print(f"  Assigned:  {len(result.assigned)}")
    print(f"  Orphaned:  {len(result.orphaned)}")
    if result.unsettled:
        print(f"  Unsettled: {len(result.unsettled)}")
    if result.skipped_rules:
        print(f"  Skipped rules: {', '.join(result.skipped_rules)}")

    write_preview(out_dir, {
        "model": store.title,
        "partitions": result.partition_counts(),
        "packages": {k: len(v) for k, v in result.package_groups.items()},
        "preserved": len(result.preserved),
        "assigned": len(result.assigned),
        "orphaned": len(result.orphaned),
        "unsettled": len(result.unsettled),
        "skipped_rules": result.skipped_rules,
    })
    return 0
