from pathlib import Path

from ..errors import ArtifactError, ConfigError
from ..execute.journaling import RunLog
from ..execute.template import TEMPLATE_DIR_NAME, integrate_into_template
from ..state.io import load_config


def run(args) -> int:
    dest = Path(args.dest).resolve()
    log = RunLog(echo=not args.quiet)

    try:
        config = load_config(Path(args.config) if args.config else None)
        saved = integrate_into_template(
            [Path(f) for f in args.files],
            Path(args.template),
            dest,
            config=config,
            log=log,
        )
    except (ArtifactError, ConfigError) as e:
        print(f"❌ Error: {e}")
        return 1
    finally:
        log.write(dest / TEMPLATE_DIR_NAME / "TemplateIntegrationLog.txt")

    print(f"[partwise] integrated {len(saved)} of {len(args.files)} files -> {dest / TEMPLATE_DIR_NAME}")
    return 0 if saved else 1
