"""Command-line export/import of backup artifacts."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from .app import build_repository
from .config import Settings, configure_logging, get_settings
from .reconcile import ImportMode
from .service import BackupBusyError, BackupService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storage Logger backup helper")
    parser.add_argument("--data-dir", default="", help="Override the configured data directory")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Write a backup artifact")
    export.add_argument("--out", required=True, help="Output artifact path")

    restore = sub.add_parser("import", help="Load a backup artifact")
    restore.add_argument("--archive", required=True, help="Backup artifact path")
    restore.add_argument(
        "--mode",
        choices=[mode.value for mode in ImportMode],
        default=ImportMode.COMBINE.value,
        help="replace discards current entries; combine keeps them",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = settings or get_settings()
    if args.data_dir:
        settings = settings.model_copy(update={"data_dir": Path(args.data_dir)})
    configure_logging(settings.log_level)
    service = BackupService(build_repository(settings))

    try:
        if args.command == "export":
            artifact = service.export_artifact()
            out = Path(args.out).expanduser()
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_bytes(artifact)
            result = {"out": str(out), "bytes": len(artifact), "entries": len(service.repository)}
        else:
            data = Path(args.archive).expanduser().read_bytes()
            outcome = service.import_artifact(data, ImportMode(args.mode))
            if not outcome.ok:
                print(json.dumps({"success": False, **outcome.to_dict()}, ensure_ascii=False))
                return 1
            result = outcome.to_dict()
    except (OSError, BackupBusyError) as e:
        print(json.dumps({"success": False, "error": str(e)}, ensure_ascii=False))
        return 1
    print(json.dumps({"success": True, **result}, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
