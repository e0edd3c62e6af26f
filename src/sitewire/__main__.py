from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sitewire import __version__
from sitewire.buildTools import task
from sitewire.buildTools.build import AppBuildOptions, create_app


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sitewire",
        description="sitewire CLI",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # test
    subparsers.add_parser("test", help="Test sitewire installation")

    # build-app
    p = subparsers.add_parser(
        "build-app",
        help="Create a sitewire project",
    )
    p.add_argument("app_name", help="Project name")
    p.add_argument(
        "--out",
        default=".",
        help="Output directory (default: current directory)",
    )
    p.add_argument("--address", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    p.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    p.add_argument("--workers", type=int, default=4, help="Gunicorn workers (default: 4)")
    p.add_argument("--reload", action="store_true", help="Enable auto-reload and dev mode")

    # task
    t = subparsers.add_parser("task", help="List or run tasks")
    t_sub = t.add_subparsers(dest="action", required=True)
    t_sub.add_parser("list", help="List the available tasks")
    t_run = t_sub.add_parser("run", help="Run a task")
    t_run.add_argument("name", help="Task name or import path (pkg.module:Class)")

    args = parser.parse_args(argv)

    if args.command == "test":
        print(f"sitewire {__version__} is installed.")
        return 0

    if args.command == "build-app":
        options = AppBuildOptions(
            address=args.address,
            port=args.port,
            workers=args.workers,
            reload=args.reload,
        )
        out_dir = create_app(Path(args.out), args.app_name, options=options)
        print(f"Created sitewire project at: {out_dir}")
        return 0

    if args.action == "list":
        task.default_runner.list_tasks()
        return 0
    return 0 if task.default_runner.run(args.name) else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
