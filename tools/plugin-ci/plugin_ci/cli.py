"""Command-line entry point; every subcommand prints a JSON payload."""

from __future__ import annotations

import argparse
import json
import logging
import shlex
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

from .e2e import CommandEndToEndRunner, get_end_to_end_settings
from .env import CiContext
from .errors import PluginCiError
from .pipeline import run_pipeline
from .settings import load_settings
from .stages import build_plugin, build_plugin_docs, package_plugin, publish_report, run_plugin_tests
from .store import build_store

DEFAULT_E2E_COMMAND = "npx jest --config jest.e2e.config.js"


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    workspace = Path(args.workspace_root).resolve() if args.workspace_root else Path.cwd()
    dotenv = args.dotenv or (workspace / ".env")
    try:
        context = CiContext(workspace_root=workspace, settings=load_settings(dotenv=dotenv))
        payload = _dispatch(args, context)
    except PluginCiError as exc:
        _print_json({"error": str(exc), "type": type(exc).__name__})
        return 1
    _print_json(payload)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="plugin-ci", description="Plugin CI pipeline stages.")
    parser.add_argument("--workspace-root")
    parser.add_argument("--dotenv", help="Optional .env file with CI variables.")
    parser.add_argument("--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build the plugin into this job's folder.")
    build.add_argument("--backend", action="store_true")

    subparsers.add_parser("docs", help="Stage docs/ for packaging.")
    subparsers.add_parser("package", help="Merge job outputs and build the plugin zip.")

    test = subparsers.add_parser("test", help="Run end-to-end tests against a live instance.")
    _add_test_arguments(test)

    report = subparsers.add_parser("report", help="Publish the build report and history.")
    report.add_argument("--upload", action="store_true", help="Also upload packages and test files.")

    full = subparsers.add_parser("all", help="Run build, package, test and report in order.")
    full.add_argument("--backend", action="store_true")
    full.add_argument("--upload", action="store_true")
    _add_test_arguments(full)

    return parser


def _add_test_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--e2e-command", default=DEFAULT_E2E_COMMAND)
    parser.add_argument("--template", help="Test definition template copied into e2e-temp.")


def _dispatch(args: argparse.Namespace, context: CiContext) -> Mapping[str, object]:
    if args.command == "build":
        return build_plugin(context, backend=args.backend).to_dict()
    if args.command == "docs":
        return build_plugin_docs(context).to_dict()
    if args.command == "package":
        return package_plugin(context).to_dict()
    if args.command == "test":
        settings = get_end_to_end_settings(context, template=Path(args.template) if args.template else None)
        return run_plugin_tests(context, _runner(args, context), settings=settings).to_dict()

    store = build_store(context.settings.store, workspace_root=context.workspace_root)
    if args.command == "report":
        return publish_report(context, store, upload=args.upload).to_dict()
    if args.command == "all":
        return run_pipeline(
            context,
            store=store,
            runner=_runner(args, context),
            backend=args.backend,
            upload=args.upload,
            template=Path(args.template) if args.template else None,
        ).to_dict()
    raise ValueError(f"Unknown command '{args.command}'")


def _runner(args: argparse.Namespace, context: CiContext) -> CommandEndToEndRunner:
    return CommandEndToEndRunner(command=shlex.split(args.e2e_command), cwd=context.workspace_root)


def _print_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
