"""Explorer CLI entry points.

This module exposes the ``list`` command family over the SDK.
It maps argparse commands onto explorer calls and renderers.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Callable, Sequence

from cli.render import (
    RenderOptions,
    render_containers,
    render_content,
    render_images,
    render_leases,
    render_namespaces,
    render_snapshots,
    render_tasks,
)
from core.config import ExplorerConfig, parse_open_timeout
from core.errors import ExplorerError
from core.logging_config import configure_logging
from metadata.explorer import ContainerExplorer
from metadata.support_images import load_support_images

EXIT_SUCCESS = 0
EXIT_EXPLORER_ERROR = 1
EXIT_USAGE_ERROR = 2

_LIST_TARGETS: dict[str, tuple[str, ...]] = {
    "namespaces": ("namespace", "ns"),
    "containers": ("container", "c"),
    "images": ("image", "img"),
    "content": (),
    "snapshots": ("snapshot",),
    "leases": ("lease",),
    "tasks": ("task",),
}
_ALIASES = {alias: name for name, aliases in _LIST_TARGETS.items() for alias in aliases}


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="ctrexplorer",
        description="Read-only explorer for containerd metadata stores",
    )
    parser.add_argument("--root", help="Override CTREXPLORER_ROOT (containerd root directory)")
    parser.add_argument("--state-dir", help="Override CTREXPLORER_STATE_DIR (runtime state directory)")
    parser.add_argument("--image-root", help="Mount point of a disk image to explore")
    parser.add_argument("--metadata-file", help="Explicit path to the containerd meta.db file")
    parser.add_argument("--open-timeout", help="Seconds to wait for a shared lock on store files")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Override CTREXPLORER_LOG_LEVEL",
    )
    parser.add_argument("--output", choices=["table", "json"], default="table", help="Output format")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_list_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the explorer CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        explorer = _build_explorer(args)
        if args.command in ("list", "ls"):
            return _run_list_command(explorer, args)
    except ExplorerError as error:
        print(f"ctrexplorer: {error}", file=sys.stderr)
        return EXIT_EXPLORER_ERROR
    parser.error(f"Unsupported command: {args.command}")
    return EXIT_USAGE_ERROR


def _build_explorer(args: argparse.Namespace) -> ContainerExplorer:
    """Build the explorer with CLI overrides applied.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured explorer.
    """
    config = ExplorerConfig.from_env()
    overrides: dict[str, Any] = {}
    if args.root:
        overrides["containerd_root"] = Path(args.root)
    if args.state_dir:
        overrides["state_dir"] = Path(args.state_dir)
    if args.image_root:
        overrides["image_root"] = Path(args.image_root).expanduser()
    if args.metadata_file:
        overrides["metadata_file"] = Path(args.metadata_file).expanduser()
    if args.open_timeout is not None:
        overrides["open_timeout"] = parse_open_timeout(args.open_timeout)
    if args.log_level:
        overrides["log_level"] = args.log_level
    config = replace(config, **overrides)
    configure_logging(config.log_level)
    explorer = ContainerExplorer(config)
    support_images_file = getattr(args, "support_images_file", None)
    if support_images_file:
        explorer = explorer.with_support_images(load_support_images(Path(support_images_file)))
    return explorer


def _run_list_command(explorer: ContainerExplorer, args: argparse.Namespace) -> int:
    """Handle list command.

    Args:
        explorer: SDK explorer.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = RenderOptions(
        output=args.output,
        show_support=getattr(args, "show_support_containers", False),
        show_labels=not getattr(args, "no_labels", False),
        show_updated=getattr(args, "updated", False),
    )
    handlers: dict[str, Callable[[], str]] = {
        "namespaces": lambda: render_namespaces(explorer.list_namespaces(), options),
        "containers": lambda: render_containers(explorer.list_containers(), options),
        "images": lambda: render_images(explorer.list_images(), options),
        "content": lambda: render_content(explorer.list_content(), options),
        "snapshots": lambda: render_snapshots(explorer.list_snapshots(), options),
        "leases": lambda: render_leases(explorer.list_leases(), options),
        "tasks": lambda: render_tasks(explorer.list_tasks(), options),
    }
    target = _ALIASES.get(args.target, args.target)
    sys.stdout.write(handlers[target]())
    return EXIT_SUCCESS


def _add_list_command(subparsers: Any) -> None:
    """Register list subcommand and its targets."""
    parser = subparsers.add_parser("list", aliases=["ls"], help="List containerd information")
    targets = parser.add_subparsers(dest="target", required=True)
    for name, aliases in _LIST_TARGETS.items():
        target = targets.add_parser(name, aliases=list(aliases), help=f"List {name} for all namespaces")
        if name in ("containers", "images"):
            target.add_argument(
                "--show-support-containers",
                action="store_true",
                help="Show support containers and images injected by managed platforms",
            )
            target.add_argument(
                "--support-images-file",
                help="YAML file with extra support image names",
            )
        if name not in ("namespaces", "tasks"):
            target.add_argument("--no-labels", action="store_true", help="Hide labels")
        if name in ("containers", "images", "content", "snapshots"):
            target.add_argument("--updated", action="store_true", help="Show updated timestamp")
