"""Command-line interface for tfenv."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any

from rich.markup import escape

from . import __version__
from .catalog import list_versions
from .config import Product, TfenvConfig
from .download import install, installed_versions
from .errors import NoMatchingVersionError, TfenvError
from .executor import active_version, exec_version, use_version
from .utils import console, setup_logging
from .version import SpecKind, VersionSpec, parse_spec, read_required_version, resolve, select_version

logger = logging.getLogger(__name__)


def _resolve_spec(explicit: str | None, config: TfenvConfig) -> VersionSpec:
    spec = resolve(explicit, Path.cwd(), Path.home(), os.environ, config.config_dir)
    logger.debug("Requested %s from %s", spec, spec.source)
    return spec


def _select(spec: VersionSpec, candidates: list[str]) -> str:
    constraint = None
    if spec.kind in (SpecKind.LATEST_ALLOWED, SpecKind.MIN_REQUIRED):
        constraint = read_required_version(Path.cwd())
    return select_version(spec, candidates, constraint)


def _select_installed(spec: VersionSpec, config: TfenvConfig) -> str:
    """Resolve ``spec`` against installed versions only, never the network."""
    if not spec.is_heuristic:
        return str(spec.value)
    return _select(spec, installed_versions(config, config.product))


def install_command(args: argparse.Namespace, config: TfenvConfig) -> int:
    """Install the requested version."""
    spec = _resolve_spec(args.version, config)
    candidates = list_versions(config.product, config) if spec.is_heuristic else []
    version = _select(spec, candidates)
    if spec.is_heuristic:
        console.print(f"🔧 [blue]Resolved {escape(str(spec))} to {version}[/blue]")
    install(config.product, version, config)
    return 0


def use_command(args: argparse.Namespace, config: TfenvConfig) -> int:
    """Make an installed version the active one."""
    version = _select_installed(parse_spec(args.version), config)
    path = use_version(config, config.product, version)
    console.print(f"✅ [green]Switched default {config.product.value} version to {version}[/green]")
    logger.debug("Wrote %s", path)
    return 0


def exec_command(args: argparse.Namespace, config: TfenvConfig) -> int:
    """Run the resolved version with the remaining arguments."""
    forwarded = list(args.args)
    if forwarded and forwarded[0] == "--":
        forwarded = forwarded[1:]
    version = _select_installed(_resolve_spec(None, config), config)
    return exec_version(config, config.product, version, forwarded)


def list_command(_args: Any, config: TfenvConfig) -> int:
    """List installed versions, marking the active one."""
    versions = installed_versions(config, config.product)
    if not versions:
        console.print(f"⚠️ [yellow]No {config.product.value} versions installed[/yellow]")
        return 0
    active = active_version(config)
    for version in versions:
        marker = "*" if version == active else " "
        print(f"{marker} {version}")
    return 0


def list_remote_command(args: argparse.Namespace, config: TfenvConfig) -> int:
    """List versions available for download."""
    for version in list_versions(config.product, config, include_prereleases=args.all):
        print(version)
    return 0


def version_name_command(_args: Any, config: TfenvConfig) -> int:
    """Print the version the current directory resolves to."""
    spec = _resolve_spec(None, config)
    try:
        version = _select_installed(spec, config)
    except NoMatchingVersionError:
        version = _select(spec, list_versions(config.product, config))
    print(version)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="tfenv",
        description="tfenv - Terraform and OpenTofu version manager",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--config-file",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--product",
        choices=[p.value for p in Product],
        help="Product to manage (overrides TFENV_PRODUCT)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    install_parser = subparsers.add_parser("install", help="Install a version")
    install_parser.add_argument(
        "version",
        nargs="?",
        help="Version, latest, latest:<regex>, latest-allowed or min-required "
        "(resolved from .terraform-version if omitted)",
    )
    install_parser.set_defaults(func=install_command)

    use_parser = subparsers.add_parser("use", help="Set the default version")
    use_parser.add_argument("version", help="An installed version or keyword")
    use_parser.set_defaults(func=use_command)

    list_parser = subparsers.add_parser("list", help="List installed versions")
    list_parser.set_defaults(func=list_command)

    list_remote_parser = subparsers.add_parser(
        "list-remote",
        help="List versions available for download",
    )
    list_remote_parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        help="Include pre-release versions",
    )
    list_remote_parser.set_defaults(func=list_remote_command)

    exec_parser = subparsers.add_parser(
        "exec",
        help="Run the resolved version, e.g. tfenv exec -- plan",
    )
    exec_parser.add_argument("args", nargs=argparse.REMAINDER)
    exec_parser.set_defaults(func=exec_command)

    version_name_parser = subparsers.add_parser(
        "version-name",
        help="Print the resolved version",
    )
    version_name_parser.set_defaults(func=version_name_command)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function to parse arguments and execute commands."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        config = TfenvConfig.load(config_file=args.config_file)
        if args.product:
            config.product = Product.parse(args.product)

        if not hasattr(args, "func"):
            parser.print_help()
            sys.exit(0)
        code = args.func(args, config)

    except TfenvError as e:
        console.print(f"❌ [bold red]{escape(e.message)}[/bold red]")
        if e.hint:
            console.print(f"   [yellow]Hint: {escape(e.hint)}[/yellow]")
        if e.retryable:
            console.print("   [yellow]This error may be temporary, try again[/yellow]")
        sys.exit(e.exit_code)
    except Exception as e:
        console.print(f"❌ [bold red]Error: {escape(str(e))}[/bold red]")
        console.print_exception()
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
